"""Fixed visual vocabulary shared by the page renderer and the readership views."""
from __future__ import annotations

from typing import Any

from models import Rating

# rating -> (badge css class, hex color)
RATING_COLORS: dict[Rating, tuple[str, str]] = {
    Rating.STRONG_BUY: ("rating-buy", "#16a34a"),
    Rating.BUY: ("rating-buy", "#16a34a"),
    Rating.HOLD: ("rating-hold", "#ca8a04"),
    Rating.SELL: ("rating-sell", "#dc2626"),
    Rating.STRONG_SELL: ("rating-sell", "#dc2626"),
}
DEFAULT_RATING_COLOR = ("rating-neutral", "#6b7280")

COUNTRY_FLAGS: dict[str, str] = {
    "united states": "🇺🇸",
    "canada": "🇨🇦",
    "united kingdom": "🇬🇧",
    "germany": "🇩🇪",
    "france": "🇫🇷",
    "switzerland": "🇨🇭",
    "netherlands": "🇳🇱",
    "sweden": "🇸🇪",
    "norway": "🇳🇴",
    "ireland": "🇮🇪",
    "italy": "🇮🇹",
    "spain": "🇪🇸",
    "japan": "🇯🇵",
    "china": "🇨🇳",
    "hong kong": "🇭🇰",
    "singapore": "🇸🇬",
    "australia": "🇦🇺",
    "india": "🇮🇳",
    "brazil": "🇧🇷",
    "south africa": "🇿🇦",
    "united arab emirates": "🇦🇪",
}
DEFAULT_FLAG = "🌍"

_COUNTRY_ALIASES: dict[str, str] = {
    "us": "united states",
    "usa": "united states",
    "u.s.": "united states",
    "u.s.a.": "united states",
    "ca": "canada",
    "uk": "united kingdom",
    "gb": "united kingdom",
    "great britain": "united kingdom",
    "de": "germany",
    "fr": "france",
    "ch": "switzerland",
    "nl": "netherlands",
    "se": "sweden",
    "no": "norway",
    "ie": "ireland",
    "it": "italy",
    "es": "spain",
    "jp": "japan",
    "cn": "china",
    "hk": "hong kong",
    "sg": "singapore",
    "au": "australia",
    "in": "india",
    "br": "brazil",
    "za": "south africa",
    "ae": "united arab emirates",
    "uae": "united arab emirates",
}


def rating_color(rating: Any) -> tuple[str, str]:
    try:
        parsed = Rating.parse(rating)
    except ValueError:
        return DEFAULT_RATING_COLOR
    return RATING_COLORS.get(parsed, DEFAULT_RATING_COLOR)


def country_flag(country: Any) -> str:
    key = str(country or "").strip().lower()
    key = _COUNTRY_ALIASES.get(key, key)
    return COUNTRY_FLAGS.get(key, DEFAULT_FLAG)
