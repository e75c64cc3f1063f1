"""Consistent text formatting for report pages: tickers, dates, clipped HTML, filenames."""
from __future__ import annotations

import html
import re
from datetime import date, datetime
from html.parser import HTMLParser
from typing import Any, Iterable

ELLIPSIS = "..."

# Elements that never take a closing tag.
_VOID_TAGS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
}
_PARTIAL_TAG_RE = re.compile(r"<[^>]*$")
_FILENAME_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")


def esc(value: Any) -> str:
    return html.escape(str(value if value is not None else ""), quote=True)


def format_tickers(tickers: Iterable[Any]) -> str:
    """'SYMBOL (EXCHANGE)' pairs joined by ', '."""
    parts = []
    for t in tickers:
        if isinstance(t, dict):
            symbol, exchange = t.get("symbol", ""), t.get("exchange", "")
        else:
            symbol, exchange = getattr(t, "symbol", ""), getattr(t, "exchange", "")
        parts.append(f"{symbol} ({exchange})")
    return ", ".join(parts)


def format_report_date(d: Any) -> str:
    if d is None or d == "":
        return date.today().strftime("%B %d, %Y").replace(" 0", " ")
    if isinstance(d, (date, datetime)):
        return d.strftime("%B %d, %Y").replace(" 0", " ")
    return str(d).strip()


class _OpenTagTracker(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.stack: list[str] = []

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag not in _VOID_TAGS:
            self.stack.append(tag)

    def handle_startendtag(self, tag: str, attrs) -> None:
        return None

    def handle_endtag(self, tag: str) -> None:
        if tag in self.stack:
            # Close everything opened after the matching tag as well.
            idx = len(self.stack) - 1 - self.stack[::-1].index(tag)
            del self.stack[idx:]


def close_open_tags(fragment: str) -> str:
    tracker = _OpenTagTracker()
    tracker.feed(fragment)
    tracker.close()
    return fragment + "".join(f"</{tag}>" for tag in reversed(tracker.stack))


def truncate_html(fragment: str, limit: int, marker: str = ELLIPSIS) -> str:
    """
    Clip an HTML fragment to ``limit`` raw characters plus ``marker``.

    Fragments at or under the limit come back untouched. A clipped fragment loses any
    dangling partial tag and gets its still-open elements closed, so the clip never
    bleeds formatting into whatever is rendered after it.
    """
    text = fragment or ""
    if len(text) <= limit:
        return text
    clipped = _PARTIAL_TAG_RE.sub("", text[:limit])
    # A cut inside an entity like "&amp;" leaves a stray ampersand run.
    clipped = re.sub(r"&[A-Za-z0-9#]*$", "", clipped)
    return close_open_tags(clipped + marker)


def sanitize_filename_component(name: str, fallback: str = "Report") -> str:
    """Replace every character outside [A-Za-z0-9] with '_'."""
    text = str(name or "").strip()
    if not text:
        text = fallback
    return _FILENAME_UNSAFE_RE.sub("_", text)
