"""In-repo brand registry for research report output."""
from __future__ import annotations

import os

from models_branding import BrandConfig

DEFAULT_BRAND_ID = "default"

BRANDS: dict[str, BrandConfig] = {
    "default": BrandConfig(
        brand_id="default",
        firm_name="Fundamental Research Corp.",
        tagline="Independent Equity Research",
        copyright_text="©2025 Fundamental Research Corp.",
        site_url="www.researchfrc.com",
        logo_url=(os.environ.get("REPORT_LOGO_URL") or "").strip() or None,
        primary_color="#1e3a5f",
        accent_color="#2563eb",
        font_family="'Helvetica Neue', Arial, sans-serif",
    ),
    "plain": BrandConfig(
        brand_id="plain",
        firm_name="Equity Research",
        tagline="",
        copyright_text="",
        site_url="",
        logo_url=None,
        primary_color="#111111",
        accent_color="#4b5563",
        font_family="Georgia, 'Times New Roman', serif",
    ),
}


def get_brand(brand_id: str) -> BrandConfig | None:
    return BRANDS.get(brand_id)


def default_brand() -> BrandConfig:
    return BRANDS[DEFAULT_BRAND_ID]


def list_brands() -> list[BrandConfig]:
    return list(BRANDS.values())
