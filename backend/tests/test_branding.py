"""Tests for BrandConfig, the brand registry, and branded page output."""
from fastapi.testclient import TestClient

# Conftest adds backend dir to path: use direct imports (no backend. prefix)
from brands import DEFAULT_BRAND_ID, default_brand, get_brand, list_brands
from main import app
from models_branding import BrandConfig
from reporting.page_renderer import render


# --- BrandConfig validation ---
def test_brand_config_defaults():
    b = BrandConfig(brand_id="test", firm_name="Test Research")
    assert b.logo_url is None
    assert b.footer_copyright == "© Test Research"
    assert b.primary_color.startswith("#")


def test_registry_lookup():
    assert default_brand().brand_id == DEFAULT_BRAND_ID
    assert default_brand().site_url == "www.researchfrc.com"
    assert get_brand("missing") is None
    assert {b.brand_id for b in list_brands()} == {"default", "plain"}


def test_brand_drives_header_and_footer(make_report):
    brand = BrandConfig(
        brand_id="t",
        firm_name="Northwind Equity",
        tagline="Small-cap coverage",
        copyright_text="(c) Northwind",
        site_url="northwind.example",
        primary_color="#123456",
    )
    html = render(1, make_report(), brand=brand).html
    assert "Northwind Equity" in html
    assert "Small-cap coverage" in html
    assert "(c) Northwind" in html
    assert "northwind.example" in html


def test_brands_endpoint():
    res = TestClient(app).get("/brands")
    assert res.status_code == 200
    assert any(b["firm_name"] == "Fundamental Research Corp." for b in res.json())
