from __future__ import annotations

import pytest

from brands import default_brand
from models import Rating, Ticker
from reporting.format_utils import format_tickers
from reporting.page_renderer import BASE_SIZES, build_report_document, render, render_all
from reporting.page_sizes import dimensions, to_pixels
from reporting.pagination import PLACEHOLDER_TEXT
from reporting.vocabulary import DEFAULT_FLAG, DEFAULT_RATING_COLOR, country_flag, rating_color


@pytest.mark.parametrize("zoom", [50, 75, 100, 150, 200])
def test_element_sizes_scale_with_zoom(make_report, zoom):
    layout = render(1, make_report(), zoom_percent=zoom)
    for name, base in BASE_SIZES.items():
        assert layout.element_sizes[name] == pytest.approx(base * zoom / 100)
    ratio = layout.element_sizes["company_name"] / layout.element_sizes["body"]
    assert ratio == pytest.approx(BASE_SIZES["company_name"] / BASE_SIZES["body"])


def test_page_html_uses_scaled_sizes(make_report):
    at_100 = render(1, make_report(), zoom_percent=100)
    at_200 = render(1, make_report(), zoom_percent=200)
    assert "--company-name: 20pt" in at_100.html
    assert "--company-name: 40pt" in at_200.html
    assert "--page-w: 816px" in at_100.html
    assert "--page-w: 1632px" in at_200.html


def test_pixel_dimensions_follow_format_and_zoom(make_report):
    layout = render(1, make_report(), zoom_percent=50)
    assert (layout.pixel_width, layout.pixel_height) == (408.0, 528.0)
    a4 = render(1, make_report(), zoom_percent=150, page_format="a4")
    assert a4.aspect_ratio == pytest.approx(210 / 297)


@pytest.mark.parametrize(
    "rating,color,css_class",
    [
        ("BUY", "#16a34a", "rating-buy"),
        ("STRONG_BUY", "#16a34a", "rating-buy"),
        ("HOLD", "#ca8a04", "rating-hold"),
        ("SELL", "#dc2626", "rating-sell"),
        ("strong sell", "#dc2626", "rating-sell"),
    ],
)
def test_rating_badge_color(make_report, rating, color, css_class):
    report = make_report()
    report.metadata.rating = Rating.parse(rating)
    html = render(1, report).html
    assert color in html
    assert f"rating-badge {css_class}" in html


def test_vocabulary_defaults():
    assert rating_color("NOT A RATING") == DEFAULT_RATING_COLOR
    assert country_flag("United States") == "🇺🇸"
    assert country_flag("us") == "🇺🇸"
    assert country_flag("UK") == "🇬🇧"
    assert country_flag("Atlantis") == DEFAULT_FLAG
    assert country_flag(None) == DEFAULT_FLAG


def test_ticker_formatting(make_report):
    tickers = [Ticker(symbol="KDOZ", exchange="TSXV"), Ticker(symbol="KDOZF", exchange="OTC")]
    assert format_tickers(tickers) == "KDOZ (TSXV), KDOZF (OTC)"
    assert "KDOZ (TSXV), KDOZF (OTC)" in render(1, make_report()).html


def test_footer_on_every_page_and_disclaimer_on_first(make_report):
    report = make_report(3, 12)
    brand = default_brand()
    pages = render_all(report)
    assert len(pages) == 4
    for page in pages:
        assert f"Page {page.page_index} of 4" in page.html
        assert brand.copyright_text in page.html
        assert brand.site_url in page.html
    assert report.disclaimer in pages[0].html
    assert all(report.disclaimer not in p.html for p in pages[1:])


def test_continuation_page_content(make_report):
    pages = render_all(make_report(0, 12))
    second = pages[1]
    assert "Acme Corp - Page 2" in second.html
    assert "Continued Analysis" in second.html
    assert "Extended Financial Data" in second.html
    assert PLACEHOLDER_TEXT in second.html
    assert "Financial Data (continued)" in second.html


def test_plain_text_is_escaped_and_rich_text_is_not(make_report):
    report = make_report(
        metadata={"companyName": "<script>alert(1)</script>", "rating": "HOLD"},
        highlights=["<b>bold move</b>"],
    )
    html = render(1, report).html
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "<li><b>bold move</b></li>" in html


def test_document_print_contract(make_report):
    report = make_report(3)
    doc = build_report_document(report, "a4")
    assert "size: 210mm 297mm;" in doc
    assert "margin: 0.75in 0.5in;" in doc
    assert "page-break-after: always" in doc
    assert "page-break-inside: avoid" in doc
    assert "window.__reportReady = true" in doc
    assert doc.count('class="pdf-page"') == 3
    assert "window.print()" not in doc
    assert "window.print()" in build_report_document(report, "a4", auto_print=True)


def test_document_embeds_logo_when_given(make_report):
    doc = build_report_document(make_report(), logo_data_uri="data:image/png;base64,AAAA")
    assert 'src="data:image/png;base64,AAAA"' in doc


@pytest.mark.parametrize("zoom", [25, 112.5, 300])
def test_layout_proportions_hold_at_any_zoom(make_report, zoom):
    report = make_report()
    at_100 = render(1, report, to_pixels(dimensions("letter"), zoom_percent=100), 100)
    layout = render(1, report, to_pixels(dimensions("letter"), zoom_percent=zoom), zoom)
    assert layout.zoom == zoom
    assert layout.element_sizes["sidebar_width"] == pytest.approx(BASE_SIZES["sidebar_width"] * zoom / 100)
    expected = at_100.element_sizes["sidebar_width"] / at_100.pixel_width
    assert layout.element_sizes["sidebar_width"] / layout.pixel_width == pytest.approx(expected)


def test_sidebar_comments_come_from_the_page_slice(make_report):
    comments = [{"author": "Desk", "text": f"Comment {i}"} for i in range(60)]
    html = render(1, make_report(analystComments=comments)).html
    assert html.count('class="comment-text"') == 3
    assert "Comment 2" in html
    assert "Comment 3<" not in html


def test_readership_block_on_last_page(make_report):
    records = [
        {"customer_name": "Hidden Fund", "customer_country": "Canada", "transaction_date": "2025-08-02T09:00:00", "is_embargoed": True},
        {"customer_name": "Maple Capital", "customer_country": "Canada", "transaction_date": "2025-08-01T09:00:00"},
    ] + [
        {"customer_name": f"Fund {i}", "customer_country": "Japan", "transaction_date": f"2025-07-{i + 1:02d}T09:00:00"}
        for i in range(20)
    ]
    pages = render_all(make_report(3, institutionalRecords=records))
    assert len(pages) == 3
    assert all("Institutional Readership" not in p.html for p in pages[:-1])
    last = pages[-1].html
    assert "Showing top 15 of 22 total institutional reads" in last
    assert "Embargo Rate: 4.5%" in last
    assert "🇨🇦 Canada" in last
    assert last.index("Maple Capital") < last.index("Fund 19<") < last.index("Fund 6<")
    assert "Fund 5<" not in last
    assert "Hidden Fund" not in last


def test_screen_page_box_matches_printable_area(make_report):
    layout = render(1, make_report())
    pt_to_px = 96 / 72
    content_h = layout.pixel_height - 2 * layout.element_sizes["page_margin_y"] * pt_to_px
    content_w = layout.pixel_width - 2 * layout.element_sizes["page_margin_x"] * pt_to_px
    assert content_h == pytest.approx((11 - 1.5) * 96)
    assert content_w == pytest.approx((8.5 - 1.0) * 96)

    doc = build_report_document(make_report(), "legal")
    print_css = doc[doc.index("@media print"):]
    assert "height: calc(14in - 2 * 0.75in);" in print_css
    assert "overflow: hidden;" in print_css
    assert "height: auto" not in print_css
