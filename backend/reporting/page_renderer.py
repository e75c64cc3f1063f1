"""
Research report page renderer.

Maps (page index, report, page size, zoom) to a self-contained HTML page. Every size
on a page comes from BASE_SIZES scaled by zoom / 100 and is emitted as a CSS custom
property on the page element, so zoom changes absolute scale only and never the
relative layout. build_report_document() stitches all pages into one print-safe
document used by preview and by every export strategy.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from brands import default_brand
from models import ReportData
from models_branding import BrandConfig

from .format_utils import esc, format_report_date, format_tickers
from .page_sizes import (
    DEFAULT_ZOOM,
    PixelDimensions,
    css_page_size,
    page_format as lookup_page_format,
    to_pixels,
)
from .pagination import DEFAULT_LIMITS, PLACEHOLDER_TEXT, ContentSlice, PaginationLimits, slice_for_page
from .vocabulary import country_flag, rating_color

# Print margins shared by every export path.
PRINT_MARGIN_TOP_BOTTOM = "0.75in"
PRINT_MARGIN_LEFT_RIGHT = "0.5in"

READY_FLAG = "__reportReady"

# Base sizes in points at 100% zoom. page_margin_y/x equal the print margins, so the
# on-screen content box is the printable area scaled by zoom.
BASE_SIZES: dict[str, float] = {
    "page_margin_y": 54.0,
    "page_margin_x": 36.0,
    "page_padding": 24.0,
    "gap": 10.0,
    "logo_height": 28.0,
    "brand_name": 14.0,
    "tagline": 8.0,
    "company_name": 20.0,
    "report_title": 13.0,
    "body": 9.0,
    "small": 7.5,
    "table": 7.5,
    "badge": 9.0,
    "section_title": 11.0,
    "footer": 6.5,
    "sidebar_width": 170.0,
    "rating_box_width": 120.0,
    "radius": 3.0,
    "rule": 1.0,
}


def scale(base: float, zoom_percent: float) -> float:
    return base * zoom_percent / 100


def element_sizes_for(zoom_percent: float) -> dict[str, float]:
    return {name: scale(base, zoom_percent) for name, base in BASE_SIZES.items()}


@dataclass
class PageLayout:
    page_index: int
    total_pages: int
    pixel_width: float
    pixel_height: float
    zoom: float
    page_format: str
    content_slice: ContentSlice
    element_sizes: dict[str, float] = field(default_factory=dict)
    html: str = ""

    @property
    def aspect_ratio(self) -> float:
        return self.pixel_width / self.pixel_height


def _css_vars(sizes: dict[str, float], pixels: PixelDimensions) -> str:
    parts = [f"--page-w: {pixels.width_px:g}px", f"--page-h: {pixels.height_px:g}px"]
    parts.extend(f"--{name.replace('_', '-')}: {value:g}pt" for name, value in sizes.items())
    return "; ".join(parts)


def _brand_block(brand: BrandConfig, logo_src: str) -> str:
    if logo_src:
        mark = f'<img class="brand-logo" src="{esc(logo_src)}" alt="{esc(brand.firm_name)}" />'
    else:
        mark = f'<div class="brand-wordmark">{esc(brand.firm_name)}</div>'
    tagline = f'<div class="brand-tagline">{esc(brand.tagline)}</div>' if brand.tagline else ""
    return f'<div class="brand">{mark}{tagline}</div>'


def _rating_box(report: ReportData) -> str:
    meta = report.metadata
    css_class, color = rating_color(meta.rating)
    return f"""
    <div class="rating-box">
      <div class="rating-badge {css_class}" style="background: {color}">{esc(meta.rating.label)}</div>
      <dl class="rating-facts">
        <dt>Current Price</dt><dd>{esc(meta.current_price)}</dd>
        <dt>Fair Value</dt><dd>{esc(meta.fair_value)}</dd>
        <dt>Risk</dt><dd>{esc(meta.risk)}</dd>
      </dl>
    </div>
    """


def _summary_header(report: ReportData, brand: BrandConfig, logo_src: str) -> str:
    meta = report.metadata
    return f"""
    <header class="page-header">
      {_brand_block(brand, logo_src)}
      <div class="report-date">{esc(format_report_date(meta.date))}</div>
    </header>
    <div class="company-block">
      <div class="company-main">
        <h1 class="company-name">{esc(meta.company_name)}</h1>
        <div class="tickers">{esc(format_tickers(meta.tickers))}</div>
        <span class="sector-badge">{esc(meta.sector)}</span>
        <h2 class="report-title">{esc(report.title)}</h2>
      </div>
      {_rating_box(report)}
    </div>
    """


def _continuation_header(report: ReportData, cs: ContentSlice, brand: BrandConfig, logo_src: str) -> str:
    return f"""
    <header class="page-header continuation">
      {_brand_block(brand, logo_src)}
      <div class="continuation-title">
        <div class="company-name-sm">{esc(report.metadata.company_name)} - Page {cs.page_index}</div>
        <div class="continuation-label">Continued Analysis</div>
      </div>
    </header>
    """


def _financial_table(columns: list[str], rows: list[list[str]], caption: str = "") -> str:
    if not columns or not rows:
        return ""
    head = "".join(f"<th>{esc(c)}</th>" for c in columns)
    body = "".join("<tr>" + "".join(f"<td>{esc(v)}</td>" for v in row) + "</tr>" for row in rows)
    title = f'<h3 class="block-title">{esc(caption)}</h3>' if caption else ""
    return f"""
    <div class="block financial-block">
      {title}
      <table class="financial-table"><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table>
    </div>
    """


def _sections_html(cs: ContentSlice) -> str:
    return "".join(
        f"""
        <div class="block analysis-section">
          <h3 class="section-title">{esc(s.title)}</h3>
          <div class="section-body">{s.html_content}</div>
        </div>
        """
        for s in cs.sections
    )


def _sidebar(report: ReportData, cs: ContentSlice) -> str:
    analyst = report.analyst_info
    perf_rows = "".join(
        f"<tr><td>{esc(p.security)}</td><td>{esc(p.ytd_return)}</td><td>{esc(p.one_month_return)}</td></tr>"
        for p in cs.performance
    )
    performance = (
        f"""
        <div class="block sidebar-block">
          <h3 class="block-title">Performance</h3>
          <table class="perf-table">
            <thead><tr><th>Security</th><th>YTD</th><th>1M</th></tr></thead>
            <tbody>{perf_rows}</tbody>
          </table>
        </div>
        """
        if perf_rows
        else ""
    )
    company_rows = "".join(f"<dt>{esc(label)}</dt><dd>{esc(value)}</dd>" for label, value in cs.company_data)
    comments = ""
    if cs.comments:
        items = "".join(
            f"""<li><span class="comment-text">{esc(c.text)}</span>
            <span class="comment-meta">{esc(c.author)}{' · ' + esc(c.date) if c.date else ''}</span></li>"""
            for c in cs.comments
        )
        comments = f'<div class="block sidebar-block"><h3 class="block-title">Analyst Commentary</h3><ul class="comments">{items}</ul></div>'
    return f"""
    <aside class="sidebar">
      <div class="block sidebar-block analyst">
        <div class="analyst-name">{esc(analyst.name)}, {esc(analyst.credentials)}</div>
        <div class="analyst-title">{esc(analyst.title)}</div>
      </div>
      {performance}
      <div class="block sidebar-block">
        <h3 class="block-title">Company Data</h3>
        <dl class="company-data">{company_rows}</dl>
      </div>
      {comments}
    </aside>
    """


def _summary_body(report: ReportData, cs: ContentSlice) -> str:
    highlights = "".join(f"<li>{h}</li>" for h in cs.highlights)
    summary = (
        f'<div class="block executive-summary">{report.executive_summary}</div>'
        if report.executive_summary
        else ""
    )
    highlight_block = (
        f'<div class="block highlights"><h3 class="block-title">Highlights</h3><ul>{highlights}</ul></div>'
        if highlights
        else ""
    )
    return f"""
    <div class="page-columns">
      <main class="main-column">
        {summary}
        {highlight_block}
        {_financial_table(cs.financial_columns, cs.financial_rows, "Financial Summary")}
        {_sections_html(cs)}
      </main>
      {_sidebar(report, cs)}
    </div>
    """


def _readership_block(cs: ContentSlice) -> str:
    rows = []
    for r in cs.readership_records:
        status = "Embargoed" if r.is_embargoed else "Revealed"
        accessed = r.access_date.strftime("%b %d, %Y") if r.access_date else "N/A"
        rows.append(
            f"<tr><td>{esc(r.institution_name)}</td><td>{esc(r.report_title)}</td>"
            f"<td>{country_flag(r.country)} {esc(r.country)}</td><td>{esc(r.city)}</td>"
            f'<td>{accessed}</td><td><span class="status-{status.lower()}">{status}</span></td></tr>'
        )
    rate = cs.readership_embargoed / cs.readership_total * 100 if cs.readership_total else 0.0
    return f"""
    <div class="block readership-block">
      <h3 class="block-title">Institutional Readership</h3>
      <table class="readership-table">
        <thead><tr><th>Institution</th><th>Report Title</th><th>Country</th><th>City</th><th>Access Date</th><th>Status</th></tr></thead>
        <tbody>{''.join(rows)}</tbody>
      </table>
      <div class="readership-note">Showing top {len(cs.readership_records)} of {cs.readership_total} total institutional reads · Embargo Rate: {rate:.1f}%</div>
    </div>
    """


def _continuation_body(cs: ContentSlice) -> str:
    parts = [_sections_html(cs)]
    if cs.extended_financial_rows:
        parts.append(_financial_table(cs.financial_columns, cs.extended_financial_rows, "Extended Financial Data"))
    if cs.overflow_financial_rows:
        parts.append(
            _financial_table(cs.financial_columns, cs.overflow_financial_rows, "Financial Data (continued)")
        )
    if cs.show_placeholder:
        parts.append(f'<div class="block placeholder">{esc(PLACEHOLDER_TEXT)}</div>')
    if cs.readership_records:
        parts.append(_readership_block(cs))
    return f'<div class="continuation-body">{"".join(parts)}</div>'


def _footer(report: ReportData, cs: ContentSlice, brand: BrandConfig) -> str:
    disclaimer = (
        f'<div class="disclaimer">{esc(report.disclaimer)}</div>' if cs.page_index == 1 else ""
    )
    return f"""
    <footer class="page-footer">
      {disclaimer}
      <div class="footer-row">
        <span class="copyright">{esc(brand.footer_copyright)}</span>
        <span class="page-number">Page {cs.page_index} of {cs.total_pages}</span>
        <span class="site-url">{esc(brand.site_url)}</span>
      </div>
    </footer>
    """


def render(
    page_index: int,
    report: ReportData,
    pixel_dimensions: PixelDimensions | None = None,
    zoom_percent: float = DEFAULT_ZOOM,
    *,
    page_format: str = "letter",
    brand: BrandConfig | None = None,
    logo_src: str = "",
    limits: PaginationLimits = DEFAULT_LIMITS,
) -> PageLayout:
    """
    Render one page. ``pixel_dimensions`` defaults to the page format at ``zoom_percent``;
    an out-of-range ``page_index`` raises ValueError.

    ``zoom_percent`` is used as given; clamping to the viewer's zoom range belongs to the
    zoom controls. Element sizes and pixel size share the same factor.
    """
    zoom = float(zoom_percent)
    fmt = lookup_page_format(page_format)
    pixels = pixel_dimensions or to_pixels(fmt.dimensions, zoom_percent=zoom)
    brand = brand or default_brand()

    cs = slice_for_page(page_index, report, limits)
    sizes = element_sizes_for(zoom)
    if cs.is_summary:
        header = _summary_header(report, brand, logo_src)
        body = _summary_body(report, cs)
    else:
        header = _continuation_header(report, cs, brand, logo_src)
        body = _continuation_body(cs)

    page_html = f"""
    <section class="pdf-page" data-page="{cs.page_index}" data-kind="{cs.kind}" style="{_css_vars(sizes, pixels)}">
      {header}
      <div class="page-content">{body}</div>
      {_footer(report, cs, brand)}
    </section>
    """.strip()

    return PageLayout(
        page_index=cs.page_index,
        total_pages=cs.total_pages,
        pixel_width=pixels.width_px,
        pixel_height=pixels.height_px,
        zoom=zoom,
        page_format=fmt.key,
        content_slice=cs,
        element_sizes=sizes,
        html=page_html,
    )


def render_all(
    report: ReportData,
    page_format: str = "letter",
    zoom: float = DEFAULT_ZOOM,
    *,
    brand: BrandConfig | None = None,
    logo_src: str = "",
    limits: PaginationLimits = DEFAULT_LIMITS,
) -> list[PageLayout]:
    first = render(1, report, None, zoom, page_format=page_format, brand=brand, logo_src=logo_src, limits=limits)
    pages = [first]
    for i in range(2, first.total_pages + 1):
        pages.append(render(i, report, None, zoom, page_format=page_format, brand=brand, logo_src=logo_src, limits=limits))
    return pages


def _document_css(page_format: str, brand: BrandConfig) -> str:
    dims = lookup_page_format(page_format).dimensions
    page_height = f"{dims.height_units:g}{dims.unit}"
    return f"""
    @page {{
      size: {css_page_size(page_format)};
      margin: {PRINT_MARGIN_TOP_BOTTOM} {PRINT_MARGIN_LEFT_RIGHT};
    }}
    * {{ box-sizing: border-box; }}
    html, body {{
      margin: 0;
      padding: 0;
      background: #e5e7eb;
      color: #111827;
      font-family: {brand.font_family};
      -webkit-print-color-adjust: exact;
      print-color-adjust: exact;
    }}
    .pdf-report {{ display: flex; flex-direction: column; align-items: center; gap: 16px; padding: 16px 0; }}
    .pdf-page {{
      width: var(--page-w);
      height: var(--page-h);
      padding: var(--page-margin-y) var(--page-margin-x);
      background: #fff;
      display: flex;
      flex-direction: column;
      overflow: hidden;
      font-size: var(--body);
      page-break-after: always;
      break-after: page;
    }}
    .pdf-page:last-child {{ page-break-after: auto; break-after: auto; }}
    .block, table, .rating-box, .company-block {{ page-break-inside: avoid; break-inside: avoid; }}
    .page-header {{
      display: flex; justify-content: space-between; align-items: center;
      border-bottom: var(--rule) solid {brand.primary_color};
      padding-bottom: var(--gap); margin-bottom: var(--gap);
    }}
    .brand-logo {{ height: var(--logo-height); }}
    .brand-wordmark {{ font-size: var(--brand-name); font-weight: 700; color: {brand.primary_color}; }}
    .brand-tagline {{ font-size: var(--tagline); color: #6b7280; }}
    .report-date, .continuation-label {{ font-size: var(--small); color: #6b7280; text-align: right; }}
    .company-name-sm {{ font-size: var(--section-title); font-weight: 600; text-align: right; }}
    .company-block {{ display: flex; justify-content: space-between; gap: var(--gap); margin-bottom: var(--gap); }}
    .company-name {{ font-size: var(--company-name); margin: 0; color: {brand.primary_color}; }}
    .tickers {{ font-size: var(--small); color: #374151; }}
    .sector-badge {{
      display: inline-block; font-size: var(--small); padding: 0 var(--radius);
      border: var(--rule) solid {brand.accent_color}; border-radius: var(--radius); color: {brand.accent_color};
    }}
    .report-title {{ font-size: var(--report-title); margin: var(--gap) 0 0; }}
    .rating-box {{ width: var(--rating-box-width); font-size: var(--small); }}
    .rating-badge {{
      color: #fff; font-size: var(--badge); font-weight: 700; text-align: center;
      border-radius: var(--radius); padding: var(--radius);
    }}
    .rating-facts {{ display: grid; grid-template-columns: 1fr auto; margin: var(--radius) 0 0; }}
    .rating-facts dd, .company-data dd {{ margin: 0; text-align: right; font-weight: 600; }}
    .page-content {{ flex: 1; overflow: hidden; }}
    .page-columns {{ display: flex; gap: var(--gap); }}
    .main-column {{ flex: 1; min-width: 0; }}
    .sidebar {{ width: var(--sidebar-width); flex: none; font-size: var(--small); }}
    .block {{ margin-bottom: var(--gap); }}
    .block-title, .section-title {{ font-size: var(--section-title); color: {brand.primary_color}; margin: 0 0 var(--radius); }}
    .company-data {{ display: grid; grid-template-columns: 1fr auto; margin: 0; }}
    .financial-table, .perf-table {{ width: 100%; border-collapse: collapse; font-size: var(--table); }}
    .financial-table th, .perf-table th {{ background: {brand.primary_color}; color: #fff; text-align: left; }}
    .financial-table td, .financial-table th, .perf-table td, .perf-table th {{
      padding: var(--radius); border-bottom: var(--rule) solid #e5e7eb;
    }}
    .comments {{ list-style: none; margin: 0; padding: 0; }}
    .comment-meta {{ display: block; color: #6b7280; }}
    .readership-table {{ width: 100%; border-collapse: collapse; font-size: var(--small); }}
    .readership-table th {{ background: {brand.primary_color}; color: #fff; text-align: left; }}
    .readership-table td, .readership-table th {{ padding: var(--radius); border-bottom: var(--rule) solid #e5e7eb; }}
    .status-embargoed {{ color: #f59e0b; font-weight: 700; }}
    .status-revealed {{ color: #22c55e; font-weight: 700; }}
    .readership-note {{ font-size: var(--small); color: #6b7280; margin-top: var(--radius); }}
    .placeholder {{ color: #9ca3af; font-style: italic; text-align: center; padding: var(--page-padding); }}
    .page-footer {{ font-size: var(--footer); color: #6b7280; border-top: var(--rule) solid #e5e7eb; padding-top: var(--radius); }}
    .footer-row {{ display: flex; justify-content: space-between; }}
    .disclaimer {{ margin-bottom: var(--radius); }}
    @media print {{
      html, body {{ background: #fff; }}
      .pdf-report {{ display: block; padding: 0; }}
      .pdf-page {{
        width: auto;
        height: calc({page_height} - 2 * {PRINT_MARGIN_TOP_BOTTOM});
        padding: 0;
        overflow: hidden;
      }}
    }}
    """


def _ready_script(auto_print: bool) -> str:
    print_call = "window.print();" if auto_print else ""
    return f"""
    <script>
    (function () {{
      var fonts = document.fonts ? document.fonts.ready : Promise.resolve();
      var images = Array.prototype.map.call(document.images, function (img) {{
        if (img.complete) return Promise.resolve();
        return new Promise(function (done) {{
          img.addEventListener("load", done);
          img.addEventListener("error", done);
        }});
      }});
      Promise.all([fonts].concat(images)).then(function () {{
        window.{READY_FLAG} = true;
        {print_call}
      }});
    }})();
    </script>
    """


def build_report_document(
    report: ReportData,
    page_format: str = "letter",
    zoom: float = DEFAULT_ZOOM,
    brand: BrandConfig | None = None,
    logo_data_uri: str = "",
    auto_print: bool = False,
    limits: PaginationLimits = DEFAULT_LIMITS,
) -> str:
    brand = brand or default_brand()
    pages = render_all(report, page_format, zoom, brand=brand, logo_src=logo_data_uri, limits=limits)
    return f"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>{esc(report.metadata.company_name)} - {esc(report.title)}</title>
  <style>{_document_css(page_format, brand)}</style>
</head>
<body>
  <div class="pdf-report" data-total-pages="{len(pages)}">
  {''.join(p.html for p in pages)}
  </div>
  {_ready_script(auto_print)}
</body>
</html>
    """.strip()
