"""
Report export strategies.

All three strategies consume the same document from build_report_document():

* rasterize: screenshot each rendered page in Chromium and assemble the bitmaps into a
  PDF with ReportLab. Never raises; anything it cannot capture becomes a placeholder page.
* print: hand back the print-ready HTML document with an auto-print hook.
* headless: Chromium's own page.pdf(). Failures surface as ReportExportError and the
  browser is closed on every path.
"""
from __future__ import annotations

import base64
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from enum import Enum
from io import BytesIO

import requests
from PIL import Image, UnidentifiedImageError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from brands import default_brand
from models import ReportData
from models_branding import BrandConfig

from .format_utils import sanitize_filename_component
from .page_renderer import (
    PRINT_MARGIN_LEFT_RIGHT,
    PRINT_MARGIN_TOP_BOTTOM,
    READY_FLAG,
    build_report_document,
)
from .page_sizes import DEFAULT_ZOOM, page_format as lookup_page_format, to_pixels, to_points
from .pagination import compute_total_pages

logger = logging.getLogger(__name__)

REPORT_READY_TIMEOUT_MS = int(os.environ.get("REPORT_READY_TIMEOUT_MS", "5000"))
LOGO_FETCH_TIMEOUT_S = float(os.environ.get("LOGO_FETCH_TIMEOUT_S", "5"))
MAX_LOGO_BYTES = 1_500_000

CAPTURE_PLACEHOLDER_TEXT = "Chart not available for export"
HEADLESS_VIEWPORT = {"width": 1200, "height": 1600}
DEVICE_SCALE_FACTOR = 2
PDF_MARGIN = {
    "top": PRINT_MARGIN_TOP_BOTTOM,
    "bottom": PRINT_MARGIN_TOP_BOTTOM,
    "left": PRINT_MARGIN_LEFT_RIGHT,
    "right": PRINT_MARGIN_LEFT_RIGHT,
}

PDF_MEDIA_TYPE = "application/pdf"
HTML_MEDIA_TYPE = "text/html; charset=utf-8"


class ReportExportError(Exception):
    """Headless export failed (browser launch, render or close)."""


class ExportCapability(str, Enum):
    RASTERIZE = "rasterize"
    PRINT = "print"
    HEADLESS = "headless"


@dataclass
class ExportRequest:
    report: ReportData
    page_format: str = "letter"
    brand: BrandConfig | None = None
    filename_kind: str = "Report"
    use_ticker: bool = False
    on_date: date | None = None


@dataclass
class ExportResult:
    content: bytes
    media_type: str
    filename: str
    strategy: str
    pages: int
    used_placeholder: bool = False


def build_pdf_filename(name: str, kind: str = "Report", on_date: date | None = None, extension: str = "pdf") -> str:
    """``{Sanitized}_{Report|Investment}_{YYYY-MM-DD}.pdf``"""
    stamp = (on_date or date.today()).isoformat()
    return f"{sanitize_filename_component(name)}_{kind}_{stamp}.{extension}"


def report_filename(
    report: ReportData,
    kind: str = "Report",
    use_ticker: bool = False,
    on_date: date | None = None,
    extension: str = "pdf",
) -> str:
    name = report.metadata.company_name
    if use_ticker and report.metadata.tickers:
        name = report.metadata.tickers[0].symbol
    return build_pdf_filename(name, kind, on_date, extension)


def _sniff_image_mime(raw: bytes) -> str:
    if raw.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if raw.startswith(b"GIF8"):
        return "image/gif"
    if raw.lstrip().startswith(b"<svg") or raw.lstrip().startswith(b"<?xml"):
        return "image/svg+xml"
    return "image/png"


def fetch_logo_data_uri(url: str | None, timeout: float = LOGO_FETCH_TIMEOUT_S) -> str:
    """Fetch a logo and return it as a data: URI, or '' when it cannot be fetched."""
    if not url:
        return ""
    if url.startswith("data:image/"):
        return url
    try:
        resp = requests.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("logo fetch failed url=%s error=%s", url, exc)
        return ""
    raw = resp.content or b""
    if not raw or len(raw) > MAX_LOGO_BYTES:
        logger.warning("logo skipped url=%s bytes=%d", url, len(raw))
        return ""
    mime = (resp.headers.get("Content-Type") or "").split(";")[0].strip()
    if not mime.startswith("image/"):
        mime = _sniff_image_mime(raw)
    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"


def wait_until_ready(page, timeout_ms: int = REPORT_READY_TIMEOUT_MS) -> bool:
    """Block until the document sets its readiness flag. A timeout is logged, not raised."""
    try:
        page.wait_for_function(f"() => window.{READY_FLAG} === true", timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        logger.warning("report readiness flag not set within %dms; exporting anyway", timeout_ms)
        return False


def _draw_placeholder(pdf: canvas.Canvas, page_w: float, page_h: float) -> None:
    pdf.setFont("Helvetica", 14)
    pdf.setFillColorRGB(0.42, 0.45, 0.5)
    pdf.drawCentredString(page_w / 2, page_h / 2, CAPTURE_PLACEHOLDER_TEXT)


def _open_bitmap(data: bytes | None) -> Image.Image | None:
    if not data:
        return None
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("unreadable page bitmap: %s", exc)
        return None
    if img.width <= 0 or img.height <= 0:
        return None
    return img


def fit_scale(bitmap_w: float, bitmap_h: float, box_w: float, box_h: float) -> float:
    return min(box_w / bitmap_w, box_h / bitmap_h)


def assemble_pdf(bitmaps: list[bytes | None], page_format: str = "letter") -> tuple[bytes, bool]:
    """
    One PDF page per bitmap. Each captured page already carries the print margins as
    padding, so the bitmap is scaled uniformly to fit the physical page and centered.
    A missing or unreadable bitmap becomes a placeholder page. Returns (pdf bytes,
    whether any placeholder was used).
    """
    page_w, page_h = to_points(lookup_page_format(page_format).dimensions)
    buf = BytesIO()
    pdf = canvas.Canvas(buf, pagesize=(page_w, page_h))
    used_placeholder = False
    for data in bitmaps or [None]:
        img = _open_bitmap(data)
        if img is None:
            used_placeholder = True
            _draw_placeholder(pdf, page_w, page_h)
        else:
            ratio = fit_scale(img.width, img.height, page_w, page_h)
            draw_w, draw_h = img.width * ratio, img.height * ratio
            x = (page_w - draw_w) / 2
            y = (page_h - draw_h) / 2
            pdf.drawImage(ImageReader(img), x, y, width=draw_w, height=draw_h)
        pdf.showPage()
    pdf.save()
    return buf.getvalue(), used_placeholder


class ExportStrategy(ABC):
    capability: ExportCapability

    @abstractmethod
    def export(self, request: ExportRequest) -> ExportResult:
        raise NotImplementedError

    def _prepare(self, request: ExportRequest) -> tuple[ReportData, BrandConfig]:
        # Each export works on its own copy of the report.
        return request.report.model_copy(deep=True), request.brand or default_brand()


class RasterizeExportStrategy(ExportStrategy):
    capability = ExportCapability.RASTERIZE

    def __init__(
        self,
        container_selector: str = ".pdf-report",
        page_selector: str = ".pdf-page",
        ready_timeout_ms: int = REPORT_READY_TIMEOUT_MS,
    ):
        self.container_selector = container_selector
        self.page_selector = page_selector
        self.ready_timeout_ms = ready_timeout_ms

    def capture(self, html_doc: str, page_format: str) -> list[bytes]:
        """Screenshot every rendered page at 2x. Returns [] when the container is missing."""
        pixels = to_pixels(lookup_page_format(page_format).dimensions, zoom_percent=DEFAULT_ZOOM)
        viewport = {"width": int(pixels.width_px) + 64, "height": int(pixels.height_px) + 64}
        with sync_playwright() as p:
            browser = p.chromium.launch()
            try:
                context = browser.new_context(viewport=viewport, device_scale_factor=DEVICE_SCALE_FACTOR)
                page = context.new_page()
                page.set_content(html_doc, wait_until="networkidle")
                wait_until_ready(page, self.ready_timeout_ms)
                container = page.query_selector(self.container_selector)
                if container is None:
                    logger.warning("capture target %s not found", self.container_selector)
                    return []
                return [el.screenshot(type="png") for el in container.query_selector_all(self.page_selector)]
            finally:
                browser.close()

    def export(self, request: ExportRequest) -> ExportResult:
        report, brand = self._prepare(request)
        html_doc = build_report_document(report, request.page_format, DEFAULT_ZOOM, brand, brand.logo_url or "")
        try:
            bitmaps: list[bytes | None] = list(self.capture(html_doc, request.page_format))
        except Exception as exc:
            logger.warning("rasterize capture failed, using placeholder: %s", exc)
            bitmaps = []
        pdf_bytes, used_placeholder = assemble_pdf(bitmaps, request.page_format)
        if used_placeholder:
            logger.warning("rasterize export used placeholder page(s) company=%s", report.metadata.company_name)
        return ExportResult(
            content=pdf_bytes,
            media_type=PDF_MEDIA_TYPE,
            filename=report_filename(report, request.filename_kind, request.use_ticker, request.on_date),
            strategy=self.capability.value,
            pages=max(len(bitmaps), 1),
            used_placeholder=used_placeholder,
        )


class PrintExportStrategy(ExportStrategy):
    capability = ExportCapability.PRINT

    def export(self, request: ExportRequest) -> ExportResult:
        report, brand = self._prepare(request)
        html_doc = build_report_document(
            report, request.page_format, DEFAULT_ZOOM, brand, brand.logo_url or "", auto_print=True
        )
        return ExportResult(
            content=html_doc.encode("utf-8"),
            media_type=HTML_MEDIA_TYPE,
            filename=report_filename(report, request.filename_kind, request.use_ticker, request.on_date, "html"),
            strategy=self.capability.value,
            pages=compute_total_pages(report),
        )


class HeadlessExportStrategy(ExportStrategy):
    capability = ExportCapability.HEADLESS

    def __init__(self, ready_timeout_ms: int = REPORT_READY_TIMEOUT_MS, logo_timeout_s: float = LOGO_FETCH_TIMEOUT_S):
        self.ready_timeout_ms = ready_timeout_ms
        self.logo_timeout_s = logo_timeout_s

    def render_pdf(self, html_doc: str, page_format: str) -> bytes:
        fmt = lookup_page_format(page_format)
        try:
            with sync_playwright() as p:
                try:
                    browser = p.chromium.launch()
                except Exception as exc:
                    raise ReportExportError(f"browser launch failed: {exc}") from exc
                failure: Exception | None = None
                try:
                    context = browser.new_context(viewport=HEADLESS_VIEWPORT, device_scale_factor=DEVICE_SCALE_FACTOR)
                    page = context.new_page()
                    page.set_content(html_doc, wait_until="networkidle")
                    wait_until_ready(page, self.ready_timeout_ms)
                    page.emulate_media(media="print")
                    return page.pdf(
                        format=fmt.paper_format,
                        print_background=True,
                        prefer_css_page_size=True,
                        margin=PDF_MARGIN,
                        scale=1.0,
                    )
                except Exception as exc:
                    failure = exc
                    raise ReportExportError(f"pdf render failed: {exc}") from exc
                finally:
                    try:
                        browser.close()
                    except Exception as close_exc:
                        logger.warning("browser close failed: %s", close_exc)
                        if failure is None:
                            raise ReportExportError(f"browser close failed: {close_exc}") from close_exc
        except ReportExportError:
            raise
        except Exception as exc:
            raise ReportExportError(f"headless browser unavailable: {exc}") from exc

    def export(self, request: ExportRequest) -> ExportResult:
        report, brand = self._prepare(request)
        logo = fetch_logo_data_uri(brand.logo_url, timeout=self.logo_timeout_s)
        html_doc = build_report_document(report, request.page_format, DEFAULT_ZOOM, brand, logo)
        pdf_bytes = self.render_pdf(html_doc, request.page_format)
        return ExportResult(
            content=pdf_bytes,
            media_type=PDF_MEDIA_TYPE,
            filename=report_filename(report, request.filename_kind, request.use_ticker, request.on_date),
            strategy=self.capability.value,
            pages=compute_total_pages(report),
        )


STRATEGIES: dict[ExportCapability, type[ExportStrategy]] = {
    ExportCapability.RASTERIZE: RasterizeExportStrategy,
    ExportCapability.PRINT: PrintExportStrategy,
    ExportCapability.HEADLESS: HeadlessExportStrategy,
}


def select_strategy(capability: ExportCapability | str) -> ExportStrategy:
    return STRATEGIES[ExportCapability(capability)]()


def export_report(request: ExportRequest, capability: ExportCapability | str = ExportCapability.HEADLESS) -> ExportResult:
    strategy = select_strategy(capability)
    logger.info(
        "export start strategy=%s company=%s format=%s",
        strategy.capability.value,
        request.report.metadata.company_name,
        request.page_format,
    )
    result = strategy.export(request)
    logger.info(
        "export done strategy=%s pages=%d bytes=%d placeholder=%s",
        result.strategy,
        result.pages,
        len(result.content),
        result.used_placeholder,
    )
    return result
