from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path

from dotenv import load_dotenv

# Load .env from backend directory so BACKEND_API_URL etc. are available
load_dotenv(Path(__file__).resolve().parent / ".env")

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from playwright.sync_api import sync_playwright
from starlette.middleware.base import BaseHTTPMiddleware

from brands import get_brand, list_brands
from cache.disk_cache import get_cached_report_pdf, set_cached_report_pdf
from models import (
    CreateReportResponse,
    DashboardSummariesRequest,
    PageSummary,
    ReportData,
    ReportExportRequest,
    ReportPlanResponse,
    ReportRenderRequest,
)
from models_branding import BrandConfig
from reporting.export import (
    ExportRequest,
    HeadlessExportStrategy,
    ReportExportError,
    export_report,
    report_filename,
)
from reporting.page_renderer import build_report_document, render, render_all
from reporting.page_sizes import PAGE_FORMATS, clamp_zoom, to_pixels, to_points
from reports_store import load_report, save_report
from services.readership import PAGE_SIZE_OPTIONS, DEFAULT_PAGE_SIZE, InstitutionalReadershipTable, ReadershipState
from services.readership_client import ReadershipClient, fetch_all

VERSION = (os.environ.get("GIT_COMMIT") or "").strip() or "unknown"

app = FastAPI(title="Research Report Backend", version="0.1.0")

# CORS: use ALLOWED_ORIGINS env (comma-separated) if set, else default
_origins_env = os.environ.get("ALLOWED_ORIGINS", "").strip()
if _origins_env:
    ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
else:
    ALLOWED_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_LOG = logging.getLogger("uvicorn.error")


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)


@app.on_event("startup")
def startup_log() -> None:
    port = os.environ.get("PORT", "8010")
    host = os.environ.get("HOST", "127.0.0.1")
    _LOG.info("Backend starting on http://%s:%s version=%s", host, port, VERSION)


def get_readership_client() -> ReadershipClient:
    return ReadershipClient()


def _brand_or_400(brand_id: str) -> BrandConfig:
    brand = get_brand(brand_id)
    if brand is None:
        raise HTTPException(status_code=400, detail=f"Unknown brand_id: {brand_id}")
    return brand


@app.get("/health")
def health():
    return {"status": "ok", "version": VERSION}


@app.get("/health/pdf")
def health_pdf():
    """
    Runtime check for Playwright PDF dependencies.
    Returns 200 only when Chromium can launch successfully.
    """
    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(args=["--no-sandbox"])
            try:
                page = browser.new_page()
                page.set_content("<html><body>ok</body></html>")
            finally:
                browser.close()
    except Exception as e:
        msg = str(e)
        if len(msg) > 500:
            msg = msg[:500]
        raise HTTPException(
            status_code=503,
            detail=f"Playwright runtime unavailable: {msg}",
        ) from e

    return {"status": "ok", "pdf_runtime": "ready"}


@app.get("/brands")
def get_brands_list():
    """Return list of available brands for UI dropdown."""
    return [b.model_dump() for b in list_brands()]


@app.get("/page-formats")
def get_page_formats():
    out = []
    for fmt in PAGE_FORMATS.values():
        px = to_pixels(fmt.dimensions)
        pt_w, pt_h = to_points(fmt.dimensions)
        out.append(
            {
                "key": fmt.key,
                "name": fmt.name,
                "width": fmt.dimensions.width_units,
                "height": fmt.dimensions.height_units,
                "unit": fmt.dimensions.unit,
                "width_px": px.width_px,
                "height_px": px.height_px,
                "width_pt": pt_w,
                "height_pt": pt_h,
                "css_size": fmt.css_size,
            }
        )
    return out


@app.post("/report/plan", response_model=ReportPlanResponse)
def plan_report(req: ReportRenderRequest) -> ReportPlanResponse:
    """Total pages and a per-page summary of what each page carries."""
    zoom = clamp_zoom(req.zoom)
    pages = render_all(req.report, req.page_format, zoom)
    summaries = [
        PageSummary(
            page_index=p.page_index,
            kind=p.content_slice.kind,
            pixel_width=p.pixel_width,
            pixel_height=p.pixel_height,
            highlights=len(p.content_slice.highlights),
            financial_rows=len(p.content_slice.financial_rows),
            extended_financial_rows=len(p.content_slice.extended_financial_rows),
            overflow_financial_rows=len(p.content_slice.overflow_financial_rows),
            sections=len(p.content_slice.sections),
            placeholder=p.content_slice.show_placeholder,
        )
        for p in pages
    ]
    return ReportPlanResponse(
        page_format=pages[0].page_format,
        zoom=zoom,
        total_pages=len(pages),
        pages=summaries,
    )


@app.post("/report/pages/{page_index}")
def render_report_page(page_index: int, req: ReportRenderRequest):
    brand = _brand_or_400(req.brand_id)
    try:
        layout = render(
            page_index, req.report, None, clamp_zoom(req.zoom), page_format=req.page_format, brand=brand
        )
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {
        "page_index": layout.page_index,
        "total_pages": layout.total_pages,
        "page_format": layout.page_format,
        "zoom": layout.zoom,
        "pixel_width": layout.pixel_width,
        "pixel_height": layout.pixel_height,
        "element_sizes": layout.element_sizes,
        "html": layout.html,
    }


@app.post("/report/preview", response_class=HTMLResponse)
def build_report_preview(req: ReportRenderRequest) -> HTMLResponse:
    """Whole paginated report as one HTML document (no Playwright required)."""
    brand = _brand_or_400(req.brand_id)
    html_str = build_report_document(req.report, req.page_format, clamp_zoom(req.zoom), brand, brand.logo_url or "")
    return HTMLResponse(html_str)


@app.post("/report/export")
def export_report_endpoint(req: ReportExportRequest) -> Response:
    """
    Export with the requested strategy. Rasterize always yields a PDF (placeholder pages
    on capture failure); print returns auto-printing HTML; headless failures are 503.
    """
    brand = _brand_or_400(req.brand_id)
    export_req = ExportRequest(
        report=req.report,
        page_format=req.page_format,
        brand=brand,
        filename_kind=req.filename_kind,
        use_ticker=req.use_ticker,
    )
    try:
        result = export_report(export_req, req.strategy)
    except ReportExportError as e:
        _LOG.exception("headless export failed company=%s", req.report.metadata.company_name)
        raise HTTPException(status_code=503, detail=f"PDF generation failed: {e}") from e

    disposition = "inline" if req.strategy == "print" else "attachment"
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'{disposition}; filename="{result.filename}"',
            "X-Export-Strategy": result.strategy,
            "X-Page-Count": str(result.pages),
            "X-Used-Placeholder": "true" if result.used_placeholder else "false",
        },
    )


@app.post("/reports", response_model=CreateReportResponse)
def create_report(report: ReportData) -> CreateReportResponse:
    """Store a report snapshot and return its id."""
    return CreateReportResponse(report_id=save_report(report))


@app.get("/reports/{report_id}")
def get_report(report_id: str):
    report = load_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    return report.model_dump(mode="json")


@app.get("/reports/{report_id}/pdf")
def get_report_pdf(report_id: str, page_format: str = Query("letter", alias="pageFormat")):
    """Headless PDF of a stored report; cached per report content and page format."""
    report = load_report(report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")

    payload = report.model_dump(mode="json")
    strategy = HeadlessExportStrategy()
    pdf_bytes = get_cached_report_pdf(payload, page_format)
    filename = None
    if pdf_bytes is None:
        try:
            result = strategy.export(ExportRequest(report=report, page_format=page_format))
        except ReportExportError as e:
            _LOG.exception("headless export failed report_id=%s", report_id)
            raise HTTPException(status_code=503, detail=f"PDF generation failed: {e}") from e
        pdf_bytes = result.content
        filename = result.filename
        set_cached_report_pdf(payload, page_format, pdf_bytes)

    if filename is None:
        filename = report_filename(report)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


@app.get("/readership/{ticker}")
def get_readership(
    ticker: str,
    page: int = 1,
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize"),
    query: str = "",
):
    if page_size not in PAGE_SIZE_OPTIONS:
        raise HTTPException(status_code=422, detail=f"pageSize must be one of {list(PAGE_SIZE_OPTIONS)}")
    client = get_readership_client()
    table = InstitutionalReadershipTable(lambda: client.institutional_readership(ticker), page_size=page_size)
    state = table.load()
    table.set_filter(query)
    table.go_to_page(page)
    body = {"ticker": ticker, **table.view()}
    if state is ReadershipState.ERROR:
        return JSONResponse(status_code=502, content=body)
    return body


@app.post("/dashboard/summaries")
def get_dashboard_summaries(req: DashboardSummariesRequest):
    """Fetch several independent upstream summaries in parallel; failures are isolated."""
    client = get_readership_client()
    fetchers = {
        src.name: (lambda src=src: client.get_json(src.path, src.params))
        for src in req.sources
    }
    results, failed = fetch_all(fetchers)
    return {"results": results, "failed": failed}


def get_app() -> FastAPI:
    """
    Convenience accessor for ASGI servers.
    """
    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "8010")),
        reload=True,
    )
