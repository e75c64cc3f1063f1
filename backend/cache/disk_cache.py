"""
Content-hash disk cache for rendered report PDFs.
Key = sha256(report_json + page_format + brand_id) -> PDF bytes.
"""
from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Cache directory under backend/cache
_CACHE_DIR = Path(__file__).resolve().parent
REPORT_PDF_CACHE_DIR = _CACHE_DIR / "report_pdfs"


def _ensure_dir(d: Path) -> None:
    d.mkdir(parents=True, exist_ok=True)


def _report_pdf_key(report_payload: dict[str, Any], page_format: str, brand_id: str) -> str:
    payload = json.dumps(
        {"report": report_payload, "page_format": page_format, "brand_id": brand_id},
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode()).hexdigest()


def get_cached_report_pdf(report_payload: dict[str, Any], page_format: str, brand_id: str = "default") -> bytes | None:
    """Return cached PDF bytes, or None."""
    _ensure_dir(REPORT_PDF_CACHE_DIR)
    path = REPORT_PDF_CACHE_DIR / f"{_report_pdf_key(report_payload, page_format, brand_id)}.pdf"
    if not path.exists():
        return None
    try:
        return path.read_bytes()
    except OSError as exc:
        logger.warning("report pdf cache read failed path=%s error=%s", path, exc)
        return None


def set_cached_report_pdf(
    report_payload: dict[str, Any],
    page_format: str,
    pdf_bytes: bytes,
    brand_id: str = "default",
) -> None:
    """Store PDF bytes keyed by report payload + page format + brand."""
    _ensure_dir(REPORT_PDF_CACHE_DIR)
    path = REPORT_PDF_CACHE_DIR / f"{_report_pdf_key(report_payload, page_format, brand_id)}.pdf"
    path.write_bytes(pdf_bytes)
