"""
Store and retrieve research report snapshots as JSON files on disk.
"""
from __future__ import annotations

import json
import uuid
from pathlib import Path

from models import ReportData

REPORTS_DIR = Path(__file__).resolve().parent / "reports"


def ensure_reports_dir() -> Path:
    REPORTS_DIR.mkdir(parents=True, exist_ok=True)
    return REPORTS_DIR


def _report_path(report_id: str) -> Path | None:
    try:
        canonical = str(uuid.UUID(report_id))
    except (ValueError, TypeError):
        return None
    return REPORTS_DIR / f"{canonical}.json"


def save_report(report: ReportData) -> str:
    report_id = str(uuid.uuid4())
    ensure_reports_dir()
    path = REPORTS_DIR / f"{report_id}.json"
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report.model_dump(mode="json"), f, indent=2)
    return report_id


def load_report(report_id: str) -> ReportData | None:
    path = _report_path(report_id)
    if path is None or not path.is_file():
        return None
    with open(path, encoding="utf-8") as f:
        return ReportData.model_validate(json.load(f))
