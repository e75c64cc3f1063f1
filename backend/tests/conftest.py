"""Add backend to path so tests can resolve 'from models import' when run from project root."""
import os
import sys

import pytest

_backend_dir = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _backend_dir not in sys.path:
    sys.path.insert(0, _backend_dir)


def _financial_rows(count: int, columns: int = 3) -> list[dict]:
    return [
        {f"FY{2020 + c}": f"{r * 10 + c:.1f}" if c else f"Metric {r}" for c in range(columns)}
        for r in range(count)
    ]


def _sections(count: int) -> list[dict]:
    return [{"title": f"Section {i + 1}", "htmlContent": f"<p>Analysis {i + 1}</p>"} for i in range(count)]


@pytest.fixture
def make_payload():
    def _make(sections: int = 0, rows: int = 0, **overrides) -> dict:
        payload = {
            "metadata": {
                "date": "August 1, 2025",
                "companyName": "Acme Corp",
                "tickers": [{"symbol": "KDOZ", "exchange": "TSXV"}, {"symbol": "KDOZF", "exchange": "OTC"}],
                "sector": "Mining",
                "rating": "BUY",
                "currentPrice": "$1.20",
                "fairValue": "$2.50",
                "risk": "4",
            },
            "title": "Initiating Coverage",
            "executiveSummary": "<p>Strong pipeline.</p>",
            "highlights": ["<b>Record</b> quarter", "New mine online"],
            "financialTable": _financial_rows(rows),
            "performanceData": [{"security": "KDOZ", "ytdReturn": "12%", "oneMonthReturn": "3%"}],
            "companyData": {"marketCap": "$120M", "beta": "1.4"},
            "additionalSections": _sections(sections),
            "analystInfo": {"name": "Jane Analyst", "title": "Senior Analyst", "credentials": "CFA"},
        }
        payload.update(overrides)
        return payload

    return _make


@pytest.fixture
def make_report(make_payload):
    from models import ReportData

    def _make(sections: int = 0, rows: int = 0, **overrides):
        return ReportData.model_validate(make_payload(sections, rows, **overrides))

    return _make
