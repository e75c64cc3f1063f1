"""
Generate sample research report outputs for each page format:
1) HTML preview
2) headless PDF
3) rasterized PDF

Usage:
  cd backend
  python3 scripts/generate_sample_reports.py
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from models import ReportData
from reporting.export import ExportRequest, ReportExportError, export_report
from reporting.page_renderer import build_report_document
from reporting.page_sizes import PAGE_FORMATS

OUT_DIR = Path(__file__).resolve().parents[1] / "reports" / "samples"

logger = logging.getLogger("generate_sample_reports")


def _sample_report() -> ReportData:
    years = ["2023", "2024", "2025E", "2026E", "2027E", "2028E"]
    table = [
        {
            "Period": year,
            "Revenue": f"{13.5 + i * 1.6:.1f}M",
            "EBITDA": f"{-0.8 + i * 0.9:.1f}M",
            "Net Income": f"{-2.1 + i * 1.1:.1f}M",
            "EPS": f"{-0.015 + i * 0.008:.3f}",
        }
        for i, year in enumerate(years)
    ]
    return ReportData.model_validate(
        {
            "date": "August 22, 2025",
            "companyName": "Kidoz Inc.",
            "tickers": [{"symbol": "KDOZ", "exchange": "TSXV"}, {"symbol": "KDOZF", "exchange": "OTC"}],
            "sector": "Ad Tech",
            "rating": "BUY",
            "currentPrice": "C$0.22",
            "fairValue": "C$0.70",
            "risk": "4",
            "title": "H1 Revenue at a Record; Second Half Tailwinds",
            "executiveSummary": "<p>Quarterly revenue dipped on softer ad budgets while first-half revenue set a record.</p>",
            "highlights": [
                "Q2 revenue eased 2% YoY as advertisers paused spend.",
                "Gross margin expanded; higher G&amp;A weighed on EBITDA.",
                "<b>H1 revenue</b> grew 21% YoY, ahead of the large platforms.",
            ],
            "analystInfo": {"name": "Research Desk", "title": "Head of Research", "credentials": "CFA"},
            "companyData": {"weekRange": "C$0.12-0.30", "sharesOS": "131.6M", "marketCap": "C$29M", "pb": "2.5x"},
            "performanceData": [
                {"security": "KDOZ", "ytd": "22%", "twelveMonth": "35%"},
                {"security": "TSXV", "ytd": "9%", "twelveMonth": "10%"},
            ],
            "financialTable": table,
            "additionalSections": [
                {"title": "Quarterly Results", "htmlContent": "<p>Revenue missed our forecast by 4%.</p>"},
                {"title": "Outlook", "htmlContent": "<p>Seasonally stronger second half expected.</p>"},
                {"title": "Valuation", "htmlContent": "<p>DCF-based fair value unchanged.</p>"},
            ],
            "analystComments": [{"author": "Research Desk", "text": "Maintaining BUY.", "date": "2025-08-22"}],
        }
    )


def _write_samples(report: ReportData, page_format: str) -> None:
    html_path = OUT_DIR / f"sample-{page_format}.html"
    html_path.write_text(build_report_document(report, page_format), encoding="utf-8")
    logger.info("wrote %s", html_path)

    for strategy in ("headless", "rasterize"):
        try:
            result = export_report(ExportRequest(report=report, page_format=page_format), strategy)
        except ReportExportError as exc:
            logger.warning("%s %s: PDF generation skipped (%s)", page_format, strategy, exc)
            continue
        pdf_path = OUT_DIR / f"sample-{page_format}-{strategy}.pdf"
        pdf_path.write_bytes(result.content)
        logger.info("wrote %s pages=%d placeholder=%s", pdf_path, result.pages, result.used_placeholder)


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="[sample] %(message)s")
    OUT_DIR.mkdir(parents=True, exist_ok=True)
    report = _sample_report()
    for page_format in PAGE_FORMATS:
        _write_samples(report, page_format)
    logger.info("complete. Outputs in %s", OUT_DIR)


if __name__ == "__main__":
    main()
