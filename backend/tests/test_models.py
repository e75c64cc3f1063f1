from __future__ import annotations

import pytest
from pydantic import ValidationError

from models import DEFAULT_DISCLAIMER, Rating, ReportData


def test_defaults_follow_viewer_placeholders():
    report = ReportData()
    meta = report.metadata
    assert meta.company_name == "Company Name"
    assert [t.display() for t in meta.tickers] == ["TICKER (NASDAQ)"]
    assert meta.rating is Rating.BUY
    assert (meta.current_price, meta.fair_value, meta.risk) == ("$0.00", "$0.00", "4")
    assert report.disclaimer == DEFAULT_DISCLAIMER
    assert report.company_data.market_cap == "N/A"


def test_flat_upstream_shape_is_folded_into_metadata():
    report = ReportData.model_validate(
        {
            "companyName": "Kidoz Inc.",
            "tickers": "KDOZ:TSXV, KDOZF:OTC",
            "rating": "strong buy",
            "currentPrice": 0.15,
            "additionalSections": [{"title": "Outlook", "content": "<p>Up</p>"}],
            "companyData": {"marketCap": "$20M", "beta": None},
            "disclaimer": "  ",
        }
    )
    assert report.metadata.company_name == "Kidoz Inc."
    assert [t.symbol for t in report.metadata.tickers] == ["KDOZ", "KDOZF"]
    assert report.metadata.rating is Rating.STRONG_BUY
    assert report.metadata.current_price == "0.15"
    assert report.additional_sections[0].html_content == "<p>Up</p>"
    assert report.company_data.market_cap == "$20M"
    assert report.company_data.beta == "N/A"
    assert report.disclaimer == DEFAULT_DISCLAIMER


def test_rating_parse():
    assert Rating.parse("Strong-Sell") is Rating.STRONG_SELL
    assert Rating.HOLD.label == "HOLD"
    with pytest.raises(ValueError):
        Rating.parse("MAYBE")


def test_financial_rows_must_share_columns():
    with pytest.raises(ValidationError):
        ReportData.model_validate({"financialTable": [{"A": 1, "B": 2}, {"A": 3, "C": 4}]})
    report = ReportData.model_validate({"financialTable": [{"A": 1, "B": None}]})
    assert report.financial_table == [{"A": "1", "B": ""}]
    assert report.financial_columns == ["A", "B"]
