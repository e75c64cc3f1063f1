from __future__ import annotations

from datetime import datetime, timedelta

import pytest
import requests

from models import InstitutionalRecord
from services.readership import (
    DataUnavailableError,
    InstitutionalReadershipTable,
    ReadershipState,
    sort_records,
    summarize,
)
from services.readership_client import ReadershipClient, fetch_all

BASE = datetime(2025, 8, 1, 12, 0)


def _entry(i: int, embargoed: bool = False, days_ago: int | None = 0, **overrides) -> dict:
    row = {
        "customer_name": f"Institution {i}",
        "customer_country": "United States",
        "customer_city": "New York",
        "customer_number": 1000 + i,
        "title": "Initiating Coverage",
        "transaction_date": (BASE - timedelta(days=days_ago)).isoformat() if days_ago is not None else None,
        "post_date": "2025-07-01",
        "is_embargoed": embargoed,
    }
    row.update(overrides)
    return row


def _records(rows):
    return [InstitutionalRecord.model_validate(r) for r in rows]


def test_record_accepts_upstream_keys_and_fallbacks():
    rec = InstitutionalRecord.model_validate(_entry(1, customer_name="", customer_city=None))
    assert rec.institution_name == "Unknown Institution"
    assert rec.city == "N/A"
    assert rec.firm_number == "1001"
    assert rec.access_date == BASE
    assert rec.report_title == "Initiating Coverage"


def test_revealed_sort_before_embargoed_newest_first():
    rows = [
        _entry(1, embargoed=True, days_ago=1),
        _entry(2, days_ago=5),
        _entry(3, embargoed=True, days_ago=None),
        _entry(4, days_ago=None),
        _entry(5, days_ago=2),
        _entry(6, embargoed=True, days_ago=0),
    ]
    ordered = sort_records(_records(rows))
    flags = [r.is_embargoed for r in ordered]
    assert flags == sorted(flags)
    assert [r.institution_name for r in ordered] == [
        "Institution 5",
        "Institution 2",
        "Institution 4",
        "Institution 6",
        "Institution 1",
        "Institution 3",
    ]
    for group in (False, True):
        dates = [r.access_date for r in ordered if r.is_embargoed is group and r.access_date]
        assert dates == sorted(dates, reverse=True)


def test_not_found_is_empty_state_not_error():
    def _fetch():
        raise DataUnavailableError("no readership for ticker")

    table = InstitutionalReadershipTable(_fetch)
    assert table.load() is ReadershipState.EMPTY
    assert table.error is None
    assert table.retryable is False


def test_http_404_is_treated_as_unavailable():
    resp = requests.Response()
    resp.status_code = 404

    def _fetch():
        raise requests.HTTPError("404 Client Error", response=resp)

    assert InstitutionalReadershipTable(_fetch).load() is ReadershipState.EMPTY


def test_other_failures_surface_retryable_error():
    calls = {"n": 0}

    def _fetch():
        calls["n"] += 1
        if calls["n"] == 1:
            raise requests.ConnectionError("connection reset")
        return [_entry(1)]

    table = InstitutionalReadershipTable(_fetch)
    assert table.load() is ReadershipState.ERROR
    assert table.retryable is True
    assert "connection reset" in table.error
    assert table.retry() is ReadershipState.SUCCESS
    assert len(table.records) == 1
    assert table.retry() is ReadershipState.SUCCESS
    assert calls["n"] == 2


def test_empty_result_is_empty_state():
    assert InstitutionalReadershipTable(lambda: []).load() is ReadershipState.EMPTY


def test_client_side_paging():
    table = InstitutionalReadershipTable(lambda: [_entry(i, days_ago=i) for i in range(45)])
    table.load()
    assert table.page_size == 20
    assert table.total_pages == 3
    assert table.showing() == (1, 20, 45)
    assert table.go_to_page(3) == 3
    assert len(table.page_slice()) == 5
    assert table.showing() == (41, 45, 45)
    assert table.next_page() == 3
    assert table.go_to_page(99) == 3

    table.set_page_size(50)
    assert table.page == 1
    assert table.total_pages == 1
    assert table.previous_page() == 1
    with pytest.raises(ValueError):
        table.set_page_size(25)


def test_filter_resets_page_and_keeps_order():
    rows = [_entry(i, days_ago=i) for i in range(30)]
    rows[3]["customer_city"] = "London"
    rows[17]["customer_city"] = "london"
    table = InstitutionalReadershipTable(lambda: rows, page_size=10)
    table.load()
    table.go_to_page(2)
    table.set_filter("LONDON")
    assert table.page == 1
    assert [r.institution_name for r in table.page_slice()] == ["Institution 3", "Institution 17"]
    assert table.showing() == (1, 2, 2)


def test_summary_statistics():
    rows = [
        _entry(1),
        _entry(1, days_ago=3),
        _entry(2),
        _entry(3, embargoed=True),
    ]
    summary = summarize(_records(rows))
    assert summary.total_reads == 4
    assert summary.revealed == 3
    assert summary.embargoed == 1
    assert summary.embargo_rate == 25.0
    assert summary.unique_institutions == 2
    assert summary.top_institutions[0] == ("Institution 1", 2)


def test_fetch_all_isolates_failures():
    def _bad():
        raise RuntimeError("upstream down")

    results, failed = fetch_all({"a": lambda: 1, "b": _bad, "c": lambda: {"ok": True}})
    assert results == {"a": 1, "b": None, "c": {"ok": True}}
    assert failed == ["b"]


class _FakeResponse:
    def __init__(self, status_code: int, payload=None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self._payload


class _FakeSession:
    def __init__(self, response: _FakeResponse):
        self.response = response
        self.urls: list[str] = []

    def get(self, url, params=None, timeout=None):
        self.urls.append(url)
        return self.response


def test_client_maps_404_to_data_unavailable():
    client = ReadershipClient(base_url="http://upstream/", session=_FakeSession(_FakeResponse(404)))
    with pytest.raises(DataUnavailableError):
        client.institutional_readership("KDOZ")


def test_client_unwraps_data_envelope():
    session = _FakeSession(_FakeResponse(200, {"data": [_entry(1)]}))
    client = ReadershipClient(base_url="http://upstream", session=session)
    assert client.institutional_readership("KDOZ") == [_entry(1)]
    assert session.urls == ["http://upstream/api/bloomberg/readership/KDOZ"]


def test_view_records_carry_country_flag():
    rows = [_entry(1, customer_country="Canada"), _entry(2, days_ago=1, customer_country="Narnia")]
    table = InstitutionalReadershipTable(lambda: rows)
    table.load()
    records = table.view()["records"]
    assert [r["flag"] for r in records] == ["🇨🇦", "🌍"]
    assert records[0]["country"] == "Canada"
