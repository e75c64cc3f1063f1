"""
Institutional readership table: fetched once, sorted, then paged and filtered in memory.

State machine: idle -> loading -> success | empty | error. A not-found response from
the data source means the feature is unavailable for this entity and lands in the
empty state; every other failure lands in error and can be retried.
"""
from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable

import requests

from models import InstitutionalRecord
from reporting.vocabulary import country_flag

logger = logging.getLogger(__name__)

PAGE_SIZE_OPTIONS = (10, 20, 50, 100)
DEFAULT_PAGE_SIZE = 20
TOP_INSTITUTIONS = 10


class DataUnavailableError(Exception):
    """Upstream has no data for this entity (404-shaped)."""


class ReadershipState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    EMPTY = "empty"
    ERROR = "error"


def is_not_found(exc: BaseException) -> bool:
    if isinstance(exc, DataUnavailableError):
        return True
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        return exc.response.status_code == 404
    text = str(exc).lower()
    return "404" in text or "not found" in text


def sort_records(records: Iterable[InstitutionalRecord]) -> list[InstitutionalRecord]:
    """Revealed before embargoed; newest access first; undated last within each group."""
    by_date = sorted(records, key=lambda r: r.access_date or datetime.min, reverse=True)
    return sorted(by_date, key=lambda r: (r.is_embargoed, r.access_date is None))


@dataclass
class ReadershipSummary:
    total_reads: int = 0
    revealed: int = 0
    embargoed: int = 0
    embargo_rate: float = 0.0
    unique_institutions: int = 0
    top_institutions: list[tuple[str, int]] = field(default_factory=list)


def summarize(records: list[InstitutionalRecord]) -> ReadershipSummary:
    total = len(records)
    embargoed = sum(1 for r in records if r.is_embargoed)
    # Embargoed reads hide the reader, so only revealed reads count per institution.
    counts = Counter(r.institution_name for r in records if not r.is_embargoed)
    return ReadershipSummary(
        total_reads=total,
        revealed=total - embargoed,
        embargoed=embargoed,
        embargo_rate=round(embargoed / total * 100, 1) if total else 0.0,
        unique_institutions=len(counts),
        top_institutions=counts.most_common(TOP_INSTITUTIONS),
    )


class InstitutionalReadershipTable:
    def __init__(self, fetch: Callable[[], Iterable[Any]], page_size: int = DEFAULT_PAGE_SIZE):
        if page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"page_size must be one of {PAGE_SIZE_OPTIONS}")
        self._fetch = fetch
        self.state = ReadershipState.IDLE
        self.records: list[InstitutionalRecord] = []
        self.error: str | None = None
        self.page = 1
        self.page_size = page_size
        self.query = ""

    def load(self) -> ReadershipState:
        self._transition(ReadershipState.LOADING)
        self.error = None
        self.page = 1
        try:
            raw = list(self._fetch() or [])
            records = [r if isinstance(r, InstitutionalRecord) else InstitutionalRecord.model_validate(r) for r in raw]
        except Exception as exc:
            self.records = []
            if is_not_found(exc):
                logger.info("readership unavailable: %s", exc)
                self._transition(ReadershipState.EMPTY)
            else:
                logger.warning("readership load failed: %s", exc)
                self.error = str(exc) or exc.__class__.__name__
                self._transition(ReadershipState.ERROR)
            return self.state
        self.records = sort_records(records)
        self._transition(ReadershipState.SUCCESS if self.records else ReadershipState.EMPTY)
        return self.state

    def retry(self) -> ReadershipState:
        if self.state is not ReadershipState.ERROR:
            return self.state
        return self.load()

    def _transition(self, state: ReadershipState) -> None:
        logger.debug("readership state %s -> %s", self.state.value, state.value)
        self.state = state

    @property
    def retryable(self) -> bool:
        return self.state is ReadershipState.ERROR

    @property
    def filtered(self) -> list[InstitutionalRecord]:
        q = self.query.strip().lower()
        if not q:
            return self.records
        return [
            r for r in self.records
            if any(q in field_value.lower() for field_value in (r.institution_name, r.country, r.city, r.report_title))
        ]

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(len(self.filtered) / self.page_size))

    def set_page_size(self, page_size: int) -> None:
        if page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"page_size must be one of {PAGE_SIZE_OPTIONS}")
        self.page_size = page_size
        self.page = 1

    def set_filter(self, query: str) -> None:
        self.query = query or ""
        self.page = 1

    def go_to_page(self, page: int) -> int:
        self.page = max(1, min(self.total_pages, int(page)))
        return self.page

    def next_page(self) -> int:
        return self.go_to_page(self.page + 1)

    def previous_page(self) -> int:
        return self.go_to_page(self.page - 1)

    def page_slice(self) -> list[InstitutionalRecord]:
        start = (self.page - 1) * self.page_size
        return self.filtered[start:start + self.page_size]

    def showing(self) -> tuple[int, int, int]:
        """(first, last, total) for 'Showing first-last of total'."""
        total = len(self.filtered)
        if not total:
            return (0, 0, 0)
        start = (self.page - 1) * self.page_size
        return (start + 1, min(start + self.page_size, total), total)

    def summary(self) -> ReadershipSummary:
        return summarize(self.records)

    def view(self) -> dict[str, Any]:
        first, last, total = self.showing()
        return {
            "state": self.state.value,
            "error": self.error,
            "retryable": self.retryable,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "query": self.query,
            "showing": {"start": first, "end": last, "total": total},
            "records": [
                {**r.model_dump(mode="json"), "flag": country_flag(r.country)} for r in self.page_slice()
            ],
            "summary": self.summary().__dict__,
        }
