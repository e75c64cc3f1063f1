"""
Deterministic page planning for research reports.

Page 1 is the summary page; every later page is a continuation page carrying two
additional sections. A long financial table adds one overflow page at the end.
Institutional readership, when present, is a capped block on the last page and never
adds a page. Every function here depends on the report content only, so the plan can
be re-derived at any time instead of being stored.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from models import AdditionalSection, AnalystComment, InstitutionalRecord, PerformanceRow, ReportData
from services.readership import sort_records

from .format_utils import truncate_html

PLACEHOLDER_TEXT = "Additional content would appear here"


@dataclass(frozen=True)
class PaginationLimits:
    """Visual-density tuning; none of these values are needed for correctness."""
    summary_highlights: int = 6
    highlight_chars: int = 200
    summary_performance_rows: int = 3
    summary_comments: int = 3
    summary_financial_rows: int = 4
    financial_columns: int = 8
    extended_financial_rows: int = 4
    summary_section_chars: int = 500
    continuation_section_chars: int = 800
    sections_per_page: int = 2
    overflow_row_threshold: int = 10
    min_pages: int = 2
    readership_rows: int = 15


DEFAULT_LIMITS = PaginationLimits()


@dataclass
class ContentSlice:
    page_index: int
    total_pages: int
    kind: str
    highlights: list[str] = field(default_factory=list)
    performance: list[PerformanceRow] = field(default_factory=list)
    company_data: list[tuple[str, str]] = field(default_factory=list)
    financial_columns: list[str] = field(default_factory=list)
    financial_rows: list[list[str]] = field(default_factory=list)
    extended_financial_rows: list[list[str]] = field(default_factory=list)
    overflow_financial_rows: list[list[str]] = field(default_factory=list)
    comments: list[AnalystComment] = field(default_factory=list)
    sections: list[AdditionalSection] = field(default_factory=list)
    show_placeholder: bool = False
    readership_records: list[InstitutionalRecord] = field(default_factory=list)
    readership_total: int = 0
    readership_embargoed: int = 0

    @property
    def is_summary(self) -> bool:
        return self.kind == "summary"


def compute_total_pages(report: ReportData, limits: PaginationLimits = DEFAULT_LIMITS) -> int:
    pages = 1
    if report.additional_sections:
        pages += math.ceil(len(report.additional_sections) / limits.sections_per_page)
    if len(report.financial_table) > limits.overflow_row_threshold:
        pages += 1
    return max(pages, limits.min_pages)


def overflow_page_index(report: ReportData, limits: PaginationLimits = DEFAULT_LIMITS) -> int | None:
    """Page that carries financial rows past the extended block, if the table is long enough."""
    if len(report.financial_table) <= limits.overflow_row_threshold:
        return None
    return compute_total_pages(report, limits)


def _table_rows(report: ReportData, start: int, stop: int | None, columns: list[str]) -> list[list[str]]:
    return [[row.get(col, "") for col in columns] for row in report.financial_table[start:stop]]


def _clip_section(section: AdditionalSection, limit: int) -> AdditionalSection:
    return AdditionalSection(title=section.title, html_content=truncate_html(section.html_content, limit))


def section_window(page_index: int, limits: PaginationLimits = DEFAULT_LIMITS) -> tuple[int, int]:
    """[start, stop) indices into additional_sections for a continuation page."""
    # Window width equals sections_per_page; each section appears on exactly one page.
    per_page = limits.sections_per_page
    return ((page_index - 2) * per_page, (page_index - 1) * per_page)


def slice_for_page(
    page_index: int,
    report: ReportData,
    limits: PaginationLimits = DEFAULT_LIMITS,
) -> ContentSlice:
    total = compute_total_pages(report, limits)
    if page_index < 1 or page_index > total:
        raise ValueError(f"page_index {page_index} outside 1..{total}")

    columns = report.financial_columns[: limits.financial_columns]

    if page_index == 1:
        first_section = report.additional_sections[:1]
        return ContentSlice(
            page_index=1,
            total_pages=total,
            kind="summary",
            highlights=[
                truncate_html(h, limits.highlight_chars)
                for h in report.highlights[: limits.summary_highlights]
            ],
            performance=list(report.performance_data[: limits.summary_performance_rows]),
            comments=list(report.analyst_comments[: limits.summary_comments]),
            company_data=report.company_data.items(),
            financial_columns=columns,
            financial_rows=_table_rows(report, 0, limits.summary_financial_rows, columns),
            sections=[_clip_section(s, limits.summary_section_chars) for s in first_section],
        )

    start, stop = section_window(page_index, limits)
    out = ContentSlice(
        page_index=page_index,
        total_pages=total,
        kind="continuation",
        financial_columns=columns,
        sections=[
            _clip_section(s, limits.continuation_section_chars)
            for s in report.additional_sections[start:stop]
        ],
        show_placeholder=not report.additional_sections,
    )
    extended_start = limits.summary_financial_rows
    extended_stop = extended_start + limits.extended_financial_rows
    if page_index == 2 and len(report.financial_table) > extended_start:
        out.extended_financial_rows = _table_rows(report, extended_start, extended_stop, columns)
    if page_index == overflow_page_index(report, limits):
        out.overflow_financial_rows = _table_rows(report, extended_stop, None, columns)
    if page_index == total and report.institutional_records:
        records = report.institutional_records
        out.readership_records = sort_records(records)[: limits.readership_rows]
        out.readership_total = len(records)
        out.readership_embargoed = sum(1 for r in records if r.is_embargoed)
    return out


def plan_pages(report: ReportData, limits: PaginationLimits = DEFAULT_LIMITS) -> list[ContentSlice]:
    return [slice_for_page(i, report, limits) for i in range(1, compute_total_pages(report, limits) + 1)]
