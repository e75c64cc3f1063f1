from __future__ import annotations

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


class Rating(str, Enum):
    STRONG_BUY = "STRONG_BUY"
    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"
    STRONG_SELL = "STRONG_SELL"

    @classmethod
    def parse(cls, value: Any) -> "Rating":
        """Accept 'buy', 'Strong Buy', 'strong-buy' and friends."""
        if isinstance(value, Rating):
            return value
        text = re.sub(r"[\s\-]+", "_", str(value or "").strip()).upper()
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"unknown rating: {value!r}") from None

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class Ticker(BaseModel):
    symbol: str
    exchange: str = ""

    def display(self) -> str:
        return f"{self.symbol} ({self.exchange})"


def _default_tickers() -> list[Ticker]:
    return [Ticker(symbol="TICKER", exchange="NASDAQ")]


class ReportMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date: str = ""
    company_name: str = Field(default="Company Name", validation_alias=AliasChoices("company_name", "companyName"))
    tickers: List[Ticker] = Field(default_factory=_default_tickers)
    sector: str = "Technology"
    rating: Rating = Rating.BUY
    current_price: str = Field(default="$0.00", validation_alias=AliasChoices("current_price", "currentPrice"))
    fair_value: str = Field(default="$0.00", validation_alias=AliasChoices("fair_value", "fairValue"))
    risk: str = "4"

    @field_validator("rating", mode="before")
    @classmethod
    def _parse_rating(cls, value: Any) -> Rating:
        if value in (None, ""):
            return Rating.BUY
        return Rating.parse(value)

    @field_validator("current_price", "fair_value", "risk", "date", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, (date, datetime)):
            return value.strftime("%B %d, %Y").replace(" 0", " ")
        return str(value).strip()

    @field_validator("tickers", mode="before")
    @classmethod
    def _coerce_tickers(cls, value: Any) -> Any:
        if value in (None, "", []):
            return _default_tickers()
        if isinstance(value, str):
            # "KDOZ:TSXV, KDOZF:OTC"
            out = []
            for part in value.split(","):
                symbol, _, exchange = part.strip().partition(":")
                if symbol:
                    out.append({"symbol": symbol.strip(), "exchange": exchange.strip()})
            return out or _default_tickers()
        return value


class PerformanceRow(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    security: str
    ytd_return: str = Field(default="N/A", validation_alias=AliasChoices("ytd_return", "ytdReturn", "ytd"))
    one_month_return: str = Field(
        default="N/A",
        validation_alias=AliasChoices("one_month_return", "oneMonthReturn", "twelveMonth"),
    )


# Display label for each closed company-data key, in render order.
COMPANY_DATA_LABELS: dict[str, str] = {
    "week_range": "52 Week Range",
    "shares_os": "Shares O/S",
    "market_cap": "Market Cap.",
    "yield_forward": "Yield (forward)",
    "pe_forward": "P/E (forward)",
    "pb": "P/B",
    "ev_ebitda": "EV/EBITDA",
    "beta": "Beta",
    "revenue_ttm": "Revenue (TTM)",
    "ebitda_ttm": "EBITDA (TTM)",
    "roe": "ROE",
    "debt_equity": "Debt/Equity",
}


class CompanyData(BaseModel):
    """Closed set of company metrics; anything missing renders as N/A."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    week_range: str = Field(default="N/A", validation_alias=AliasChoices("week_range", "weekRange"))
    shares_os: str = Field(default="N/A", validation_alias=AliasChoices("shares_os", "sharesOS"))
    market_cap: str = Field(default="N/A", validation_alias=AliasChoices("market_cap", "marketCap"))
    yield_forward: str = Field(default="N/A", validation_alias=AliasChoices("yield_forward", "yieldForward"))
    pe_forward: str = Field(default="N/A", validation_alias=AliasChoices("pe_forward", "peForward"))
    pb: str = "N/A"
    ev_ebitda: str = Field(default="N/A", validation_alias=AliasChoices("ev_ebitda", "evEbitda"))
    beta: str = "N/A"
    revenue_ttm: str = Field(default="N/A", validation_alias=AliasChoices("revenue_ttm", "revenueTTM"))
    ebitda_ttm: str = Field(default="N/A", validation_alias=AliasChoices("ebitda_ttm", "ebitdaTTM"))
    roe: str = "N/A"
    debt_equity: str = Field(default="N/A", validation_alias=AliasChoices("debt_equity", "debtEquity"))

    @field_validator("*", mode="before")
    @classmethod
    def _na_default(cls, value: Any) -> str:
        if value is None:
            return "N/A"
        text = str(value).strip()
        return text or "N/A"

    def items(self) -> list[tuple[str, str]]:
        return [(label, getattr(self, key)) for key, label in COMPANY_DATA_LABELS.items()]


class AdditionalSection(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: str = ""
    html_content: str = Field(default="", validation_alias=AliasChoices("html_content", "htmlContent", "content"))


class AnalystInfo(BaseModel):
    name: str = "Analyst Name"
    title: str = "Senior Analyst"
    credentials: str = "CFA"


class AnalystComment(BaseModel):
    author: str = ""
    text: str
    date: Optional[str] = None


class InstitutionalRecord(BaseModel):
    """One institutional read of a report, as returned by the readership source."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    institution_name: str = Field(
        default="Unknown Institution",
        validation_alias=AliasChoices("institution_name", "institutionName", "customer_name"),
    )
    country: str = Field(default="N/A", validation_alias=AliasChoices("country", "customer_country"))
    city: str = Field(default="N/A", validation_alias=AliasChoices("city", "customer_city"))
    firm_number: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("firm_number", "firmNumber", "customer_number")
    )
    report_title: str = Field(
        default="N/A", validation_alias=AliasChoices("report_title", "reportTitle", "title")
    )
    access_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("access_date", "accessDate", "transaction_date")
    )
    published_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("published_date", "publishedDate", "post_date")
    )
    is_embargoed: bool = Field(default=False, validation_alias=AliasChoices("is_embargoed", "isEmbargoed"))
    embargo_lift_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("embargo_lift_date", "embargoLiftDate")
    )

    @field_validator("institution_name", "country", "city", "report_title", mode="before")
    @classmethod
    def _fallback_text(cls, value: Any, info) -> str:
        text = str(value or "").strip()
        if text:
            return text
        return "Unknown Institution" if info.field_name == "institution_name" else "N/A"

    @field_validator("firm_number", mode="before")
    @classmethod
    def _firm_number_text(cls, value: Any) -> Optional[str]:
        if value in (None, ""):
            return None
        return str(value)

    @field_validator("access_date", "published_date", "embargo_lift_date", mode="before")
    @classmethod
    def _blank_dates(cls, value: Any) -> Any:
        if value in ("", "N/A"):
            return None
        return value

    @field_validator("access_date", "published_date", "embargo_lift_date")
    @classmethod
    def _naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Mixed aware/naive timestamps cannot be compared when sorting.
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


DEFAULT_DISCLAIMER = "Important disclosures and risk definitions on last page."


class ReportData(BaseModel):
    """
    One research report snapshot, as consumed by pagination and rendering.

    Accepts the nested shape (``metadata: {...}``) and the flat upstream shape where
    companyName, tickers, rating etc. sit at top level next to the content fields.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    metadata: ReportMetadata = Field(default_factory=ReportMetadata)
    title: str = "Research Report Title"
    executive_summary: str = Field(default="", validation_alias=AliasChoices("executive_summary", "executiveSummary"))
    highlights: List[str] = Field(default_factory=list)
    financial_table: List[dict[str, str]] = Field(
        default_factory=list, validation_alias=AliasChoices("financial_table", "financialTable")
    )
    performance_data: List[PerformanceRow] = Field(
        default_factory=list, validation_alias=AliasChoices("performance_data", "performanceData")
    )
    company_data: CompanyData = Field(
        default_factory=CompanyData, validation_alias=AliasChoices("company_data", "companyData")
    )
    additional_sections: List[AdditionalSection] = Field(
        default_factory=list, validation_alias=AliasChoices("additional_sections", "additionalSections")
    )
    analyst_info: AnalystInfo = Field(
        default_factory=AnalystInfo, validation_alias=AliasChoices("analyst_info", "analystInfo")
    )
    analyst_comments: List[AnalystComment] = Field(
        default_factory=list, validation_alias=AliasChoices("analyst_comments", "analystComments")
    )
    institutional_records: List[InstitutionalRecord] = Field(
        default_factory=list,
        validation_alias=AliasChoices("institutional_records", "institutionalRecords", "bloombergRecords"),
    )
    disclaimer: str = DEFAULT_DISCLAIMER

    @model_validator(mode="before")
    @classmethod
    def _fold_flat_metadata(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "metadata" in data:
            return data
        keys = (
            "date", "company_name", "companyName", "tickers", "sector", "rating",
            "current_price", "currentPrice", "fair_value", "fairValue", "risk",
        )
        meta = {k: data[k] for k in keys if k in data}
        if not meta:
            return data
        out = {k: v for k, v in data.items() if k not in meta}
        out["metadata"] = meta
        return out

    @field_validator("highlights", mode="before")
    @classmethod
    def _drop_blank_highlights(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(v) for v in value if v is not None and str(v).strip()]
        return value

    @field_validator("financial_table", mode="before")
    @classmethod
    def _stringify_cells(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        rows = []
        for row in value:
            if not isinstance(row, dict):
                raise ValueError("financial table rows must be objects")
            rows.append({str(k): "" if v is None else str(v) for k, v in row.items()})
        return rows

    @field_validator("financial_table")
    @classmethod
    def _same_columns(cls, rows: List[dict[str, str]]) -> List[dict[str, str]]:
        if not rows:
            return rows
        header = set(rows[0])
        for idx, row in enumerate(rows[1:], start=1):
            if set(row) != header:
                raise ValueError(f"financial table row {idx} does not match the header columns")
        return rows

    @field_validator("disclaimer", mode="before")
    @classmethod
    def _disclaimer_default(cls, value: Any) -> str:
        text = str(value or "").strip()
        return text or DEFAULT_DISCLAIMER

    @property
    def financial_columns(self) -> list[str]:
        """Header derived from row 0."""
        return list(self.financial_table[0].keys()) if self.financial_table else []


# --- API request/response schemas ---

PageFormatName = Literal["letter", "a4", "legal"]
StrategyName = Literal["rasterize", "print", "headless"]


class ReportRenderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    report: ReportData
    page_format: str = Field(default="letter", validation_alias=AliasChoices("page_format", "pageFormat"))
    zoom: int = 100
    brand_id: str = Field(default="default", validation_alias=AliasChoices("brand_id", "brandId"))


class ReportExportRequest(ReportRenderRequest):
    strategy: StrategyName = "headless"
    filename_kind: Literal["Report", "Investment"] = Field(
        default="Report", validation_alias=AliasChoices("filename_kind", "filenameKind")
    )
    use_ticker: bool = Field(default=False, validation_alias=AliasChoices("use_ticker", "useTicker"))


class PageSummary(BaseModel):
    page_index: int
    kind: str
    pixel_width: float
    pixel_height: float
    highlights: int
    financial_rows: int
    extended_financial_rows: int
    overflow_financial_rows: int
    sections: int
    placeholder: bool


class ReportPlanResponse(BaseModel):
    page_format: str
    zoom: int
    total_pages: int
    pages: List[PageSummary]


class CreateReportResponse(BaseModel):
    report_id: str


class DashboardSource(BaseModel):
    name: str
    path: str
    params: dict[str, Any] = Field(default_factory=dict)


class DashboardSummariesRequest(BaseModel):
    sources: List[DashboardSource]
