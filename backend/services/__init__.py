"""Backend services."""

from services.readership import (
    DataUnavailableError,
    InstitutionalReadershipTable,
    ReadershipState,
    sort_records,
)
from services.readership_client import ReadershipClient, fetch_all

__all__ = [
    "DataUnavailableError",
    "InstitutionalReadershipTable",
    "ReadershipState",
    "sort_records",
    "ReadershipClient",
    "fetch_all",
]
