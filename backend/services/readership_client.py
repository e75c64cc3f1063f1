"""
REST client for upstream research data, plus a parallel fan-out helper for dashboards.
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable

import requests

from services.readership import DataUnavailableError

logger = logging.getLogger(__name__)

BACKEND_API_URL = os.environ.get("BACKEND_API_URL", "http://localhost:8080").rstrip("/")
READERSHIP_TIMEOUT_S = float(os.environ.get("READERSHIP_TIMEOUT_S", "15"))
MAX_FANOUT_WORKERS = 5


class ReadershipClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None, session: requests.Session | None = None):
        self.base_url = (base_url or BACKEND_API_URL).rstrip("/")
        self.timeout = READERSHIP_TIMEOUT_S if timeout is None else timeout
        self.session = session or requests.Session()

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        resp = self.session.get(url, params=params or None, timeout=self.timeout)
        if resp.status_code == 404:
            raise DataUnavailableError(f"not found: {path}")
        resp.raise_for_status()
        return resp.json()

    def institutional_readership(self, ticker: str) -> list[dict[str, Any]]:
        payload = self.get_json(f"api/bloomberg/readership/{ticker}")
        if isinstance(payload, dict):
            # {"data": [...]} envelope
            payload = payload.get("data") or payload.get("records") or []
        return list(payload or [])


def fetch_all(
    fetchers: dict[str, Callable[[], Any]],
    max_workers: int = MAX_FANOUT_WORKERS,
) -> tuple[dict[str, Any], list[str]]:
    """
    Run independent fetches in parallel. A failing source yields None and is listed in
    the returned failures; it never blocks the others.
    """
    results: dict[str, Any] = {name: None for name in fetchers}
    failed: list[str] = []
    if not fetchers:
        return results, failed
    with ThreadPoolExecutor(max_workers=min(len(fetchers), max_workers)) as executor:
        futures = {executor.submit(fn): name for name, fn in fetchers.items()}
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception as exc:
                logger.warning("fan-out source %s failed: %s", name, exc)
                failed.append(name)
    failed.sort(key=list(fetchers).index)
    return results, failed
