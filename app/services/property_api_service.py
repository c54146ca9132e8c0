"""Marketplace API client: fetches raw property records over HTTP.

Rules:
1. Retries with exponential backoff on 429/5xx (GET only)
2. Non-retriable HTTP errors, timeouts and invalid JSON raise UpstreamError
3. The record list is unwrapped from any known envelope:
   [...], {"data": [...]}, {"data": {"data": [...]}}
4. `fetch_all_properties` walks every page (`page`/`per_page` query
   parameters) until the last page the payload reports

NOTE: the client uses synchronous `requests`; async callers go through
`afetch_properties` and `afetch_all_properties`, which run the calls in a
worker thread.
"""
import asyncio
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app.config import settings
from app.core.exceptions import UpstreamError
from app.core.logging import get_logger

logger = get_logger(__name__)


def extract_records(payload: Any) -> List[Dict[str, Any]]:
    """Return the list of raw records inside an API payload ([] when none is found)."""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)]
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            return [item for item in data["data"] if isinstance(item, dict)]
        if isinstance(payload.get("properties"), list):
            return [item for item in payload["properties"] if isinstance(item, dict)]
    return []


def extract_last_page(payload: Any) -> Optional[int]:
    """Last page number reported by a paginated payload, or None.

    Understands resource collections ({"meta": {"total_pages" | "last_page"}})
    and bare paginators ({"last_page": n} at the top or under "data").
    """
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    for source in (payload.get("meta"), data if isinstance(data, dict) else None, payload):
        if not isinstance(source, dict):
            continue
        for key in ("total_pages", "last_page"):
            value = source.get(key)
            if isinstance(value, int) and not isinstance(value, bool) and value > 0:
                return value
    return None


def _clean_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    return {k: v for k, v in (params or {}).items() if v is not None and v != ""}


class PropertyApiClient:
    """HTTP client for the marketplace property listing endpoint."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        language: Optional[str] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor

        self._session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("https://", adapter)
        self._session.mount("http://", adapter)
        self._session.headers.update({"Accept": "application/json"})
        if language:
            self._session.headers.update({"Accept-Language": language})

    def _get_json(self, query: Dict[str, Any]) -> Any:
        """GET the listing endpoint and return the decoded JSON body."""
        try:
            response = self._session.get(self.base_url, params=query, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.error("Timeout (%ds) fetching %s", self.timeout, self.base_url)
            raise UpstreamError(f"Timed out fetching properties from {self.base_url}") from e
        except requests.exceptions.RequestException as e:
            logger.error("Request error for %s: %s", self.base_url, str(e))
            raise UpstreamError(f"Could not reach {self.base_url}", detail=str(e)) from e

        if response.status_code != 200:
            logger.warning(
                "HTTP %d for %s",
                response.status_code,
                self.base_url,
                extra={"url": self.base_url, "status": response.status_code, "page": query.get("page")},
            )
            raise UpstreamError(
                f"Marketplace API returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            logger.error("Invalid JSON from %s", self.base_url)
            raise UpstreamError("Marketplace API returned invalid JSON") from e

    def fetch_page(self, params: Optional[Mapping[str, Any]] = None) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        """Fetch one page: (raw records, last page number if the payload reports it)."""
        payload = self._get_json(_clean_params(params))
        return extract_records(payload), extract_last_page(payload)

    def fetch_properties(self, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        """GET the listing endpoint once and return the raw records.

        Raises UpstreamError on transport failures, non-200 responses and
        bodies that are not JSON.
        """
        records, _ = self.fetch_page(params)
        return records

    def fetch_all_properties(
        self,
        params: Optional[Mapping[str, Any]] = None,
        per_page: Optional[int] = None,
        max_pages: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Walk the paginated listing endpoint and return every raw record.

        Stops at the last page the payload reports, or, when it reports none,
        at the first short or empty page. At most ``max_pages`` requests are made.
        """
        per_page = per_page or settings.upstream_page_size
        max_pages = max_pages or settings.upstream_max_pages
        query = _clean_params(params)
        query.pop("page", None)
        query.pop("perPage", None)
        started = time.monotonic()

        records: List[Dict[str, Any]] = []
        page = 1
        while True:
            batch, last_page = self.fetch_page({**query, "page": str(page), "per_page": str(per_page)})
            records.extend(batch)

            if not batch:
                break
            if last_page is not None:
                if page >= last_page:
                    break
            elif len(batch) < per_page:
                break
            if page >= max_pages:
                logger.warning(
                    "Stopped after %d upstream pages; results are truncated",
                    page,
                    extra={"url": self.base_url, "page": page, "total": len(records)},
                )
                break
            page += 1

        logger.info(
            "Fetched %d raw properties",
            len(records),
            extra={
                "url": self.base_url,
                "page": page,
                "total": len(records),
                "duration": round(time.monotonic() - started, 3),
            },
        )
        return records

    async def afetch_all_properties(
        self,
        params: Optional[Mapping[str, Any]] = None,
        per_page: Optional[int] = None,
        max_pages: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.fetch_all_properties, params, per_page, max_pages)

    async def afetch_properties(self, params: Optional[Mapping[str, Any]] = None) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self.fetch_properties, params)

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()


def build_property_api_client(language: Optional[str] = None) -> PropertyApiClient:
    """Client configured from settings."""
    return PropertyApiClient(
        base_url=settings.upstream_api_url,
        timeout=settings.upstream_timeout,
        max_retries=settings.upstream_max_retries,
        backoff_factor=settings.upstream_backoff_factor,
        language=language,
    )
