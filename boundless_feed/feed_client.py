"""Bulk fetch of activity rows from the backend's REST endpoint.

Also owns the pooled HTTP session shared with the geocoder.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, TypeAlias

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import (
    ACTIVITIES_TABLE,
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    HTTP_RETRY_BACKOFF,
    HTTP_RETRY_TOTAL,
    REQUEST_TIMEOUT,
    SUPABASE_ANON_KEY,
    SUPABASE_URL,
)
from .errors import FeedAPIError

JSONList: TypeAlias = List[Dict[str, Any]]

LOGGER = logging.getLogger(__name__)
PAGE_SIZE = 1000


def create_http_session(
    *,
    retries: int = HTTP_RETRY_TOTAL,
    backoff: float = HTTP_RETRY_BACKOFF,
) -> requests.Session:
    """Return a pooled JSON session that retries failed reads.

    Only GET is retried; the feed never writes.
    """

    retry = Retry(
        total=max(0, retries),
        backoff_factor=backoff,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET"],
    )
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=retry,
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["Accept"] = "application/json"
    return session


_SHARED_SESSION: requests.Session | None = None


def shared_session() -> requests.Session:
    """Return the process-wide session, created on first use."""

    global _SHARED_SESSION
    if _SHARED_SESSION is None:
        _SHARED_SESSION = create_http_session()
    return _SHARED_SESSION


def _extract_error(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return (response.text or "").strip()[:200]
    if isinstance(payload, dict):
        for key in ("message", "error", "hint"):
            if payload.get(key):
                return str(payload[key])
    return ""


class FeedClient:
    """Read-only client for the ``activities`` table (PostgREST dialect)."""

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        api_key: str = SUPABASE_ANON_KEY,
        *,
        table: str = ACTIVITIES_TABLE,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT,
        page_size: int = PAGE_SIZE,
    ) -> None:
        if not base_url:
            raise ValueError("FeedClient requires a base URL (set SUPABASE_URL)")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._api_key = api_key
        self._session = session or shared_session()
        self._timeout = timeout
        self._page_size = page_size

    def _headers(self) -> Dict[str, str]:
        headers = {"apikey": self._api_key}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def fetch_activities(self, *, owner_id: str | None = None) -> JSONList:
        """Return every activity row, newest first.

        Args:
            owner_id: When given, only rows posted by this user (the profile
                listing).

        Raises:
            FeedAPIError: On transport errors, non-2xx responses or a payload
                that is not a JSON list.
        """

        filters: Dict[str, str] = {}
        if owner_id is not None:
            filters["user_id"] = f"eq.{owner_id}"
        rows: JSONList = []
        offset = 0
        while True:
            page = self._fetch_page(offset, filters)
            rows.extend(page)
            if len(page) < self._page_size:
                break
            offset += self._page_size
        LOGGER.info(
            "Fetched %d activity rows from %s%s",
            len(rows),
            self._url,
            f" (owner {owner_id})" if owner_id is not None else "",
        )
        return rows

    def _fetch_page(self, offset: int, filters: Dict[str, str]) -> JSONList:
        params: Dict[str, Any] = {
            "select": "*",
            "order": "created_at.desc",
            "limit": self._page_size,
            "offset": offset,
            **filters,
        }
        LOGGER.debug("GET %s params=%s", self._url, params)
        try:
            response = self._session.get(
                self._url,
                headers=self._headers(),
                params=params,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise FeedAPIError(f"Activity fetch failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            detail = _extract_error(response)
            message = f"Activity fetch returned HTTP {response.status_code}"
            raise FeedAPIError(f"{message} | {detail}" if detail else message)
        try:
            payload = response.json()
        except ValueError as exc:
            raise FeedAPIError("Activity fetch returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise FeedAPIError(
                f"Unexpected activity payload type {type(payload).__name__}"
            )
        return payload


__all__ = ["FeedClient", "PAGE_SIZE", "create_http_session", "shared_session"]
