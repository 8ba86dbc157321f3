"""Free-text geocoding against a Nominatim-compatible search endpoint."""

from __future__ import annotations

import logging
from threading import RLock

import requests
from cachetools import TTLCache

from .config import (
    GEOCODE_CACHE_SIZE,
    GEOCODE_CACHE_TTL_SECONDS,
    GEOCODER_URL,
    GEOCODER_USER_AGENT,
    REQUEST_TIMEOUT,
)
from .errors import GeocodingError
from .feed_client import shared_session
from .models import GeoCoordinate

LOGGER = logging.getLogger(__name__)

# Sentinel cached for queries the service could not place, so repeated
# misses do not hit the network again.
_MISS = object()


class Geocoder:
    """Resolve place names to coordinates, memoising answers per query."""

    def __init__(
        self,
        url: str = GEOCODER_URL,
        *,
        session: requests.Session | None = None,
        user_agent: str = GEOCODER_USER_AGENT,
        timeout: float = REQUEST_TIMEOUT,
        cache_size: int = GEOCODE_CACHE_SIZE,
        cache_ttl: float = GEOCODE_CACHE_TTL_SECONDS,
    ) -> None:
        if not url:
            raise ValueError("Geocoder requires a search URL")
        self._url = url
        self._session = session or shared_session()
        self._user_agent = user_agent
        self._timeout = timeout
        self._cache: TTLCache[str, object] = TTLCache(maxsize=max(1, cache_size), ttl=cache_ttl)
        self._cache_lock = RLock()

    def lookup(self, text: str) -> GeoCoordinate | None:
        """Return the best match for ``text`` or ``None`` when nothing matches.

        Raises:
            GeocodingError: On transport errors, non-2xx responses or payloads
                that are not a JSON list.
        """

        query = " ".join(str(text).split())
        if not query:
            return None
        key = query.casefold()
        with self._cache_lock:
            cached = self._cache.get(key)
        if cached is not None:
            LOGGER.debug("Geocode cache hit for %r", query)
            return None if cached is _MISS else cached  # type: ignore[return-value]

        coordinate = self._fetch(query)
        with self._cache_lock:
            self._cache[key] = coordinate if coordinate is not None else _MISS
        return coordinate

    def _fetch(self, query: str) -> GeoCoordinate | None:
        LOGGER.debug("GET %s q=%r", self._url, query)
        try:
            response = self._session.get(
                self._url,
                params={"q": query, "format": "json", "limit": 1},
                headers={"User-Agent": self._user_agent},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise GeocodingError(f"Geocoding request failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise GeocodingError(
                f"Geocoding service returned HTTP {response.status_code} for {query!r}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise GeocodingError("Geocoding service returned invalid JSON") from exc
        if not isinstance(payload, list):
            raise GeocodingError(
                f"Unexpected geocoding payload type {type(payload).__name__}"
            )
        for candidate in payload:
            if not isinstance(candidate, dict):
                continue
            try:
                return GeoCoordinate(float(candidate["lat"]), float(candidate["lon"]))
            except (KeyError, TypeError, ValueError):
                LOGGER.debug("Skipping unusable geocoding candidate %r", candidate)
        LOGGER.info("No geocoding match for %r", query)
        return None


__all__ = ["Geocoder"]
