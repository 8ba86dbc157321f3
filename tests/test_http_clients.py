"""Geocoder and FeedClient against a fake requests session."""

from __future__ import annotations

from typing import Any, List

import pytest
import requests

from boundless_feed.errors import FeedAPIError, GeocodingError
from boundless_feed.feed_client import FeedClient, create_http_session, shared_session
from boundless_feed.geocoding import Geocoder
from boundless_feed.models import GeoCoordinate


class _FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = ""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class _FakeSession:
    def __init__(self, responses: List[Any]):
        self._responses = list(responses)
        self.calls: List[dict] = []

    def get(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


# --- Geocoder --------------------------------------------------------


def test_geocoder_returns_first_usable_candidate() -> None:
    session = _FakeSession(
        [_FakeResponse(payload=[{"display_name": "x"}, {"lat": "25.0330", "lon": "121.5654"}])]
    )
    geocoder = Geocoder("https://geo.example.com/search", session=session, user_agent="tests")
    assert geocoder.lookup("Taipei 101") == GeoCoordinate(25.0330, 121.5654)
    call = session.calls[0]
    assert call["params"] == {"q": "Taipei 101", "format": "json", "limit": 1}
    assert call["headers"]["User-Agent"] == "tests"


def test_geocoder_caches_hits_and_misses() -> None:
    session = _FakeSession(
        [_FakeResponse(payload=[{"lat": "1", "lon": "2"}]), _FakeResponse(payload=[])]
    )
    geocoder = Geocoder("https://geo.example.com/search", session=session)
    assert geocoder.lookup("Somewhere") == GeoCoordinate(1.0, 2.0)
    assert geocoder.lookup("  somewhere ") == GeoCoordinate(1.0, 2.0)
    assert geocoder.lookup("Nowhere") is None
    assert geocoder.lookup("nowhere") is None
    assert len(session.calls) == 2


def test_geocoder_blank_query_skips_network() -> None:
    session = _FakeSession([])
    assert Geocoder("https://geo.example.com/search", session=session).lookup("   ") is None
    assert session.calls == []


@pytest.mark.parametrize(
    "response",
    [
        requests.ConnectionError("boom"),
        _FakeResponse(status_code=503),
        _FakeResponse(payload=ValueError("not json")),
        _FakeResponse(payload={"error": "nope"}),
    ],
)
def test_geocoder_errors(response) -> None:
    geocoder = Geocoder("https://geo.example.com/search", session=_FakeSession([response]))
    with pytest.raises(GeocodingError):
        geocoder.lookup("Paris")


def test_geocoder_requires_url() -> None:
    with pytest.raises(ValueError):
        Geocoder("")


# --- FeedClient ------------------------------------------------------


def test_feed_client_pages_until_short_page() -> None:
    session = _FakeSession(
        [
            _FakeResponse(payload=[{"id": 1}, {"id": 2}]),
            _FakeResponse(payload=[{"id": 3}, {"id": 4}]),
            _FakeResponse(payload=[{"id": 5}]),
        ]
    )
    client = FeedClient("https://db.example.com/", "anon-key", session=session, page_size=2)
    rows = client.fetch_activities()

    assert [r["id"] for r in rows] == [1, 2, 3, 4, 5]
    assert [c["params"]["offset"] for c in session.calls] == [0, 2, 4]
    first = session.calls[0]
    assert first["url"] == "https://db.example.com/rest/v1/activities"
    assert first["params"]["order"] == "created_at.desc"
    assert first["headers"] == {"apikey": "anon-key", "Authorization": "Bearer anon-key"}


def test_feed_client_empty_table() -> None:
    client = FeedClient("https://db.example.com", "k", session=_FakeSession([_FakeResponse(payload=[])]))
    assert client.fetch_activities() == []


def test_feed_client_http_error_includes_detail() -> None:
    session = _FakeSession([_FakeResponse(status_code=401, payload={"message": "Invalid API key"})])
    client = FeedClient("https://db.example.com", "bad", session=session)
    with pytest.raises(FeedAPIError, match="HTTP 401 \\| Invalid API key"):
        client.fetch_activities()


@pytest.mark.parametrize(
    "response",
    [
        requests.Timeout("slow"),
        _FakeResponse(payload=ValueError("bad json")),
        _FakeResponse(payload={"rows": []}),
    ],
)
def test_feed_client_errors(response) -> None:
    client = FeedClient("https://db.example.com", "k", session=_FakeSession([response]))
    with pytest.raises(FeedAPIError):
        client.fetch_activities()


def test_feed_client_config_validation() -> None:
    with pytest.raises(ValueError):
        FeedClient("", "k")
    with pytest.raises(ValueError):
        FeedClient("https://db.example.com", "k", session=_FakeSession([]), page_size=0)


def test_feed_client_filters_by_owner() -> None:
    session = _FakeSession([_FakeResponse(payload=[{"id": 9, "user_id": "u-1"}])])
    client = FeedClient("https://db.example.com", "k", session=session)
    assert client.fetch_activities(owner_id="u-1") == [{"id": 9, "user_id": "u-1"}]
    params = session.calls[0]["params"]
    assert params["user_id"] == "eq.u-1"
    assert params["order"] == "created_at.desc"


def test_feed_client_without_owner_sends_no_filter() -> None:
    session = _FakeSession([_FakeResponse(payload=[])])
    FeedClient("https://db.example.com", "k", session=session).fetch_activities()
    assert "user_id" not in session.calls[0]["params"]


def test_http_session_retries_reads_only() -> None:
    session = create_http_session(retries=5, backoff=0.5)
    retry = session.get_adapter("https://db.example.com").max_retries
    assert retry.total == 5
    assert retry.backoff_factor == 0.5
    assert 503 in retry.status_forcelist
    assert list(retry.allowed_methods) == ["GET"]
    assert session.headers["Accept"] == "application/json"


def test_shared_session_is_reused() -> None:
    assert shared_session() is shared_session()
