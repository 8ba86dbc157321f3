"""Global pytest fixtures & helpers.

Adds project root to path and provides reusable row factories and fixtures
for store, filter and export tests to avoid duplication across files.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from boundless_feed.models import GeoCoordinate

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
TAIPEI = GeoCoordinate(25.0330, 121.5654)


# --- Factory helpers -------------------------------------------------
def iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def make_row(activity_id, *, created=T0, **overrides):
    row = {
        "id": activity_id,
        "title": f"Activity {activity_id}",
        "category": "Meal",
        "type": "activity",
        "time_start": iso(T0),
        "time_end": iso(T0 + timedelta(hours=2)),
        "price": 0,
        "unit": "Free",
        "location": [25.0330, 121.5654],
        "photos": [],
        "created_at": iso(created),
        "user_id": "owner-1",
    }
    row.update(overrides)
    return row


def offset_km_north(origin: GeoCoordinate, km: float) -> GeoCoordinate:
    # One degree of latitude is ~111.195 km on a 6371 km sphere.
    return GeoCoordinate(origin.lat + km / 111.195, origin.lng)


# --- Fixtures --------------------------------------------------------
@pytest.fixture
def reference_point():
    return TAIPEI


@pytest.fixture
def bulk_rows():
    return [
        make_row("a", created=T0 + timedelta(minutes=30)),
        make_row("b", created=T0 + timedelta(minutes=20), category="Ride", price=50, unit="TWD"),
        make_row("c", created=T0 + timedelta(minutes=10), location="25.04,121.56"),
    ]
