"""General utility helpers shared across modules."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any


def to_utc_aware(value: datetime) -> datetime:
    """Return ``value`` as a timezone-aware UTC datetime (naive means UTC)."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO-8601 string, datetime or epoch seconds into aware UTC.

    Returns ``None`` when the value is missing or cannot be parsed.
    """

    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return to_utc_aware(raw)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        if not math.isfinite(raw):
            return None
        try:
            return datetime.fromtimestamp(raw, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(raw, str):
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return to_utc_aware(datetime.fromisoformat(text))
    except ValueError:
        return None


def coerce_finite_float(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None``.

    Booleans are rejected even though ``float(True)`` succeeds.
    """

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number
