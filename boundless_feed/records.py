"""Conversion of raw backend rows into :class:`Activity` records.

This is the ingestion boundary: raw locations are resolved here (tolerantly,
with fallback) and nothing downstream ever sees a raw row.
"""

from __future__ import annotations

from typing import Any, Mapping, Tuple

from .categories import normalize_category, normalize_kind
from .errors import RecordFormatError
from .location import DEFAULT_RESOLVER, LocationResolver
from .models import Activity, ResolvedLocation
from .utils import coerce_finite_float, parse_timestamp

FREE_UNIT = "Free"

__all__ = ["FREE_UNIT", "parse_activity_row", "raw_location_of"]


def raw_location_of(row: Mapping[str, Any]) -> Any:
    """Return the raw location carried by ``row``.

    Rows written by the submission form store ``latitude``/``longitude``
    columns instead of a single ``location`` value.
    """

    location = row.get("location")
    if location is not None:
        return location
    if row.get("latitude") is not None or row.get("longitude") is not None:
        return {"latitude": row.get("latitude"), "longitude": row.get("longitude")}
    return None


def _require_id(row: Mapping[str, Any]) -> str:
    raw = row.get("id")
    if raw is None or str(raw).strip() == "":
        raise RecordFormatError("Activity row has no id")
    return str(raw).strip()


def _require_time(row: Mapping[str, Any], key: str, activity_id: str):
    value = parse_timestamp(row.get(key))
    if value is None:
        raise RecordFormatError(
            f"Activity {activity_id} has missing or invalid {key}: {row.get(key)!r}"
        )
    return value


def _parse_price(row: Mapping[str, Any], activity_id: str) -> Tuple[float, str]:
    unit_raw = row.get("unit")
    unit = str(unit_raw).strip() if unit_raw not in (None, "") else ""
    if unit.lower() == FREE_UNIT.lower():
        return 0.0, FREE_UNIT
    raw_price = row.get("price")
    if raw_price in (None, ""):
        return 0.0, unit or FREE_UNIT
    price = coerce_finite_float(raw_price)
    if price is None or price < 0:
        raise RecordFormatError(f"Activity {activity_id} has invalid price {raw_price!r}")
    if price == 0 and not unit:
        unit = FREE_UNIT
    return price, unit


def _parse_photos(row: Mapping[str, Any]) -> Tuple[str, ...]:
    raw = row.get("photos")
    if raw is None:
        raw = row.get("images")
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(str(item).strip() for item in raw if item and str(item).strip())


def parse_activity_row(
    row: Mapping[str, Any],
    resolver: LocationResolver = DEFAULT_RESOLVER,
) -> Tuple[Activity, ResolvedLocation]:
    """Build an :class:`Activity` from a backend row.

    Returns:
        The activity and the location resolution outcome (``used_fallback`` is
        set when the stored location was unusable).

    Raises:
        RecordFormatError: If the row lacks an id, valid times, a valid price
            or a creation timestamp. Location problems never raise.
    """

    if not isinstance(row, Mapping):
        raise RecordFormatError(f"Activity row must be a mapping, got {type(row).__name__}")
    activity_id = _require_id(row)
    time_start = _require_time(row, "time_start", activity_id)
    time_end = _require_time(row, "time_end", activity_id)
    if time_start > time_end:
        raise RecordFormatError(
            f"Activity {activity_id} ends before it starts "
            f"({time_start.isoformat()} > {time_end.isoformat()})"
        )
    created_at = _require_time(row, "created_at", activity_id)
    price, unit = _parse_price(row, activity_id)
    category = normalize_category(row.get("category"))
    kind = normalize_kind(row.get("kind") or row.get("type"), category)
    resolved = resolver.resolve_or_fallback(
        raw_location_of(row), context=f"activity {activity_id}"
    )
    owner = row.get("user_id", row.get("owner_id"))
    description = row.get("description")
    activity = Activity(
        id=activity_id,
        title=str(row.get("title") or "").strip(),
        category=category,
        kind=kind,
        time_start=time_start,
        time_end=time_end,
        price=price,
        unit=unit,
        location=resolved.coordinate,
        photos=_parse_photos(row),
        created_at=created_at,
        owner_id=str(owner) if owner is not None else None,
        description=str(description) if description else None,
    )
    return activity, resolved
