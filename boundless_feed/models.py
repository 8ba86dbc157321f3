from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Mapping, Tuple

from .categories import ALL_CATEGORIES
from .errors import InvalidFilterCriteriaError, RecordFormatError
from .utils import to_utc_aware

OP_INSERT = "insert"
OP_UPDATE = "update"
OP_DELETE = "delete"
OPERATIONS = frozenset({OP_INSERT, OP_UPDATE, OP_DELETE})


@dataclass(frozen=True, slots=True)
class GeoCoordinate:
    lat: float
    lng: float

    def __post_init__(self) -> None:
        if isinstance(self.lat, bool) or isinstance(self.lng, bool):
            raise ValueError("Coordinate components must be numbers")
        lat = float(self.lat)
        lng = float(self.lng)
        if not (math.isfinite(lat) and math.isfinite(lng)):
            raise ValueError(f"Coordinate components must be finite: {lat}, {lng}")
        if not -90.0 <= lat <= 90.0:
            raise ValueError(f"Latitude out of range: {lat}")
        if not -180.0 <= lng <= 180.0:
            raise ValueError(f"Longitude out of range: {lng}")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lng", lng)

    def as_tuple(self) -> Tuple[float, float]:
        return self.lat, self.lng


@dataclass(frozen=True, slots=True)
class Activity:
    id: str
    title: str
    category: str
    kind: str
    time_start: datetime
    time_end: datetime
    price: float
    unit: str
    location: GeoCoordinate
    photos: Tuple[str, ...]
    created_at: datetime
    owner_id: str | None = None
    description: str | None = None

    @property
    def has_photos(self) -> bool:
        return bool(self.photos)

    def to_row(self) -> Dict[str, Any]:
        """Return the backend row shape for this activity."""

        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "kind": self.kind,
            "time_start": self.time_start.isoformat(),
            "time_end": self.time_end.isoformat(),
            "price": self.price,
            "unit": self.unit,
            "location": [self.location.lat, self.location.lng],
            "photos": list(self.photos),
            "created_at": self.created_at.isoformat(),
            "user_id": self.owner_id,
            "description": self.description,
        }


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """One mutation delivered by the change stream."""

    operation: str
    row: Mapping[str, Any]

    def __post_init__(self) -> None:
        operation = str(self.operation or "").strip().lower()
        if operation not in OPERATIONS:
            raise RecordFormatError(f"Unknown change operation: {self.operation!r}")
        if not isinstance(self.row, Mapping):
            raise RecordFormatError("Change event row must be a mapping")
        object.__setattr__(self, "operation", operation)

    @property
    def activity_id(self) -> str | None:
        raw = self.row.get("id")
        if raw is None or str(raw).strip() == "":
            return None
        return str(raw).strip()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ChangeEvent":
        """Build an event from either supported payload shape.

        Accepts ``{"operation": ..., "row": ...}`` as well as the realtime
        ``{"eventType": "INSERT", "new": {...}, "old": {...}}`` form, where
        deletes only carry the ``old`` row.

        Raises:
            RecordFormatError: If ``payload`` is not a mapping or names an
                unknown operation.
        """

        if not isinstance(payload, Mapping):
            raise RecordFormatError(
                f"Change event payload must be a mapping, got {type(payload).__name__}"
            )
        if "operation" in payload:
            return cls(operation=payload["operation"], row=payload.get("row") or {})
        event_type = str(payload.get("eventType") or payload.get("type") or "")
        operation = event_type.strip().lower()
        if operation == OP_DELETE:
            row = payload.get("old") or payload.get("old_record") or {}
        else:
            row = payload.get("new") or payload.get("record") or {}
        return cls(operation=operation, row=row)


@dataclass(frozen=True, slots=True)
class IngestWarning:
    """A degraded or skipped record reported by ingestion."""

    reason: str
    activity_id: str | None
    detail: str


@dataclass(frozen=True)
class FilterCriteria:
    categories: frozenset[str]
    price_range: Tuple[float, float]
    radius_km: float
    time_window: Tuple[datetime, datetime]
    require_images: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.categories, (str, bytes)):
            raise InvalidFilterCriteriaError(
                f"Categories must be a collection of names, got the string {self.categories!r}"
            )
        try:
            categories = frozenset(str(c) for c in self.categories)
            low, high = self.price_range
            price_range = (float(low), float(high))
            radius = float(self.radius_km)
            start, end = self.time_window
            time_window = (to_utc_aware(start), to_utc_aware(end))
        except (TypeError, ValueError, AttributeError) as exc:
            raise InvalidFilterCriteriaError(f"Malformed filter criteria: {exc}") from exc
        object.__setattr__(self, "categories", categories)
        object.__setattr__(self, "price_range", price_range)
        object.__setattr__(self, "radius_km", radius)
        object.__setattr__(self, "time_window", time_window)
        object.__setattr__(self, "require_images", bool(self.require_images))

    def validate(self) -> None:
        """Raise :class:`InvalidFilterCriteriaError` when an invariant fails.

        Values are never clamped; the caller has to fix the criteria.
        """

        low, high = self.price_range
        if not (math.isfinite(low) and math.isfinite(high)):
            raise InvalidFilterCriteriaError("Price range bounds must be finite")
        if low > high:
            raise InvalidFilterCriteriaError(
                f"Price range minimum {low} exceeds maximum {high}"
            )
        if not math.isfinite(self.radius_km) or self.radius_km <= 0:
            raise InvalidFilterCriteriaError(
                f"Radius must be a positive number of km, got {self.radius_km}"
            )
        start, end = self.time_window
        if start > end:
            raise InvalidFilterCriteriaError(
                f"Time window start {start.isoformat()} is after end {end.isoformat()}"
            )

    @classmethod
    def defaults(
        cls,
        now: datetime | None = None,
        *,
        categories: Iterable[str] | None = None,
    ) -> "FilterCriteria":
        """Return the browse-screen defaults.

        All categories, the configured price range and radius, and a window of
        ``DEFAULT_TIME_WINDOW_DAYS`` either side of ``now``.
        """

        from .config import (
            DEFAULT_PRICE_RANGE,
            DEFAULT_RADIUS_KM,
            DEFAULT_REQUIRE_IMAGES,
            DEFAULT_TIME_WINDOW_DAYS,
        )

        current = to_utc_aware(now) if now else datetime.now(timezone.utc)
        span = timedelta(days=DEFAULT_TIME_WINDOW_DAYS)
        return cls(
            categories=frozenset(categories) if categories is not None else ALL_CATEGORIES,
            price_range=DEFAULT_PRICE_RANGE,
            radius_km=DEFAULT_RADIUS_KM,
            time_window=(current - span, current + span),
            require_images=DEFAULT_REQUIRE_IMAGES,
        )


@dataclass(slots=True)
class ResolvedLocation:
    """Outcome of the tolerant stored-record resolution."""

    coordinate: GeoCoordinate
    used_fallback: bool = False
    reason: str | None = None
    diagnostics: Dict[str, Any] = field(default_factory=dict)
