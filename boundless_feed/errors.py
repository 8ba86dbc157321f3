"""Central error types used across the feed engine."""

from __future__ import annotations


class FeedError(RuntimeError):
    """Base error for the activity feed engine."""


class LocationError(FeedError):
    """Base error for location resolution failures."""


class LocationMalformedError(LocationError):
    """Raised when a stored location cannot be read as a valid coordinate."""


class LocationUnparseableError(LocationError):
    """Raised when user-supplied text does not describe a location."""


class RecordFormatError(FeedError):
    """Raised when a raw activity row or change event is unusable."""


class InvalidFilterCriteriaError(FeedError, ValueError):
    """Raised when filter criteria violate their invariants."""


class LoadCancelledError(FeedError):
    """Raised when a bulk load is cancelled before it commits."""


class FeedAPIError(FeedError):
    """Raised when the backend returns an unusable response."""


class GeocodingError(FeedError):
    """Raised when the geocoding service fails."""


__all__ = [
    "FeedError",
    "LocationError",
    "LocationMalformedError",
    "LocationUnparseableError",
    "RecordFormatError",
    "InvalidFilterCriteriaError",
    "LoadCancelledError",
    "FeedAPIError",
    "GeocodingError",
]
