"""Boundless activity discovery feed engine."""

from .errors import (
    FeedError,
    InvalidFilterCriteriaError,
    LocationMalformedError,
    LocationUnparseableError,
)
from .distance import distance_km
from .feed import FeedView
from .filtering import FilterEngine
from .location import LocationResolver, resolve, resolve_user_input
from .markers import Marker, MarkerProjector
from .models import Activity, ChangeEvent, FilterCriteria, GeoCoordinate
from .store import ActivityStore

__all__ = [
    "Activity",
    "ActivityStore",
    "ChangeEvent",
    "FeedError",
    "FeedView",
    "FilterCriteria",
    "FilterEngine",
    "GeoCoordinate",
    "InvalidFilterCriteriaError",
    "LocationMalformedError",
    "LocationResolver",
    "LocationUnparseableError",
    "Marker",
    "MarkerProjector",
    "distance_km",
    "resolve",
    "resolve_user_input",
]
