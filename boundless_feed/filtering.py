"""Filter evaluation over activity snapshots.

Pure transformation: given activities, criteria and a reference point it
returns the visible subset in input order. Predicates run cheapest first and
evaluation of an activity stops at the first one that fails, so the haversine
distance is only computed for activities that passed everything else.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence, Tuple

from .distance import distance_km
from .models import Activity, FilterCriteria, GeoCoordinate

LOGGER = logging.getLogger(__name__)

Predicate = Callable[[Activity, FilterCriteria, GeoCoordinate], bool]


def category_matches(activity: Activity, criteria: FilterCriteria, _ref: GeoCoordinate) -> bool:
    return activity.category in criteria.categories


def images_match(activity: Activity, criteria: FilterCriteria, _ref: GeoCoordinate) -> bool:
    return not criteria.require_images or activity.has_photos


def price_matches(activity: Activity, criteria: FilterCriteria, _ref: GeoCoordinate) -> bool:
    low, high = criteria.price_range
    return low <= activity.price <= high


def time_overlaps(activity: Activity, criteria: FilterCriteria, _ref: GeoCoordinate) -> bool:
    """Interval overlap: intersecting the window is enough, containment is not required."""

    start, end = criteria.time_window
    return activity.time_start <= end and activity.time_end >= start


def within_radius(activity: Activity, criteria: FilterCriteria, ref: GeoCoordinate) -> bool:
    return distance_km(activity.location, ref) <= criteria.radius_km


# Ordered cheapest first.
PREDICATES: Tuple[Tuple[str, Predicate], ...] = (
    ("category", category_matches),
    ("images", images_match),
    ("price", price_matches),
    ("time", time_overlaps),
    ("distance", within_radius),
)


class FilterEngine:
    """Stateless evaluator; safe to call on every store or criteria change."""

    def __init__(self, predicates: Sequence[Tuple[str, Predicate]] = PREDICATES) -> None:
        self._predicates = tuple(predicates)

    def evaluate(
        self,
        activities: Sequence[Activity],
        criteria: FilterCriteria,
        reference_point: GeoCoordinate,
    ) -> List[Activity]:
        """Return the activities passing every predicate, in input order.

        An empty category set selects nothing.

        Raises:
            InvalidFilterCriteriaError: If ``criteria`` violate an invariant.
                Nothing is evaluated in that case.
        """

        criteria.validate()
        if not criteria.categories:
            return []
        visible = [
            activity
            for activity in activities
            if all(check(activity, criteria, reference_point) for _, check in self._predicates)
        ]
        LOGGER.debug("Filter kept %d of %d activities", len(visible), len(activities))
        return visible


DEFAULT_ENGINE = FilterEngine()


def evaluate(
    activities: Sequence[Activity],
    criteria: FilterCriteria,
    reference_point: GeoCoordinate,
) -> List[Activity]:
    return DEFAULT_ENGINE.evaluate(activities, criteria, reference_point)


__all__ = [
    "FilterEngine",
    "PREDICATES",
    "DEFAULT_ENGINE",
    "category_matches",
    "images_match",
    "price_matches",
    "time_overlaps",
    "within_radius",
    "evaluate",
]
