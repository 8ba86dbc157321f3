"""Great-circle distance helpers."""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from .models import GeoCoordinate

EARTH_RADIUS_KM = 6371.0


def distance_km(first: GeoCoordinate, second: GeoCoordinate) -> float:
    """Return the haversine distance between two coordinates in kilometres.

    Deltas are taken as absolute values so the result is bit-for-bit
    symmetric in its arguments.
    """

    sin = math.sin
    cos = math.cos
    radians = math.radians
    lat1_rad = radians(first.lat)
    lat2_rad = radians(second.lat)
    delta_lat = abs(lat2_rad - lat1_rad)
    delta_lon = radians(abs(second.lng - first.lng))
    sin_half_lat = sin(delta_lat / 2.0)
    sin_half_lon = sin(delta_lon / 2.0)
    a = sin_half_lat**2 + cos(lat1_rad) * cos(lat2_rad) * sin_half_lon**2
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


def distances_km(
    points: Sequence[GeoCoordinate],
    reference: GeoCoordinate,
) -> NDArray[np.float64]:
    """Vectorised :func:`distance_km` from every point to ``reference``."""

    if len(points) == 0:
        return np.zeros(0, dtype=float)
    coords = np.radians(np.asarray([p.as_tuple() for p in points], dtype=float))
    ref_lat = math.radians(reference.lat)
    lat = coords[:, 0]
    delta_lat = np.abs(lat - ref_lat)
    delta_lon = np.radians(
        np.abs(np.asarray([p.lng for p in points], dtype=float) - reference.lng)
    )
    a = np.sin(delta_lat / 2.0) ** 2 + np.cos(lat) * math.cos(ref_lat) * np.sin(
        delta_lon / 2.0
    ) ** 2
    a = np.clip(a, 0.0, 1.0)
    c = 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))
    return EARTH_RADIUS_KM * c


__all__ = ["EARTH_RADIUS_KM", "distance_km", "distances_km"]
