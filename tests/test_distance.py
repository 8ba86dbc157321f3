import math

import pytest

from boundless_feed.distance import EARTH_RADIUS_KM, distance_km, distances_km
from boundless_feed.models import GeoCoordinate

POINTS = [
    GeoCoordinate(25.0330, 121.5654),
    GeoCoordinate(-33.8688, 151.2093),
    GeoCoordinate(51.5074, -0.1278),
    GeoCoordinate(90.0, 0.0),
    GeoCoordinate(-90.0, 180.0),
    GeoCoordinate(0.0, -180.0),
    GeoCoordinate(0.0, 180.0),
]


@pytest.mark.parametrize("point", POINTS)
def test_distance_to_self_is_zero(point: GeoCoordinate) -> None:
    assert distance_km(point, point) == 0.0


def test_distance_is_symmetric() -> None:
    for a in POINTS:
        for b in POINTS:
            assert distance_km(a, b) == distance_km(b, a)


def test_known_distance_one_degree_latitude() -> None:
    expected = EARTH_RADIUS_KM * math.pi / 180.0
    assert distance_km(GeoCoordinate(0.0, 0.0), GeoCoordinate(1.0, 0.0)) == pytest.approx(expected)


def test_antipodal_distance_is_half_circumference() -> None:
    d = distance_km(GeoCoordinate(0.0, 0.0), GeoCoordinate(0.0, 180.0))
    assert d == pytest.approx(math.pi * EARTH_RADIUS_KM)


def test_antimeridian_neighbours_are_close() -> None:
    d = distance_km(GeoCoordinate(0.0, 179.9), GeoCoordinate(0.0, -179.9))
    assert d == pytest.approx(22.24, abs=0.01)


def test_taipei_to_sydney() -> None:
    d = distance_km(POINTS[0], POINTS[1])
    assert 7200 < d < 7300


def test_vectorised_distances_match_scalar() -> None:
    ref = POINTS[0]
    result = distances_km(POINTS, ref)
    assert result.shape == (len(POINTS),)
    for point, value in zip(POINTS, result):
        assert value == pytest.approx(distance_km(point, ref), abs=1e-6)


def test_vectorised_distances_empty() -> None:
    assert distances_km([], POINTS[0]).shape == (0,)
