from __future__ import annotations

from datetime import timedelta

import pytest

from boundless_feed.categories import ALL_CATEGORIES
from boundless_feed.errors import InvalidFilterCriteriaError
from boundless_feed.filtering import PREDICATES, FilterEngine, evaluate
from boundless_feed.models import FilterCriteria, GeoCoordinate
from boundless_feed.records import parse_activity_row

from conftest import T0, TAIPEI, iso, make_row, offset_km_north


def _activity(activity_id, *, near=TAIPEI, km=0.0, **overrides):
    point = offset_km_north(near, km)
    row = make_row(activity_id, location=[point.lat, point.lng], **overrides)
    activity, _ = parse_activity_row(row)
    return activity


def _criteria(**overrides) -> FilterCriteria:
    values = dict(
        categories=ALL_CATEGORIES,
        price_range=(0.0, 1000.0),
        radius_km=12.0,
        time_window=(T0 - timedelta(days=1), T0 + timedelta(days=1)),
        require_images=False,
    )
    values.update(overrides)
    return FilterCriteria(**values)


def test_category_price_and_distance_combine() -> None:
    meal = _activity("A", km=2.0)
    ride = _activity("B", km=10.0, category="Ride", price=50, unit="TWD")
    criteria = _criteria(categories=frozenset({"Meal"}), price_range=(0, 100), radius_km=5)
    assert evaluate([meal, ride], criteria, TAIPEI) == [meal]


def test_meal_nearby_with_photo_is_the_only_match() -> None:
    meal = _activity("A", km=1.0, photos=["https://cdn.example.com/a.jpg"])
    ride = _activity("B", km=30.0, category="Ride", price=50, unit="TWD")
    criteria = _criteria(
        categories=frozenset({"Meal"}),
        price_range=(0, 10),
        radius_km=5,
        require_images=True,
    )
    assert evaluate([meal, ride], criteria, TAIPEI) == [meal]


def test_empty_category_set_selects_nothing() -> None:
    activities = [_activity("A"), _activity("B")]
    assert evaluate(activities, _criteria(categories=frozenset()), TAIPEI) == []


def test_empty_input_returns_empty_list() -> None:
    assert evaluate([], _criteria(), TAIPEI) == []


def test_input_order_is_preserved() -> None:
    activities = [_activity(str(n), km=n * 0.5) for n in range(6)]
    shuffled = [activities[i] for i in (3, 0, 5, 1, 4, 2)]
    assert evaluate(shuffled, _criteria(), TAIPEI) == shuffled


def test_time_window_uses_overlap_not_containment() -> None:
    # Runs 10:00-12:00 against a window of 11:00-13:00.
    started_early = _activity(
        "early",
        time_start=iso(T0 - timedelta(hours=2)),
        time_end=iso(T0),
    )
    window = (T0 - timedelta(hours=1), T0 + timedelta(hours=1))
    assert evaluate([started_early], _criteria(time_window=window), TAIPEI) == [started_early]


def test_time_window_touching_edges_counts_as_overlap() -> None:
    activity = _activity("edge", time_start=iso(T0), time_end=iso(T0 + timedelta(hours=1)))
    window = (T0 + timedelta(hours=1), T0 + timedelta(hours=2))
    assert evaluate([activity], _criteria(time_window=window), TAIPEI) == [activity]


def test_activity_outside_window_is_hidden() -> None:
    activity = _activity("old", time_start=iso(T0 - timedelta(days=5)), time_end=iso(T0 - timedelta(days=4)))
    assert evaluate([activity], _criteria(), TAIPEI) == []


def test_price_bounds_are_inclusive() -> None:
    cheap = _activity("cheap", price=10, unit="TWD")
    pricey = _activity("pricey", price=20, unit="TWD")
    too_much = _activity("too-much", price=20.01, unit="TWD")
    result = evaluate([cheap, pricey, too_much], _criteria(price_range=(10, 20)), TAIPEI)
    assert [a.id for a in result] == ["cheap", "pricey"]


def test_radius_boundary() -> None:
    inside = _activity("inside", km=4.9)
    outside = _activity("outside", km=5.1)
    result = evaluate([inside, outside], _criteria(radius_km=5), TAIPEI)
    assert [a.id for a in result] == ["inside"]


def test_require_images() -> None:
    with_photos = _activity("p", photos=["https://cdn.example.com/1.jpg"])
    without = _activity("n")
    criteria = _criteria(require_images=True)
    assert evaluate([with_photos, without], criteria, TAIPEI) == [with_photos]
    assert evaluate([with_photos, without], _criteria(), TAIPEI) == [with_photos, without]


def test_unknown_category_only_matches_when_selected() -> None:
    odd = _activity("odd", category="Karaoke")
    assert evaluate([odd], _criteria(), TAIPEI) == []
    assert evaluate([odd], _criteria(categories=frozenset({"Karaoke"})), TAIPEI) == [odd]


@pytest.mark.parametrize(
    "overrides",
    [
        {"price_range": (50, 10)},
        {"price_range": (0, float("inf"))},
        {"radius_km": 0},
        {"radius_km": -3},
        {"radius_km": float("nan")},
        {"time_window": (T0 + timedelta(days=1), T0)},
    ],
)
def test_invalid_criteria_raise(overrides) -> None:
    with pytest.raises(InvalidFilterCriteriaError):
        evaluate([_activity("A")], _criteria(**overrides), TAIPEI)


def test_invalid_criteria_are_not_clamped() -> None:
    criteria = _criteria(price_range=(50, 10))
    with pytest.raises(InvalidFilterCriteriaError):
        criteria.validate()
    assert criteria.price_range == (50.0, 10.0)


def test_distance_predicate_skipped_after_earlier_failure() -> None:
    calls = []

    def counting_distance(activity, criteria, ref):
        calls.append(activity.id)
        return True

    predicates = [(name, fn) for name, fn in PREDICATES if name != "distance"]
    engine = FilterEngine(predicates + [("distance", counting_distance)])
    meal = _activity("meal")
    ride = _activity("ride", category="Ride")
    engine.evaluate([meal, ride], _criteria(categories=frozenset({"Meal"})), TAIPEI)
    assert calls == ["meal"]


def test_reference_point_moves_results() -> None:
    far_away = GeoCoordinate(35.6762, 139.6503)
    activity = _activity("tokyo", near=far_away)
    assert evaluate([activity], _criteria(), TAIPEI) == []
    assert evaluate([activity], _criteria(), far_away) == [activity]
