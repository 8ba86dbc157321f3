"""Command-line browser for the activity feed.

Loads rows from a JSON file (or the backend), optionally replays a JSON-lines
change log, filters around a reference point and prints the visible list.
The result can also be written to a spreadsheet and/or an HTML map.
"""

from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Sequence

from .categories import ALL_CATEGORIES
from .config import GEOCODER_URL
from .distance import distance_km
from .errors import (
    FeedAPIError,
    InvalidFilterCriteriaError,
    LocationUnparseableError,
    RecordFormatError,
)
from .export import write_feed
from .feed_client import FeedClient
from .filtering import FilterEngine
from .geocoding import Geocoder
from .location import FALLBACK_COORDINATE, LocationResolver
from .markers import DEFAULT_PROJECTOR, build_marker_map
from .models import Activity, FilterCriteria, GeoCoordinate
from .store import WARN_FALLBACK_LOCATION, ActivityStore
from .utils import parse_timestamp

LOGGER = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="boundless_feed",
        description="Browse nearby activities and resources.",
    )
    parser.add_argument("--input", type=Path, help="JSON file with activity rows")
    parser.add_argument(
        "--owner", help="Only fetch postings by this user id (backend fetch only)"
    )
    parser.add_argument(
        "--changes", type=Path, help="JSON-lines file of change events to apply"
    )
    parser.add_argument(
        "--near",
        help="Reference location: 'lat, lng' or a map link (place names need a geocoder)",
    )
    parser.add_argument(
        "--category",
        action="append",
        dest="categories",
        help="Category to include (repeatable; default: all)",
    )
    parser.add_argument("--min-price", type=float)
    parser.add_argument("--max-price", type=float)
    parser.add_argument("--radius-km", type=float)
    parser.add_argument("--start", help="Window start (ISO-8601)")
    parser.add_argument("--end", help="Window end (ISO-8601)")
    parser.add_argument(
        "--images", action="store_true", help="Only show postings with photos"
    )
    parser.add_argument("--export", type=Path, help="Write results to .xlsx or .csv")
    parser.add_argument("--map", type=Path, help="Write an HTML map of the results")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def _read_rows(path: Path) -> List[Mapping[str, Any]]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, Mapping):
        payload = payload.get("rows") or payload.get("data") or []
    if not isinstance(payload, list):
        raise RecordFormatError(f"{path} does not contain a list of rows")
    return payload


def _iter_changes(path: Path) -> Iterator[Mapping[str, Any]]:
    with path.open(encoding="utf-8") as handle:
        for line_no, line in enumerate(handle, start=1):
            text = line.strip()
            if not text:
                continue
            try:
                yield json.loads(text)
            except json.JSONDecodeError as exc:
                LOGGER.warning("Skipping change log line %d: %s", line_no, exc)


def _build_criteria(args: argparse.Namespace, now: datetime) -> FilterCriteria:
    defaults = FilterCriteria.defaults(now)
    start = parse_timestamp(args.start) if args.start else defaults.time_window[0]
    end = parse_timestamp(args.end) if args.end else defaults.time_window[1]
    if start is None or end is None:
        raise InvalidFilterCriteriaError("Window bounds must be ISO-8601 timestamps")
    low, high = defaults.price_range
    return FilterCriteria(
        categories=frozenset(args.categories) if args.categories else ALL_CATEGORIES,
        price_range=(
            args.min_price if args.min_price is not None else low,
            args.max_price if args.max_price is not None else high,
        ),
        radius_km=args.radius_km if args.radius_km is not None else defaults.radius_km,
        time_window=(start, end),
        require_images=args.images or defaults.require_images,
    )


def _reference_point(text: str | None) -> GeoCoordinate:
    if not text:
        LOGGER.info(
            "No --near given; using default centre %s,%s",
            FALLBACK_COORDINATE.lat,
            FALLBACK_COORDINATE.lng,
        )
        return FALLBACK_COORDINATE
    geocoder = Geocoder(GEOCODER_URL) if GEOCODER_URL else None
    return LocationResolver(geocoder=geocoder).resolve_user_input(text)


def _print_results(activities: Sequence[Activity], reference: GeoCoordinate) -> None:
    if not activities:
        print("No activities found")
        return
    for activity in activities:
        marker = DEFAULT_PROJECTOR.project(activity)
        price = "Free" if activity.price == 0 else f"{activity.price:g} {activity.unit}".strip()
        print(
            f"[{activity.category}] {marker.label} | {price} | "
            f"{distance_km(activity.location, reference):.1f} km | "
            f"{activity.time_start:%Y-%m-%d %H:%M} - {activity.time_end:%Y-%m-%d %H:%M}"
        )


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    try:
        reference = _reference_point(args.near)
        criteria = _build_criteria(args, datetime.now(timezone.utc))
        criteria.validate()
    except LocationUnparseableError as exc:
        LOGGER.error("Could not use --near location: %s", exc)
        return 2
    except InvalidFilterCriteriaError as exc:
        LOGGER.error("Invalid filter: %s", exc)
        return 2

    store = ActivityStore()
    try:
        rows = (
            _read_rows(args.input)
            if args.input
            else FeedClient().fetch_activities(owner_id=args.owner)
        )
    except (FeedAPIError, RecordFormatError, ValueError, OSError) as exc:
        LOGGER.error("Failed to load activities: %s", exc)
        return 1
    store.load(rows)
    if args.changes:
        applied = sum(1 for event in _iter_changes(args.changes) if store.apply_change(event))
        LOGGER.info("Applied %d change events (generation=%d)", applied, store.generation)

    fallback_count = sum(1 for w in store.warnings() if w.reason == WARN_FALLBACK_LOCATION)
    if fallback_count:
        LOGGER.warning("%d activities were placed at the fallback location", fallback_count)

    visible = FilterEngine().evaluate(store.snapshot(), criteria, reference)
    _print_results(visible, reference)

    if args.export:
        write_feed(args.export, visible, reference)
    if args.map:
        build_marker_map(
            DEFAULT_PROJECTOR.project_all(visible),
            current_location=reference,
            output_html_path=args.map,
        )
        LOGGER.info("Map saved to %s", args.map)
    return 0
