"""Location resolution for stored rows and free-text user input.

Both entry points walk an ordered tuple of independent strategies and take
the first one that yields a candidate. A strategy returns a raw ``(lat, lng)``
pair or ``None`` when the input is not in its format; coordinate validation
happens once, centrally, so every format gets the same finite/range checks.

Stored rows are resolved tolerantly: :meth:`LocationResolver.resolve_or_fallback`
substitutes the configured fallback coordinate and reports it. User input is
strict: :meth:`LocationResolver.resolve_user_input` raises
:class:`LocationUnparseableError` so the caller can tell the human.
"""

from __future__ import annotations

import logging
import numbers
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence, Tuple
from urllib.parse import unquote_plus

from .config import FALLBACK_LATITUDE, FALLBACK_LONGITUDE
from .errors import GeocodingError, LocationMalformedError, LocationUnparseableError
from .models import GeoCoordinate, ResolvedLocation
from .utils import coerce_finite_float

if TYPE_CHECKING:  # pragma: no cover
    from .geocoding import Geocoder

LOGGER = logging.getLogger(__name__)

RawPair = Tuple[float, float]
ParseFn = Callable[[Any], Optional[RawPair]]

FALLBACK_COORDINATE = GeoCoordinate(FALLBACK_LATITUDE, FALLBACK_LONGITUDE)

_NUMBER = r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)"
_BARE_PAIR_RE = re.compile(rf"({_NUMBER})(?:\s*,\s*|\s+)({_NUMBER})")
_AT_SEGMENT_RE = re.compile(rf"@({_NUMBER}),({_NUMBER})")
_QUERY_PARAM_RE = re.compile(r"[?&](?:q|ll)=([^&#\s]+)", re.IGNORECASE)

_LAT_LNG_KEYS = (("lat", "lng"), ("latitude", "longitude"), ("lat", "lon"))


@dataclass(frozen=True, slots=True)
class LocationStrategy:
    """A named parse attempt; ``parse`` returns ``None`` when not applicable."""

    name: str
    parse: ParseFn


def _pair_from_values(lat: Any, lng: Any) -> RawPair | None:
    lat_value = coerce_finite_float(lat)
    lng_value = coerce_finite_float(lng)
    if lat_value is None or lng_value is None:
        return None
    return lat_value, lng_value


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


# --- Stored-row strategies -------------------------------------------


def _parse_number_pair(raw: Any) -> RawPair | None:
    if isinstance(raw, (str, bytes, Mapping)) or not isinstance(raw, Sequence):
        return None
    if len(raw) != 2 or not all(_is_number(v) for v in raw):
        return None
    return _pair_from_values(raw[0], raw[1])


def _parse_named_fields(raw: Any) -> RawPair | None:
    if isinstance(raw, GeoCoordinate):
        return raw.as_tuple()
    if not isinstance(raw, Mapping):
        return None
    for lat_key, lng_key in _LAT_LNG_KEYS:
        if lat_key in raw and lng_key in raw:
            return _pair_from_values(raw[lat_key], raw[lng_key])
    return None


def _parse_geojson_point(raw: Any) -> RawPair | None:
    # GeoJSON stores longitude first.
    if not isinstance(raw, Mapping) or str(raw.get("type", "")).lower() != "point":
        return None
    coords = raw.get("coordinates")
    if not isinstance(coords, Sequence) or isinstance(coords, str) or len(coords) < 2:
        return None
    return _pair_from_values(coords[1], coords[0])


def _parse_comma_string(raw: Any) -> RawPair | None:
    if not isinstance(raw, str):
        return None
    parts = raw.split(",")
    if len(parts) != 2:
        return None
    return _pair_from_values(parts[0].strip(), parts[1].strip())


STORED_STRATEGIES: Tuple[LocationStrategy, ...] = (
    LocationStrategy("pair", _parse_number_pair),
    LocationStrategy("named_fields", _parse_named_fields),
    LocationStrategy("geojson_point", _parse_geojson_point),
    LocationStrategy("comma_string", _parse_comma_string),
)


# --- User-input strategies -------------------------------------------


def _parse_bare_coordinates(text: Any) -> RawPair | None:
    match = _BARE_PAIR_RE.fullmatch(str(text).strip())
    if match is None:
        return None
    return _pair_from_values(match.group(1), match.group(2))


def _parse_at_segment(text: Any) -> RawPair | None:
    match = _AT_SEGMENT_RE.search(str(text))
    if match is None:
        return None
    return _pair_from_values(match.group(1), match.group(2))


def _parse_query_parameter(text: Any) -> RawPair | None:
    for match in _QUERY_PARAM_RE.finditer(str(text)):
        candidate = _parse_bare_coordinates(unquote_plus(match.group(1)))
        if candidate is not None:
            return candidate
    return None


USER_INPUT_STRATEGIES: Tuple[LocationStrategy, ...] = (
    LocationStrategy("coordinates", _parse_bare_coordinates),
    LocationStrategy("at_segment", _parse_at_segment),
    LocationStrategy("query_parameter", _parse_query_parameter),
)


def _to_coordinate(pair: RawPair) -> GeoCoordinate | None:
    try:
        return GeoCoordinate(*pair)
    except ValueError:
        return None


class LocationResolver:
    """Resolve raw locations through ordered strategy lists."""

    def __init__(
        self,
        *,
        fallback: GeoCoordinate = FALLBACK_COORDINATE,
        stored_strategies: Sequence[LocationStrategy] = STORED_STRATEGIES,
        user_input_strategies: Sequence[LocationStrategy] = USER_INPUT_STRATEGIES,
        geocoder: "Geocoder | None" = None,
    ) -> None:
        self.fallback = fallback
        self._stored = tuple(stored_strategies)
        self._user_input = tuple(user_input_strategies)
        self._geocoder = geocoder

    def resolve(self, raw: Any) -> GeoCoordinate:
        """Return the coordinate for a stored location representation.

        Raises:
            LocationMalformedError: If no strategy understands ``raw`` or the
                values are non-finite or out of range.
        """

        for strategy in self._stored:
            pair = strategy.parse(raw)
            if pair is None:
                continue
            coordinate = _to_coordinate(pair)
            if coordinate is None:
                raise LocationMalformedError(
                    f"Location {raw!r} is out of range ({strategy.name})"
                )
            return coordinate
        raise LocationMalformedError(f"Unrecognised location format: {raw!r}")

    def resolve_or_fallback(
        self,
        raw: Any,
        *,
        context: str | None = None,
    ) -> ResolvedLocation:
        """Resolve ``raw`` or substitute the fallback coordinate.

        The substitution is never silent: a warning is logged and the result is
        flagged with ``used_fallback``.
        """

        try:
            return ResolvedLocation(coordinate=self.resolve(raw))
        except LocationMalformedError as exc:
            LOGGER.warning(
                "Using fallback location %s,%s for %s: %s",
                self.fallback.lat,
                self.fallback.lng,
                context or "record",
                exc,
            )
            return ResolvedLocation(
                coordinate=self.fallback,
                used_fallback=True,
                reason=str(exc),
                diagnostics={"raw": raw},
            )

    def resolve_user_input(self, text: str) -> GeoCoordinate:
        """Return the coordinate described by free text typed by a user.

        Raises:
            LocationUnparseableError: If no strategy (including the optional
                geocoder) yields a valid coordinate.
        """

        if text is None or not str(text).strip():
            raise LocationUnparseableError("No location text supplied")
        for strategy in self._user_input:
            pair = strategy.parse(text)
            if pair is None:
                continue
            coordinate = _to_coordinate(pair)
            if coordinate is not None:
                return coordinate
            LOGGER.debug(
                "Strategy %s matched %r but values are out of range", strategy.name, text
            )
        if self._geocoder is not None:
            try:
                coordinate = self._geocoder.lookup(str(text))
            except GeocodingError as exc:
                raise LocationUnparseableError(
                    f"Could not look up location {text!r}: {exc}"
                ) from exc
            if coordinate is not None:
                return coordinate
        raise LocationUnparseableError(f"Could not understand location {text!r}")


DEFAULT_RESOLVER = LocationResolver()


def resolve(raw: Any) -> GeoCoordinate:
    """Module-level convenience wrapper around the default resolver."""

    return DEFAULT_RESOLVER.resolve(raw)


def resolve_or_fallback(raw: Any, *, context: str | None = None) -> ResolvedLocation:
    return DEFAULT_RESOLVER.resolve_or_fallback(raw, context=context)


def resolve_user_input(text: str, *, geocoder: "Geocoder | None" = None) -> GeoCoordinate:
    """Resolve user text, optionally consulting ``geocoder`` as a last resort."""

    if geocoder is None:
        return DEFAULT_RESOLVER.resolve_user_input(text)
    return LocationResolver(geocoder=geocoder).resolve_user_input(text)


__all__ = [
    "FALLBACK_COORDINATE",
    "LocationResolver",
    "LocationStrategy",
    "STORED_STRATEGIES",
    "USER_INPUT_STRATEGIES",
    "DEFAULT_RESOLVER",
    "resolve",
    "resolve_or_fallback",
    "resolve_user_input",
]
