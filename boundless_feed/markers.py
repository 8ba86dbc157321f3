"""Map annotations for activities and an interactive Leaflet export."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Union

import folium  # Using folium to build an interactive Leaflet map.

from .categories import CATEGORY_COLORS, FALLBACK_COLOR
from .config import MARKER_LABEL_MAX_CHARS, MARKER_MAP_ZOOM
from .models import Activity, GeoCoordinate

PathLike = Union[str, Path]

_ELLIPSIS = "…"
_CURRENT_LOCATION_COLOR = "#000000"


@dataclass(frozen=True, slots=True)
class Marker:
    """Presentation data for one activity pin."""

    activity_id: str
    color: str
    label: str
    location: GeoCoordinate


def truncate_label(title: str, max_chars: int = MARKER_LABEL_MAX_CHARS) -> str:
    """Shorten ``title`` to ``max_chars`` characters including the ellipsis."""

    text = " ".join(str(title or "").split())
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    if max_chars == 1:
        return _ELLIPSIS
    return text[: max_chars - 1].rstrip() + _ELLIPSIS


class MarkerProjector:
    """Derive marker colour and label from an activity."""

    def __init__(
        self,
        palette: Mapping[str, str] = CATEGORY_COLORS,
        *,
        fallback_color: str = FALLBACK_COLOR,
        max_label_chars: int = MARKER_LABEL_MAX_CHARS,
    ) -> None:
        self._palette = dict(palette)
        self._fallback_color = fallback_color
        self._max_label_chars = max_label_chars

    def color_for(self, category: str) -> str:
        return self._palette.get(category, self._fallback_color)

    def project(self, activity: Activity) -> Marker:
        return Marker(
            activity_id=activity.id,
            color=self.color_for(activity.category),
            label=truncate_label(activity.title, self._max_label_chars),
            location=activity.location,
        )

    def project_all(self, activities: Iterable[Activity]) -> list[Marker]:
        return [self.project(activity) for activity in activities]


DEFAULT_PROJECTOR = MarkerProjector()


def project(activity: Activity) -> Marker:
    return DEFAULT_PROJECTOR.project(activity)


def build_marker_map(
    markers: Sequence[Marker],
    *,
    center: Optional[GeoCoordinate] = None,
    current_location: Optional[GeoCoordinate] = None,
    zoom_start: int = MARKER_MAP_ZOOM,
    output_html_path: Optional[PathLike] = None,
) -> folium.Map:
    """Create an interactive map with one coloured pin per marker.

    Args:
        markers: Projected markers to draw.
        center: Map centre; defaults to ``current_location``, then the first
            marker, then (0, 0).
        current_location: Optional viewer position drawn as a "You are here" pin.
        zoom_start: Initial zoom level.
        output_html_path: When given, the map is saved to this path.

    Returns:
        The :class:`folium.Map` instance.
    """

    if center is None:
        if current_location is not None:
            center = current_location
        elif markers:
            center = markers[0].location
    start = list(center.as_tuple()) if center is not None else [0.0, 0.0]
    fmap = folium.Map(location=start, zoom_start=zoom_start, control_scale=True)

    for marker in markers:
        folium.CircleMarker(
            location=list(marker.location.as_tuple()),
            radius=7,
            color="#FFFFFF",
            weight=2,
            fill=True,
            fill_color=marker.color,
            fill_opacity=1.0,
            tooltip=marker.label,
        ).add_to(fmap)

    if current_location is not None:
        folium.CircleMarker(
            location=list(current_location.as_tuple()),
            radius=10,
            color="#FFFFFF",
            weight=3,
            fill=True,
            fill_color=_CURRENT_LOCATION_COLOR,
            fill_opacity=1.0,
            tooltip="You are here",
        ).add_to(fmap)

    if output_html_path is not None:
        output_path = Path(output_html_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fmap.save(str(output_path))
    return fmap


__all__ = [
    "Marker",
    "MarkerProjector",
    "DEFAULT_PROJECTOR",
    "project",
    "truncate_label",
    "build_marker_map",
]
