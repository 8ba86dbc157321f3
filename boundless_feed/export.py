"""Tabular export of visible activities (Excel or CSV)."""

from __future__ import annotations

import logging
from os import PathLike
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
from openpyxl.styles import Font
from openpyxl.worksheet.worksheet import Worksheet

from .config import (
    EXCEL_AUTOSIZE_COLUMNS,
    EXCEL_AUTOSIZE_MAX_WIDTH,
    EXCEL_AUTOSIZE_MIN_WIDTH,
    EXCEL_AUTOSIZE_PADDING,
    EXPORT_COLUMN_ORDER,
)
from .distance import distances_km
from .models import Activity, GeoCoordinate

LOGGER = logging.getLogger(__name__)

FEED_SHEET = "Activities"
EXCEL_DATETIME_FORMAT = "yyyy-mm-dd hh:mm"
HEADER_FONT = Font(bold=True)

PathInput = str | Path | PathLike[str]

__all__ = ["FEED_SHEET", "activities_to_frame", "write_feed"]


def _naive_utc(value):
    # Excel cannot store timezone-aware datetimes.
    return value.replace(tzinfo=None)


def activities_to_frame(
    activities: Sequence[Activity],
    reference_point: Optional[GeoCoordinate] = None,
) -> pd.DataFrame:
    """Return one row per activity, in the given order.

    A ``Distance (km)`` column is included when ``reference_point`` is given.
    Times are naive UTC.
    """

    rows = [
        {
            "ID": a.id,
            "Title": a.title,
            "Category": a.category,
            "Kind": a.kind,
            "Start": _naive_utc(a.time_start),
            "End": _naive_utc(a.time_end),
            "Price": a.price,
            "Unit": a.unit,
            "Latitude": a.location.lat,
            "Longitude": a.location.lng,
            "Photos": len(a.photos),
            "Created": _naive_utc(a.created_at),
            "Owner": a.owner_id,
        }
        for a in activities
    ]
    df = pd.DataFrame(rows, columns=[c for c in EXPORT_COLUMN_ORDER if c != "Distance (km)"])
    if reference_point is not None:
        distances = distances_km([a.location for a in activities], reference_point)
        df["Distance (km)"] = distances.round(2)
    ordered = [c for c in EXPORT_COLUMN_ORDER if c in df.columns]
    return df[ordered]


def _autosize(ws: Worksheet) -> None:
    if not EXCEL_AUTOSIZE_COLUMNS:
        return
    for col_cells in ws.columns:
        max_len = 0
        col_letter = getattr(col_cells[0], "column_letter", None)
        for cell in col_cells:
            if cell.value is None:
                continue
            max_len = max(max_len, len(str(cell.value)))
        width = min(
            EXCEL_AUTOSIZE_MAX_WIDTH,
            max(EXCEL_AUTOSIZE_MIN_WIDTH, max_len + EXCEL_AUTOSIZE_PADDING),
        )
        if col_letter:
            ws.column_dimensions[col_letter].width = width


def write_feed(
    filepath: PathInput,
    activities: Sequence[Activity],
    reference_point: Optional[GeoCoordinate] = None,
) -> Path:
    """Write ``activities`` to ``.xlsx`` (styled) or ``.csv`` based on suffix.

    Returns:
        The path written.

    Raises:
        ValueError: If the suffix is neither ``.xlsx`` nor ``.csv``.
    """

    path = Path(filepath)
    df = activities_to_frame(activities, reference_point)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".xlsx":
        with pd.ExcelWriter(
            path, engine="openpyxl", datetime_format=EXCEL_DATETIME_FORMAT
        ) as writer:
            df.to_excel(writer, sheet_name=FEED_SHEET, index=False)
            ws = writer.sheets[FEED_SHEET]
            for cell in ws[1]:
                cell.font = HEADER_FONT
            _autosize(ws)
    else:
        raise ValueError(f"Unsupported export format: {path.suffix or '(none)'}")
    LOGGER.info("Wrote %d activities to %s", len(df), path)
    return path
