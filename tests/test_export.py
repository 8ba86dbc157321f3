from __future__ import annotations

import pandas as pd
import pytest
from openpyxl import load_workbook

from boundless_feed.export import FEED_SHEET, activities_to_frame, write_feed
from boundless_feed.records import parse_activity_row

from conftest import TAIPEI, make_row, offset_km_north


def _activities():
    near = offset_km_north(TAIPEI, 3.0)
    rows = [
        make_row("a", title="Noodles"),
        make_row("b", title="Carpool", category="Ride", price=50, unit="TWD", location=[near.lat, near.lng]),
    ]
    return [parse_activity_row(r)[0] for r in rows]


def test_frame_without_reference_has_no_distance() -> None:
    df = activities_to_frame(_activities())
    assert list(df["ID"]) == ["a", "b"]
    assert "Distance (km)" not in df.columns
    assert df.loc[0, "Start"].tzinfo is None


def test_frame_with_reference_adds_distance() -> None:
    df = activities_to_frame(_activities(), TAIPEI)
    assert list(df["Distance (km)"]) == pytest.approx([0.0, 3.0], abs=0.01)
    assert list(df.columns).index("Distance (km)") == list(df.columns).index("Longitude") + 1


def test_empty_frame_keeps_columns() -> None:
    df = activities_to_frame([], TAIPEI)
    assert df.empty
    assert "Title" in df.columns


def test_write_csv(tmp_path) -> None:
    path = write_feed(tmp_path / "feed.csv", _activities(), TAIPEI)
    df = pd.read_csv(path)
    assert list(df["Title"]) == ["Noodles", "Carpool"]
    assert list(df["Price"]) == [0.0, 50.0]


def test_write_xlsx_bold_header(tmp_path) -> None:
    path = write_feed(tmp_path / "feed.xlsx", _activities(), TAIPEI)
    wb = load_workbook(path)
    ws = wb[FEED_SHEET]
    assert ws["A1"].value == "ID"
    assert ws["A1"].font.bold
    assert ws["B2"].value == "Noodles"
    assert ws.max_row == 3


def test_unknown_suffix_rejected(tmp_path) -> None:
    with pytest.raises(ValueError):
        write_feed(tmp_path / "feed.json", _activities())
