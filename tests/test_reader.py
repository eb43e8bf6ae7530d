"""Tests for GTFS reader."""

from pathlib import Path

import pytest

from transit_graph.gtfs.models import StopLocationType
from transit_graph.gtfs.reader import GTFSReader


def test_reader_basic(gtfs_minimal: Path) -> None:
    """Test basic GTFS reading."""
    reader = GTFSReader(str(gtfs_minimal))
    reader.read_all()

    assert len(reader.agencies) == 1
    assert len(reader.stops) == 7
    assert len(reader.routes) == 3
    assert len(reader.trips) == 4
    assert len(reader.stop_times) == 10
    assert reader.skipped_rows == {}


def test_reader_zip_archive(gtfs_minimal_zip: Path) -> None:
    """Test reading a zipped feed gives the same rows."""
    reader = GTFSReader(str(gtfs_minimal_zip))
    reader.read_all()

    assert reader.is_archive
    assert len(reader.stops) == 7
    assert len(reader.stop_times) == 10


def test_reader_stop_fields(gtfs_minimal: Path) -> None:
    """Test stop columns are parsed into typed fields."""
    reader = GTFSReader(str(gtfs_minimal))
    reader.read_stops()
    stops = {stop.stop_id: stop for stop in reader.stops}

    assert stops["D"].platform_code == "1"
    assert stops["D"].has_platform_code
    assert stops["D"].parent_station == "STN"
    assert stops["STN"].location_type is StopLocationType.STATION
    assert stops["E"].location_type is StopLocationType.ENTRANCE_EXIT
    assert stops["A"].lat == pytest.approx(48.85)
    assert not stops["A"].has_platform_code


def test_reader_keeps_file_order(gtfs_edgecases: Path) -> None:
    """Test stop times are not regrouped or sorted."""
    reader = GTFSReader(str(gtfs_edgecases))
    reader.read_all()

    assert [st.trip_id for st in reader.stop_times] == [
        "T1",
        "T2",
        "T1",
        "T3",
        "T3",
        "T2",
        "GHOST",
        "GHOST",
    ]


def test_reader_skips_malformed_rows(gtfs_edgecases: Path) -> None:
    """Test rows with unparseable values are skipped and counted."""
    reader = GTFSReader(str(gtfs_edgecases))
    reader.read_all()

    assert reader.skipped_rows == {"stops.txt": 1, "routes.txt": 1, "stop_times.txt": 1}
    assert "S4" not in {stop.stop_id for stop in reader.stops}
    assert [route.route_id for route in reader.routes] == ["R1", "R2"]


def test_reader_agencies_fallback(gtfs_edgecases: Path) -> None:
    """Test the non-standard agencies.txt name is accepted."""
    reader = GTFSReader(str(gtfs_edgecases))
    reader.read_agencies()

    assert [agency.agency_id for agency in reader.agencies] == ["E1"]


def test_reader_iter_stop_times(gtfs_minimal: Path) -> None:
    """Test streaming stop times does not store them."""
    reader = GTFSReader(str(gtfs_minimal))

    first = next(reader.iter_stop_times())

    assert (first.trip_id, first.stop_id, first.stop_sequence) == ("T1", "A", 1)
    assert reader.stop_times == []


def test_reader_missing_path() -> None:
    """Test reader with a missing feed path."""
    with pytest.raises(ValueError):
        GTFSReader("/nonexistent/path")


def test_reader_missing_required_file(tmp_path: Path) -> None:
    """Test a feed without stops.txt is rejected."""
    (tmp_path / "routes.txt").write_text("route_id,route_type\nR1,3\n", encoding="utf-8")
    reader = GTFSReader(str(tmp_path))

    with pytest.raises(FileNotFoundError):
        reader.read_stops()
