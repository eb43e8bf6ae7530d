"""Pytest configuration and fixtures."""

import zipfile
from pathlib import Path

import pytest

from transit_graph.gtfs.models import Mode, StopTime, Trip
from transit_graph.transform.routed_services import RoutedServices
from transit_graph.transform.service_network import ServiceNetwork
from transit_graph.transform.trips import TripIndex, index_trips


@pytest.fixture
def gtfs_minimal() -> Path:
    """Path to minimal GTFS fixture."""
    return Path(__file__).parent / "fixtures" / "gtfs_minimal"


@pytest.fixture
def gtfs_edgecases() -> Path:
    """Path to edge cases GTFS fixture."""
    return Path(__file__).parent / "fixtures" / "gtfs_edgecases"


@pytest.fixture
def gtfs_minimal_zip(gtfs_minimal: Path, tmp_path: Path) -> Path:
    """Minimal GTFS fixture packed as a zip archive."""
    archive_path = tmp_path / "gtfs_minimal.zip"
    with zipfile.ZipFile(archive_path, "w") as archive:
        for file_path in sorted(gtfs_minimal.glob("*.txt")):
            archive.write(file_path, arcname=file_path.name)
    return archive_path


@pytest.fixture
def service_network() -> ServiceNetwork:
    """Empty service network."""
    return ServiceNetwork()


@pytest.fixture
def bus_services() -> RoutedServices:
    """Routed services with a single bus line R1."""
    routed_services = RoutedServices()
    routed_services.register_new("R1", Mode.BUS)
    return routed_services


@pytest.fixture
def bus_trip_index(bus_services: RoutedServices) -> TripIndex:
    """Trips T1 and T2 of bus line R1."""
    trips = [Trip("T1", "R1", "WK"), Trip("T2", "R1", "WK")]
    return index_trips(trips, bus_services)


def make_stop_time(
    trip_id: str, stop_id: str, arrival: str, departure: str, sequence: int
) -> StopTime:
    """Build a stop time row."""
    return StopTime(
        trip_id=trip_id,
        stop_id=stop_id,
        arrival_time=arrival,
        departure_time=departure,
        stop_sequence=sequence,
    )
