"""End-to-end tests."""

import shutil
from pathlib import Path

import pytest
from shapely.geometry import Point

from transit_graph import build_services, build_zoning, convert
from transit_graph.geo import GeoProjector
from transit_graph.gtfs.models import ConvertConfig, Mode, ServicesConfig, ZoningConfig
from transit_graph.gtfs.reader import GTFSReader
from transit_graph.transform.stops import build_stop_modes
from transit_graph.transform.zones import AccessPoint, Zoning, ZoneType


def test_end_to_end_minimal(gtfs_minimal: Path) -> None:
    """Test complete pipeline on minimal fixture."""
    result = convert(str(gtfs_minimal))

    assert result.validation is not None and result.validation.valid
    assert result.stats["service_nodes"] == 4
    assert result.stats["service_legs"] == 3
    assert result.stats["service_leg_segments"] == 5
    assert result.stats["routed_services"] == 2
    assert result.stats["scheduled_trips"] == 3
    assert result.stats["departures"] == 3
    assert result.stats["leg_timings"] == 5
    assert result.stats["platform_zones"] == 4
    assert result.stats["zones_pole"] == 3
    assert result.stats["zones_platform"] == 1
    assert result.stats["mapped_stops"] == 4
    assert result.stats["skipped_stop_times"] == 2


def test_end_to_end_zip(gtfs_minimal_zip: Path) -> None:
    """Test the pipeline reads zipped feeds."""
    result = convert(str(gtfs_minimal_zip))

    assert result.stats["service_nodes"] == 4


def test_scheduled_trip_contents(gtfs_minimal: Path) -> None:
    """Test the outbound bus trip carries its departure and timings."""
    result = convert(str(gtfs_minimal))

    line = result.routed_services.get_by_external_id("R1")
    assert line.mode is Mode.BUS
    assert line.name == "1"

    trip = line.get_scheduled_trip("T1")
    assert [str(d.time) for d in trip.departures] == ["08:00:00"]
    assert [t.leg_segment.external_id for t in trip.timings] == ["A_B", "B_C"]

    night = result.routed_services.get_by_external_id("R2").get_scheduled_trip("T3")
    assert str(night.departures[0].time) == "23:50:00"
    assert night.timings[0].duration.total_seconds() == 30 * 60
    assert night.timings[0].dwell_time.total_seconds() == 60


def test_unserved_and_non_platform_stops(gtfs_minimal: Path) -> None:
    """Test only served platform stops are mapped to zones."""
    result = convert(str(gtfs_minimal))
    mapping = result.stop_zone_mapping

    for stop_id in ("A", "B", "C", "D"):
        assert mapping(stop_id).external_ids == [stop_id]
    for stop_id in ("X", "STN", "E"):
        assert stop_id not in mapping
    assert mapping("D").zone_type is ZoneType.PLATFORM


def test_stop_modes(gtfs_minimal: Path) -> None:
    """Test stops take the mode of the first service visiting them."""
    reader = GTFSReader(str(gtfs_minimal))
    reader.read_all()
    _, routed_services, _ = build_services(reader)

    stop_modes = build_stop_modes(routed_services)

    assert stop_modes == {"A": Mode.BUS, "B": Mode.BUS, "C": Mode.BUS, "D": Mode.TRAIN}


def test_extended_mapping_discards_everything(gtfs_minimal: Path) -> None:
    """Test original route types are not known to the extended mapping."""
    reader = GTFSReader(str(gtfs_minimal))
    reader.read_all()

    config = ServicesConfig(mode_mapping="extended")
    network, routed_services, stats = build_services(reader, config)

    assert len(routed_services) == 0
    assert network.nodes == []
    assert stats.processed == 0


def test_excluded_route_type(gtfs_minimal: Path) -> None:
    """Test deactivating rail leaves only the bus line."""
    reader = GTFSReader(str(gtfs_minimal))
    reader.read_all()

    network, routed_services, stats = build_services(
        reader, ServicesConfig(excluded_route_types={2})
    )

    assert [service.external_id for service in routed_services] == ["R1"]
    assert network.get_service_node("D") is None
    assert stats.skipped_discarded_trip == 4


def test_prune_dangling_nodes(gtfs_minimal: Path) -> None:
    """Test pruning removes nodes left without legs."""
    reader = GTFSReader(str(gtfs_minimal))
    reader.read_all()
    # Keep only the first stop time of the rail trip, and the discarded ferry trip
    reader.stop_times = [
        st for st in reader.stop_times if st.trip_id in ("T3", "T4") and st.stop_id != "D"
    ]

    network, _, _ = build_services(reader)
    assert [node.external_id for node in network.nodes] == ["C"]

    pruned, _, _ = build_services(reader, ServicesConfig(prune_dangling_nodes=True))
    assert pruned.nodes == []


def test_build_zoning_with_existing_zones(gtfs_minimal: Path) -> None:
    """Test stops fuse into a pre-existing zone next to them."""
    reader = GTFSReader(str(gtfs_minimal))
    reader.read_all()
    _, routed_services, _ = build_services(reader)

    projector = GeoProjector("EPSG:3857")
    location = projector.project_point(2.3500, 48.8500)
    zoning = Zoning()
    existing = zoning.register_new(
        "OSM-1",
        geometry=Point(location.x + 5, location.y),
        zone_type=ZoneType.POLE,
        access_points=[AccessPoint("osm-node-1", frozenset({Mode.BUS}))],
    )

    zoning, mapping, stats = build_zoning(reader, routed_services, ZoningConfig(), zoning)

    assert mapping("A") is existing
    assert existing.external_ids == ["OSM-1", "A"]
    assert mapping.get_access_point("A").anchor == "osm-node-1"
    assert stats.fused == 1
    assert stats.created == 3
    assert len(zoning) == 4


def test_strict_validation(gtfs_edgecases: Path) -> None:
    """Test strict mode stops on an invalid feed."""
    config = ConvertConfig(input_path=str(gtfs_edgecases), strict=True)

    with pytest.raises(ValueError, match="validation failed"):
        convert(str(gtfs_edgecases), config)


def test_lenient_conversion_of_invalid_feed(gtfs_edgecases: Path) -> None:
    """Test an invalid feed still converts what it can."""
    result = convert(str(gtfs_edgecases))

    assert not result.validation.valid
    line = result.routed_services.get_by_external_id("R1")
    assert set(line.trips) == {"T1", "T2"}
    # T1 is interleaved with T2 so its second stop time is rejected
    assert line.get_scheduled_trip("T1").timings == []


def test_lenient_conversion_skips_stop_with_invalid_latitude(
    gtfs_minimal: Path, tmp_path: Path
) -> None:
    """Test a served stop with an out of range latitude only loses its zone."""
    feed = tmp_path / "gtfs"
    shutil.copytree(gtfs_minimal, feed)
    stops_path = feed / "stops.txt"
    stops = stops_path.read_text(encoding="utf-8")
    stops_path.write_text(stops.replace("A,Alpha,48.8500", "A,Alpha,95.0000"), encoding="utf-8")

    result = convert(str(feed))

    assert not result.validation.valid
    assert result.stats["service_nodes"] == 4
    assert "A" not in result.stop_zone_mapping
    assert result.stop_zone_mapping("B") is not None
    assert result.stats["mapped_stops"] == 3
