"""Tests for the platform zone spatial index."""

from shapely.geometry import Point, box

from transit_graph.optimization.indexing import ZoneSpatialIndex
from transit_graph.transform.zones import Zoning


def test_query_returns_intersecting_zones() -> None:
    """Test only zones intersecting the envelope are returned."""
    zoning = Zoning()
    near = zoning.register_new("Z1", geometry=Point(0, 0))
    far = zoning.register_new("Z2", geometry=Point(1000, 1000))
    area = zoning.register_new("Z3", geometry=box(5, 5, 50, 50))

    index = ZoneSpatialIndex(zoning)

    assert index.query(box(-10, -10, 10, 10)) == [near, area]
    assert index.query(box(900, 900, 1100, 1100)) == [far]
    assert index.query(box(200, 200, 300, 300)) == []


def test_query_keeps_insertion_order() -> None:
    """Test results come back in insertion order, not tree order."""
    zoning = Zoning()
    zones = [zoning.register_new(f"Z{i}", geometry=Point(10 - i, 0)) for i in range(5)]

    index = ZoneSpatialIndex()
    index.bulk_load(zones)

    assert index.query(box(-1, -1, 20, 1)) == zones
    assert len(index) == 5


def test_insert_after_query() -> None:
    """Test zones inserted after a query are found by the next one."""
    zoning = Zoning()
    first = zoning.register_new("Z1", geometry=Point(0, 0))
    index = ZoneSpatialIndex([first])
    assert index.query(box(-1, -1, 1, 1)) == [first]

    second = zoning.register_new("Z2", geometry=Point(0.5, 0.5))
    index.insert(second)

    assert index.query(box(-1, -1, 1, 1)) == [first, second]


def test_query_radius() -> None:
    """Test planar radius queries."""
    zoning = Zoning()
    close = zoning.register_new("Z1", geometry=Point(30, 0))
    zoning.register_new("Z2", geometry=Point(60, 0))

    index = ZoneSpatialIndex(zoning)

    assert index.query_radius(Point(0, 0), 40) == [close]


def test_empty_index() -> None:
    """Test querying an empty index."""
    index = ZoneSpatialIndex()

    assert index.query(box(0, 0, 1, 1)) == []
    assert index.query_radius(Point(0, 0), 10) == []
