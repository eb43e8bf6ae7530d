"""Spatial index over platform zones for fast proximity lookups."""

import logging
from collections.abc import Iterable

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry
from shapely.strtree import STRtree

from transit_graph.transform.zones import PlatformZone

logger = logging.getLogger(__name__)


class ZoneSpatialIndex:
    """
    STR-tree over projected platform zone geometries.

    An STRtree is immutable once built, so inserts only mark the tree as
    stale and it is rebuilt on the next query.
    """

    def __init__(self, zones: Iterable[PlatformZone] | None = None) -> None:
        self._zones: list[PlatformZone] = []
        self._tree: STRtree | None = None
        if zones is not None:
            self.bulk_load(zones)

    def insert(self, zone: PlatformZone) -> None:
        if zone.geometry is None:
            raise ValueError(f"Platform zone {zone.external_id} has no geometry, cannot index it")
        self._zones.append(zone)
        self._tree = None

    def bulk_load(self, zones: Iterable[PlatformZone]) -> None:
        count = 0
        for zone in zones:
            self.insert(zone)
            count += 1
        logger.info(f"Loaded {count} platform zones into spatial index")

    def _get_tree(self) -> STRtree:
        if self._tree is None:
            self._tree = STRtree([zone.geometry for zone in self._zones])
            logger.debug(f"Built spatial index over {len(self._zones)} platform zones")
        return self._tree

    def query(self, envelope: BaseGeometry) -> list[PlatformZone]:
        """Zones whose geometry intersects the envelope, in insertion order."""
        if not self._zones:
            return []
        indices = self._get_tree().query(envelope, predicate="intersects")
        return [self._zones[i] for i in sorted(int(i) for i in indices)]

    def query_radius(self, point: Point, radius: float) -> list[PlatformZone]:
        """Zones within a planar radius of a projected point, in insertion order."""
        if not self._zones:
            return []
        indices = self._get_tree().query(point, predicate="dwithin", distance=radius)
        return [self._zones[i] for i in sorted(int(i) for i in indices)]

    def __len__(self) -> int:
        return len(self._zones)
