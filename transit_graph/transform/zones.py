"""Platform zones: boarding areas that GTFS stops are reconciled with."""

import itertools
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from transit_graph.gtfs.models import Mode

logger = logging.getLogger(__name__)


class ZoneType(str, Enum):
    """Classification of a platform zone."""

    POLE = "pole"
    PLATFORM = "platform"
    NONE = "none"


@dataclass(frozen=True)
class AccessPoint:
    """Binding of a platform zone to a physical network anchor for some modes."""

    anchor: Any  # physical node or link, opaque here
    allowed_modes: frozenset[Mode] = frozenset()
    location: Point | None = None


@dataclass(eq=False)
class PlatformZone:
    """A boarding area, either pre-existing or created from a GTFS stop."""

    zone_id: int
    external_ids: list[str]
    geometry: BaseGeometry | None = None  # projected
    name: str = ""
    platform_names: list[str] = field(default_factory=list)
    zone_type: ZoneType = ZoneType.NONE
    access_points: list[AccessPoint] = field(default_factory=list)
    modes: set[Mode] = field(default_factory=set)  # registered by reconciled stops

    @property
    def external_id(self) -> str:
        return ",".join(self.external_ids)

    def append_external_id(self, external_id: str) -> None:
        if external_id not in self.external_ids:
            self.external_ids.append(external_id)

    def add_platform_name(self, platform_name: str) -> None:
        if platform_name and not self.has_platform_name(platform_name):
            self.platform_names.append(platform_name)

    def has_platform_name(self, platform_name: str) -> bool:
        wanted = platform_name.strip().lower()
        return any(name.strip().lower() == wanted for name in self.platform_names)

    def supported_modes(self) -> set[Mode]:
        """Modes of its access points together with modes of fused stops."""
        modes = set(self.modes)
        for access_point in self.access_points:
            modes.update(access_point.allowed_modes)
        return modes

    @property
    def reference_point(self) -> Point:
        """Envelope centroid, a representative location for irregular shapes."""
        if self.geometry is None:
            raise ValueError(f"Platform zone {self.external_id} has no geometry")
        return self.geometry.envelope.centroid

    def __repr__(self) -> str:
        return f"PlatformZone({self.zone_id}, {self.external_id!r}, {self.zone_type.value})"


class Zoning:
    """Inventory of platform zones."""

    def __init__(self) -> None:
        self._zone_ids = itertools.count()
        self._zones: list[PlatformZone] = []

    def register_new(
        self,
        external_id: str,
        geometry: BaseGeometry | None = None,
        name: str = "",
        zone_type: ZoneType = ZoneType.NONE,
        platform_names: list[str] | None = None,
        access_points: list[AccessPoint] | None = None,
    ) -> PlatformZone:
        zone = PlatformZone(
            zone_id=next(self._zone_ids),
            external_ids=[external_id],
            geometry=geometry,
            name=name,
            platform_names=list(platform_names or []),
            zone_type=zone_type,
            access_points=list(access_points or []),
        )
        self._zones.append(zone)
        return zone

    def get_by_external_id(self, external_id: str) -> PlatformZone | None:
        """Zone carrying the external id among its (possibly fused) external ids."""
        return next((zone for zone in self._zones if external_id in zone.external_ids), None)

    def __iter__(self) -> Iterator[PlatformZone]:
        return iter(self._zones)

    def __len__(self) -> int:
        return len(self._zones)

    @property
    def stats(self) -> dict[str, int]:
        stats = {"platform_zones": len(self._zones)}
        for zone_type in ZoneType:
            stats[f"zones_{zone_type.value}"] = sum(
                1 for zone in self._zones if zone.zone_type is zone_type
            )
        return stats
