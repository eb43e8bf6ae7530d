"""Reconciliation of GTFS stops with existing and new platform zones."""

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pyproj.exceptions import ProjError
from shapely.errors import GEOSException
from shapely.geometry import Point, Polygon

from transit_graph.geo import GeoProjector
from transit_graph.gtfs.models import Mode, Stop, StopLocationType, ZoningConfig
from transit_graph.gtfs.modes import compatible_modes
from transit_graph.optimization.indexing import ZoneSpatialIndex
from transit_graph.transform.zones import AccessPoint, PlatformZone, Zoning, ZoneType

logger = logging.getLogger(__name__)


class ZoneMappingError(ValueError):
    """Raised when a GTFS stop would be mapped to a second platform zone."""


class StopZoneMapping:
    """
    Mapping between GTFS stops and the platform zones they were fused into.

    A stop maps to at most one zone, a zone lists every stop fused into it.
    Calling the mapping with a stop id returns its zone.
    """

    def __init__(self) -> None:
        self._zone_by_stop: dict[str, PlatformZone] = {}
        self._stops_by_zone: dict[PlatformZone, list[Stop]] = {}

    def register(self, stop: Stop, zone: PlatformZone) -> None:
        existing = self._zone_by_stop.get(stop.stop_id)
        if existing is zone:
            return
        if existing is not None:
            raise ZoneMappingError(
                f"GTFS stop {stop.stop_id} already mapped to platform zone "
                f"{existing.external_id}, cannot map it to {zone.external_id}"
            )
        self._zone_by_stop[stop.stop_id] = zone
        self._stops_by_zone.setdefault(zone, []).append(stop)

    def get_zone(self, stop_id: str) -> PlatformZone | None:
        return self._zone_by_stop.get(stop_id)

    def __call__(self, stop_id: str) -> PlatformZone | None:
        return self.get_zone(stop_id)

    def has_mapped_stop(self, zone: PlatformZone) -> bool:
        return bool(self._stops_by_zone.get(zone))

    def mapped_stop_ids(self, zone: PlatformZone) -> list[str]:
        return [stop.stop_id for stop in self._stops_by_zone.get(zone, [])]

    def get_access_point(self, stop_id: str) -> AccessPoint | None:
        """First access point of the stop's zone, if the zone has any."""
        zone = self._zone_by_stop.get(stop_id)
        if zone is None or not zone.access_points:
            return None
        if len(zone.access_points) > 1:
            logger.warning(
                f"Platform zone {zone.external_id} of GTFS stop {stop_id} has "
                f"{len(zone.access_points)} access points, using the first"
            )
        return zone.access_points[0]

    def __contains__(self, stop_id: object) -> bool:
        return stop_id in self._zone_by_stop

    def __len__(self) -> int:
        return len(self._zone_by_stop)


@dataclass
class ReconciliationStats:
    """Counters of a zone reconciliation pass."""

    processed: int = 0
    fused: int = 0
    fused_on_platform_name: int = 0
    created: int = 0
    conflicts: int = 0
    overridden: int = 0
    already_mapped: int = 0
    skipped_no_mode: int = 0
    skipped_invalid_location: int = 0
    ignored_location_type: int = 0


class ZoneReconciler:
    """
    Fuse GTFS stops into nearby compatible platform zones or create new ones.

    Only pre-existing zones of the zoning are searched, zones created while
    reconciling are not indexed, so two GTFS stops never end up in a zone
    that was created for one of them.
    """

    def __init__(
        self,
        zoning: Zoning,
        stop_modes: dict[str, Mode],
        config: ZoningConfig | None = None,
        projector: GeoProjector | None = None,
        mapping: StopZoneMapping | None = None,
    ) -> None:
        self.config = config or ZoningConfig()
        if self.config.search_radius_m <= 0:
            raise ValueError(f"Search radius must be positive, got {self.config.search_radius_m}")

        self.zoning = zoning
        self.stop_modes = stop_modes
        self.projector = projector or GeoProjector(self.config.projected_crs)
        self.mapping = mapping if mapping is not None else StopZoneMapping()
        self.stats = ReconciliationStats()

        self.index = ZoneSpatialIndex()
        unlocated = [zone for zone in zoning if zone.geometry is None]
        if unlocated:
            logger.warning(f"{len(unlocated)} platform zones without geometry are not searchable")
        self.index.bulk_load(zone for zone in zoning if zone.geometry is not None)

        self._handlers: dict[StopLocationType, Callable[[Stop], PlatformZone | None]] = {
            StopLocationType.STOP_PLATFORM: self._handle_stop_platform,
            StopLocationType.STATION: self._ignore_location_type,
            StopLocationType.ENTRANCE_EXIT: self._ignore_location_type,
            StopLocationType.GENERIC_NODE: self._ignore_location_type,
            StopLocationType.BOARDING_AREA: self._ignore_location_type,
        }

    @property
    def handlers(self) -> dict[StopLocationType, Callable[[Stop], PlatformZone | None]]:
        return dict(self._handlers)

    def process(self, stops: Iterable[Stop]) -> StopZoneMapping:
        """Reconcile all stops in order, returns the resulting mapping."""
        logger.info(
            f"Reconciling GTFS stops with {len(self.index)} existing platform zones "
            f"(search radius {self.config.search_radius_m}m)"
        )
        for stop in stops:
            self.handle(stop)

        logger.info(
            f"Reconciled {self.stats.processed} stops: {self.stats.fused} fused "
            f"({self.stats.fused_on_platform_name} on platform name), "
            f"{self.stats.created} new zones, {self.stats.conflicts} conflicts, "
            f"{self.stats.skipped_no_mode} without service mode, "
            f"{self.stats.skipped_invalid_location} with invalid location"
        )
        return self.mapping

    def handle(self, stop: Stop) -> PlatformZone | None:
        """Reconcile one stop, returns the zone it maps to if any."""
        handler = self._handlers[stop.location_type]
        return handler(stop)

    def _ignore_location_type(self, stop: Stop) -> None:
        self.stats.ignored_location_type += 1
        logger.debug(
            f"GTFS stop {stop.stop_id} of type {stop.location_type.name} not reconciled"
        )

    def _handle_stop_platform(self, stop: Stop) -> PlatformZone | None:
        self.stats.processed += 1

        zone = self.mapping.get_zone(stop.stop_id)
        if zone is not None:
            self.stats.already_mapped += 1
            return zone

        mode = self.stop_modes.get(stop.stop_id)

        zone = self._handle_overwritten_mapping(stop, mode)
        if zone is not None:
            return zone

        if mode is None:
            self.stats.skipped_no_mode += 1
            logger.debug(f"GTFS stop {stop.stop_id} has no known service mode, skipped")
            return None

        located = self._locate(stop)
        if located is None:
            self.stats.skipped_invalid_location += 1
            return None
        location, envelope = located

        candidates = self.index.query(envelope)
        if not candidates:
            return self._create_zone(stop, mode, location)

        zone = self._find_matching_zone(stop, mode, location, candidates)
        if zone is None:
            return self._create_zone(stop, mode, location)

        if self.mapping.has_mapped_stop(zone):
            self.stats.conflicts += 1
            logger.warning(
                f"Platform zone {zone.external_id} already mapped to GTFS stop(s) "
                f"{', '.join(self.mapping.mapped_stop_ids(zone))}, not fusing GTFS stop "
                f"{stop.stop_id} into it, creating a new zone instead"
            )
            return self._create_zone(stop, mode, location)

        self._attach(stop, zone, mode)
        self.stats.fused += 1
        return zone

    def _handle_overwritten_mapping(self, stop: Stop, mode: Mode | None) -> PlatformZone | None:
        zone_external_id = self.config.overwritten_stop_zones.get(stop.stop_id)
        if zone_external_id is None:
            return None

        zone = self.zoning.get_by_external_id(zone_external_id)
        if zone is None:
            logger.warning(
                f"Platform zone {zone_external_id} to map GTFS stop {stop.stop_id} to "
                f"does not exist, reconciling the stop as usual"
            )
            return None

        self._attach(stop, zone, mode)
        self.stats.overridden += 1
        logger.info(f"GTFS stop {stop.stop_id} mapped to platform zone {zone.external_id} by user")
        return zone

    def _locate(self, stop: Stop) -> tuple[Point, Polygon] | None:
        """Projected location and search envelope of a stop, None when it cannot be placed."""
        if not (
            math.isfinite(stop.lat)
            and math.isfinite(stop.lon)
            and -90.0 <= stop.lat <= 90.0
            and -180.0 <= stop.lon <= 180.0
        ):
            logger.warning(
                f"GTFS stop {stop.stop_id} has invalid coordinates "
                f"(lat {stop.lat}, lon {stop.lon}), skipped"
            )
            return None

        try:
            location = self.projector.project_point(stop.lon, stop.lat)
            envelope = self.projector.search_envelope(
                stop.lon, stop.lat, self.config.search_radius_m
            )
        except (GEOSException, ProjError) as e:
            logger.warning(f"Unable to project GTFS stop {stop.stop_id}: {e}, skipped")
            return None

        if not (math.isfinite(location.x) and math.isfinite(location.y)):
            logger.warning(
                f"GTFS stop {stop.stop_id} (lat {stop.lat}, lon {stop.lon}) lies outside "
                f"the area of use of {self.projector.crs.to_string()}, skipped"
            )
            return None
        return location, envelope

    def _find_matching_zone(
        self, stop: Stop, mode: Mode, location: Point, candidates: list[PlatformZone]
    ) -> PlatformZone | None:
        """Best compatible candidate for the stop, None when none qualifies."""
        allowed_modes = compatible_modes(mode)
        candidates = [zone for zone in candidates if zone.supported_modes() & allowed_modes]
        if stop.has_platform_code:
            candidates = [zone for zone in candidates if zone.zone_type is not ZoneType.POLE]
        if not candidates:
            return None

        if stop.has_platform_code and self.config.match_platform_names:
            for zone in candidates:
                if zone.has_platform_name(stop.platform_code):
                    self.stats.fused_on_platform_name += 1
                    return zone

        # Nearest by envelope centroid, equal distances resolved by external id
        return min(
            candidates,
            key=lambda zone: (location.distance(zone.reference_point), zone.external_id),
        )

    def _create_zone(self, stop: Stop, mode: Mode, location: Point) -> PlatformZone:
        if stop.has_platform_code or mode.is_rail:
            zone_type = ZoneType.PLATFORM
        else:
            zone_type = ZoneType.POLE

        zone = self.zoning.register_new(
            stop.stop_id,
            geometry=location,
            name=stop.name,
            zone_type=zone_type,
            platform_names=[stop.platform_code] if stop.has_platform_code else None,
        )
        zone.modes.add(mode)
        self.mapping.register(stop, zone)
        self.stats.created += 1

        logger.debug(f"Created {zone} for GTFS stop {stop.stop_id}")
        return zone

    def _attach(self, stop: Stop, zone: PlatformZone, mode: Mode | None) -> None:
        zone.append_external_id(stop.stop_id)
        if stop.has_platform_code:
            zone.add_platform_name(stop.platform_code)
        if mode is not None:
            zone.modes.add(mode)
        self.mapping.register(stop, zone)

        logger.debug(f"Mapped GTFS stop {stop.stop_id} to platform zone {zone.external_id}")
