"""Data models for GTFS records and pipeline configuration."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum


class StopLocationType(IntEnum):
    """GTFS stops.txt location_type."""

    STOP_PLATFORM = 0
    STATION = 1
    ENTRANCE_EXIT = 2
    GENERIC_NODE = 3
    BOARDING_AREA = 4

    @classmethod
    def parse(cls, value: str | None) -> "StopLocationType":
        """Parse a location_type column value, blank meaning a stop or platform."""
        if value is None or not value.strip():
            return cls.STOP_PLATFORM
        try:
            return cls(int(value))
        except ValueError as e:
            raise ValueError(f"Unknown stop location type: {value}") from e


class Mode(str, Enum):
    """Internal service mode used for graph layers and zone matching."""

    BUS = "bus"
    TRAIN = "train"
    SUBWAY = "subway"
    LIGHTRAIL = "lightrail"
    TRAM = "tram"

    @property
    def is_rail(self) -> bool:
        """Whether the mode runs on tracks rather than roads."""
        return self is not Mode.BUS


@dataclass(frozen=True)
class Stop:
    """GTFS stop with coordinates."""

    stop_id: str
    name: str
    lat: float
    lon: float
    platform_code: str = ""
    location_type: StopLocationType = StopLocationType.STOP_PLATFORM
    parent_station: str = ""

    @property
    def has_platform_code(self) -> bool:
        return bool(self.platform_code and self.platform_code.strip())


@dataclass(frozen=True)
class Route:
    """GTFS route."""

    route_id: str
    route_short_name: str
    route_long_name: str
    route_type: int
    agency_id: str = ""
    route_desc: str = ""

    @property
    def has_valid_name(self) -> bool:
        return bool(self.route_short_name or self.route_long_name)


@dataclass(frozen=True)
class Trip:
    """GTFS trip."""

    trip_id: str
    route_id: str
    service_id: str
    direction_id: int = 0


@dataclass(frozen=True)
class StopTime:
    """GTFS stop time, times kept as raw strings until assembly."""

    trip_id: str
    stop_id: str
    arrival_time: str
    departure_time: str
    stop_sequence: int


@dataclass(frozen=True)
class Agency:
    """GTFS agency."""

    agency_id: str
    agency_name: str
    agency_timezone: str


@dataclass
class ValidationReport:
    """Report from validation process."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=dict)


@dataclass
class ServicesConfig:
    """Configuration for building the service network and scheduled trips."""

    mode_mapping: str = "original"  # original, extended
    excluded_route_types: set[int] = field(default_factory=set)
    included_route_ids: set[str] = field(default_factory=set)  # empty means all
    excluded_route_ids: set[str] = field(default_factory=set)
    prune_dangling_nodes: bool = False


@dataclass
class ZoningConfig:
    """Configuration for reconciling GTFS stops with platform zones."""

    search_radius_m: float = 40.0
    projected_crs: str = "EPSG:3857"
    match_platform_names: bool = True
    # stop_id -> external id of the zone to map it to
    overwritten_stop_zones: dict[str, str] = field(default_factory=dict)


@dataclass
class ConvertConfig:
    """Configuration for conversion process."""

    input_path: str
    services: ServicesConfig = field(default_factory=ServicesConfig)
    zoning: ZoningConfig = field(default_factory=ZoningConfig)
    validate: bool = True
    strict: bool = False
