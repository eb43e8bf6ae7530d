"""Public API for transit-graph-pipeline."""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

from transit_graph.gtfs.models import (
    ConvertConfig,
    ServicesConfig,
    ValidationReport,
    ZoningConfig,
)
from transit_graph.gtfs.modes import get_mode_mapping
from transit_graph.gtfs.reader import GTFSReader
from transit_graph.gtfs.validator import GTFSValidator
from transit_graph.optimization.pruning import prune_dangling_service_nodes
from transit_graph.transform.routed_services import RoutedServices
from transit_graph.transform.routes import build_routed_services
from transit_graph.transform.service_network import ServiceNetwork
from transit_graph.transform.stop_times import AssemblyStats, ScheduledTripAssembler
from transit_graph.transform.stops import build_stop_modes, count_location_types
from transit_graph.transform.trips import index_trips
from transit_graph.transform.zones import Zoning
from transit_graph.transform.zoning import ReconciliationStats, StopZoneMapping, ZoneReconciler

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Everything produced by a conversion."""

    service_network: ServiceNetwork
    routed_services: RoutedServices
    zoning: Zoning
    stop_zone_mapping: StopZoneMapping
    validation: ValidationReport | None = None
    stats: dict[str, int] = field(default_factory=dict)


def validate(input_path: str) -> ValidationReport:
    """
    Validate a GTFS feed.

    Args:
        input_path: Path to GTFS directory or zip archive

    Returns:
        ValidationReport with results
    """
    logger.info(f"Validating GTFS feed: {input_path}")
    reader = GTFSReader(input_path)
    reader.read_all()
    return GTFSValidator(reader).validate()


def build_services(
    reader: GTFSReader, config: ServicesConfig | None = None
) -> tuple[ServiceNetwork, RoutedServices, AssemblyStats]:
    """
    Build the service network and scheduled trips of a loaded feed.

    Args:
        reader: GTFS reader with all files read
        config: Optional services configuration

    Returns:
        Service network, routed services and assembly statistics
    """
    config = config or ServicesConfig()

    mode_mapping = get_mode_mapping(config.mode_mapping, config.excluded_route_types)
    routed_services, discarded_routes = build_routed_services(reader.routes, mode_mapping, config)
    trip_index = index_trips(reader.trips, routed_services, discarded_routes)

    service_network = ServiceNetwork()
    if not len(routed_services):
        logger.warning("No routed services created, no scheduled trips to assemble")
        return service_network, routed_services, AssemblyStats()

    assembler = ScheduledTripAssembler(service_network, routed_services, trip_index)
    assembly_stats = assembler.process(reader.stop_times)

    if config.prune_dangling_nodes:
        prune_dangling_service_nodes(service_network)

    return service_network, routed_services, assembly_stats


def build_zoning(
    reader: GTFSReader,
    routed_services: RoutedServices,
    config: ZoningConfig | None = None,
    zoning: Zoning | None = None,
) -> tuple[Zoning, StopZoneMapping, ReconciliationStats]:
    """
    Reconcile the feed's stops with platform zones.

    Args:
        reader: GTFS reader with all files read
        routed_services: Routed services built from the same feed
        config: Optional zoning configuration
        zoning: Pre-existing platform zones, augmented in place

    Returns:
        Augmented zoning, stop to zone mapping and reconciliation statistics
    """
    zoning = zoning if zoning is not None else Zoning()

    location_types = {t.name: n for t, n in count_location_types(reader.stops).items()}
    logger.debug(f"Stops per location type: {location_types}")

    stop_modes = build_stop_modes(routed_services)
    reconciler = ZoneReconciler(zoning, stop_modes, config)
    mapping = reconciler.process(reader.stops)
    return zoning, mapping, reconciler.stats


def convert(
    input_path: str,
    config: ConvertConfig | None = None,
    zoning: Zoning | None = None,
) -> ConversionResult:
    """
    Convert a GTFS feed into a service network, scheduled trips and platform zones.

    Args:
        input_path: Path to GTFS directory or zip archive
        config: Optional conversion configuration
        zoning: Optional pre-existing platform zones to reconcile stops with

    Returns:
        ConversionResult with all produced entities
    """
    if config is None:
        config = ConvertConfig(input_path=input_path)

    logger.info(f"Starting conversion: {input_path}")
    start_time = datetime.now(UTC)

    # Read GTFS
    reader = GTFSReader(input_path)
    reader.read_all()

    # Validate
    validation_report = None
    if config.validate or config.strict:
        validation_report = GTFSValidator(reader).validate()
        if not validation_report.valid:
            if config.strict:
                raise ValueError(
                    f"GTFS validation failed with {len(validation_report.errors)} errors"
                )
            logger.warning(
                f"GTFS validation found {len(validation_report.errors)} errors, "
                f"continuing with the valid part of the feed"
            )

    # Transform
    service_network, routed_services, assembly_stats = build_services(reader, config.services)
    zoning, mapping, reconciliation_stats = build_zoning(
        reader, routed_services, config.zoning, zoning
    )

    stats = {
        **service_network.stats,
        **routed_services.stats,
        **zoning.stats,
        "mapped_stops": len(mapping),
        "skipped_stop_times": assembly_stats.skipped,
        "zone_conflicts": reconciliation_stats.conflicts,
    }

    elapsed = (datetime.now(UTC) - start_time).total_seconds()
    logger.info(f"Conversion completed in {elapsed:.2f}s")

    return ConversionResult(
        service_network=service_network,
        routed_services=routed_services,
        zoning=zoning,
        stop_zone_mapping=mapping,
        validation=validation_report,
        stats=stats,
    )
