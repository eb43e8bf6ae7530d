"""Stop indexation by service mode."""

import logging
from collections.abc import Iterable

from transit_graph.gtfs.models import Mode, Stop, StopLocationType
from transit_graph.transform.routed_services import RoutedServices

logger = logging.getLogger(__name__)


def build_stop_modes(routed_services: RoutedServices) -> dict[str, Mode]:
    """
    Map each GTFS stop id served by a scheduled trip to its service mode.

    Stops visited by services of different modes keep the mode registered
    first. Stops of trips without any timed leg are not served and get no
    mode.
    """
    logger.info("Building stop to mode index")

    stop_modes: dict[str, Mode] = {}
    mixed = 0

    for service in routed_services:
        for trip in service.trips.values():
            for timing in trip.timings:
                segment = timing.leg_segment
                for node in (segment.upstream_node, segment.downstream_node):
                    registered = stop_modes.setdefault(node.external_id, service.mode)
                    if registered is not service.mode:
                        mixed += 1
                        logger.debug(
                            f"GTFS stop {node.external_id} served by {service.mode.value} "
                            f"as well, keeping {registered.value}"
                        )

    if mixed:
        logger.info(f"{mixed} stop visits by a mode other than the stop's registered mode")
    logger.info(f"Indexed modes for {len(stop_modes)} stops")
    return stop_modes


def count_location_types(stops: Iterable[Stop]) -> dict[StopLocationType, int]:
    counts = dict.fromkeys(StopLocationType, 0)
    for stop in stops:
        counts[stop.location_type] += 1
    return counts
