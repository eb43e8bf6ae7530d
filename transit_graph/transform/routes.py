"""Route transformation into routed services per activated mode."""

import logging
from collections.abc import Iterable

from transit_graph.gtfs.models import Route, ServicesConfig
from transit_graph.gtfs.modes import ModeMapping
from transit_graph.transform.routed_services import RoutedServices

logger = logging.getLogger(__name__)


def build_routed_services(
    routes: Iterable[Route],
    mode_mapping: ModeMapping,
    config: ServicesConfig | None = None,
) -> tuple[RoutedServices, dict[str, str]]:
    """
    Create a routed service for every GTFS route with an activated mode.

    Returns the routed services and the discarded GTFS route ids with the
    reason they were discarded, so trips of those routes can be ignored
    without warnings later on.
    """
    config = config or ServicesConfig()
    logger.info(f"Building routed services using '{mode_mapping.name}' mode mapping")

    routed_services = RoutedServices()
    discarded: dict[str, str] = {}
    unmapped_route_types: set[int] = set()

    for route in routes:
        if config.included_route_ids and route.route_id not in config.included_route_ids:
            discarded[route.route_id] = "not included"
            continue
        if route.route_id in config.excluded_route_ids:
            discarded[route.route_id] = "excluded"
            continue

        if not mode_mapping.is_activated(route.route_type):
            if not mode_mapping.is_mapped(route.route_type):
                unmapped_route_types.add(route.route_type)
            discarded[route.route_id] = f"route type {route.route_type} not activated"
            continue
        mode = mode_mapping.get_mode(route.route_type)

        if routed_services.get_by_external_id(route.route_id) is not None:
            logger.warning(f"Duplicate GTFS route {route.route_id}, keeping first occurrence")
            continue

        service = routed_services.register_new(route.route_id, mode)
        if not route.has_valid_name:
            logger.warning(f"GTFS route {route.route_id} has no valid name (either long or short)")
        service.name = route.route_short_name
        service.name_description = route.route_long_name
        service.service_description = route.route_desc

    if unmapped_route_types:
        logger.info(
            f"Route types without mode mapping ignored: {sorted(unmapped_route_types)}"
        )
    per_mode = {
        mode.value: len(routed_services.get_by_mode(mode)) for mode in sorted(routed_services.modes)
    }
    logger.info(
        f"Built {len(routed_services)} routed services {per_mode}, "
        f"discarded {len(discarded)} routes"
    )
    return routed_services, discarded
