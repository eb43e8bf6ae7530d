"""Trip indexation ahead of stop time assembly."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from transit_graph.gtfs.models import Trip
from transit_graph.transform.routed_services import RoutedServices

logger = logging.getLogger(__name__)

ROUTE_DISCARDED = "route discarded"
UNKNOWN_ROUTE = "unknown route"


@dataclass
class TripIndex:
    """GTFS trips by trip id, plus trips deliberately left out."""

    trips: dict[str, Trip] = field(default_factory=dict)
    discarded: dict[str, str] = field(default_factory=dict)  # trip_id -> reason

    def get(self, trip_id: str) -> Trip | None:
        return self.trips.get(trip_id)


def index_trips(
    trips: Iterable[Trip],
    routed_services: RoutedServices,
    discarded_routes: dict[str, str] | None = None,
) -> TripIndex:
    """
    Index trips whose route became a routed service.

    Scheduled trips themselves are only created once their stop times are
    assembled. Trips of discarded routes are tracked silently, trips of
    routes that are entirely unknown are logged.
    """
    discarded_routes = discarded_routes or {}
    index = TripIndex()

    for trip in trips:
        if routed_services.get_by_external_id(trip.route_id) is None:
            if trip.route_id in discarded_routes:
                index.discarded[trip.trip_id] = ROUTE_DISCARDED
                continue
            logger.error(
                f"Unable to find GTFS route {trip.route_id} for GTFS trip {trip.trip_id}, "
                f"GTFS trip ignored"
            )
            index.discarded[trip.trip_id] = UNKNOWN_ROUTE
            continue

        if trip.trip_id in index.trips:
            logger.warning(f"Duplicate GTFS trip {trip.trip_id}, keeping first occurrence")
            continue
        index.trips[trip.trip_id] = trip

    logger.info(f"Indexed {len(index.trips)} trips, discarded {len(index.discarded)}")
    return index
