"""Routed services: transit lines with their scheduled trips."""

import itertools
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import timedelta

from transit_graph.gtfs.models import Mode
from transit_graph.gtfs.times import ExtendedTime
from transit_graph.transform.service_network import ServiceLegSegment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Departure:
    """Absolute start time of a scheduled trip."""

    time: ExtendedTime
    external_id: str  # stop_sequence of the stop time that produced it


@dataclass(frozen=True)
class RelativeLegTiming:
    """Travel time over a leg segment plus dwell time at its downstream stop."""

    leg_segment: ServiceLegSegment
    duration: timedelta
    dwell_time: timedelta
    stop_sequence: int  # of the stop time at the downstream stop


@dataclass(eq=False)
class ScheduledTrip:
    """A GTFS trip as departures plus relative timings along leg segments."""

    trip_id: int
    external_id: str  # GTFS trip_id
    departures: list[Departure] = field(default_factory=list)
    timings: list[RelativeLegTiming] = field(default_factory=list)

    def add_departure(self, departure_time: ExtendedTime, stop_sequence: int) -> Departure:
        departure = Departure(time=departure_time, external_id=str(stop_sequence))
        self.departures.append(departure)
        return departure

    def add_relative_leg_segment_timing(
        self,
        leg_segment: ServiceLegSegment,
        duration: timedelta,
        dwell_time: timedelta,
        stop_sequence: int,
    ) -> RelativeLegTiming:
        if self.timings and stop_sequence <= self.timings[-1].stop_sequence:
            raise ValueError(
                f"Timing for trip {self.external_id} out of order: stop sequence "
                f"{stop_sequence} after {self.timings[-1].stop_sequence}"
            )
        timing = RelativeLegTiming(leg_segment, duration, dwell_time, stop_sequence)
        self.timings.append(timing)
        return timing

    @property
    def stop_ids(self) -> list[str]:
        """GTFS stop ids visited, derived from the timed leg segments."""
        if not self.timings:
            return []
        stop_ids = [self.timings[0].leg_segment.upstream_node.external_id]
        stop_ids.extend(t.leg_segment.downstream_node.external_id for t in self.timings)
        return stop_ids


@dataclass(eq=False)
class RoutedService:
    """Transit line created from one GTFS route."""

    service_id: int
    external_id: str  # GTFS route_id
    mode: Mode
    name: str = ""  # route_short_name
    name_description: str = ""  # route_long_name
    service_description: str = ""  # route_desc
    trips: dict[str, ScheduledTrip] = field(default_factory=dict)

    def get_scheduled_trip(self, gtfs_trip_id: str) -> ScheduledTrip | None:
        return self.trips.get(gtfs_trip_id)


class RoutedServices:
    """Container of routed services indexed by GTFS route id and by mode."""

    def __init__(self) -> None:
        self._service_ids = itertools.count()
        self._trip_ids = itertools.count()
        self._by_route_id: dict[str, RoutedService] = {}
        self._by_mode: dict[Mode, list[RoutedService]] = {}

    def register_new(self, route_id: str, mode: Mode) -> RoutedService:
        if route_id in self._by_route_id:
            raise ValueError(f"Routed service for GTFS route {route_id} already registered")
        service = RoutedService(service_id=next(self._service_ids), external_id=route_id, mode=mode)
        self._by_route_id[route_id] = service
        self._by_mode.setdefault(mode, []).append(service)
        return service

    def get_by_external_id(self, route_id: str) -> RoutedService | None:
        return self._by_route_id.get(route_id)

    def get_by_mode(self, mode: Mode) -> list[RoutedService]:
        return list(self._by_mode.get(mode, []))

    def get_or_create_scheduled_trip(
        self, service: RoutedService, gtfs_trip_id: str
    ) -> tuple[ScheduledTrip, bool]:
        """Scheduled trip of a service by GTFS trip id, and whether it was created."""
        trip = service.trips.get(gtfs_trip_id)
        if trip is not None:
            return trip, False
        trip = ScheduledTrip(trip_id=next(self._trip_ids), external_id=gtfs_trip_id)
        service.trips[gtfs_trip_id] = trip
        return trip, True

    @property
    def modes(self) -> set[Mode]:
        return set(self._by_mode)

    def __iter__(self) -> Iterator[RoutedService]:
        return iter(self._by_route_id.values())

    def __len__(self) -> int:
        return len(self._by_route_id)

    @property
    def stats(self) -> dict[str, int]:
        trips = [trip for service in self for trip in service.trips.values()]
        return {
            "routed_services": len(self),
            "scheduled_trips": len(trips),
            "departures": sum(len(trip.departures) for trip in trips),
            "leg_timings": sum(len(trip.timings) for trip in trips),
        }
