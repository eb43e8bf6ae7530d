"""Assembly of scheduled trips and the service network from GTFS stop times."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta

from transit_graph.gtfs.models import StopTime
from transit_graph.gtfs.times import (
    ExtendedTime,
    GTFSTimeError,
    exceeds_single_day,
    format_duration,
)
from transit_graph.transform.routed_services import RoutedService, RoutedServices, ScheduledTrip
from transit_graph.transform.service_network import ServiceNetwork
from transit_graph.transform.trips import ROUTE_DISCARDED, TripIndex

logger = logging.getLogger(__name__)


@dataclass
class TripCursor:
    """Last successfully processed stop time of the trip being assembled."""

    trip_id: str | None = None
    stop_time: StopTime | None = None
    departure_time: ExtendedTime | None = None

    def reset(self) -> None:
        self.trip_id = None
        self.stop_time = None
        self.departure_time = None

    def advance(self, stop_time: StopTime, departure_time: ExtendedTime) -> None:
        self.trip_id = stop_time.trip_id
        self.stop_time = stop_time
        self.departure_time = departure_time


@dataclass
class AssemblyStats:
    """Counters of a stop time assembly pass."""

    processed: int = 0
    departures: int = 0
    leg_timings: int = 0
    scheduled_trips: int = 0
    skipped_unknown_trip: int = 0
    skipped_discarded_trip: int = 0
    skipped_malformed: int = 0
    skipped_out_of_order: int = 0
    skipped_overflow: int = 0

    @property
    def skipped(self) -> int:
        return (
            self.skipped_unknown_trip
            + self.skipped_discarded_trip
            + self.skipped_malformed
            + self.skipped_out_of_order
            + self.skipped_overflow
        )


class ScheduledTripAssembler:
    """
    Build scheduled trips and service network entities from stop time rows.

    Prerequisites: (i) routed services exist for the routes of the indexed
    trips, (ii) stop times of a trip are contiguous in the row stream and
    in increasing stop_sequence order. A GTFS trip maps 1:1 onto a scheduled
    trip with a single departure and relative timings, trips sharing a
    schedule are not consolidated.

    Per row the assembler is in one of three states:

    - new trip: the trip id differs from the cursor's, the cursor is cleared
    - first stop: the scheduled trip has no departure yet, register one
    - intermediate stop: time the leg segment from the cursor's stop to this one

    Any problem with a row is logged and that row alone is skipped. An
    intermediate row without a predecessor of its trip is rejected but the
    rows that follow chain from it, so the rest of the trip is still timed.

    Departures are registered once per trip. Feeding rows of already
    assembled trips again therefore rejects the first row of each trip with
    an ordering error and appends the remaining timings a second time. That
    error is expected on a re-run and does not mean the feed is corrupt.
    """

    def __init__(
        self,
        service_network: ServiceNetwork,
        routed_services: RoutedServices,
        trip_index: TripIndex,
        cursor: TripCursor | None = None,
    ) -> None:
        if not len(routed_services):
            raise ValueError("No routed services available, unable to assemble GTFS stop times")

        self.service_network = service_network
        self.routed_services = routed_services
        self.trip_index = trip_index
        self.cursor = cursor if cursor is not None else TripCursor()
        self.stats = AssemblyStats()
        self._reported_trips: set[str] = set()

    def reset(self) -> None:
        """Forget the previous stop time and logged trip ids."""
        self.cursor.reset()
        self._reported_trips.clear()

    def process(self, stop_times: Iterable[StopTime]) -> AssemblyStats:
        """Process a stream of stop time rows in order."""
        logger.info("Assembling scheduled trips from stop times")
        for stop_time in stop_times:
            self.handle(stop_time)

        logger.info(
            f"Processed {self.stats.processed} stop times into {self.stats.scheduled_trips} "
            f"scheduled trips with {self.stats.leg_timings} leg timings, "
            f"skipped {self.stats.skipped}"
        )
        return self.stats

    def handle(self, stop_time: StopTime) -> bool:
        """Process a single stop time row, returns False when the row is skipped."""
        service = self._collect_routed_service(stop_time)
        if service is None:
            return False

        if stop_time.trip_id != self.cursor.trip_id:
            # New trip, this row is expected to be its first stop
            self.cursor.reset()

        trip, created = self.routed_services.get_or_create_scheduled_trip(
            service, stop_time.trip_id
        )
        if created:
            self.stats.scheduled_trips += 1

        times = self._parse_times(stop_time)
        if times is None:
            return False
        arrival_time, departure_time = times

        if not trip.departures:
            self._handle_first_stop(trip, stop_time, departure_time)
        elif not self._handle_intermediate_stop(trip, stop_time, arrival_time, departure_time):
            return False

        self.stats.processed += 1
        self.cursor.advance(stop_time, departure_time)
        return True

    def _collect_routed_service(self, stop_time: StopTime) -> RoutedService | None:
        trip_id = stop_time.trip_id
        gtfs_trip = self.trip_index.get(trip_id)
        if gtfs_trip is None:
            reason = self.trip_index.discarded.get(trip_id)
            if reason == ROUTE_DISCARDED:
                self.stats.skipped_discarded_trip += 1
                return None

            self.stats.skipped_unknown_trip += 1
            if trip_id not in self._reported_trips:
                self._reported_trips.add(trip_id)
                if reason is None:
                    logger.error(
                        f"Unable to find GTFS trip {trip_id} for GTFS stop time "
                        f"(stop id: {stop_time.stop_id}), its stop times are ignored"
                    )
                else:
                    logger.error(
                        f"GTFS trip {trip_id} has no transit line ({reason}), "
                        f"its stop times are ignored"
                    )
            return None

        service = self.routed_services.get_by_external_id(gtfs_trip.route_id)
        if service is None:
            self.stats.skipped_unknown_trip += 1
            logger.error(
                f"Unable to find transit line for GTFS route {gtfs_trip.route_id} of trip "
                f"{trip_id}, GTFS stop time (stop id {stop_time.stop_id}) ignored"
            )
            return None
        return service

    def _parse_times(self, stop_time: StopTime) -> tuple[ExtendedTime, ExtendedTime] | None:
        """Arrival and departure of a row, one standing in for the other when blank."""
        arrival_str = stop_time.arrival_time or stop_time.departure_time
        departure_str = stop_time.departure_time or stop_time.arrival_time
        try:
            return ExtendedTime.parse(arrival_str), ExtendedTime.parse(departure_str)
        except GTFSTimeError as e:
            self.stats.skipped_malformed += 1
            logger.warning(
                f"Invalid time for GTFS trip {stop_time.trip_id} at stop {stop_time.stop_id} "
                f"(sequence {stop_time.stop_sequence}): {e}, stop time ignored"
            )
            return None

    def _handle_first_stop(
        self, trip: ScheduledTrip, stop_time: StopTime, departure_time: ExtendedTime
    ) -> None:
        self.service_network.get_or_create_service_node(stop_time.stop_id)
        trip.add_departure(departure_time, stop_time.stop_sequence)
        self.stats.departures += 1

    def _handle_intermediate_stop(
        self,
        trip: ScheduledTrip,
        stop_time: StopTime,
        arrival_time: ExtendedTime,
        departure_time: ExtendedTime,
    ) -> bool:
        prev = self.cursor.stop_time
        if prev is None or prev.stop_sequence >= stop_time.stop_sequence:
            self.stats.skipped_out_of_order += 1
            logger.error(
                f"GTFS stop times not consecutive for GTFS trip {stop_time.trip_id} "
                f"(stop {stop_time.stop_id}, sequence {stop_time.stop_sequence}), "
                f"stop times must be contiguous per trip and ordered by stop_sequence, ignored"
            )
            if prev is None:
                # Following rows of the trip chain from this one
                self.cursor.advance(stop_time, departure_time)
            return False

        duration = arrival_time - self.cursor.departure_time
        dwell_time = departure_time - arrival_time
        if duration < timedelta(0) or dwell_time < timedelta(0):
            self.stats.skipped_malformed += 1
            logger.warning(
                f"Negative duration ({format_duration(duration)}) or dwell time "
                f"({format_duration(dwell_time)}) between stops {prev.stop_id} and "
                f"{stop_time.stop_id} of GTFS trip {stop_time.trip_id}, ignored"
            )
            return False
        if exceeds_single_day(duration) or exceeds_single_day(dwell_time):
            self.stats.skipped_overflow += 1
            logger.error(
                f"Duration between stops {prev.stop_id} and {stop_time.stop_id} "
                f"({format_duration(duration)}) and/or dwell time at stop "
                f"({format_duration(dwell_time)}) of GTFS trip {stop_time.trip_id} "
                f"should be less than a day, ignored"
            )
            return False

        prev_node = self.service_network.get_or_create_service_node(prev.stop_id)
        curr_node = self.service_network.get_or_create_service_node(stop_time.stop_id)
        segment = self.service_network.get_or_create_leg_segment(prev_node, curr_node)
        trip.add_relative_leg_segment_timing(
            segment, duration, dwell_time, stop_time.stop_sequence
        )
        self.stats.leg_timings += 1
        return True


def assemble_stop_times(
    stop_times: Iterable[StopTime],
    service_network: ServiceNetwork,
    routed_services: RoutedServices,
    trip_index: TripIndex,
) -> AssemblyStats:
    """Assemble a full stop time stream with a fresh cursor."""
    assembler = ScheduledTripAssembler(service_network, routed_services, trip_index)
    return assembler.process(stop_times)
