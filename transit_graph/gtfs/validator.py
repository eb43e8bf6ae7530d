"""GTFS data validator."""

import logging

from transit_graph.gtfs.models import StopLocationType, StopTime, ValidationReport
from transit_graph.gtfs.reader import GTFSReader
from transit_graph.gtfs.times import ExtendedTime, GTFSTimeError

logger = logging.getLogger(__name__)


class GTFSValidator:
    """
    Validate GTFS data for consistency and correctness.

    Errors flag data the pipeline cannot use, warnings flag data it will
    partly skip while assembling (non-contiguous or unordered stop times,
    unparseable times, empty names).
    """

    def __init__(self, reader: GTFSReader) -> None:
        """Initialize validator with GTFS reader."""
        self.reader = reader
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self) -> ValidationReport:
        """Run all validation checks."""
        logger.info("Validating GTFS data")

        self._validate_stops()
        self._validate_routes()
        self._validate_trips()
        self._validate_stop_times()

        valid = len(self.errors) == 0

        stats = {
            "agencies": len(self.reader.agencies),
            "stops": len(self.reader.stops),
            "routes": len(self.reader.routes),
            "trips": len(self.reader.trips),
            "stop_times": len(self.reader.stop_times),
        }

        report = ValidationReport(
            valid=valid,
            errors=self.errors.copy(),
            warnings=self.warnings.copy(),
            stats=stats,
        )

        if not valid:
            logger.error(f"Validation failed with {len(self.errors)} errors")
        elif self.warnings:
            logger.warning(f"Validation passed with {len(self.warnings)} warnings")
        else:
            logger.info("Validation passed")

        return report

    def _validate_stops(self) -> None:
        """Validate stops have valid coordinates and unique ids."""
        seen: set[str] = set()
        for stop in self.reader.stops:
            if stop.stop_id in seen:
                self.errors.append(f"Duplicate stop_id {stop.stop_id}")
            seen.add(stop.stop_id)

            if not (-90 <= stop.lat <= 90):
                self.errors.append(f"Stop {stop.stop_id} has invalid latitude: {stop.lat}")
            if not (-180 <= stop.lon <= 180):
                self.errors.append(f"Stop {stop.stop_id} has invalid longitude: {stop.lon}")
            if not stop.name:
                self.warnings.append(f"Stop {stop.stop_id} has empty name")
            if stop.has_platform_code and stop.location_type != StopLocationType.STOP_PLATFORM:
                self.warnings.append(
                    f"Stop {stop.stop_id} has platform code {stop.platform_code} "
                    f"but location type {stop.location_type.name}"
                )

    def _validate_routes(self) -> None:
        """Validate routes."""
        if not self.reader.routes:
            self.errors.append("No routes found in GTFS data")

        for route in self.reader.routes:
            if not route.has_valid_name:
                self.warnings.append(f"Route {route.route_id} has neither short nor long name")

    def _validate_trips(self) -> None:
        """Validate trips reference valid routes."""
        route_ids = {route.route_id for route in self.reader.routes}

        for trip in self.reader.trips:
            if trip.route_id not in route_ids:
                self.errors.append(
                    f"Trip {trip.trip_id} references non-existent route {trip.route_id}"
                )

    def _validate_stop_times(self) -> None:
        """Validate stop_times are contiguous, ordered and reference valid stops/trips."""
        stop_ids = {stop.stop_id for stop in self.reader.stops}
        trip_ids = {trip.trip_id for trip in self.reader.trips}

        # Group by trip, tracking whether rows of a trip are interleaved with others
        trip_stop_times: dict[str, list[StopTime]] = {}
        non_contiguous: set[str] = set()
        prev_trip_id = None
        for st in self.reader.stop_times:
            if st.trip_id != prev_trip_id and st.trip_id in trip_stop_times:
                non_contiguous.add(st.trip_id)
            trip_stop_times.setdefault(st.trip_id, []).append(st)
            prev_trip_id = st.trip_id

        for trip_id in sorted(non_contiguous):
            self.warnings.append(f"Trip {trip_id} has non-contiguous stop times in file")

        reported_missing_trips: set[str] = set()
        for trip_id, stop_times in trip_stop_times.items():
            if trip_id not in trip_ids:
                if trip_id not in reported_missing_trips:
                    self.errors.append(f"Stop times reference non-existent trip {trip_id}")
                    reported_missing_trips.add(trip_id)
                continue

            # Check stop_sequence is ordered
            sequences = [st.stop_sequence for st in stop_times]
            if sequences != sorted(sequences):
                self.warnings.append(
                    f"Trip {trip_id} has unordered stop_sequence values: {sequences}"
                )

            # Check times parse and are monotonically increasing
            prev_time = -1
            for st in stop_times:
                if st.stop_id not in stop_ids:
                    self.errors.append(
                        f"Stop time for trip {trip_id} references non-existent stop {st.stop_id}"
                    )

                try:
                    arrival = ExtendedTime.parse(st.arrival_time or st.departure_time)
                    departure = ExtendedTime.parse(st.departure_time or st.arrival_time)
                except GTFSTimeError as e:
                    self.warnings.append(
                        f"Trip {trip_id} has invalid time at stop {st.stop_id} "
                        f"(sequence {st.stop_sequence}): {e}"
                    )
                    continue

                if arrival.seconds < prev_time:
                    self.warnings.append(
                        f"Trip {trip_id} has non-increasing times at stop {st.stop_id}: "
                        f"{prev_time} -> {arrival.seconds}"
                    )

                prev_time = departure.seconds

        trips_without_times = trip_ids - set(trip_stop_times)
        for trip_id in sorted(trips_without_times):
            self.warnings.append(f"Trip {trip_id} has no stop times")
