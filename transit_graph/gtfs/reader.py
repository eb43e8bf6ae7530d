"""GTFS data reader and normalizer."""

import csv
import io
import logging
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from transit_graph.gtfs.models import Agency, Route, Stop, StopLocationType, StopTime, Trip

logger = logging.getLogger(__name__)


class GTFSReader:
    """
    Read GTFS feed from a directory or zip archive into typed rows.

    Rows are kept in file order. Stop times in particular are NOT sorted,
    the schedule assembler relies on the original ordering of the feed.
    Rows with missing mandatory fields or unparseable numbers are logged
    and skipped.
    """

    def __init__(self, gtfs_path: str) -> None:
        """Initialize reader with GTFS directory or zip archive path."""
        self.gtfs_path = Path(gtfs_path)
        self.is_archive = self.gtfs_path.is_file() and zipfile.is_zipfile(self.gtfs_path)
        if not (self.gtfs_path.is_dir() or self.is_archive):
            raise ValueError(f"GTFS path not found or not a directory/zip archive: {gtfs_path}")

        # Data storage
        self.agencies: list[Agency] = []
        self.stops: list[Stop] = []
        self.routes: list[Route] = []
        self.trips: list[Trip] = []
        self.stop_times: list[StopTime] = []

        self.skipped_rows: dict[str, int] = {}

    def read_all(self) -> None:
        """Read all GTFS files."""
        logger.info(f"Reading GTFS data from {self.gtfs_path}")
        self.read_agencies()
        self.read_stops()
        self.read_routes()
        self.read_trips()
        self.read_stop_times()
        logger.info(
            f"Loaded {len(self.agencies)} agencies, {len(self.stops)} stops, "
            f"{len(self.routes)} routes, {len(self.trips)} trips, "
            f"{len(self.stop_times)} stop_times"
        )
        if self.skipped_rows:
            logger.warning(f"Skipped malformed rows per file: {self.skipped_rows}")

    def has_file(self, file_name: str) -> bool:
        """Check whether the feed contains the given file."""
        if self.is_archive:
            with zipfile.ZipFile(self.gtfs_path) as archive:
                return file_name in archive.namelist()
        return (self.gtfs_path / file_name).exists()

    @contextmanager
    def _open(self, file_name: str) -> Iterator[io.TextIOBase]:
        """Open a feed file as text, from disk or from the archive."""
        if self.is_archive:
            with zipfile.ZipFile(self.gtfs_path) as archive:
                with archive.open(file_name) as raw:
                    yield io.TextIOWrapper(raw, encoding="utf-8-sig", newline="")
        else:
            with open(self.gtfs_path / file_name, encoding="utf-8-sig", newline="") as f:
                yield f

    def _iter_rows(self, file_name: str, required: bool) -> Iterator[dict[str, str]]:
        """Yield CSV rows of a feed file, raising or skipping when absent."""
        if not self.has_file(file_name):
            if required:
                raise FileNotFoundError(f"Required file not found: {self.gtfs_path / file_name}")
            logger.info(f"{file_name} not found, skipping")
            return

        with self._open(file_name) as f:
            reader = csv.DictReader(f)
            yield from reader

    def _skip(self, file_name: str, row: dict[str, str], error: Exception) -> None:
        self.skipped_rows[file_name] = self.skipped_rows.get(file_name, 0) + 1
        logger.warning(f"Malformed row in {file_name} skipped ({error}): {row}")

    def read_agencies(self) -> None:
        """Read agency.txt."""
        file_name = "agency.txt"
        if not self.has_file(file_name) and self.has_file("agencies.txt"):
            # Non-standard name used by some feeds
            file_name = "agencies.txt"

        for row in self._iter_rows(file_name, required=False):
            try:
                agency = Agency(
                    agency_id=row.get("agency_id", ""),
                    agency_name=row["agency_name"],
                    agency_timezone=row["agency_timezone"],
                )
            except KeyError as e:
                self._skip(file_name, row, e)
                continue
            self.agencies.append(agency)

    def read_stops(self) -> None:
        """Read stops.txt."""
        for row in self._iter_rows("stops.txt", required=True):
            try:
                stop = Stop(
                    stop_id=row["stop_id"],
                    name=row.get("stop_name", "") or "",
                    lat=float(row["stop_lat"]),
                    lon=float(row["stop_lon"]),
                    platform_code=(row.get("platform_code") or "").strip(),
                    location_type=StopLocationType.parse(row.get("location_type")),
                    parent_station=row.get("parent_station", "") or "",
                )
            except (KeyError, ValueError, TypeError) as e:
                self._skip("stops.txt", row, e)
                continue
            self.stops.append(stop)

    def read_routes(self) -> None:
        """Read routes.txt."""
        for row in self._iter_rows("routes.txt", required=True):
            try:
                route = Route(
                    route_id=row["route_id"],
                    route_short_name=row.get("route_short_name", "") or "",
                    route_long_name=row.get("route_long_name", "") or "",
                    route_type=int(row["route_type"]),
                    agency_id=row.get("agency_id", "") or "",
                    route_desc=row.get("route_desc", "") or "",
                )
            except (KeyError, ValueError, TypeError) as e:
                self._skip("routes.txt", row, e)
                continue
            self.routes.append(route)

    def read_trips(self) -> None:
        """Read trips.txt."""
        for row in self._iter_rows("trips.txt", required=True):
            try:
                trip = Trip(
                    trip_id=row["trip_id"],
                    route_id=row["route_id"],
                    service_id=row.get("service_id", "") or "",
                    direction_id=int(row.get("direction_id") or "0"),
                )
            except (KeyError, ValueError, TypeError) as e:
                self._skip("trips.txt", row, e)
                continue
            self.trips.append(trip)

    def read_stop_times(self) -> None:
        """Read stop_times.txt, keeping file order."""
        self.stop_times = list(self.iter_stop_times())

    def iter_stop_times(self) -> Iterator[StopTime]:
        """Stream stop_times.txt rows in file order without storing them."""
        for row in self._iter_rows("stop_times.txt", required=True):
            try:
                stop_time = StopTime(
                    trip_id=row["trip_id"],
                    stop_id=row["stop_id"],
                    arrival_time=(row.get("arrival_time") or "").strip(),
                    departure_time=(row.get("departure_time") or "").strip(),
                    stop_sequence=int(row["stop_sequence"]),
                )
            except (KeyError, ValueError, TypeError) as e:
                self._skip("stop_times.txt", row, e)
                continue
            yield stop_time
