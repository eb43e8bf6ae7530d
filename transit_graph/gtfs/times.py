"""Day-relative GTFS times that may run past midnight."""

import logging
from dataclasses import dataclass
from datetime import time, timedelta

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 3600
ONE_DAY = timedelta(days=1)


class GTFSTimeError(ValueError):
    """Raised when a GTFS time string cannot be parsed."""


@dataclass(frozen=True, order=True)
class ExtendedTime:
    """
    Time of day relative to midnight of the service day.

    GTFS allows hours beyond 23 for trips that run past midnight, so
    "25:30:00" is 01:30:00 on the following calendar day. Values are
    stored as whole seconds and are never wrapped.
    """

    seconds: int

    def __post_init__(self) -> None:
        if self.seconds < 0:
            raise GTFSTimeError(f"Negative time of day: {self.seconds}s")

    @classmethod
    def parse(cls, time_str: str) -> "ExtendedTime":
        """Parse HH:MM:SS (H:MM:SS accepted), supporting >24h."""
        if time_str is None or not time_str.strip():
            raise GTFSTimeError("Empty time value")

        parts = time_str.strip().split(":")
        if len(parts) != 3:
            raise GTFSTimeError(f"Invalid time format: {time_str}")

        try:
            hours, minutes, seconds = (int(part) for part in parts)
        except ValueError as e:
            raise GTFSTimeError(f"Invalid time format: {time_str}") from e

        if hours < 0 or not (0 <= minutes < 60) or not (0 <= seconds < 60):
            raise GTFSTimeError(f"Time component out of range: {time_str}")

        return cls(hours * 3600 + minutes * 60 + seconds)

    @property
    def day_offset(self) -> int:
        """Number of midnights passed since the start of the service day."""
        return self.seconds // SECONDS_PER_DAY

    @property
    def time_of_day(self) -> time:
        """Wall clock time on the calendar day this time falls on."""
        within_day = self.seconds % SECONDS_PER_DAY
        return time(within_day // 3600, (within_day % 3600) // 60, within_day % 60)

    def exceeds_single_day(self) -> bool:
        return exceeds_single_day(self)

    def __sub__(self, other: "ExtendedTime") -> timedelta:
        if not isinstance(other, ExtendedTime):
            return NotImplemented
        return timedelta(seconds=self.seconds - other.seconds)

    def __str__(self) -> str:
        hours = self.seconds // 3600
        minutes = (self.seconds % 3600) // 60
        seconds = self.seconds % 60
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def exceeds_single_day(value: ExtendedTime | timedelta) -> bool:
    """True when a time or duration spans 24 hours or more."""
    if isinstance(value, ExtendedTime):
        return value.seconds >= SECONDS_PER_DAY
    return value >= ONE_DAY


def format_duration(duration: timedelta) -> str:
    """Format a (possibly negative) duration as [-]HH:MM:SS."""
    total = int(duration.total_seconds())
    sign = "-" if total < 0 else ""
    total = abs(total)
    return f"{sign}{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"
