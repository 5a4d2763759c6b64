"""
TimeWindow model for time-of-day ranges on a single calendar date
"""

from __future__ import annotations

from dataclasses import dataclass

from reservations import time_utils


@dataclass(frozen=True)
class TimeWindow:
    """
    A ``[start, end)`` pair expressed as ``"HH:MM"`` strings.

    Attributes:
        start: Start of the window (e.g. "09:00")
        end: End of the window; earlier than ``start`` when it wraps midnight
    """
    start: str
    end: str

    @classmethod
    def parse(cls, start: str, end: str) -> "TimeWindow":
        """Validate and build a window, rejecting zero-length ranges."""
        time_utils.validate_window(start, end)
        return cls(start=start.strip(), end=end.strip())

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"

    @property
    def wraps_midnight(self) -> bool:
        return time_utils.to_minutes(self.end) < time_utils.to_minutes(self.start)

    def overlaps(self, other: "TimeWindow") -> bool:
        return time_utils.overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeWindow") -> bool:
        return time_utils.contains(self.start, self.end, other.start, other.end)

    def duration_minutes(self) -> int:
        return time_utils.duration_minutes(self.start, self.end)
