"""Seat catalogue entries."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SeatStatus(Enum):
    """Cached occupancy projection; bookings remain the source of truth."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    ON_BREAK = "on-break"


@dataclass(frozen=True)
class Seat:
    """Physical seat identified by building, section and number."""

    seat_id: str
    building: str
    section: str
    seat_number: str
    floor: Optional[int] = None
    status: SeatStatus = SeatStatus.AVAILABLE

    def __str__(self) -> str:
        return f"{self.building}/{self.section}/{self.seat_number}"
