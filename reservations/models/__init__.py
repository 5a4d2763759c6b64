"""Domain model definitions for seat reservations."""

from .time_window import TimeWindow
from .booking import (
    ACTIVE_STATUSES,
    ActiveBreak,
    Booking,
    BookingState,
    BookingStatus,
    Cancelled,
    ClosedBreak,
    Completed,
    Confirmed,
    Expired,
    OnBreak,
    Pending,
)
from .seat import Seat, SeatStatus

__all__ = [
    "TimeWindow",
    "ACTIVE_STATUSES",
    "ActiveBreak",
    "Booking",
    "BookingState",
    "BookingStatus",
    "Cancelled",
    "ClosedBreak",
    "Completed",
    "Confirmed",
    "Expired",
    "OnBreak",
    "Pending",
    "Seat",
    "SeatStatus",
]
