"""Booking conflict checks, state transitions and the lifecycle service."""

from .conflicts import (
    BookingDecision,
    ConflictResolver,
    SeatVerdict,
    classify_seat_booking,
    first_blocking_booking,
    seat_accepts_bookings,
)
from .lifecycle import BookingLifecycle

__all__ = [
    "BookingDecision",
    "ConflictResolver",
    "SeatVerdict",
    "classify_seat_booking",
    "first_blocking_booking",
    "seat_accepts_bookings",
    "BookingLifecycle",
]
