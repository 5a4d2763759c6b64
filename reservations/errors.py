"""Exception hierarchy for reservation operations."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ConflictRule(Enum):
    """Business rule that rejected a booking operation."""

    MEMBER = "member"
    DEVICE = "device"
    SEAT = "seat"
    SEAT_UNAVAILABLE = "seat-unavailable"
    BREAK_WINDOW = "break-window"
    BREAK_OCCUPIED = "break-occupied"
    BREAK_HISTORY = "break-history"
    BREAK_DURATION = "break-duration"
    ALREADY_ON_BREAK = "already-on-break"
    ATTENDANCE = "attendance"
    ATTENDANCE_DEADLINE = "attendance-deadline"
    INVALID_TRANSITION = "invalid-transition"


class ReservationError(Exception):
    """Base class for every error raised by the reservation core."""


class BookingValidationError(ReservationError, ValueError):
    """Malformed or missing input, rejected before storage is touched."""


class BookingConflictError(ReservationError, ValueError):
    """A business rule rejected the operation."""

    def __init__(self, rule: ConflictRule, message: str) -> None:
        super().__init__(message)
        self.rule = rule


class BookingNotFoundError(ReservationError, LookupError):
    """Unknown booking or seat identifier."""


class BookingForbiddenError(ReservationError, PermissionError):
    """The member does not own the booking."""


class StorageError(ReservationError, RuntimeError):
    """Persistence failed; callers see a generic failure."""


class StaleRecordError(StorageError):
    """The stored record changed since it was read."""

    def __init__(
        self,
        booking_id: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ) -> None:
        super().__init__(
            f"Booking {booking_id} changed concurrently "
            f"(expected revision {expected}, found {actual})"
        )
        self.booking_id = booking_id
        self.expected = expected
        self.actual = actual


__all__ = [
    "ConflictRule",
    "ReservationError",
    "BookingValidationError",
    "BookingConflictError",
    "BookingNotFoundError",
    "BookingForbiddenError",
    "StorageError",
    "StaleRecordError",
]
