"""State transition helpers for bookings.

Each helper checks its guards against the booking it is given and returns
a new :class:`Booking`; nothing is mutated, so a failed guard leaves the
stored record untouched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from reservations.errors import BookingConflictError, ConflictRule
from reservations.models import (
    ActiveBreak,
    Booking,
    BookingStatus,
    Cancelled,
    ClosedBreak,
    Completed,
    Confirmed,
    OnBreak,
    TimeWindow,
)


def _require_status(booking: Booking, *allowed: BookingStatus) -> None:
    if booking.status not in allowed:
        expected = ", ".join(status.value for status in allowed)
        raise BookingConflictError(
            ConflictRule.INVALID_TRANSITION,
            f"Booking {booking.booking_id} is {booking.status.value}; expected {expected}",
        )


def confirm_attendance(
    booking: Booking,
    *,
    present: bool,
    now: datetime,
    deadline: datetime,
) -> Booking:
    """Move a pending booking to confirmed once presence is verified."""

    _require_status(booking, BookingStatus.PENDING)
    if now > deadline:
        raise BookingConflictError(
            ConflictRule.ATTENDANCE_DEADLINE,
            f"Attendance window closed at {deadline.strftime('%H:%M')}",
        )
    if not present:
        raise BookingConflictError(
            ConflictRule.ATTENDANCE,
            "You must be at the seat to confirm attendance",
        )
    return booking.evolve(state=Confirmed(), attendance_confirmed_at=now, updated_at=now)


def start_break(
    booking: Booking,
    window: TimeWindow,
    *,
    others: Iterable[Booking],
    now: datetime,
    min_minutes: int = 0,
) -> Booking:
    """Carve ``window`` out of a confirmed booking as a sublettable break.

    ``others`` are the other pending/confirmed bookings on the same seat
    and date. One that overlaps the break without fitting entirely inside
    it keeps the break from starting.
    """

    if booking.status is BookingStatus.ON_BREAK:
        raise BookingConflictError(ConflictRule.ALREADY_ON_BREAK, "You are already on a break")
    _require_status(booking, BookingStatus.CONFIRMED)

    duration = window.duration_minutes()
    if duration < min_minutes:
        raise BookingConflictError(
            ConflictRule.BREAK_DURATION,
            f"Break must be at least {min_minutes} minutes long. Current duration: {duration} minutes",
        )

    if not booking.window.contains(window):
        raise BookingConflictError(
            ConflictRule.BREAK_WINDOW,
            f"Break must be within your booking time slot ({booking.window})",
        )

    for other in others:
        if other.booking_id == booking.booking_id:
            continue
        if other.window.overlaps(window) and not window.contains(other.window):
            raise BookingConflictError(
                ConflictRule.BREAK_OCCUPIED,
                f"Another booking holds this seat during your break time ({other.window})",
            )

    for previous in booking.breaks:
        if previous.window.overlaps(window):
            raise BookingConflictError(
                ConflictRule.BREAK_HISTORY,
                f"Break time overlaps with an existing break ({previous.window})",
            )

    return booking.evolve(
        state=OnBreak(current_break=ActiveBreak(window=window, started_at=now)),
        updated_at=now,
    )


def end_break(
    booking: Booking,
    *,
    others: Iterable[Booking] = (),
    now: datetime,
    force: bool = False,
) -> Booking:
    """Close the live break, append it to history and restore confirmed.

    Unless ``force`` is set, a break cannot end while another booking sits
    entirely inside it.
    """

    current = booking.current_break
    if current is None:
        raise BookingConflictError(ConflictRule.INVALID_TRANSITION, "No active break found")

    if not force:
        for other in others:
            if other.booking_id == booking.booking_id:
                continue
            if current.window.contains(other.window):
                raise BookingConflictError(
                    ConflictRule.BREAK_OCCUPIED,
                    f"Cannot end break yet. Another booking uses this seat during your break "
                    f"({other.window})",
                )

    closed = ClosedBreak(
        start_time=current.window.start,
        end_time=current.window.end,
        taken_at=current.started_at,
    )
    return booking.evolve(
        state=Confirmed(),
        breaks=booking.breaks + (closed,),
        updated_at=now,
    )


def cancel(booking: Booking, *, reason: str, now: datetime) -> Booking:
    """Cancel an active booking; a live break is dropped with it."""

    if booking.status is BookingStatus.CANCELLED:
        raise BookingConflictError(ConflictRule.INVALID_TRANSITION, "Booking already cancelled")
    _require_status(booking, BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ON_BREAK)
    return booking.evolve(state=Cancelled(reason=reason, cancelled_at=now), updated_at=now)


def complete(booking: Booking, *, now: datetime) -> Booking:
    """Mark an active booking whose slot has elapsed as completed."""

    _require_status(booking, BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ON_BREAK)
    return booking.evolve(state=Completed(completed_at=now), updated_at=now)


