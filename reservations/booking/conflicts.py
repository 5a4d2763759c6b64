"""Conflict checks deciding whether a time window may be booked.

The seat rule lives in :func:`classify_seat_booking`, which the
availability projector also uses, so the seat list can never advertise a
window the resolver would refuse.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional

from infrastructure.constants import LOGGER_CONFLICT_RESOLVER
from reservations.errors import (
    BookingConflictError,
    BookingNotFoundError,
    BookingValidationError,
    ConflictRule,
)
from reservations.models import ACTIVE_STATUSES, Booking, Seat, SeatStatus, TimeWindow
from reservations.store import BookingStore, SeatStore
from reservations.time_utils import parse_date


class SeatVerdict(Enum):
    """How one existing seat booking relates to a requested window."""

    CLEAR = "clear"                        # no shared minute
    SUBLET = "sublet"                      # request fits inside the live break
    BLOCKED = "blocked"                    # overlaps the booking
    BLOCKED_ON_BREAK = "blocked-on-break"  # on break, but the request spills outside it

    @property
    def blocks(self) -> bool:
        return self in {SeatVerdict.BLOCKED, SeatVerdict.BLOCKED_ON_BREAK}


def classify_seat_booking(booking: Booking, window: TimeWindow) -> SeatVerdict:
    """Apply the seat rule for one existing booking.

    A break only sublets the seat when the whole request lies inside it;
    any other overlap collides with the owner's own time.
    """

    current_break = booking.current_break
    if current_break is not None and current_break.window.contains(window):
        return SeatVerdict.SUBLET
    if booking.window.overlaps(window):
        return SeatVerdict.BLOCKED_ON_BREAK if current_break is not None else SeatVerdict.BLOCKED
    return SeatVerdict.CLEAR


def seat_accepts_bookings(seat: Seat) -> bool:
    return seat.status is not SeatStatus.MAINTENANCE


@dataclass(frozen=True)
class BookingDecision:
    """Outcome of a booking check: accepted, or rejected by one rule."""

    accepted: bool
    rule: Optional[ConflictRule] = None
    reason: Optional[str] = None
    conflicting_booking_id: Optional[str] = None

    @classmethod
    def accept(cls) -> "BookingDecision":
        return cls(accepted=True)

    @classmethod
    def reject(
        cls,
        rule: ConflictRule,
        reason: str,
        conflicting_booking_id: Optional[str] = None,
    ) -> "BookingDecision":
        return cls(
            accepted=False,
            rule=rule,
            reason=reason,
            conflicting_booking_id=conflicting_booking_id,
        )

    def raise_for_rejection(self) -> None:
        if not self.accepted:
            raise BookingConflictError(self.rule, self.reason or "Booking rejected")


class ConflictResolver:
    """Run the member, device and seat passes for a requested window."""

    def __init__(self, bookings: BookingStore, seats: Optional[SeatStore] = None) -> None:
        self.logger = logging.getLogger(LOGGER_CONFLICT_RESOLVER)
        self.bookings = bookings
        self.seats = seats

    def can_book(
        self,
        seat_id: str,
        device_id: str,
        on_date,
        start_time: str,
        end_time: str,
        *,
        member_id: Optional[str] = None,
    ) -> BookingDecision:
        """
        Decide whether ``seat_id`` may be booked for the window.

        Raises:
            BookingValidationError: Missing or malformed input
            BookingNotFoundError: Unknown seat (when a seat store is attached)
        """
        if not seat_id:
            raise BookingValidationError("Seat id is required")
        if not device_id or not str(device_id).strip():
            raise BookingValidationError(
                "Device information is required to make a booking"
            )
        booking_date = parse_date(on_date)
        window = TimeWindow.parse(start_time, end_time)

        if self.seats is not None:
            seat = self.seats.get(seat_id)
            if seat is None:
                raise BookingNotFoundError(f"Seat {seat_id} not found")
            if not seat_accepts_bookings(seat):
                return self._rejected(
                    BookingDecision.reject(
                        ConflictRule.SEAT_UNAVAILABLE,
                        f"Seat {seat_id} is under maintenance",
                    )
                )

        if member_id is not None:
            decision = self._member_pass(member_id, booking_date, window)
            if not decision.accepted:
                return self._rejected(decision)

        decision = self._device_pass(device_id, booking_date, window)
        if not decision.accepted:
            return self._rejected(decision)

        decision = self._seat_pass(seat_id, booking_date, window)
        if not decision.accepted:
            return self._rejected(decision)

        self.logger.debug(
            "Booking check passed | seat=%s | %s %s", seat_id, booking_date, window
        )
        return decision

    def ensure_can_book(self, *args, **kwargs) -> None:
        """Like :meth:`can_book` but raise :class:`BookingConflictError` on rejection."""
        self.can_book(*args, **kwargs).raise_for_rejection()

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------
    def _member_pass(self, member_id: str, on_date: date, window: TimeWindow) -> BookingDecision:
        for existing in self.bookings.find(
            member_id=member_id, on_date=on_date, statuses=ACTIVE_STATUSES
        ):
            if existing.window.overlaps(window):
                return BookingDecision.reject(
                    ConflictRule.MEMBER,
                    f"You already have a booking from {existing.start_time} to "
                    f"{existing.end_time}. Cannot book overlapping time slots.",
                    existing.booking_id,
                )
        return BookingDecision.accept()

    def _device_pass(self, device_id: str, on_date: date, window: TimeWindow) -> BookingDecision:
        # Breaks are ignored here: a device stays blocked by its own booking
        for existing in self.bookings.find(
            device_id=device_id, on_date=on_date, statuses=ACTIVE_STATUSES
        ):
            if existing.window.overlaps(window):
                return BookingDecision.reject(
                    ConflictRule.DEVICE,
                    f"This device already holds a booking from {existing.start_time} "
                    f"to {existing.end_time}",
                    existing.booking_id,
                )
        return BookingDecision.accept()

    def _seat_pass(self, seat_id: str, on_date: date, window: TimeWindow) -> BookingDecision:
        existing = self.bookings.find(seat_id=seat_id, on_date=on_date, statuses=ACTIVE_STATUSES)
        blocking = first_blocking_booking(existing, window)
        if blocking is None:
            return BookingDecision.accept()
        booking, verdict = blocking
        suffix = " (outside break time)" if verdict is SeatVerdict.BLOCKED_ON_BREAK else ""
        return BookingDecision.reject(
            ConflictRule.SEAT,
            f"Seat is already booked for this time slot{suffix}",
            booking.booking_id,
        )

    def _rejected(self, decision: BookingDecision) -> BookingDecision:
        self.logger.warning(
            "BOOKING REJECTED | rule=%s | conflicting=%s | %s",
            decision.rule.value if decision.rule else None,
            decision.conflicting_booking_id,
            decision.reason,
        )
        return decision


def first_blocking_booking(bookings: Iterable[Booking], window: TimeWindow):
    """Return ``(booking, verdict)`` for the first booking that blocks ``window``."""

    for booking in bookings:
        verdict = classify_seat_booking(booking, window)
        if verdict.blocks:
            return booking, verdict
    return None
