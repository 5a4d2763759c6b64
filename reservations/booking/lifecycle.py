"""
Booking lifecycle service.

Every operation is a short read-check-write sequence: read the booking,
run the pure transition from :mod:`reservations.booking.transitions`, then
swap the result into the store. The store only accepts the swap when the
record is still at the revision that was read.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, List, Optional

import pytz

from infrastructure.constants import (
    BREAK_GUARD_STATUS_VALUES,
    CANCELLED_BY_USER,
    LOGGER_LIFECYCLE,
)
from infrastructure.settings import AppSettings
from reservations import notifications
from reservations.booking import transitions
from reservations.booking.conflicts import ConflictResolver
from reservations.errors import BookingForbiddenError, BookingValidationError, StorageError
from reservations.models import Booking, BookingStatus, SeatStatus, TimeWindow
from reservations.notifications import NotificationHub, booking_event_payload
from reservations.store import BookingStore, SeatStore
from reservations.time_utils import combine_date_time, ensure_aware, parse_date, to_minutes

BREAK_GUARD_STATUSES = frozenset(BookingStatus(value) for value in BREAK_GUARD_STATUS_VALUES)


class BookingLifecycle:
    """Create bookings and drive them through attendance, breaks and cancellation."""

    def __init__(
        self,
        bookings: BookingStore,
        seats: SeatStore,
        *,
        resolver: Optional[ConflictResolver] = None,
        sweeper=None,
        notifier: Optional[NotificationHub] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.logger = logging.getLogger(LOGGER_LIFECYCLE)
        self.bookings = bookings
        self.seats = seats
        self.resolver = resolver or ConflictResolver(bookings, seats)
        self.sweeper = sweeper
        self.notifier = notifier or NotificationHub()
        self.settings = settings or AppSettings()
        self.tz = pytz.timezone(self.settings.timezone)
        self._clock = clock or (lambda: datetime.now(self.tz))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def create_booking(
        self,
        member_id: str,
        seat_id: str,
        device_id: str,
        on_date,
        start_time: str,
        end_time: str,
        *,
        now: Optional[datetime] = None,
    ) -> Booking:
        """
        Book ``seat_id`` for the window once every conflict pass clears.

        Returns:
            Booking: The stored booking in ``pending`` state

        Raises:
            BookingValidationError: Missing member, device or malformed window
            BookingConflictError: A member, device or seat conflict
            BookingNotFoundError: Unknown seat
        """
        if not member_id:
            raise BookingValidationError("Member id is required")

        self.resolver.ensure_can_book(
            seat_id,
            device_id,
            on_date,
            start_time,
            end_time,
            member_id=member_id,
        )

        now = self._now(now)
        booking = Booking(
            booking_id=uuid.uuid4().hex,
            member_id=member_id,
            seat_id=seat_id,
            on_date=parse_date(on_date),
            window=TimeWindow.parse(start_time, end_time),
            device_id=str(device_id).strip(),
            created_at=now,
            updated_at=now,
        )
        stored = self.bookings.add(booking)
        self._update_seat(stored.seat_id, SeatStatus.OCCUPIED)

        self.logger.info(
            "BOOKING CREATED | id=%s | member=%s | seat=%s | %s %s",
            stored.booking_id,
            stored.member_id,
            stored.seat_id,
            stored.on_date.isoformat(),
            stored.window,
        )
        self._emit(notifications.BOOKED, stored)
        return stored

    def confirm_attendance(
        self,
        booking_id: str,
        member_id: str,
        present: bool,
        *,
        now: Optional[datetime] = None,
    ) -> Booking:
        """Confirm a pending booking while the member is at the seat.

        The confirmation window closes ``attendance_window_minutes`` after
        the booking starts; an overrun booking stays pending until the
        sweeper cancels it.
        """
        booking = self._owned(booking_id, member_id)
        now = self._now(now)
        deadline = self.attendance_deadline(booking)

        updated = transitions.confirm_attendance(
            booking, present=present, now=now, deadline=deadline
        )
        stored = self.bookings.replace(updated)
        self._emit(notifications.CONFIRMED, stored)
        return stored

    def start_break(
        self,
        booking_id: str,
        member_id: str,
        break_start: str,
        break_end: str,
        *,
        now: Optional[datetime] = None,
    ) -> Booking:
        booking = self._owned(booking_id, member_id)
        window = TimeWindow.parse(break_start, break_end)
        now = self._now(now)

        updated = transitions.start_break(
            booking,
            window,
            others=self._break_guard_bookings(booking),
            now=now,
            min_minutes=self.settings.min_break_minutes,
        )
        stored = self.bookings.replace(updated)
        self._update_seat(stored.seat_id, SeatStatus.ON_BREAK)

        self.logger.info(
            "BREAK STARTED | id=%s | seat=%s | break=%s",
            stored.booking_id,
            stored.seat_id,
            window,
        )
        self._emit(notifications.BREAK_STARTED, stored, break_window=str(window))
        return stored

    def end_break(
        self,
        booking_id: str,
        member_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> Booking:
        """End the live break and return the seat to its owner."""
        booking = self._owned(booking_id, member_id)
        now = self._now(now)

        updated = transitions.end_break(
            booking, others=self._break_guard_bookings(booking), now=now
        )
        stored = self.bookings.replace(updated)
        self._update_seat(stored.seat_id, SeatStatus.OCCUPIED)

        self.logger.info(
            "BREAK ENDED | id=%s | seat=%s | breaks=%s",
            stored.booking_id,
            stored.seat_id,
            len(stored.breaks),
        )
        self._emit(notifications.BREAK_ENDED, stored)
        return stored

    def cancel_booking(
        self,
        booking_id: str,
        member_id: str,
        reason: str = CANCELLED_BY_USER,
        *,
        now: Optional[datetime] = None,
    ) -> Booking:
        booking = self._owned(booking_id, member_id)
        now = self._now(now)

        updated = transitions.cancel(booking, reason=reason, now=now)
        stored = self.bookings.replace(updated)
        self._update_seat(stored.seat_id, SeatStatus.AVAILABLE)

        self._emit(notifications.CANCELLED, stored, reason=reason)
        self._emit(notifications.FREED, stored)
        return stored

    def get_booking(self, booking_id: str, member_id: Optional[str] = None) -> Booking:
        """Fetch a booking, checking ownership when ``member_id`` is given."""
        if member_id is None:
            return self.bookings.require(booking_id)
        return self._owned(booking_id, member_id)

    def list_member_bookings(
        self, member_id: str, *, now: Optional[datetime] = None
    ) -> List[Booking]:
        """Return the member's bookings, newest first, after sweeping them."""
        if self.sweeper is not None:
            self.sweeper.sweep_member(member_id, now=now)

        bookings = self.bookings.find(member_id=member_id)
        bookings.sort(key=lambda b: (b.on_date, to_minutes(b.start_time)), reverse=True)
        return bookings

    def attendance_deadline(self, booking: Booking) -> datetime:
        starts_at = combine_date_time(booking.on_date, booking.start_time, self.tz)
        return starts_at + timedelta(minutes=self.settings.attendance_window_minutes)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_aware(now if now is not None else self._clock(), self.tz)

    def _owned(self, booking_id: str, member_id: str) -> Booking:
        booking = self.bookings.require(booking_id)
        if booking.member_id != member_id:
            self.logger.warning(
                "Member %s attempted to access booking %s owned by %s",
                member_id,
                booking_id,
                booking.member_id,
            )
            raise BookingForbiddenError(f"Booking {booking_id} belongs to another member")
        return booking

    def _break_guard_bookings(self, booking: Booking) -> List[Booking]:
        return self.bookings.find(
            seat_id=booking.seat_id,
            on_date=booking.on_date,
            statuses=BREAK_GUARD_STATUSES,
            exclude_id=booking.booking_id,
        )

    def _update_seat(self, seat_id: str, status: SeatStatus) -> None:
        # Seat status is a cache; the booking write already succeeded
        try:
            self.seats.set_status(seat_id, status)
        except StorageError as exc:
            self.logger.error("Failed to mark seat %s %s: %s", seat_id, status.value, exc)

    def _emit(self, event: str, booking: Booking, **extra) -> None:
        self.notifier.emit(event, booking_event_payload(booking, **extra))
