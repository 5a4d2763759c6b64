"""Domain service wiring stores, lifecycle, sweeper and availability."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional

from infrastructure.constants import CANCELLED_BY_USER
from infrastructure.settings import AppSettings, get_settings
from reservations.availability import AvailabilityProjector, SeatAvailability
from reservations.booking import BookingDecision, BookingLifecycle, ConflictResolver
from reservations.device import derive_device_fingerprint, has_valid_fingerprint
from reservations.errors import BookingValidationError
from reservations.models import Booking, Seat, SeatStatus
from reservations.notifications import NotificationHub
from reservations.store import BookingStore, SeatStore
from reservations.sweeper import ExpirationSweeper, SweepReport


class ReservationService:
    """High-level API for seat reservations."""

    def __init__(
        self,
        settings: Optional[AppSettings] = None,
        *,
        bookings: Optional[BookingStore] = None,
        seats: Optional[SeatStore] = None,
        notifier: Optional[NotificationHub] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self.settings = settings or get_settings()
        self.bookings = bookings or BookingStore(self.settings.bookings_file)
        self.seats = seats or SeatStore(self.settings.seats_file)
        self.notifier = notifier or NotificationHub()

        self.resolver = ConflictResolver(self.bookings, self.seats)
        self.sweeper = ExpirationSweeper(
            self.bookings,
            self.seats,
            notifier=self.notifier,
            settings=self.settings,
            clock=clock,
        )
        self.lifecycle = BookingLifecycle(
            self.bookings,
            self.seats,
            resolver=self.resolver,
            sweeper=self.sweeper,
            notifier=self.notifier,
            settings=self.settings,
            clock=clock,
        )
        self.availability = AvailabilityProjector(self.bookings, self.seats)

    # Bookings -----------------------------------------------------------
    def device_id_for_request(
        self,
        headers: Mapping[str, str],
        remote_addr: Optional[str] = None,
    ) -> str:
        """Derive the booking device id from request headers and client address."""
        if not has_valid_fingerprint(headers, remote_addr):
            self.logger.warning("Rejected request without user-agent or client address")
            raise BookingValidationError("Unable to identify device for this request")
        return derive_device_fingerprint(headers, remote_addr)

    def can_book(
        self,
        seat_id: str,
        device_id: str,
        on_date,
        start_time: str,
        end_time: str,
        member_id: Optional[str] = None,
    ) -> BookingDecision:
        return self.resolver.can_book(
            seat_id, device_id, on_date, start_time, end_time, member_id=member_id
        )

    def create_booking(
        self,
        member_id: str,
        seat_id: str,
        device_id: str,
        on_date,
        start_time: str,
        end_time: str,
        now: Optional[datetime] = None,
    ) -> Booking:
        return self.lifecycle.create_booking(
            member_id, seat_id, device_id, on_date, start_time, end_time, now=now
        )

    def confirm_attendance(
        self, booking_id: str, member_id: str, present: bool, now: Optional[datetime] = None
    ) -> Booking:
        return self.lifecycle.confirm_attendance(booking_id, member_id, present, now=now)

    def start_break(
        self,
        booking_id: str,
        member_id: str,
        break_start: str,
        break_end: str,
        now: Optional[datetime] = None,
    ) -> Booking:
        return self.lifecycle.start_break(booking_id, member_id, break_start, break_end, now=now)

    def end_break(self, booking_id: str, member_id: str, now: Optional[datetime] = None) -> Booking:
        return self.lifecycle.end_break(booking_id, member_id, now=now)

    def cancel_booking(
        self,
        booking_id: str,
        member_id: str,
        reason: str = CANCELLED_BY_USER,
        now: Optional[datetime] = None,
    ) -> Booking:
        return self.lifecycle.cancel_booking(booking_id, member_id, reason, now=now)

    def get_booking(self, booking_id: str, member_id: Optional[str] = None) -> Booking:
        return self.lifecycle.get_booking(booking_id, member_id)

    def list_member_bookings(self, member_id: str, now: Optional[datetime] = None) -> List[Booking]:
        return self.lifecycle.list_member_bookings(member_id, now=now)

    def get_booking_statistics(self) -> Dict[str, int]:
        return self.bookings.status_counts()

    # Seats --------------------------------------------------------------
    def add_seat(self, seat: Seat) -> Seat:
        return self.seats.add(seat)

    def set_seat_status(self, seat_id: str, status: SeatStatus) -> bool:
        return self.seats.set_status(seat_id, status)

    def list_seats(
        self,
        *,
        building: Optional[str] = None,
        floor: Optional[int] = None,
        section: Optional[str] = None,
        on_date=None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> List[SeatAvailability]:
        """Seats matching the filters, annotated for the optional query window."""
        return self.availability.list_seats(
            building=building,
            floor=floor,
            section=section,
            on_date=on_date,
            start_time=start_time,
            end_time=end_time,
        )

    # Sweeper ------------------------------------------------------------
    def sweep(self, now: Optional[datetime] = None) -> SweepReport:
        return self.sweeper.sweep(now=now)

    def start_sweeper(self) -> None:
        """Start the expiration sweeper thread if not running."""
        if not self.sweeper.running:
            self.logger.info("Starting expiration sweeper")
            self.sweeper.start()

    def stop_sweeper(self) -> None:
        """Stop the expiration sweeper if running."""
        if self.sweeper.running:
            self.logger.info("Stopping expiration sweeper")
            self.sweeper.stop()

    def is_sweeper_running(self) -> bool:
        return self.sweeper.running
