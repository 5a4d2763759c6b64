"""
Expiration Sweeper
Re-derives time-triggered booking transitions from stored timestamps
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz

from infrastructure.constants import ATTENDANCE_NOT_CONFIRMED, LOGGER_SWEEPER, MINUTES_PER_DAY
from infrastructure.settings import AppSettings
from reservations import notifications
from reservations.booking import transitions
from reservations.errors import StaleRecordError, StorageError
from reservations.models import Booking, BookingStatus, SeatStatus
from reservations.notifications import NotificationHub, booking_event_payload
from reservations.store import BookingStore, SeatStore
from reservations.sweeper.metrics import SweepReport, SweepStats
from reservations.time_utils import (
    combine_date_time,
    ensure_aware,
    to_minutes,
    window_end_datetime,
)


class ExpirationSweeper:
    """
    Apply every transition that only depends on the clock.

    Nothing is scheduled per booking: each pass walks the active bookings
    and compares ``now`` with the instants stored on them, so a restarted
    process picks up overdue work on its first pass. Per booking, in
    priority order:

    * slot elapsed -> ``completed`` and the seat is freed
    * pending past the attendance deadline -> ``cancelled``
    * break overdue -> break closed, back to ``confirmed``
    """

    def __init__(
        self,
        bookings: BookingStore,
        seats: Optional[SeatStore] = None,
        *,
        notifier: Optional[NotificationHub] = None,
        settings: Optional[AppSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.logger = logging.getLogger(LOGGER_SWEEPER)
        self.bookings = bookings
        self.seats = seats
        self.notifier = notifier or NotificationHub()
        self.settings = settings or AppSettings()
        self.tz = pytz.timezone(self.settings.timezone)
        self._clock = clock or (lambda: datetime.now(self.tz))
        self.stats = SweepStats()

        # Thread control
        self.running = False
        self.sweeper_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Sweeping
    # ------------------------------------------------------------------
    def sweep(self, now: Optional[datetime] = None, member_id: Optional[str] = None) -> SweepReport:
        """
        Run one pass over active bookings.

        Args:
            now: Evaluation instant, defaults to the clock
            member_id: Restrict the pass to one member's bookings

        Returns:
            SweepReport: Booking ids grouped by what happened to them
        """
        now = ensure_aware(now if now is not None else self._clock(), self.tz)
        started = time.monotonic()
        report = SweepReport()

        for snapshot in self.bookings.active_bookings(member_id=member_id):
            report.checked += 1
            booking_id = snapshot.booking_id
            try:
                outcome = self._sweep_booking(booking_id, now)
            except StaleRecordError as exc:
                self.logger.info("Skipping booking %s changed mid-sweep: %s", booking_id, exc)
                report.skipped.append(booking_id)
                continue
            except Exception as exc:
                self.logger.error(
                    "Failed to sweep booking %s: %s", booking_id, exc, exc_info=True
                )
                report.failed.append(booking_id)
                continue

            if outcome is BookingStatus.COMPLETED:
                report.completed.append(booking_id)
            elif outcome is BookingStatus.CANCELLED:
                report.cancelled.append(booking_id)
            elif outcome is BookingStatus.CONFIRMED:
                report.breaks_ended.append(booking_id)

        self.stats.record(report, time.monotonic() - started)
        if report.changed or report.failed:
            self.logger.info(
                "SWEEP FINISHED | member=%s | %s", member_id or "*", report.summary()
            )
        else:
            self.logger.debug("Sweep found nothing to do (%s bookings checked)", report.checked)
        return report

    def sweep_member(self, member_id: str, now: Optional[datetime] = None) -> SweepReport:
        """Sweep one member's bookings so a listing shows current state."""
        return self.sweep(now=now, member_id=member_id)

    def _sweep_booking(self, booking_id: str, now: datetime) -> Optional[BookingStatus]:
        # Re-read so a change made since the pass started is not overwritten
        booking = self.bookings.get(booking_id)
        if booking is None or not booking.is_active:
            return None

        if now > self.slot_end(booking):
            stored = self.bookings.replace(transitions.complete(booking, now=now))
            self._free_seat(stored)
            self.notifier.emit(notifications.COMPLETED, booking_event_payload(stored))
            return stored.status

        if booking.status is BookingStatus.PENDING and now > self.attendance_deadline(booking):
            stored = self.bookings.replace(
                transitions.cancel(booking, reason=ATTENDANCE_NOT_CONFIRMED, now=now)
            )
            self._free_seat(stored)
            self.notifier.emit(
                notifications.CANCELLED,
                booking_event_payload(stored, reason=ATTENDANCE_NOT_CONFIRMED),
            )
            return stored.status

        if booking.current_break is not None and now > self.break_end(booking):
            stored = self.bookings.replace(transitions.end_break(booking, now=now, force=True))
            self._set_seat_status(stored.seat_id, SeatStatus.OCCUPIED)
            self.notifier.emit(notifications.BREAK_ENDED, booking_event_payload(stored))
            self.logger.info(
                "Closed overdue break for booking %s (seat %s)", stored.booking_id, stored.seat_id
            )
            return stored.status

        return None

    # ------------------------------------------------------------------
    # Instants derived from stored fields
    # ------------------------------------------------------------------
    def slot_end(self, booking: Booking) -> datetime:
        return window_end_datetime(booking.on_date, booking.start_time, booking.end_time, self.tz)

    def attendance_deadline(self, booking: Booking) -> datetime:
        starts_at = combine_date_time(booking.on_date, booking.start_time, self.tz)
        return starts_at + timedelta(minutes=self.settings.attendance_window_minutes)

    def break_end(self, booking: Booking) -> datetime:
        """Instant the live break ends, measured from the booking's own start."""
        window = booking.current_break.window
        starts_at = combine_date_time(booking.on_date, booking.start_time, self.tz)
        offset = (to_minutes(window.start) - to_minutes(booking.start_time)) % MINUTES_PER_DAY
        return starts_at + timedelta(minutes=offset + window.duration_minutes())

    def _free_seat(self, booking: Booking) -> None:
        seat = self.seats.get(booking.seat_id) if self.seats is not None else None
        if seat is None or seat.status is SeatStatus.AVAILABLE:
            return
        if self._set_seat_status(booking.seat_id, SeatStatus.AVAILABLE):
            self.notifier.emit(notifications.FREED, booking_event_payload(booking))

    def _set_seat_status(self, seat_id: str, status: SeatStatus) -> bool:
        if self.seats is None:
            return False
        try:
            return self.seats.set_status(seat_id, status)
        except StorageError as exc:
            self.logger.error("Failed to mark seat %s %s: %s", seat_id, status.value, exc)
            return False

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------
    async def run_async(self) -> None:
        """Sweep once immediately, then every ``sweep_interval_seconds``."""
        self.logger.info("Starting expiration sweeper in current event loop")
        self.running = True
        await self._sweeper_loop()

    def start(self) -> None:
        """Run the sweep loop on a daemon thread."""
        if self.running:
            return
        self.logger.info("Starting expiration sweeper")
        self.running = True
        self.sweeper_thread = threading.Thread(
            target=lambda: asyncio.run(self._sweeper_loop()),
            daemon=True,
            name="ExpirationSweeper",
        )
        self.sweeper_thread.start()

    def stop(self) -> None:
        """Stop the sweeper"""
        self.logger.info("Stopping expiration sweeper")
        self.running = False
        if self.sweeper_thread is not None:
            self.sweeper_thread.join(timeout=5)
            self.sweeper_thread = None
        self.logger.info("Expiration sweeper stopped")

    async def _sweeper_loop(self) -> None:
        interval = max(float(self.settings.sweep_interval_seconds), 0.0)
        while self.running:
            try:
                self.sweep()
            except Exception as exc:
                self.logger.error("Sweeper error: %s", exc, exc_info=True)
            await self._idle(interval)

    async def _idle(self, interval: float) -> None:
        # Sleep in short slices so stop() takes effect promptly
        deadline = time.monotonic() + interval
        while True:
            await asyncio.sleep(max(0.0, min(deadline - time.monotonic(), 1.0)))
            if not self.running or time.monotonic() >= deadline:
                return
