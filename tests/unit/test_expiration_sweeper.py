import asyncio
import time
from dataclasses import replace
from datetime import timedelta

import pytest

from infrastructure.settings import AppSettings
from reservations.booking import transitions
from reservations.errors import StorageError
from reservations.models import (
    ActiveBreak,
    BookingStatus,
    ClosedBreak,
    OnBreak,
    Pending,
    SeatStatus,
    TimeWindow,
)
from reservations.notifications import NotificationHub
from reservations.store import BookingStore, SeatStore
from reservations.sweeper import ExpirationSweeper
from tests.helpers import DAY, FixedClock, RecordingNotifier, at, make_booking, make_seat


def _on_break(start, end, started="11:58"):
    return OnBreak(current_break=ActiveBreak(TimeWindow(start, end), at(started)))


def _sweeper(bookings, seats=None, **kwargs):
    return ExpirationSweeper(bookings, seats, settings=AppSettings(), **kwargs)


@pytest.fixture
def seats():
    store = SeatStore()
    store.add(make_seat("S1", status=SeatStatus.OCCUPIED))
    store.add(make_seat("S2", status=SeatStatus.OCCUPIED))
    return store


def test_elapsed_slot_is_completed_and_seat_freed(seats):
    bookings = BookingStore()
    bookings.add(make_booking("b1", "10:00", "12:00"))
    hub = NotificationHub()
    recorder = RecordingNotifier()
    hub.subscribe(recorder)

    report = _sweeper(bookings, seats, notifier=hub).sweep(now=at("12:01"))

    booking = bookings.require("b1")
    assert report.completed == ["b1"]
    assert booking.status is BookingStatus.COMPLETED
    assert booking.completed_at == at("12:01")
    assert seats.require("S1").status is SeatStatus.AVAILABLE
    assert recorder.names == ["freed", "completed"]


def test_completion_on_an_already_free_seat_emits_no_freed_event():
    seats = SeatStore()
    seats.add(make_seat("S1", status=SeatStatus.AVAILABLE))
    bookings = BookingStore()
    bookings.add(make_booking("b1", "10:00", "12:00"))
    hub = NotificationHub()
    recorder = RecordingNotifier()
    hub.subscribe(recorder)

    report = _sweeper(bookings, seats, notifier=hub).sweep(now=at("12:01"))

    assert report.completed == ["b1"]
    assert seats.require("S1").status is SeatStatus.AVAILABLE
    assert recorder.names == ["completed"]


def test_slot_end_is_exclusive(seats):
    bookings = BookingStore()
    bookings.add(make_booking("b1", "10:00", "12:00"))

    report = _sweeper(bookings, seats).sweep(now=at("12:00"))

    assert report.changed == 0
    assert bookings.require("b1").status is BookingStatus.CONFIRMED


def test_sweeping_twice_matches_sweeping_once(seats):
    bookings = BookingStore()
    bookings.add(make_booking("done", "08:00", "09:00", seat_id="S1"))
    bookings.add(make_booking("late", "09:00", "11:00", seat_id="S2", device_id="d2",
                              member_id="m2", state=Pending()))
    bookings.add(make_booking("break", "09:00", "17:00", seat_id="S3", device_id="d3",
                              member_id="m3", state=_on_break("09:10", "09:30", "09:09")))
    sweeper = _sweeper(bookings, seats)

    first = sweeper.sweep(now=at("09:45"))
    snapshot = {b.booking_id: b for b in bookings.list_bookings()}
    second = sweeper.sweep(now=at("09:45"))

    assert (first.completed, first.cancelled, first.breaks_ended) == (["done"], ["late"], ["break"])
    assert second.changed == 0
    assert {b.booking_id: b for b in bookings.list_bookings()} == snapshot


def test_pending_booking_past_attendance_deadline_is_cancelled(seats):
    bookings = BookingStore()
    bookings.add(make_booking("b1", "10:00", "12:00", state=Pending()))
    sweeper = _sweeper(bookings, seats)

    assert sweeper.sweep(now=at("10:20")).changed == 0

    report = sweeper.sweep(now=at("10:21"))

    booking = bookings.require("b1")
    assert report.cancelled == ["b1"]
    assert booking.status is BookingStatus.CANCELLED
    assert booking.cancellation_reason == "Attendance not confirmed"
    assert seats.require("S1").status is SeatStatus.AVAILABLE


def test_overdue_break_is_closed_even_with_sublet_inside(seats):
    bookings = BookingStore()
    bookings.add(make_booking("host", "09:00", "17:00", state=_on_break("12:00", "13:00")))
    bookings.add(make_booking("guest", "12:00", "16:00", member_id="m2", device_id="d2",
                              seat_id="S2"))
    bookings.add(make_booking("sublet", "12:15", "12:45", member_id="m3", device_id="d3"))

    report = _sweeper(bookings, seats).sweep(now=at("13:01"))

    host = bookings.require("host")
    assert report.breaks_ended == ["host"]
    assert "sublet" in report.completed
    assert host.status is BookingStatus.CONFIRMED
    assert host.breaks == (ClosedBreak("12:00", "13:00", at("11:58")),)


def test_elapsed_slot_takes_priority_over_overdue_break(seats):
    bookings = BookingStore()
    bookings.add(make_booking("b1", "09:00", "17:00", state=_on_break("16:00", "16:30")))

    report = _sweeper(bookings, seats).sweep(now=at("17:05"))

    assert report.completed == ["b1"]
    assert report.breaks_ended == []
    assert bookings.require("b1").breaks == ()


def test_window_wrapping_midnight_ends_next_day(seats):
    bookings = BookingStore()
    bookings.add(make_booking("night", "23:00", "01:00"))
    sweeper = _sweeper(bookings, seats)
    next_day = DAY + timedelta(days=1)

    assert sweeper.sweep(now=at("23:59")).changed == 0
    assert sweeper.sweep(now=at("00:59", next_day)).changed == 0
    assert sweeper.sweep(now=at("01:01", next_day)).completed == ["night"]


def test_break_after_midnight_uses_booking_start_as_anchor(seats):
    bookings = BookingStore()
    bookings.add(make_booking("night", "22:00", "03:00", state=_on_break("00:30", "01:00")))
    sweeper = _sweeper(bookings, seats)
    next_day = DAY + timedelta(days=1)

    assert sweeper.sweep(now=at("23:30")).changed == 0
    assert sweeper.sweep(now=at("01:01", next_day)).breaks_ended == ["night"]


def test_member_sweep_only_touches_that_member(seats):
    bookings = BookingStore()
    bookings.add(make_booking("mine", "08:00", "09:00", member_id="m1"))
    bookings.add(make_booking("theirs", "08:00", "09:00", member_id="m2", seat_id="S2",
                              device_id="d2"))

    report = _sweeper(bookings, seats).sweep_member("m1", now=at("10:00"))

    assert report.completed == ["mine"]
    assert bookings.require("theirs").status is BookingStatus.CONFIRMED


class FlakyStore(BookingStore):
    def __init__(self, failing_id):
        super().__init__()
        self.failing_id = failing_id

    def replace(self, booking):
        if booking.booking_id == self.failing_id:
            raise StorageError("disk unavailable")
        return super().replace(booking)


def test_failure_on_one_booking_does_not_abort_the_sweep(seats):
    bookings = FlakyStore("bad")
    bookings.add(make_booking("bad", "08:00", "09:00"))
    bookings.add(make_booking("good", "08:00", "09:00", seat_id="S2", member_id="m2",
                              device_id="d2"))
    sweeper = _sweeper(bookings, seats)

    report = sweeper.sweep(now=at("10:00"))

    assert report.failed == ["bad"]
    assert report.completed == ["good"]
    assert bookings.require("bad").status is BookingStatus.CONFIRMED
    assert sweeper.stats.failures == 1


class RacingStore(BookingStore):
    """Cancels the booking behind the sweeper's back right after it is re-read."""

    def __init__(self, racing_id):
        super().__init__()
        self.racing_id = racing_id

    def get(self, booking_id):
        booking = super().get(booking_id)
        if booking_id == self.racing_id and booking is not None and booking.is_active:
            self.racing_id = None
            super().replace(transitions.cancel(booking, reason="Cancelled by user", now=at("08:59")))
        return booking


def test_concurrent_cancel_wins_over_sweeper(seats):
    bookings = RacingStore("b1")
    bookings.add(make_booking("b1", "08:00", "09:00"))

    report = _sweeper(bookings, seats).sweep(now=at("10:00"))

    booking = bookings.require("b1")
    assert report.skipped == ["b1"]
    assert booking.status is BookingStatus.CANCELLED
    assert booking.cancellation_reason == "Cancelled by user"


def test_sweeper_uses_clock_when_now_omitted(seats):
    bookings = BookingStore()
    bookings.add(make_booking("b1", "10:00", "12:00"))
    clock = FixedClock(at("11:00"))
    sweeper = _sweeper(bookings, seats, clock=clock)

    assert sweeper.sweep().changed == 0
    clock.advance(hours=2)
    assert sweeper.sweep().completed == ["b1"]


@pytest.mark.asyncio
async def test_run_async_sweeps_on_start_until_stopped(seats):
    bookings = BookingStore()
    bookings.add(make_booking("b1", "08:00", "09:00"))
    sweeper = ExpirationSweeper(
        bookings,
        seats,
        settings=replace(AppSettings(), sweep_interval_seconds=0),
        clock=FixedClock(at("10:00")),
    )

    task = asyncio.create_task(sweeper.run_async())
    for _ in range(100):
        if sweeper.stats.sweeps:
            break
        await asyncio.sleep(0.01)
    sweeper.stop()
    await asyncio.wait_for(task, timeout=2)

    assert sweeper.running is False
    assert sweeper.stats.sweeps >= 1
    assert bookings.require("b1").status is BookingStatus.COMPLETED


def test_start_runs_loop_on_background_thread(seats):
    bookings = BookingStore()
    bookings.add(make_booking("b1", "08:00", "09:00"))
    sweeper = ExpirationSweeper(
        bookings,
        seats,
        settings=replace(AppSettings(), sweep_interval_seconds=0),
        clock=FixedClock(at("10:00")),
    )

    sweeper.start()
    deadline = time.monotonic() + 2
    while not sweeper.stats.sweeps and time.monotonic() < deadline:
        time.sleep(0.01)
    sweeper.stop()

    assert sweeper.sweeper_thread is None
    assert sweeper.running is False
    assert bookings.require("b1").status is BookingStatus.COMPLETED
