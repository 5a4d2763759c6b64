"""Seat availability projection for a requested time window."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from infrastructure.constants import LOGGER_AVAILABILITY
from reservations.booking.conflicts import SeatVerdict, classify_seat_booking, seat_accepts_bookings
from reservations.errors import BookingValidationError
from reservations.models import ACTIVE_STATUSES, Booking, BookingStatus, Seat, SeatStatus, TimeWindow
from reservations.store import BookingStore, SeatStore
from reservations.time_utils import parse_date


class SeatAnnotation(Enum):
    AVAILABLE = "available"
    AVAILABLE_IN_BREAK = "available-in-break"
    ON_BREAK_UNAVAILABLE = "on-break-unavailable"
    BOOKED = "booked"
    MAINTENANCE = "maintenance"

    @property
    def bookable(self) -> bool:
        return self in {SeatAnnotation.AVAILABLE, SeatAnnotation.AVAILABLE_IN_BREAK}


@dataclass(frozen=True)
class SeatAvailability:
    """A seat plus what a booking request for the queried window would meet."""

    seat: Seat
    annotation: Optional[SeatAnnotation] = None
    booking_id: Optional[str] = None
    booking_status: Optional[BookingStatus] = None
    break_window: Optional[TimeWindow] = None

    @property
    def bookable(self) -> bool:
        return self.annotation is not None and self.annotation.bookable


class AvailabilityProjector:
    """
    Annotate seats for a ``(date, start, end)`` query.

    Seat bookings are judged with :func:`classify_seat_booking`, the same
    predicate the conflict resolver's seat pass uses, so a seat shown as
    bookable is one the resolver accepts (device and member passes aside).
    """

    def __init__(self, bookings: BookingStore, seats: Optional[SeatStore] = None) -> None:
        self.logger = logging.getLogger(LOGGER_AVAILABILITY)
        self.bookings = bookings
        self.seats = seats

    def project(
        self,
        seats: Iterable[Seat],
        on_date=None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> List[SeatAvailability]:
        """
        Annotate ``seats`` for the query window.

        Without a query window only maintenance seats are annotated.

        Raises:
            BookingValidationError: Only part of the query window was given
        """
        seats = list(seats)
        query = (on_date, start_time, end_time)
        if all(value is None for value in query):
            return [self._unqueried(seat) for seat in seats]
        if any(value is None for value in query):
            raise BookingValidationError(
                "Date, start time and end time are all required to check availability"
            )

        booking_date = parse_date(on_date)
        window = TimeWindow.parse(start_time, end_time)

        by_seat: Dict[str, List[Booking]] = defaultdict(list)
        for booking in self.bookings.find(on_date=booking_date, statuses=ACTIVE_STATUSES):
            by_seat[booking.seat_id].append(booking)

        projected = [self._annotate(seat, by_seat.get(seat.seat_id, []), window) for seat in seats]
        self.logger.debug(
            "Projected %s seats for %s %s (%s bookable)",
            len(projected),
            booking_date,
            window,
            sum(1 for item in projected if item.bookable),
        )
        return projected

    def list_seats(
        self,
        *,
        building: Optional[str] = None,
        floor: Optional[int] = None,
        section: Optional[str] = None,
        status: Optional[SeatStatus] = None,
        on_date=None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> List[SeatAvailability]:
        """Filter the seat catalogue and project the result."""
        if self.seats is None:
            raise RuntimeError("AvailabilityProjector has no seat store attached")
        seats = self.seats.list_seats(building=building, floor=floor, section=section, status=status)
        return self.project(seats, on_date=on_date, start_time=start_time, end_time=end_time)

    @staticmethod
    def _unqueried(seat: Seat) -> SeatAvailability:
        if seat_accepts_bookings(seat):
            return SeatAvailability(seat=seat)
        return SeatAvailability(seat=seat, annotation=SeatAnnotation.MAINTENANCE)

    @staticmethod
    def _annotate(seat: Seat, bookings: List[Booking], window: TimeWindow) -> SeatAvailability:
        if not seat_accepts_bookings(seat):
            return SeatAvailability(seat=seat, annotation=SeatAnnotation.MAINTENANCE)

        blocking = []
        sublet = None
        for booking in bookings:
            verdict = classify_seat_booking(booking, window)
            if verdict.blocks:
                blocking.append((booking, verdict))
            elif verdict is SeatVerdict.SUBLET and sublet is None:
                sublet = booking

        # Any blocking booking wins, otherwise the resolver would refuse a seat shown as free
        if blocking:
            on_break = [b for b, v in blocking if v is SeatVerdict.BLOCKED_ON_BREAK]
            if on_break:
                booking = on_break[0]
                annotation = SeatAnnotation.ON_BREAK_UNAVAILABLE
            else:
                booking = blocking[0][0]
                annotation = SeatAnnotation.BOOKED
            return SeatAvailability(
                seat=seat,
                annotation=annotation,
                booking_id=booking.booking_id,
                booking_status=booking.status,
            )

        if sublet is not None:
            return SeatAvailability(
                seat=seat,
                annotation=SeatAnnotation.AVAILABLE_IN_BREAK,
                booking_id=sublet.booking_id,
                booking_status=sublet.status,
                break_window=sublet.current_break.window,
            )

        return SeatAvailability(seat=seat, annotation=SeatAnnotation.AVAILABLE)
