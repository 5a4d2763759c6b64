"""Domain dataclasses for bookings and their lifecycle state."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from infrastructure.constants import ACTIVE_STATUS_VALUES

from .time_window import TimeWindow


class BookingStatus(Enum):
    """Persisted booking status values."""
    PENDING = "pending"            # Created, waiting for attendance
    CONFIRMED = "confirmed"        # Member confirmed presence
    ON_BREAK = "on-break"          # Seat sublet during a break window
    CANCELLED = "cancelled"        # Cancelled by member or attendance deadline
    COMPLETED = "completed"        # Slot fully elapsed
    EXPIRED = "expired"            # Reserved; no transition produces it

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return not self.is_active


ACTIVE_STATUSES = frozenset(BookingStatus(value) for value in ACTIVE_STATUS_VALUES)


@dataclass(frozen=True)
class ActiveBreak:
    """The live break carved out of a booking."""

    window: TimeWindow
    started_at: datetime


@dataclass(frozen=True)
class ClosedBreak:
    """History entry appended when a break ends."""

    start_time: str
    end_time: str
    taken_at: datetime

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)


@dataclass(frozen=True)
class Pending:
    status: ClassVar[BookingStatus] = BookingStatus.PENDING


@dataclass(frozen=True)
class Confirmed:
    status: ClassVar[BookingStatus] = BookingStatus.CONFIRMED


@dataclass(frozen=True)
class OnBreak:
    status: ClassVar[BookingStatus] = BookingStatus.ON_BREAK

    current_break: ActiveBreak


@dataclass(frozen=True)
class Cancelled:
    status: ClassVar[BookingStatus] = BookingStatus.CANCELLED

    reason: str
    cancelled_at: Optional[datetime] = None


@dataclass(frozen=True)
class Completed:
    status: ClassVar[BookingStatus] = BookingStatus.COMPLETED

    completed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Expired:
    status: ClassVar[BookingStatus] = BookingStatus.EXPIRED


BookingState = Union[Pending, Confirmed, OnBreak, Cancelled, Completed, Expired]


@dataclass(frozen=True)
class Booking:
    """A seat reservation for one time window on one date.

    ``state`` is the single source of truth for status and the live
    break; the legacy ``status``/``currentBreak`` pair only exists at the
    storage boundary.
    """

    booking_id: str
    member_id: str
    seat_id: str
    on_date: date
    window: TimeWindow
    device_id: str
    state: BookingState = field(default_factory=Pending)
    attendance_confirmed_at: Optional[datetime] = None
    breaks: Tuple[ClosedBreak, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    revision: int = 0

    @property
    def status(self) -> BookingStatus:
        return self.state.status

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    @property
    def attendance_confirmed(self) -> bool:
        return self.attendance_confirmed_at is not None

    @property
    def current_break(self) -> Optional[ActiveBreak]:
        if isinstance(self.state, OnBreak):
            return self.state.current_break
        return None

    @property
    def cancellation_reason(self) -> Optional[str]:
        if isinstance(self.state, Cancelled):
            return self.state.reason
        return None

    @property
    def completed_at(self) -> Optional[datetime]:
        if isinstance(self.state, Completed):
            return self.state.completed_at
        return None

    @property
    def start_time(self) -> str:
        return self.window.start

    @property
    def end_time(self) -> str:
        return self.window.end

    def evolve(self, **changes) -> "Booking":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)
