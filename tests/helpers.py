"""Shared fakes and utilities for unit tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import pytz

from reservations.models import Booking, Confirmed, Seat, TimeWindow

UTC = pytz.utc


class DummyLogger:
    """Lightweight stand-in for ``logging.Logger`` that records calls."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        self.records.append((level, args, kwargs))

    def debug(self, *args: Any, **kwargs: Any) -> None:
        self._record("debug", *args, **kwargs)

    def info(self, *args: Any, **kwargs: Any) -> None:
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        self._record("error", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        self._record("exception", *args, **kwargs)

    @property
    def messages(self) -> List[Tuple[str, Any]]:
        """Return formatted messages for quick assertions."""

        formatted: List[Tuple[str, Any]] = []
        for level, args, kwargs in self.records:
            message: Any = kwargs.get("msg")
            if args:
                template = args[0]
                if isinstance(template, str) and len(args) > 1:
                    try:
                        message = template % args[1:]
                    except (TypeError, ValueError):
                        message = template
                else:
                    message = template
            formatted.append((level, message))
        return formatted

    def last(self, level: str | None = None) -> Tuple[str, Tuple[Any, ...], Dict[str, Any]] | None:
        """Return the most recent record, optionally filtered by level."""

        if not self.records:
            return None
        if level is None:
            return self.records[-1]
        for entry in reversed(self.records):
            if entry[0] == level:
                return entry
        return None


class FixedClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current

    def advance(self, **delta: float) -> datetime:
        self.current += timedelta(**delta)
        return self.current


class RecordingNotifier:
    """Subscriber that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.events]


DAY = date(2024, 5, 6)


def at(hhmm: str, on_date: date = DAY) -> datetime:
    """Aware UTC instant for ``on_date@hhmm``."""
    hour, minute = (int(part) for part in hhmm.split(":"))
    return UTC.localize(datetime(on_date.year, on_date.month, on_date.day, hour, minute))


def make_seat(seat_id: str = "S1", **overrides: Any) -> Seat:
    fields: Dict[str, Any] = {
        "seat_id": seat_id,
        "building": "Main Library",
        "section": "A",
        "seat_number": seat_id,
        "floor": 1,
    }
    fields.update(overrides)
    return Seat(**fields)


def make_booking(
    booking_id: str = "b1",
    start: str = "09:00",
    end: str = "17:00",
    *,
    member_id: str = "member-1",
    seat_id: str = "S1",
    device_id: str = "device-1",
    on_date: date = DAY,
    state: Optional[Any] = None,
    **overrides: Any,
) -> Booking:
    return Booking(
        booking_id=booking_id,
        member_id=member_id,
        seat_id=seat_id,
        on_date=on_date,
        window=TimeWindow(start, end),
        device_id=device_id,
        state=state if state is not None else Confirmed(),
        **overrides,
    )
