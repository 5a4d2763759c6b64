"""Serialize and hydrate booking and seat records.

Bookings live in memory as :class:`Booking` with a tagged ``state``. On
disk they keep the legacy flat shape where ``status`` and
``current_break`` are separate fields; this module is the only place the
two representations meet.
"""

from __future__ import annotations

import hashlib
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

from reservations.models import (
    ActiveBreak,
    Booking,
    BookingState,
    BookingStatus,
    Cancelled,
    ClosedBreak,
    Completed,
    Confirmed,
    Expired,
    OnBreak,
    Pending,
    Seat,
    SeatStatus,
    TimeWindow,
)
from reservations.time_utils import parse_date, validate_window

REQUIRED_BOOKING_FIELDS = {"id", "member_id", "seat_id", "date", "start_time", "end_time"}


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def placeholder_fingerprint(member_id: Any, booking_id: Any) -> str:
    """Stable stand-in for records stored before fingerprints existed."""

    seed = f"legacy-{member_id}-{booking_id}"
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()


class BookingRecordSerializer:
    """Convert between :class:`Booking` and stored payload dicts."""

    def to_storage(self, booking: Booking) -> Dict[str, Any]:
        current_break = booking.current_break
        return {
            "id": booking.booking_id,
            "member_id": booking.member_id,
            "seat_id": booking.seat_id,
            "date": booking.on_date.isoformat(),
            "start_time": booking.window.start,
            "end_time": booking.window.end,
            "status": booking.status.value,
            "attendance_confirmed": booking.attendance_confirmed,
            "attendance_confirmed_at": _isoformat(booking.attendance_confirmed_at),
            "device_fingerprint": booking.device_id,
            "current_break": (
                {
                    "start_time": current_break.window.start,
                    "end_time": current_break.window.end,
                    "started_at": _isoformat(current_break.started_at),
                }
                if current_break is not None
                else None
            ),
            "breaks": [
                {
                    "start_time": entry.start_time,
                    "end_time": entry.end_time,
                    "taken_at": _isoformat(entry.taken_at),
                }
                for entry in booking.breaks
            ],
            "cancellation_reason": booking.cancellation_reason,
            "cancelled_at": (
                _isoformat(booking.state.cancelled_at)
                if isinstance(booking.state, Cancelled)
                else None
            ),
            "completed_at": _isoformat(booking.completed_at),
            "created_at": _isoformat(booking.created_at),
            "updated_at": _isoformat(booking.updated_at),
            "revision": booking.revision,
        }

    def from_storage(self, payload: Mapping[str, Any]) -> Booking:
        booking, _ = self.hydrate(payload)
        return booking

    def hydrate(self, payload: Mapping[str, Any]) -> Tuple[Booking, bool]:
        """Build a booking, returning whether the payload needed repair."""

        missing = [name for name in REQUIRED_BOOKING_FIELDS if not payload.get(name)]
        if missing:
            raise ValueError(
                f"Booking record missing required fields: {', '.join(sorted(missing))}"
            )

        repaired = False
        device_id = payload.get("device_fingerprint")
        if not device_id:
            device_id = placeholder_fingerprint(payload["member_id"], payload["id"])
            repaired = True

        attendance_at = _parse_datetime(payload.get("attendance_confirmed_at"))
        if attendance_at is None and payload.get("attendance_confirmed"):
            attendance_at = _parse_datetime(payload.get("updated_at")) or datetime.min
        state, state_repaired = self._state_from_payload(payload, attendance_at)

        booking = Booking(
            booking_id=str(payload["id"]),
            member_id=str(payload["member_id"]),
            seat_id=str(payload["seat_id"]),
            on_date=parse_date(payload["date"]),
            window=TimeWindow.parse(str(payload["start_time"]), str(payload["end_time"])),
            device_id=str(device_id),
            state=state,
            attendance_confirmed_at=attendance_at,
            breaks=self._breaks_from_payload(payload.get("breaks")),
            created_at=_parse_datetime(payload.get("created_at")),
            updated_at=_parse_datetime(payload.get("updated_at")),
            revision=int(payload.get("revision") or 0),
        )
        return booking, repaired or state_repaired

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _state_from_payload(
        payload: Mapping[str, Any],
        attendance_at: Optional[datetime],
    ) -> Tuple[BookingState, bool]:
        try:
            status = BookingStatus(payload.get("status") or BookingStatus.PENDING.value)
        except ValueError:
            return (Confirmed() if attendance_at else Pending()), True

        raw_break = payload.get("current_break")
        if not isinstance(raw_break, Mapping):
            raw_break = {}
        has_break = bool(raw_break.get("start_time") and raw_break.get("end_time"))

        if status is BookingStatus.ON_BREAK:
            if not has_break:
                # on-break without a live break cannot be honoured
                return (Confirmed() if attendance_at else Pending()), True
            active = ActiveBreak(
                window=TimeWindow.parse(str(raw_break["start_time"]), str(raw_break["end_time"])),
                started_at=_parse_datetime(raw_break.get("started_at")) or datetime.min,
            )
            return OnBreak(current_break=active), False

        repaired = has_break
        if status is BookingStatus.PENDING:
            return Pending(), repaired
        if status is BookingStatus.CONFIRMED:
            return Confirmed(), repaired
        if status is BookingStatus.CANCELLED:
            return Cancelled(
                reason=payload.get("cancellation_reason") or "",
                cancelled_at=_parse_datetime(payload.get("cancelled_at")),
            ), repaired
        if status is BookingStatus.COMPLETED:
            return Completed(
                completed_at=_parse_datetime(payload.get("completed_at")),
            ), repaired
        return Expired(), repaired

    @staticmethod
    def _breaks_from_payload(raw_breaks: Any) -> Tuple[ClosedBreak, ...]:
        entries: List[ClosedBreak] = []
        for raw in raw_breaks or []:
            if not isinstance(raw, Mapping):
                continue
            if not raw.get("start_time") or not raw.get("end_time"):
                continue
            validate_window(str(raw["start_time"]), str(raw["end_time"]))
            entries.append(
                ClosedBreak(
                    start_time=str(raw["start_time"]),
                    end_time=str(raw["end_time"]),
                    taken_at=_parse_datetime(raw.get("taken_at")) or datetime.min,
                )
            )
        return tuple(entries)


class SeatRecordSerializer:
    """Convert between :class:`Seat` and stored payload dicts."""

    def to_storage(self, seat: Seat) -> Dict[str, Any]:
        return {
            "id": seat.seat_id,
            "building": seat.building,
            "section": seat.section,
            "seat_number": seat.seat_number,
            "floor": seat.floor,
            "status": seat.status.value,
        }

    def from_storage(self, payload: Mapping[str, Any]) -> Seat:
        if not payload.get("id"):
            raise ValueError("Seat record missing required field: id")
        try:
            status = SeatStatus(payload.get("status") or SeatStatus.AVAILABLE.value)
        except ValueError:
            status = SeatStatus.AVAILABLE
        floor = payload.get("floor")
        return Seat(
            seat_id=str(payload["id"]),
            building=str(payload.get("building") or ""),
            section=str(payload.get("section") or ""),
            seat_number=str(payload.get("seat_number") or ""),
            floor=int(floor) if floor is not None else None,
            status=status,
        )


DEFAULT_BOOKING_SERIALIZER = BookingRecordSerializer()
DEFAULT_SEAT_SERIALIZER = SeatRecordSerializer()

__all__ = [
    "BookingRecordSerializer",
    "SeatRecordSerializer",
    "DEFAULT_BOOKING_SERIALIZER",
    "DEFAULT_SEAT_SERIALIZER",
    "placeholder_fingerprint",
]
