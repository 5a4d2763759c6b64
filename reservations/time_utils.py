"""Time-of-day interval arithmetic.

Windows are ``"HH:MM"`` pairs scoped to one calendar date. A window whose
end is earlier than its start wraps past midnight; such an end is moved
24 hours forward before any comparison. Comparisons are made on a
24-hour clock face, so a wrapped window also meets windows at the start
of the same date (``23:00-01:00`` overlaps ``00:30-02:00``).
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Tuple

from infrastructure.constants import MINUTES_PER_DAY
from reservations.errors import BookingValidationError

_SHIFTS = (0, MINUTES_PER_DAY, -MINUTES_PER_DAY)


def parse_time_string(time_str: str) -> Tuple[int, int]:
    """Split ``"HH:MM"`` into validated hour and minute integers."""

    if not isinstance(time_str, str) or ":" not in time_str:
        raise BookingValidationError(f"Time '{time_str}' must use the HH:MM format")

    hour_str, _, minute_str = time_str.strip().partition(":")
    try:
        hour = int(hour_str)
        minute = int(minute_str)
    except ValueError:
        raise BookingValidationError(f"Time '{time_str}' must use the HH:MM format") from None

    if not (0 <= hour <= 23):
        raise BookingValidationError(f"Hour {hour} out of valid range 0-23")
    if not (0 <= minute <= 59):
        raise BookingValidationError(f"Minute {minute} out of valid range 0-59")

    return hour, minute


def to_minutes(time_str: str) -> int:
    """Convert ``"HH:MM"`` into minutes since midnight."""

    hour, minute = parse_time_string(time_str)
    return hour * 60 + minute


def normalise(start: str, end: str) -> Tuple[int, int]:
    """Return scalar bounds, moving a wrapped end past midnight."""

    start_minutes = to_minutes(start)
    end_minutes = to_minutes(end)
    if end_minutes < start_minutes:
        end_minutes += MINUTES_PER_DAY
    return start_minutes, end_minutes


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """Return True when two windows share any minute.

    Back-to-back windows (one ends exactly when the other starts) do not
    overlap.
    """

    a_lo, a_hi = normalise(a_start, a_end)
    b_lo, b_hi = normalise(b_start, b_end)
    return any(a_lo < b_hi + shift and b_lo + shift < a_hi for shift in _SHIFTS)


def contains(outer_start: str, outer_end: str, inner_start: str, inner_end: str) -> bool:
    """Return True when the inner window lies entirely within the outer one."""

    outer_lo, outer_hi = normalise(outer_start, outer_end)
    inner_lo, inner_hi = normalise(inner_start, inner_end)
    return any(
        inner_lo + shift >= outer_lo and inner_hi + shift <= outer_hi
        for shift in _SHIFTS
    )


def duration_minutes(start: str, end: str) -> int:
    start_minutes, end_minutes = normalise(start, end)
    return end_minutes - start_minutes


def validate_window(start: str, end: str) -> None:
    """Reject malformed or zero-length windows."""

    if not start or not end:
        raise BookingValidationError("Start time and end time are required")
    if to_minutes(start) == to_minutes(end):
        raise BookingValidationError("Start time and end time cannot be the same")


def combine_date_time(on_date: date, time_str: str, tz) -> datetime:
    """Localize ``on_date@time_str`` into an aware datetime for ``tz`` (pytz)."""

    hour, minute = parse_time_string(time_str)
    return tz.localize(datetime.combine(on_date, time(hour, minute)))


def window_end_datetime(on_date: date, start: str, end: str, tz) -> datetime:
    """Instant at which a window on ``on_date`` ends, honouring midnight wrap."""

    end_date = on_date
    if to_minutes(end) < to_minutes(start):
        end_date = on_date + timedelta(days=1)
    return combine_date_time(end_date, end, tz)


def parse_date(value) -> date:
    """Coerce ISO strings and datetimes into a :class:`date`."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    raise BookingValidationError(f"Date '{value}' must use the YYYY-MM-DD format")


def ensure_aware(value: datetime, tz) -> datetime:
    """Attach ``tz`` to naive datetimes so they compare with localized instants."""

    if value.tzinfo is None:
        return tz.localize(value)
    return value
