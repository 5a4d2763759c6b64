from datetime import date

import pytest
import pytz

from reservations.errors import BookingValidationError
from reservations.models import TimeWindow
from reservations.time_utils import (
    combine_date_time,
    contains,
    duration_minutes,
    ensure_aware,
    overlaps,
    parse_date,
    to_minutes,
    validate_window,
    window_end_datetime,
)

WINDOWS = [
    ("09:00", "10:00"),
    ("10:00", "11:00"),
    ("09:30", "10:30"),
    ("23:00", "01:00"),
    ("00:30", "02:00"),
    ("22:00", "23:00"),
    ("12:00", "13:00"),
    ("12:15", "12:45"),
]


def test_to_minutes_parses_hours_and_minutes():
    assert to_minutes("00:00") == 0
    assert to_minutes("09:05") == 545
    assert to_minutes("23:59") == 1439


@pytest.mark.parametrize("value", ["24:00", "12:60", "9am", "", "12"])
def test_to_minutes_rejects_malformed_times(value):
    with pytest.raises(BookingValidationError):
        to_minutes(value)


@pytest.mark.parametrize("a", WINDOWS)
@pytest.mark.parametrize("b", WINDOWS)
def test_overlaps_is_symmetric(a, b):
    assert overlaps(*a, *b) == overlaps(*b, *a)


def test_overlaps_handles_midnight_wrap():
    assert overlaps("23:00", "01:00", "00:30", "02:00") is True
    assert overlaps("23:00", "01:00", "23:30", "23:45") is True
    assert overlaps("23:00", "01:00", "01:00", "02:00") is False


def test_back_to_back_windows_do_not_overlap():
    assert overlaps("09:00", "10:00", "10:00", "11:00") is False
    assert overlaps("10:00", "11:00", "09:00", "10:00") is False
    assert overlaps("09:00", "10:00", "09:59", "11:00") is True


def test_containment_is_strict_at_the_edges():
    assert contains("12:00", "13:00", "12:00", "13:00") is True
    assert contains("12:00", "13:00", "12:15", "12:45") is True
    assert contains("12:00", "13:00", "11:59", "13:00") is False
    assert contains("12:00", "13:00", "12:00", "13:01") is False


def test_containment_across_midnight():
    assert contains("22:00", "02:00", "23:30", "00:30") is True
    assert contains("22:00", "02:00", "00:30", "01:30") is True
    assert contains("22:00", "02:00", "01:30", "02:30") is False


def test_duration_of_wrapped_window():
    assert duration_minutes("23:00", "01:00") == 120
    assert duration_minutes("09:00", "09:20") == 20


def test_validate_window_rejects_degenerate_and_missing_bounds():
    with pytest.raises(BookingValidationError):
        validate_window("10:00", "10:00")
    with pytest.raises(BookingValidationError):
        validate_window("", "10:00")
    validate_window("23:00", "01:00")


def test_window_end_moves_to_next_day_when_wrapped():
    tz = pytz.utc
    day = date(2024, 5, 6)

    assert window_end_datetime(day, "09:00", "10:00", tz) == combine_date_time(day, "10:00", tz)
    assert window_end_datetime(day, "23:00", "01:00", tz) == combine_date_time(
        date(2024, 5, 7), "01:00", tz
    )


def test_combine_date_time_localizes_in_zone():
    tz = pytz.timezone("Europe/Madrid")
    instant = combine_date_time(date(2024, 7, 1), "10:00", tz)

    assert instant.tzinfo is not None
    assert instant.utcoffset().total_seconds() == 2 * 3600


def test_ensure_aware_only_touches_naive_values():
    tz = pytz.utc
    aware = combine_date_time(date(2024, 5, 6), "10:00", tz)

    assert ensure_aware(aware, tz) is aware
    assert ensure_aware(aware.replace(tzinfo=None), tz) == aware


def test_parse_date_accepts_iso_strings_and_rejects_garbage():
    assert parse_date("2024-05-06") == date(2024, 5, 6)
    assert parse_date("2024-05-06T10:00:00") == date(2024, 5, 6)
    with pytest.raises(BookingValidationError):
        parse_date("06/05/2024")


def test_time_window_parse_and_helpers():
    window = TimeWindow.parse(" 23:00", "01:00 ")

    assert str(window) == "23:00-01:00"
    assert window.wraps_midnight is True
    assert window.duration_minutes() == 120
    assert window.contains(TimeWindow("23:30", "00:30"))
    assert window.overlaps(TimeWindow("00:30", "02:00"))
