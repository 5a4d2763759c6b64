"""Centralized application settings.

All runtime configuration is read once from the environment (optionally
seeded from a ``.env`` file) into an immutable :class:`AppSettings`
snapshot. Components receive the snapshot explicitly; :func:`get_settings`
caches the process-wide instance for entry points.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv

from . import constants


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Normalize environment strings such as "true"/"1" into booleans."""

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_int(value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class AppSettings:
    """Immutable snapshot of high-level configuration values."""

    timezone: str = constants.DEFAULT_TIMEZONE
    production_mode: bool = False
    data_directory: str = "data"
    bookings_file: str = "data/bookings.json"
    seats_file: str = "data/seats.json"
    log_directory: str = "logs"
    sweep_interval_seconds: int = constants.SWEEP_INTERVAL_SECONDS
    attendance_window_minutes: int = constants.ATTENDANCE_WINDOW_MINUTES
    min_break_minutes: int = constants.MIN_BREAK_MINUTES


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[str] = None,
) -> AppSettings:
    """Load configuration from the environment and fall back to defaults.

    Values from a `.env` file never override variables already set.
    """

    if env is None:
        load_dotenv(dotenv_path, override=False)
        env = os.environ

    data_directory = env.get("DATA_DIRECTORY", "data")

    return AppSettings(
        timezone=env.get("RESERVATION_TIMEZONE", constants.DEFAULT_TIMEZONE),
        production_mode=_to_bool(env.get("PRODUCTION_MODE"), default=False),
        data_directory=data_directory,
        bookings_file=env.get("BOOKINGS_FILE", os.path.join(data_directory, "bookings.json")),
        seats_file=env.get("SEATS_FILE", os.path.join(data_directory, "seats.json")),
        log_directory=env.get("LOG_DIRECTORY", "logs"),
        sweep_interval_seconds=_to_int(
            env.get("SWEEP_INTERVAL_SECONDS"), constants.SWEEP_INTERVAL_SECONDS
        ),
        attendance_window_minutes=_to_int(
            env.get("ATTENDANCE_WINDOW_MINUTES"), constants.ATTENDANCE_WINDOW_MINUTES
        ),
        min_break_minutes=_to_int(
            env.get("MIN_BREAK_MINUTES"), constants.MIN_BREAK_MINUTES
        ),
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached :class:`AppSettings` instance."""

    return load_settings()
