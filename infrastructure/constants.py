"""
Constants Module - Centralized configuration values
===================================================

Single source of truth for the default timings, status groupings and
logger names shared by the reservation core.
"""

# Timing defaults
DEFAULT_TIMEZONE = "UTC"
SWEEP_INTERVAL_SECONDS = 5 * 60  # sweeper tick
ATTENDANCE_WINDOW_MINUTES = 20  # measured from the booking start time
MIN_BREAK_MINUTES = 20
MINUTES_PER_DAY = 24 * 60

# Booking status groupings (values match the persisted status strings)
ACTIVE_STATUS_VALUES = frozenset({"pending", "confirmed", "on-break"})

# Seats only ever block a break when they hold one of these statuses
BREAK_GUARD_STATUS_VALUES = frozenset({"pending", "confirmed"})

# Cancellation reasons
CANCELLED_BY_USER = "Cancelled by user"
ATTENDANCE_NOT_CONFIRMED = "Attendance not confirmed"

# Logger names
LOGGER_BOOKING_STORE = "BookingStore"
LOGGER_SEAT_STORE = "SeatStore"
LOGGER_CONFLICT_RESOLVER = "ConflictResolver"
LOGGER_LIFECYCLE = "BookingLifecycle"
LOGGER_SWEEPER = "ReservationSweeper"
LOGGER_AVAILABILITY = "AvailabilityProjector"
LOGGER_NOTIFICATIONS = "NotificationHub"

RESERVATION_LOGGERS = (
    LOGGER_BOOKING_STORE,
    LOGGER_SEAT_STORE,
    LOGGER_CONFLICT_RESOLVER,
    LOGGER_LIFECYCLE,
    LOGGER_SWEEPER,
    LOGGER_AVAILABILITY,
    LOGGER_NOTIFICATIONS,
)
