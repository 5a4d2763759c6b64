"""Fire-and-forget booking events."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from infrastructure.constants import LOGGER_NOTIFICATIONS
from reservations.models import Booking

BOOKED = "booked"
CONFIRMED = "confirmed"
BREAK_STARTED = "break-started"
BREAK_ENDED = "break-ended"
CANCELLED = "cancelled"
COMPLETED = "completed"
FREED = "freed"

EVENTS = (BOOKED, CONFIRMED, BREAK_STARTED, BREAK_ENDED, CANCELLED, COMPLETED, FREED)

Subscriber = Callable[[str, Dict[str, Any]], Any]


def booking_event_payload(booking: Booking, **extra: Any) -> Dict[str, Any]:
    """Flatten the fields subscribers usually need from a booking."""

    payload: Dict[str, Any] = {
        "booking_id": booking.booking_id,
        "member_id": booking.member_id,
        "seat_id": booking.seat_id,
        "date": booking.on_date.isoformat(),
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "status": booking.status.value,
    }
    payload.update(extra)
    return payload


class NotificationHub:
    """
    Deliver booking events to registered subscribers.

    Delivery never feeds back into the booking operation that emitted the
    event: a failing subscriber is logged and the remaining ones still run.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(LOGGER_NOTIFICATIONS)
        self._subscribers: Dict[Optional[str], List[Subscriber]] = defaultdict(list)

    def subscribe(self, callback: Subscriber, event: Optional[str] = None) -> None:
        """Register ``callback`` for ``event``, or for every event when ``None``."""
        if event is not None and event not in EVENTS:
            raise ValueError(f"Unknown notification event: {event}")
        self._subscribers[event].append(callback)

    def unsubscribe(self, callback: Subscriber, event: Optional[str] = None) -> None:
        callbacks = self._subscribers.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event: str, payload: Dict[str, Any]) -> int:
        """
        Send ``event`` to its subscribers.

        Returns:
            int: Number of subscribers that accepted the event
        """
        delivered = 0
        for callback in list(self._subscribers.get(event, [])) + list(self._subscribers.get(None, [])):
            try:
                callback(event, dict(payload))
            except Exception as exc:
                self.logger.error(
                    "Subscriber %r failed for %s event: %s",
                    callback,
                    event,
                    exc,
                    exc_info=True,
                )
                continue
            delivered += 1

        self.logger.debug("Event %s delivered to %s subscribers", event, delivered)
        return delivered
