"""
Booking Store

This module provides the BookingStore class that owns every booking record.
It handles storage, filtered retrieval and compare-and-swap updates of
bookings with JSON persistence.
"""

import logging
import threading
from collections import Counter
from datetime import date
from typing import Dict, Iterable, List, Optional

from infrastructure.constants import LOGGER_BOOKING_STORE
from reservations.errors import BookingNotFoundError, StaleRecordError, StorageError
from reservations.models import ACTIVE_STATUSES, Booking, BookingStatus
from reservations.store.booking_repository import JsonRecordRepository
from reservations.store.serializer import (
    DEFAULT_BOOKING_SERIALIZER,
    BookingRecordSerializer,
)


class BookingStore:
    """
    Manages the storage, retrieval and updates of booking records.

    Every stored booking carries a ``revision``. :meth:`replace` only
    accepts a booking whose revision matches the stored one, so a writer
    working from a stale read fails with :class:`StaleRecordError` instead
    of clobbering a concurrent change.

    Attributes:
        file_path (Optional[str]): Path to the JSON file, ``None`` for memory only
        logger (logging.Logger): Logger instance for this class
    """

    def __init__(
        self,
        file_path: Optional[str] = None,
        *,
        serializer: Optional[BookingRecordSerializer] = None,
    ):
        """
        Initialize the BookingStore.

        Args:
            file_path: Path to the JSON file for persistence. ``None`` keeps records in memory.
            serializer: Converter between bookings and stored payloads.
        """
        self.logger = logging.getLogger(LOGGER_BOOKING_STORE)
        self.file_path = file_path
        self._serializer = serializer or DEFAULT_BOOKING_SERIALIZER
        self.repository = JsonRecordRepository(file_path, logger=self.logger)
        self._lock = threading.RLock()
        self._bookings: Dict[str, Booking] = {}

        repaired = self._load()
        if repaired:
            self.logger.warning(
                "Normalised %s stored bookings with inconsistent status or missing fingerprint",
                repaired,
            )
            self._save()
        self.logger.info(
            "BOOKING STORE INITIALIZED | file=%s | bookings=%s | status=%s",
            self.file_path or '<memory>',
            len(self._bookings),
            self.status_counts(),
        )

    def add(self, booking: Booking) -> Booking:
        """
        Store a new booking.

        Returns:
            Booking: The stored booking with its first revision assigned

        Raises:
            ValueError: If a booking with the same id already exists
        """
        with self._lock:
            if booking.booking_id in self._bookings:
                raise ValueError(f"Booking {booking.booking_id} already exists")
            stored = booking.evolve(revision=1)
            self._bookings[stored.booking_id] = stored
            try:
                self._save()
            except StorageError:
                del self._bookings[stored.booking_id]
                raise

        self.logger.info(
            "BOOKING STORED | id=%s | member=%s | seat=%s | %s %s | device=%s",
            stored.booking_id,
            stored.member_id,
            stored.seat_id,
            stored.on_date.isoformat(),
            stored.window,
            stored.device_id[:12],
        )
        return stored

    def get(self, booking_id: str) -> Optional[Booking]:
        """Retrieve a single booking by id, or ``None``."""
        with self._lock:
            return self._bookings.get(booking_id)

    def require(self, booking_id: str) -> Booking:
        booking = self.get(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def replace(self, booking: Booking) -> Booking:
        """
        Swap in an updated booking if nobody changed it since it was read.

        Args:
            booking: Updated booking still carrying the revision it was read at

        Returns:
            Booking: The stored booking with its revision bumped

        Raises:
            BookingNotFoundError: Unknown booking id
            StaleRecordError: The stored revision moved on
        """
        with self._lock:
            current = self._bookings.get(booking.booking_id)
            if current is None:
                raise BookingNotFoundError(f"Booking {booking.booking_id} not found")
            if current.revision != booking.revision:
                raise StaleRecordError(booking.booking_id, booking.revision, current.revision)

            stored = booking.evolve(revision=current.revision + 1)
            self._bookings[stored.booking_id] = stored
            try:
                self._save()
            except StorageError:
                self._bookings[stored.booking_id] = current
                raise

        if current.status is not stored.status:
            self.logger.info(
                "BOOKING STATUS UPDATED | id=%s | member=%s | seat=%s | %s %s | %s -> %s",
                stored.booking_id,
                stored.member_id,
                stored.seat_id,
                stored.on_date.isoformat(),
                stored.window,
                current.status.value,
                stored.status.value,
            )
        else:
            self.logger.debug("Booking %s updated (revision %s)", stored.booking_id, stored.revision)
        return stored

    def find(
        self,
        *,
        seat_id: Optional[str] = None,
        device_id: Optional[str] = None,
        member_id: Optional[str] = None,
        on_date: Optional[date] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
        exclude_id: Optional[str] = None,
    ) -> List[Booking]:
        """Return bookings matching every provided filter."""
        wanted = frozenset(statuses) if statuses is not None else None
        with self._lock:
            snapshot = list(self._bookings.values())

        matches = [
            booking
            for booking in snapshot
            if (seat_id is None or booking.seat_id == seat_id)
            and (device_id is None or booking.device_id == device_id)
            and (member_id is None or booking.member_id == member_id)
            and (on_date is None or booking.on_date == on_date)
            and (wanted is None or booking.status in wanted)
            and (exclude_id is None or booking.booking_id != exclude_id)
        ]
        self.logger.debug(
            "Booking query seat=%s device=%s member=%s date=%s -> %s matches",
            seat_id,
            device_id[:12] if device_id else None,
            member_id,
            on_date,
            len(matches),
        )
        return matches

    def active_bookings(self, member_id: Optional[str] = None) -> List[Booking]:
        """Return every pending, confirmed or on-break booking."""
        return self.find(member_id=member_id, statuses=ACTIVE_STATUSES)

    def list_bookings(self) -> List[Booking]:
        with self._lock:
            return list(self._bookings.values())

    def status_counts(self) -> Dict[str, int]:
        """Get counts of bookings by status."""
        with self._lock:
            return dict(Counter(b.status.value for b in self._bookings.values()))

    def _load(self) -> int:
        repaired = 0
        for payload in self.repository.load():
            try:
                booking, needed_repair = self._serializer.hydrate(payload)
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.error(
                    "Skipping unreadable booking record %s: %s",
                    payload.get('id') if isinstance(payload, dict) else '<unknown>',
                    exc,
                )
                continue
            self._bookings[booking.booking_id] = booking
            if needed_repair:
                repaired += 1
        return repaired

    def _save(self) -> None:
        self.repository.save(
            self._serializer.to_storage(booking) for booking in self._bookings.values()
        )
