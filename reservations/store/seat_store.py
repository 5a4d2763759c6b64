"""
Seat catalogue storage with persistent JSON backing.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from infrastructure.constants import LOGGER_SEAT_STORE
from reservations.errors import BookingNotFoundError, StorageError
from reservations.models import Seat, SeatStatus
from reservations.store.booking_repository import JsonRecordRepository
from reservations.store.serializer import DEFAULT_SEAT_SERIALIZER, SeatRecordSerializer


class SeatStore:
    """
    Stores seats and their cached occupancy status.

    The cached ``status`` is a best-effort projection written as a side
    effect of booking transitions; booking records stay authoritative.
    """

    def __init__(
        self,
        file_path: Optional[str] = None,
        *,
        serializer: Optional[SeatRecordSerializer] = None,
    ) -> None:
        self.logger = logging.getLogger(LOGGER_SEAT_STORE)
        self.file_path = file_path
        self._serializer = serializer or DEFAULT_SEAT_SERIALIZER
        self.repository = JsonRecordRepository(file_path, logger=self.logger)
        self._lock = threading.RLock()
        self._seats: Dict[str, Seat] = {}

        for payload in self.repository.load():
            try:
                seat = self._serializer.from_storage(payload)
            except (TypeError, ValueError) as exc:
                self.logger.error("Skipping unreadable seat record: %s", exc)
                continue
            self._seats[seat.seat_id] = seat

        self.logger.info(
            "SeatStore initialized with %s seats from %s",
            len(self._seats),
            self.file_path or '<memory>',
        )

    def add(self, seat: Seat) -> Seat:
        with self._lock:
            previous = self._seats.get(seat.seat_id)
            self._seats[seat.seat_id] = seat
            try:
                self._save()
            except StorageError:
                if previous is None:
                    del self._seats[seat.seat_id]
                else:
                    self._seats[seat.seat_id] = previous
                raise
        self.logger.debug("Saved seat %s (%s)", seat.seat_id, seat)
        return seat

    def get(self, seat_id: str) -> Optional[Seat]:
        with self._lock:
            return self._seats.get(seat_id)

    def require(self, seat_id: str) -> Seat:
        seat = self.get(seat_id)
        if seat is None:
            raise BookingNotFoundError(f"Seat {seat_id} not found")
        return seat

    def list_seats(
        self,
        *,
        building: Optional[str] = None,
        floor: Optional[int] = None,
        section: Optional[str] = None,
        status: Optional[SeatStatus] = None,
    ) -> List[Seat]:
        """Return seats matching the filters, ordered by floor then number."""
        with self._lock:
            seats = list(self._seats.values())
        matches = [
            seat
            for seat in seats
            if (building is None or seat.building == building)
            and (floor is None or seat.floor == floor)
            and (section is None or seat.section == section)
            and (status is None or seat.status is status)
        ]
        matches.sort(key=lambda s: (s.floor if s.floor is not None else -1, s.seat_number))
        return matches

    def set_status(self, seat_id: str, status: SeatStatus) -> bool:
        """
        Update the cached seat status.

        Returns:
            bool: False when the seat does not exist
        """
        with self._lock:
            seat = self._seats.get(seat_id)
            if seat is None:
                self.logger.warning("Seat %s not found for status update", seat_id)
                return False
            if seat.status is status:
                return True
            self._seats[seat_id] = replace(seat, status=status)
            try:
                self._save()
            except StorageError:
                self._seats[seat_id] = seat
                raise

        self.logger.info("Seat %s status %s -> %s", seat_id, seat.status.value, status.value)
        return True

    def _save(self) -> None:
        self.repository.save(
            self._serializer.to_storage(seat) for seat in self._seats.values()
        )
