"""Booking and seat storage."""

from .booking_repository import JsonRecordRepository
from .booking_store import BookingStore
from .seat_store import SeatStore
from .serializer import BookingRecordSerializer, SeatRecordSerializer

__all__ = [
    "JsonRecordRepository",
    "BookingStore",
    "SeatStore",
    "BookingRecordSerializer",
    "SeatRecordSerializer",
]
