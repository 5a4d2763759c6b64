import pytest

from reservations.errors import BookingNotFoundError
from reservations.models import SeatStatus
from reservations.store import SeatStore
from tests.helpers import make_seat


def test_list_seats_filters_and_orders_by_floor_then_number():
    store = SeatStore()
    store.add(make_seat("S3", seat_number="03", floor=2))
    store.add(make_seat("S1", seat_number="01", floor=1))
    store.add(make_seat("S2", seat_number="02", floor=1, section="B"))
    store.add(make_seat("S4", seat_number="01", floor=1, building="Annex"))

    assert [s.seat_id for s in store.list_seats(building="Main Library")] == ["S1", "S2", "S3"]
    assert [s.seat_id for s in store.list_seats(floor=1, section="A")] == ["S1", "S4"]


def test_set_status_updates_cache_and_reports_missing_seat():
    store = SeatStore()
    store.add(make_seat("S1"))

    assert store.set_status("S1", SeatStatus.OCCUPIED) is True
    assert store.require("S1").status is SeatStatus.OCCUPIED
    assert store.list_seats(status=SeatStatus.OCCUPIED)[0].seat_id == "S1"
    assert store.set_status("missing", SeatStatus.AVAILABLE) is False


def test_require_unknown_seat_raises_not_found():
    with pytest.raises(BookingNotFoundError):
        SeatStore().require("missing")


def test_seats_persist_across_instances(tmp_path):
    path = tmp_path / "seats.json"
    store = SeatStore(str(path))
    store.add(make_seat("S1"))
    store.set_status("S1", SeatStatus.MAINTENANCE)

    reloaded = SeatStore(str(path))

    assert reloaded.require("S1").status is SeatStatus.MAINTENANCE
