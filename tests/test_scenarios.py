"""End-to-end booking scenarios against an in-memory store."""
from unittest.mock import MagicMock

import pytest

from gym_booking import availability
from gym_booking.controller import cancel_booking, create_booking
from gym_booking.errors import ConflictError, ConflictReason, ValidationError, ValidationReason
from gym_booking.models import SlotEntry
from gym_booking.store import MemoryStore
from gym_booking.sync import BookingStore

DATE = "2024-06-01"


@pytest.fixture
def tree_a():
    return create_booking({}, DATE, 0, "Alice")


def test_scenario_a_first_booking(tree_a):
    assert len(tree_a[DATE]) == 8
    assert tree_a[DATE][0] == SlotEntry(name="Alice")
    assert availability.available_slot_count(tree_a, DATE) == 7


def test_scenario_b_double_booking(tree_a):
    before = {d: list(day) for d, day in tree_a.items()}
    with pytest.raises(ConflictError) as exc_info:
        create_booking(tree_a, DATE, 0, "Bob")
    assert exc_info.value.reason == ConflictReason.SLOT_ALREADY_BOOKED
    assert tree_a == before


def test_scenario_c_cancel(tree_a):
    tree = cancel_booking(tree_a, DATE, 0)
    assert availability.slot_at(tree, DATE, 0) is None
    assert availability.available_slot_count(tree, DATE) == 8


def test_scenario_d_missing_date():
    with pytest.raises(ValidationError) as exc_info:
        create_booking({}, "", 0, "Alice")
    assert exc_info.value.reason == ValidationReason.MISSING_DATE


def test_scenario_e_bootstrap_empty_store():
    remote = MemoryStore()
    with BookingStore(remote) as bookings:
        assert bookings.snapshot() == {}
    assert remote.read("bookings") == {}


def test_scenario_f_null_after_payload():
    remote = MagicMock()
    remote.read.return_value = {}
    bookings = BookingStore(remote)
    bookings.start()
    notify = remote.subscribe.call_args.args[1]

    notify({DATE: [{"name": "Alice"}] + [None] * 7})
    notify(None)

    assert bookings.snapshot()[DATE][0] == SlotEntry(name="Alice")


def test_cancel_twice_leaves_tree_unchanged(tree_a):
    tree = cancel_booking(tree_a, DATE, 0)
    with pytest.raises(ValidationError):
        cancel_booking(tree, DATE, 0)
    assert tree[DATE] == [None] * 8
