import threading
from unittest.mock import patch

import pytest

from gym_booking import run
from gym_booking.models import DayAvailability, SlotView
from gym_booking.store import MemoryStore


@pytest.fixture
def remote():
    store = MemoryStore()
    with patch("gym_booking.run.open_store", return_value=store):
        yield store


def test_print_availability_report(capsys):
    slots = [SlotView(index=i, time_range="18:30 - 19:30" if i < 4 else "19:30 - 20:30") for i in range(8)]
    slots[0] = SlotView(index=0, time_range="18:30 - 19:30", occupant="Alice")
    run.print_availability_report(DayAvailability(date="2024-06-01", available=7, occupied=1, slots=slots))

    out = capsys.readouterr().out
    assert "--- Slots for 2024-06-01 ---" in out
    assert "Available Slots: 7 out of 8" in out
    assert "#1 Booked by: Alice" in out
    assert "#8 [OPEN]" in out
    assert out.count("18:30 - 19:30") == 1
    assert "All slots are booked" not in out


def test_print_availability_report_fully_booked(capsys):
    slots = [SlotView(index=i, time_range="18:30 - 19:30", occupant=f"P{i}") for i in range(8)]
    run.print_availability_report(DayAvailability(date="2024-06-01", available=0, occupied=8, fully_booked=True, slots=slots))
    assert "All slots are booked for this date." in capsys.readouterr().out


def test_book_and_show(remote, capsys):
    assert run.book("Alice", 1, date_str="2024-06-01", store_kind="memory") is True
    run.show(date_str="2024-06-01", store_kind="memory")

    out = capsys.readouterr().out
    assert "Booked 2024-06-01 slot 1 for Alice." in out
    assert "#1 Booked by: Alice" in out
    assert remote.read("bookings")["2024-06-01"][0] == {"name": "Alice"}
    # Sessions release their subscriptions
    assert remote.subscriber_count == 0


def test_book_taken_slot(remote, capsys):
    run.book("Alice", 2, date_str="2024-06-01")
    assert run.book("Bob", 2, date_str="2024-06-01") is False
    assert "someone else" in capsys.readouterr().out


def test_book_slot_out_of_range(remote, capsys):
    assert run.book("Alice", 9, date_str="2024-06-01") is False
    assert "Please select one of the 8 slots." in capsys.readouterr().out


def test_cancel(remote, capsys):
    run.book("Alice", 3, date_str="2024-06-01")
    assert run.cancel(3, date_str="2024-06-01") is True
    assert run.cancel(3, date_str="2024-06-01") is False
    assert remote.read("bookings")["2024-06-01"][2] is None


def test_watch_prints_until_stopped(remote, capsys):
    stop_event = threading.Event()
    stop_event.set()
    run.watch(date_str="2024-06-01", stop_event=stop_event)

    assert "--- Slots for 2024-06-01 ---" in capsys.readouterr().out
    assert remote.subscriber_count == 0
