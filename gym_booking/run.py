import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from gym_booking import availability
from gym_booking.models import DayAvailability
from gym_booking.session import BookingSession
from gym_booking.store import open_store

logger = logging.getLogger(__name__)


def print_availability_report(day_data: DayAvailability):
    """Prints the formatted availability report to stdout."""
    print(f"\n--- Slots for {day_data.date} ---")
    print(f"Available Slots: {day_data.available} out of {len(day_data.slots)}")

    current_range = None
    for slot in day_data.slots:
        if slot.time_range != current_range:
            current_range = slot.time_range
            print(f"\n{current_range}")
        status = f"Booked by: {slot.occupant}" if slot.occupant else "[OPEN]"
        print(f"  #{slot.index + 1} {status}")

    if day_data.fully_booked:
        print("\nAll slots are booked for this date.")
        print("Please select another date or cancel a booking if it's yours.")


@contextmanager
def open_session(store_kind: str, date_str: str | None) -> Iterator[BookingSession]:
    """Yields a started session on the chosen store and tears both down afterwards."""
    remote = open_store(store_kind)
    session = BookingSession(remote)
    if date_str:
        session.select_date(date_str)
    try:
        session.start()
        yield session
    finally:
        session.close()
        remote.close()


def show(date_str: str | None = None, store_kind: str = "auto"):
    with open_session(store_kind, date_str) as session:
        print_availability_report(session.day_availability())


def book(name: str, slot: int, date_str: str | None = None, store_kind: str = "auto") -> bool:
    """Books slot (1-based, as printed in the report) and reports the outcome."""
    with open_session(store_kind, date_str) as session:
        session.select_slot(slot - 1)
        result = session.submit_booking(name)
    print(result.message)
    return result.ok


def cancel(slot: int, date_str: str | None = None, store_kind: str = "auto") -> bool:
    with open_session(store_kind, date_str) as session:
        result = session.cancel_booking(session.selected_date, slot - 1)
    print(result.message)
    return result.ok


def watch(date_str: str | None = None, store_kind: str = "auto", stop_event: threading.Event | None = None):
    """Prints the report for a date every time the bookings change, until interrupted."""
    stop_event = stop_event or threading.Event()
    try:
        with open_session(store_kind, date_str) as session:
            watched = session.selected_date
            logger.info(f"Watching bookings for {watched}")
            session.bookings.listen(
                lambda tree: print_availability_report(availability.day_availability(tree, watched))
            )
            while not stop_event.wait(timeout=1.0):
                pass
    except KeyboardInterrupt:
        logger.info("Stopped watching.")
