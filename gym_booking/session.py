import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict

from gym_booking import availability
from gym_booking.controller import BookingController
from gym_booking.errors import (
    BookingError,
    ConflictError,
    NotReadyError,
    StoreError,
    ValidationError,
    ValidationReason,
)
from gym_booking.models import BookingTree, DayAvailability
from gym_booking.store import RemoteStore
from gym_booking.sync import BookingStore

logger = logging.getLogger(__name__)

VALIDATION_MESSAGES: Dict[str, str] = {
    ValidationReason.MISSING_NAME: "Please enter your name before booking.",
    ValidationReason.MISSING_DATE: "Please select a date before booking.",
    ValidationReason.MISSING_SLOT: "Please select a slot before booking.",
    ValidationReason.INVALID_DATE: "Please select a valid date (YYYY-MM-DD).",
    ValidationReason.INVALID_SLOT: "Please select one of the 8 slots.",
    ValidationReason.NO_SUCH_BOOKING: "There is no booking in that slot to cancel.",
}
CONFLICT_MESSAGE = "That slot was just booked by someone else. Please pick another slot."
STORE_MESSAGE = "Could not reach the booking store. Please try again."
NOT_READY_MESSAGE = "Bookings are still loading. Please wait a moment."


@dataclass
class BookingResult:
    ok: bool
    error: BookingError | None = None
    message: str = ""


def describe_error(error: BookingError) -> str:
    """Maps a booking error to the message shown to the user."""
    if isinstance(error, ValidationError):
        return VALIDATION_MESSAGES[error.reason]
    if isinstance(error, ConflictError):
        return CONFLICT_MESSAGE
    if isinstance(error, StoreError):
        return STORE_MESSAGE
    if isinstance(error, NotReadyError):
        return NOT_READY_MESSAGE
    return str(error)


class BookingSession:
    """Everything a presentation needs for one viewer's session.

    Owns the booking mirror and its subscription; use it as a context manager
    (or call `close()`) so the subscription ends with the session.
    """

    def __init__(self, remote: RemoteStore, today: date | None = None):
        self.remote = remote
        self.bookings = BookingStore(remote)
        self.controller = BookingController(remote, self.bookings.path)
        self._selected_date = (today or date.today()).isoformat()
        self._selected_slot: int | None = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def start(self):
        self.bookings.start()

    def close(self):
        self.bookings.close()

    @property
    def selected_date(self) -> str:
        return self._selected_date

    @property
    def selected_slot(self) -> int | None:
        return self._selected_slot

    def select_date(self, date_str: str):
        self._selected_date = date_str
        self._selected_slot = None

    def select_slot(self, index: int | None):
        self._selected_slot = index

    def get_booking_snapshot(self) -> BookingTree:
        return self.bookings.snapshot()

    def available_slot_count(self, date_str: str | None = None) -> int:
        return availability.available_slot_count(self.get_booking_snapshot(), date_str or self._selected_date)

    def day_availability(self, date_str: str | None = None) -> DayAvailability:
        return availability.day_availability(self.get_booking_snapshot(), date_str or self._selected_date)

    def submit_booking(
        self, name: str, date_str: str | None = None, slot_index: int | None = None
    ) -> BookingResult:
        """Books a slot, defaulting to the current date and slot selection."""
        date_str = self._selected_date if date_str is None else date_str
        slot_index = self._selected_slot if slot_index is None else slot_index
        try:
            self.controller.book(self.get_booking_snapshot(), date_str, slot_index, name)
        except ConflictError as e:
            logger.warning(f"Booking conflict: {e}")
            self._refresh_after_conflict()
            return BookingResult(ok=False, error=e, message=describe_error(e))
        except BookingError as e:
            logger.info(f"Booking rejected: {e}")
            return BookingResult(ok=False, error=e, message=describe_error(e))

        self._selected_slot = None
        return BookingResult(ok=True, message=f"Booked {date_str} slot {slot_index + 1} for {name.strip()}.")

    def cancel_booking(self, date_str: str, slot_index: int) -> BookingResult:
        try:
            self.controller.cancel(self.get_booking_snapshot(), date_str, slot_index)
        except BookingError as e:
            logger.info(f"Cancellation rejected: {e}")
            return BookingResult(ok=False, error=e, message=describe_error(e))
        return BookingResult(ok=True, message=f"Cancelled {date_str} slot {slot_index + 1}.")

    def _refresh_after_conflict(self):
        try:
            self.bookings.refresh()
        except StoreError as e:
            logger.error(f"Failed to refresh bookings after conflict: {e}")
