class ValidationReason:
    MISSING_NAME = "missing_name"
    MISSING_DATE = "missing_date"
    MISSING_SLOT = "missing_slot"
    INVALID_DATE = "invalid_date"
    INVALID_SLOT = "invalid_slot"
    NO_SUCH_BOOKING = "no_such_booking"


class ConflictReason:
    SLOT_ALREADY_BOOKED = "slot_already_booked"


class BookingError(Exception):
    """Base class for everything the booking core reports back to a user."""


class ValidationError(BookingError):
    """The intent itself is incomplete or refers to nothing."""

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


class ConflictError(BookingError):
    """The snapshot changed under the user, e.g. someone took the slot first."""

    def __init__(self, reason: str, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(f"{reason}: {detail}" if detail else reason)


class StoreError(BookingError):
    """The remote store failed a read or write."""


class NotReadyError(BookingError):
    """The booking snapshot was requested before the initial load finished."""
