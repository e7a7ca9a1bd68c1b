import logging
from datetime import datetime

from gym_booking import config
from gym_booking.availability import slot_at
from gym_booking.errors import ConflictError, ConflictReason, ValidationError, ValidationReason
from gym_booking.models import BookingTree, SlotEntry, empty_day, tree_to_document
from gym_booking.store import RemoteStore

logger = logging.getLogger(__name__)


def _copy_tree(tree: BookingTree) -> BookingTree:
    # Entries are frozen, so copying the day lists is enough.
    return {date_str: list(day) for date_str, day in tree.items()}


def _check_date_format(date_str: str):
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except (TypeError, ValueError) as e:
        raise ValidationError(ValidationReason.INVALID_DATE, str(date_str)) from e


def _check_slot_range(slot_index):
    if isinstance(slot_index, bool) or not isinstance(slot_index, int):
        raise ValidationError(ValidationReason.INVALID_SLOT, repr(slot_index))
    if not 0 <= slot_index < config.SLOTS_PER_DAY:
        raise ValidationError(ValidationReason.INVALID_SLOT, str(slot_index))


def create_booking(tree: BookingTree, date_str: str, slot_index: int | None, occupant_name: str) -> BookingTree:
    """Returns a new tree with the slot booked for occupant_name.

    Checks run in a fixed order and the first failure is raised. The input
    tree is never modified.

    Raises:
        ValidationError: name, date or slot missing or malformed.
        ConflictError: the slot is already occupied in this snapshot.
    """
    name = (occupant_name or "").strip()
    if not name:
        raise ValidationError(ValidationReason.MISSING_NAME)
    if not date_str:
        raise ValidationError(ValidationReason.MISSING_DATE)
    if slot_index is None:
        raise ValidationError(ValidationReason.MISSING_SLOT)
    _check_date_format(date_str)
    _check_slot_range(slot_index)

    current = slot_at(tree, date_str, slot_index)
    if current:
        raise ConflictError(
            ConflictReason.SLOT_ALREADY_BOOKED, f"{date_str} slot {slot_index} is held by {current.name}"
        )

    updated = _copy_tree(tree)
    day = updated.setdefault(date_str, empty_day())
    day[slot_index] = SlotEntry(name=name)
    return updated


def cancel_booking(tree: BookingTree, date_str: str, slot_index: int) -> BookingTree:
    """Returns a new tree with the slot emptied.

    Anyone may cancel any booking. Cancelling a slot that holds no booking
    raises ValidationError(NO_SUCH_BOOKING) and leaves the tree as it was.
    """
    if date_str not in tree:
        raise ValidationError(ValidationReason.NO_SUCH_BOOKING, f"no bookings on {date_str}")
    if isinstance(slot_index, bool) or not isinstance(slot_index, int) or not slot_at(tree, date_str, slot_index):
        raise ValidationError(ValidationReason.NO_SUCH_BOOKING, f"{date_str} slot {slot_index} is not booked")

    updated = _copy_tree(tree)
    updated[date_str][slot_index] = None
    return updated


class BookingController:
    """Applies booking intents and pushes the whole resulting tree to the store.

    The local snapshot is left alone; it catches up when the store echoes the
    write back through its subscription.
    """

    def __init__(self, store: RemoteStore, path: str = config.BOOKINGS_PATH):
        self.store = store
        self.path = path

    def _push(self, tree: BookingTree):
        # Whole-tree merge-write: concurrent writers are last-write-wins.
        self.store.write(self.path, tree_to_document(tree))

    def book(self, tree: BookingTree, date_str: str, slot_index: int | None, occupant_name: str) -> BookingTree:
        updated = create_booking(tree, date_str, slot_index, occupant_name)
        self._push(updated)
        logger.info(f"Booked {date_str} slot {slot_index} for {occupant_name.strip()}")
        return updated

    def cancel(self, tree: BookingTree, date_str: str, slot_index: int) -> BookingTree:
        updated = cancel_booking(tree, date_str, slot_index)
        self._push(updated)
        logger.info(f"Cancelled {date_str} slot {slot_index}")
        return updated
