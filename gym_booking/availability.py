from typing import Optional

from gym_booking import config
from gym_booking.models import BookingTree, DayAvailability, SlotEntry, SlotView, time_range_for


def occupied_count(tree: BookingTree, date_str: str) -> int:
    """Counts occupied entries; holes and None markers are not bookings."""
    day = tree.get(date_str)
    if not day:
        return 0
    return sum(1 for entry in day if entry)


def available_slot_count(tree: BookingTree, date_str: str) -> int:
    return config.SLOTS_PER_DAY - occupied_count(tree, date_str)


def is_fully_booked(tree: BookingTree, date_str: str) -> bool:
    return available_slot_count(tree, date_str) == 0


def slot_at(tree: BookingTree, date_str: str, index: int) -> Optional[SlotEntry]:
    """Returns the occupant of a slot, or None when it is empty or unknown."""
    day = tree.get(date_str)
    if not day or not 0 <= index < len(day):
        return None
    return day[index]


def day_availability(tree: BookingTree, date_str: str) -> DayAvailability:
    """Builds the per-slot view of a single date."""
    slots = []
    for index in range(config.SLOTS_PER_DAY):
        entry = slot_at(tree, date_str, index)
        slots.append(
            SlotView(
                index=index,
                time_range=time_range_for(index),
                occupant=entry.name if entry else None,
            )
        )
    occupied = occupied_count(tree, date_str)
    return DayAvailability(
        date=date_str,
        available=config.SLOTS_PER_DAY - occupied,
        occupied=occupied,
        fully_booked=is_fully_booked(tree, date_str),
        slots=slots,
    )
