import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gym_booking import config

logger = logging.getLogger(__name__)


class SlotEntry(BaseModel):
    """An occupied slot. Empty slots are represented by None."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)


DaySchedule = List[Optional[SlotEntry]]
BookingTree = Dict[str, DaySchedule]


class SlotView(BaseModel):
    index: int
    time_range: str
    occupant: str | None = None


class DayAvailability(BaseModel):
    date: str  # ISO format YYYY-MM-DD
    available: int
    occupied: int
    fully_booked: bool = False
    slots: List[SlotView]


def empty_day() -> DaySchedule:
    return [None] * config.SLOTS_PER_DAY


def time_range_for(index: int) -> str:
    return config.TIME_RANGES[index]


def _parse_entry(raw: Any, date_str: str, index: int) -> Optional[SlotEntry]:
    if raw is None:
        return None
    try:
        return SlotEntry.model_validate(raw)
    except ValidationError:
        logger.warning(f"Ignoring malformed entry for {date_str} slot {index}: {raw!r}")
        return None


def _parse_day(raw: Any, date_str: str) -> DaySchedule:
    """Normalizes a stored day to exactly SLOTS_PER_DAY entries.

    Document stores drop trailing nulls from arrays and turn arrays with holes
    into objects keyed by the index, so both shapes are accepted.
    """
    day = empty_day()
    if isinstance(raw, list):
        items = list(enumerate(raw))
    elif isinstance(raw, dict):
        items = []
        for key, value in raw.items():
            try:
                items.append((int(key), value))
            except (TypeError, ValueError):
                logger.warning(f"Ignoring non-numeric slot key {key!r} for {date_str}")
    else:
        logger.warning(f"Ignoring malformed schedule for {date_str}: {raw!r}")
        return day

    for index, value in items:
        if not 0 <= index < config.SLOTS_PER_DAY:
            logger.warning(f"Ignoring out-of-range slot {index} for {date_str}")
            continue
        day[index] = _parse_entry(value, date_str, index)
    return day


def tree_from_document(doc: Any) -> BookingTree:
    """Decodes the stored `bookings` value into a BookingTree."""
    if doc is None:
        return {}
    if not isinstance(doc, dict):
        logger.warning(f"Bookings document has unexpected format: {type(doc).__name__}. Using empty tree.")
        return {}
    return {str(date_str): _parse_day(raw, str(date_str)) for date_str, raw in doc.items()}


def tree_to_document(tree: BookingTree) -> Dict[str, List[Optional[Dict[str, str]]]]:
    return {
        date_str: [entry.model_dump() if entry else None for entry in day]
        for date_str, day in tree.items()
    }
