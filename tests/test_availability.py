from gym_booking import availability
from gym_booking.models import SlotEntry


def _day(*names):
    day = [SlotEntry(name=n) if n else None for n in names]
    return day + [None] * (8 - len(day))


def test_available_slot_count_absent_date():
    assert availability.available_slot_count({}, "2024-06-01") == 8
    assert availability.occupied_count({}, "2024-06-01") == 0


def test_available_slot_count_counts_occupied_only():
    tree = {"2024-06-01": _day("Alice", None, "Bob")}
    assert availability.available_slot_count(tree, "2024-06-01") == 6
    assert availability.occupied_count(tree, "2024-06-01") == 2


def test_available_plus_occupied_is_eight():
    trees = [
        {},
        {"2024-06-01": _day()},
        {"2024-06-01": _day("A", "B", "C", "D", "E", "F", "G", "H")},
        {"2024-06-01": _day(None, "B", None, "D")},
    ]
    for tree in trees:
        for date_str in ("2024-06-01", "2024-06-02"):
            total = availability.available_slot_count(tree, date_str) + availability.occupied_count(tree, date_str)
            assert total == 8


def test_is_fully_booked():
    tree = {"2024-06-01": _day("A", "B", "C", "D", "E", "F", "G", "H")}
    assert availability.is_fully_booked(tree, "2024-06-01") is True
    assert availability.is_fully_booked(tree, "2024-06-02") is False


def test_slot_at():
    tree = {"2024-06-01": _day(None, "Bob")}
    assert availability.slot_at(tree, "2024-06-01", 1) == SlotEntry(name="Bob")
    assert availability.slot_at(tree, "2024-06-01", 0) is None
    assert availability.slot_at(tree, "2024-06-02", 1) is None
    assert availability.slot_at(tree, "2024-06-01", 8) is None
    assert availability.slot_at(tree, "2024-06-01", -1) is None


def test_day_availability():
    tree = {"2024-06-01": _day("Alice", None, None, None, "Bob")}
    day = availability.day_availability(tree, "2024-06-01")

    assert day.date == "2024-06-01"
    assert day.available == 6
    assert day.occupied == 2
    assert len(day.slots) == 8
    assert day.slots[0].occupant == "Alice"
    assert day.slots[0].time_range == "18:30 - 19:30"
    assert day.slots[4].occupant == "Bob"
    assert day.slots[4].time_range == "19:30 - 20:30"
    assert day.slots[1].occupant is None


def test_day_availability_fully_booked():
    tree = {"2024-06-01": _day("A", "B", "C", "D", "E", "F", "G", "H")}
    assert availability.day_availability(tree, "2024-06-01").fully_booked is True
    assert availability.day_availability(tree, "2024-06-02").fully_booked is False
