"""Unit tests for the free-slot calculator."""

import random
from datetime import time, timedelta

import pytest

from booking_core.domain import TimeWindow, WorkingHours, from_minutes, to_minutes
from booking_core.services.availability import (
    ALREADY_BOOKED,
    DURING_BREAK,
    OUTSIDE_WORKING_HOURS,
    compute_slots,
    find_conflict,
    granularity_minutes,
)

HOURS = WorkingHours(start=time(9, 0), end=time(17, 0), break_start=time(12, 0), break_end=time(13, 0))
BREAK = TimeWindow(time(12, 0), time(13, 0))


def window(start: str, end: str) -> TimeWindow:
    return TimeWindow(time.fromisoformat(start), time.fromisoformat(end))


class TestComputeSlots:
    """Tests for compute_slots."""

    def test_example_day(self):
        """Booked 10:00 and the lunch break are left out, the rest of the day is offered."""
        slots = compute_slots(HOURS, BREAK, [window("10:00", "10:30")], is_time_off=False)

        assert slots[0] == window("09:00", "09:30")
        assert slots[-1] == window("16:30", "17:00")
        assert window("10:00", "10:30") not in slots
        assert window("12:00", "12:30") not in slots
        assert window("12:30", "13:00") not in slots
        # 16 half hours minus the booked one and two break ones
        assert len(slots) == 13

    def test_slots_are_ascending(self):
        slots = compute_slots(HOURS, BREAK, [], is_time_off=False)
        assert slots == sorted(slots)

    def test_time_off_returns_no_slots(self):
        assert compute_slots(HOURS, BREAK, [], is_time_off=True) == []

    def test_no_working_hours_returns_no_slots(self):
        assert compute_slots(None, None, [], is_time_off=False) == []

    def test_partial_trailing_slot_is_dropped(self):
        """A day ending off the grid does not produce a short final slot."""
        hours = WorkingHours(start=time(9, 0), end=time(10, 45))
        slots = compute_slots(hours, None, [], is_time_off=False)
        assert slots[-1] == window("10:00", "10:30")

    def test_booked_interval_off_grid_blocks_both_neighbours(self):
        slots = compute_slots(HOURS, BREAK, [window("09:15", "09:45")], is_time_off=False)
        assert window("09:00", "09:30") not in slots
        assert window("09:30", "10:00") not in slots
        assert window("10:00", "10:30") in slots

    def test_custom_granularity(self):
        hours = WorkingHours(start=time(8, 0), end=time(9, 0))
        slots = compute_slots(hours, None, [], is_time_off=False, granularity=timedelta(minutes=15))
        assert [str(s) for s in slots] == ["08:00-08:15", "08:15-08:30", "08:30-08:45", "08:45-09:00"]

    def test_invalid_granularity(self):
        with pytest.raises(ValueError):
            compute_slots(HOURS, BREAK, [], is_time_off=False, granularity=timedelta(seconds=90))

    def test_repeated_calls_are_identical(self):
        booked = [window("14:00", "14:30"), window("09:30", "10:00")]
        first = compute_slots(HOURS, BREAK, booked, is_time_off=False)
        second = compute_slots(HOURS, BREAK, booked, is_time_off=False)
        assert first == second


def random_day(rng: random.Random):
    step = rng.choice([15, 20, 30, 60])
    start = rng.randrange(6 * 60, 10 * 60, 5)
    end = start + rng.randrange(2 * 60, 10 * 60, 5)
    break_window = None
    break_start = break_end = None
    if rng.random() < 0.7:
        b_start = rng.randrange(start, end - 15, 5)
        b_end = min(end, b_start + rng.choice([15, 30, 45, 60]))
        break_start, break_end = from_minutes(b_start), from_minutes(b_end)
        break_window = TimeWindow(break_start, break_end)
    hours = WorkingHours(from_minutes(start), from_minutes(end), break_start, break_end)

    booked = []
    for _ in range(rng.randrange(0, 6)):
        b_start = rng.randrange(start, end - 10, 5)
        booked.append(TimeWindow(from_minutes(b_start), from_minutes(min(end, b_start + rng.choice([10, 30, 45])))))
    return hours, break_window, booked, step


@pytest.mark.parametrize("seed", range(25))
def test_slot_properties_hold_for_random_days(seed):
    """Every slot is one granularity wide, on the grid, and free."""
    hours, break_window, booked, step = random_day(random.Random(seed))

    slots = compute_slots(hours, break_window, booked, False, timedelta(minutes=step))

    for slot in slots:
        assert slot.duration_minutes == step
        assert (to_minutes(slot.start) - to_minutes(hours.start)) % step == 0
        assert hours.window.contains(slot)
        assert break_window is None or not slot.overlaps(break_window)
        assert not any(slot.overlaps(b) for b in booked)
    assert compute_slots(hours, break_window, booked, True, timedelta(minutes=step)) == []


class TestFindConflict:
    """Tests for find_conflict."""

    def test_free_slot(self):
        assert find_conflict(window("09:00", "09:30"), HOURS, BREAK, []) is None

    def test_outside_working_hours(self):
        assert find_conflict(window("17:00", "17:30"), HOURS, BREAK, []) == OUTSIDE_WORKING_HOURS
        assert find_conflict(window("08:30", "09:00"), HOURS, BREAK, []) == OUTSIDE_WORKING_HOURS

    def test_during_break(self):
        assert find_conflict(window("12:30", "13:00"), HOURS, BREAK, []) == DURING_BREAK

    def test_already_booked(self):
        booked = [window("10:00", "10:30")]
        assert find_conflict(window("10:00", "10:30"), HOURS, BREAK, booked) == ALREADY_BOOKED

    def test_adjacent_booking_does_not_conflict(self):
        booked = [window("10:00", "10:30")]
        assert find_conflict(window("10:30", "11:00"), HOURS, BREAK, booked) is None


def test_granularity_minutes():
    assert granularity_minutes(timedelta(minutes=30)) == 30
    with pytest.raises(ValueError):
        granularity_minutes(timedelta(0))
