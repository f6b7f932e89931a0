"""Tests for the scheduling value types."""

from datetime import time

import pytest

from booking_core.domain import (
    AppointmentStatus,
    TimeWindow,
    WeeklySchedule,
    WorkingHours,
    from_minutes,
    to_minutes,
)


class TestTimeWindow:
    """Tests for TimeWindow."""

    def test_half_open_overlap(self):
        first = TimeWindow(time(9, 0), time(9, 30))
        assert first.overlaps(TimeWindow(time(9, 15), time(9, 45)))
        assert not first.overlaps(TimeWindow(time(9, 30), time(10, 0)))

    def test_contains(self):
        day = TimeWindow(time(9, 0), time(17, 0))
        assert day.contains(TimeWindow(time(16, 30), time(17, 0)))
        assert not day.contains(TimeWindow(time(16, 45), time(17, 15)))

    def test_rejects_empty_window(self):
        with pytest.raises(ValueError):
            TimeWindow(time(10, 0), time(10, 0))

    def test_rejects_seconds(self):
        with pytest.raises(ValueError, match="minute resolution"):
            TimeWindow(time(10, 0, 30), time(10, 30))

    def test_str(self):
        assert str(TimeWindow(time(9, 0), time(9, 30))) == "09:00-09:30"


class TestWorkingHours:
    """Tests for WorkingHours."""

    def test_break_window(self):
        hours = WorkingHours(time(9, 0), time(17, 0), time(12, 0), time(13, 0))
        assert hours.break_window == TimeWindow(time(12, 0), time(13, 0))

    def test_no_break(self):
        assert WorkingHours(time(9, 0), time(17, 0)).break_window is None

    def test_break_must_be_inside_hours(self):
        with pytest.raises(ValueError, match="inside working hours"):
            WorkingHours(time(9, 0), time(17, 0), time(16, 30), time(17, 30))

    def test_break_needs_both_ends(self):
        with pytest.raises(ValueError):
            WorkingHours(time(9, 0), time(17, 0), break_start=time(12, 0))

    def test_weekly_lookup(self):
        hours = WorkingHours(time(9, 0), time(17, 0))
        schedule = WeeklySchedule("doc-1", "hosp-1", {0: hours})
        assert schedule.for_weekday(0) is hours
        assert schedule.for_weekday(6) is None


def test_minutes_conversion():
    assert to_minutes(time(16, 30)) == 990
    assert from_minutes(990) == time(16, 30)


def test_released_statuses():
    assert not AppointmentStatus.CANCELLED.holds_slot
    assert not AppointmentStatus.REJECTED.holds_slot
    assert AppointmentStatus.COMPLETED.holds_slot
    assert AppointmentStatus.COMPLETED.is_terminal
    assert not AppointmentStatus.CONFIRMED.is_terminal
