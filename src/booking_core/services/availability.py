"""Free-slot calculation.

Everything here is pure: callers fetch the schedule and booked intervals first
and pass them in. The booking path reuses :func:`find_conflict` so that the
read path and the write path agree on what "free" means.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, List, Optional, Sequence

from booking_core.domain import (
    Slot,
    TimeWindow,
    WorkingHours,
    from_minutes,
    to_minutes,
)

DEFAULT_GRANULARITY = timedelta(minutes=30)

# Reasons reported by find_conflict
OUTSIDE_WORKING_HOURS = "outside_working_hours"
DURING_BREAK = "during_break"
ALREADY_BOOKED = "already_booked"


def granularity_minutes(granularity: timedelta) -> int:
    minutes, remainder = divmod(int(granularity.total_seconds()), 60)
    if remainder or minutes <= 0:
        raise ValueError("Slot granularity must be a positive whole number of minutes")
    return minutes


def find_conflict(
    candidate: TimeWindow,
    working_hours: WorkingHours,
    break_window: Optional[TimeWindow],
    booked_intervals: Iterable[TimeWindow],
) -> Optional[str]:
    """Return why ``candidate`` cannot be booked, or ``None`` when it is free."""
    if not working_hours.window.contains(candidate):
        return OUTSIDE_WORKING_HOURS
    if break_window is not None and candidate.overlaps(break_window):
        return DURING_BREAK
    if any(candidate.overlaps(booked) for booked in booked_intervals):
        return ALREADY_BOOKED
    return None


def is_on_grid(start_minutes: int, working_hours: WorkingHours, step: int) -> bool:
    """Whether a start time is ``working_hours.start + k * step`` for an integer ``k``."""
    return (start_minutes - to_minutes(working_hours.start)) % step == 0


def compute_slots(
    working_hours: Optional[WorkingHours],
    break_window: Optional[TimeWindow],
    booked_intervals: Sequence[TimeWindow],
    is_time_off: bool,
    granularity: timedelta = DEFAULT_GRANULARITY,
) -> List[Slot]:
    """Compute the free slots of one day, in ascending start order.

    Args:
        working_hours: That weekday's hours, ``None`` when the doctor does not work
        break_window: Excluded sub-interval of the working hours
        booked_intervals: Ranges held by live appointments
        is_time_off: Whole-day exception
        granularity: Slot width and step

    Returns:
        Slots of exactly ``granularity`` width aligned to ``working_hours.start``
    """
    if is_time_off or working_hours is None:
        return []

    step = granularity_minutes(granularity)
    day_end = to_minutes(working_hours.end)
    booked = list(booked_intervals)

    slots: List[Slot] = []
    cursor = to_minutes(working_hours.start)
    while cursor + step <= day_end:
        candidate = Slot(from_minutes(cursor), from_minutes(cursor + step))
        if find_conflict(candidate, working_hours, break_window, booked) is None:
            slots.append(candidate)
        cursor += step

    return slots
