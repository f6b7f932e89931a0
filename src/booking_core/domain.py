"""Core scheduling types shared by the calculator, the booking path and storage.

All clock values are ``datetime.time`` at minute resolution. Intervals are
half-open: ``[start, end)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Dict, FrozenSet, Optional


class AppointmentStatus(str, Enum):
    """Appointment workflow states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def holds_slot(self) -> bool:
        """Whether an appointment in this state still occupies its time range."""
        return self not in RELEASED_STATUSES


TERMINAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.REJECTED, AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
)

# Rejected and cancelled appointments free their slot; completed ones keep it.
RELEASED_STATUSES: FrozenSet[AppointmentStatus] = frozenset(
    {AppointmentStatus.REJECTED, AppointmentStatus.CANCELLED}
)


class Role(str, Enum):
    """Requester roles resolved by the auth provider."""

    PATIENT = "patient"
    DOCTOR = "doctor"
    ADMIN = "admin"


def to_minutes(value: time) -> int:
    """Minutes since midnight."""
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    """Inverse of :func:`to_minutes` (``minutes`` must be within one day)."""
    return time(minutes // 60, minutes % 60)


@dataclass(frozen=True, order=True)
class TimeWindow:
    """A half-open clock interval on a single day.

    Used for slots, booked intervals and break windows alike.
    """

    start: time
    end: time

    def __post_init__(self) -> None:
        if self.start.second or self.start.microsecond or self.end.second or self.end.microsecond:
            raise ValueError("Time windows have minute resolution")
        if self.start >= self.end:
            raise ValueError(f"Window start {self.start} must be before end {self.end}")

    @property
    def duration_minutes(self) -> int:
        return to_minutes(self.end) - to_minutes(self.start)

    def overlaps(self, other: "TimeWindow") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, other: "TimeWindow") -> bool:
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


Slot = TimeWindow


@dataclass(frozen=True)
class WorkingHours:
    """One weekday's configured hours, optionally with a break."""

    start: time
    end: time
    break_start: Optional[time] = None
    break_end: Optional[time] = None

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError("Working hours start must be before end")
        if (self.break_start is None) != (self.break_end is None):
            raise ValueError("Break start and end must be given together")
        if self.break_start is not None and self.break_end is not None:
            if not (self.start <= self.break_start < self.break_end <= self.end):
                raise ValueError("Break window must lie inside working hours")

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)

    @property
    def break_window(self) -> Optional[TimeWindow]:
        if self.break_start is None or self.break_end is None:
            return None
        return TimeWindow(self.break_start, self.break_end)


@dataclass(frozen=True)
class WeeklySchedule:
    """A doctor's configured hours at one hospital, keyed by weekday (Monday = 0)."""

    doctor_id: str
    hospital_id: str
    hours: Dict[int, WorkingHours] = field(default_factory=dict)

    def for_weekday(self, weekday: int) -> Optional[WorkingHours]:
        return self.hours.get(weekday)


@dataclass(frozen=True)
class DaySchedule:
    """Resolved schedule for one calendar date."""

    date: date
    working_hours: Optional[WorkingHours]
    is_time_off: bool = False

    @property
    def break_window(self) -> Optional[TimeWindow]:
        if self.working_hours is None:
            return None
        return self.working_hours.break_window


@dataclass(frozen=True)
class AppointmentDraft:
    """A validated booking request that has not been stored yet."""

    patient_id: str
    doctor_id: str
    hospital_id: str
    date: date
    start: time
    end: time
    reason: Optional[str] = None


@dataclass(frozen=True)
class AppointmentRecord:
    """A stored appointment."""

    id: str
    patient_id: str
    doctor_id: str
    hospital_id: str
    date: date
    start: time
    end: time
    status: AppointmentStatus
    reason: Optional[str]
    notes: Optional[str]
    version: int
    created_at: datetime
    updated_at: datetime

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)


@dataclass(frozen=True)
class Principal:
    """Caller identity handed over by the auth provider."""

    user_id: str
    role: Role
