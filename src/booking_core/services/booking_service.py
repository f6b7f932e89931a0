"""Booking transaction manager: turns a slot selection into a pending appointment."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional

from booking_core.domain import (
    AppointmentDraft,
    AppointmentRecord,
    TimeWindow,
    to_minutes,
)
from booking_core.exceptions import InvalidRangeError, SlotUnavailableError
from booking_core.services.availability import (
    DEFAULT_GRANULARITY,
    find_conflict,
    granularity_minutes,
    is_on_grid,
)
from booking_core.services.schedule_resolver import ScheduleResolver
from booking_core.services.timeouts import run_with_timeout
from booking_core.storage.base import StorageProvider

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingTransactionManager:
    """Creates appointments while keeping at most one live booking per slot.

    The schedule and booked intervals are always re-read inside the write
    transaction; whatever availability the caller saw earlier is not trusted.
    Concurrent attempts on the same slot end with exactly one success and
    SlotUnavailableError for the rest.
    """

    def __init__(
        self,
        provider: StorageProvider,
        granularity: timedelta = DEFAULT_GRANULARITY,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._provider = provider
        self._step = granularity_minutes(granularity)
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    def validate_range(self, start: time, end: time) -> TimeWindow:
        """Check the shape of the requested interval (no storage access).

        Raises:
            InvalidRangeError: carries a UTC offset, sub-minute precision,
                empty/negative, or not one slot wide
        """
        if start.tzinfo is not None or end.tzinfo is not None:
            raise InvalidRangeError(
                "Appointment times are local wall-clock times and must not carry a UTC offset",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        if start.second or start.microsecond or end.second or end.microsecond:
            raise InvalidRangeError("Appointment times must be whole minutes")
        if end <= start:
            raise InvalidRangeError(
                "Appointment end must be after its start",
                details={"start": start.isoformat(), "end": end.isoformat()},
            )
        window = TimeWindow(start, end)
        if window.duration_minutes != self._step:
            raise InvalidRangeError(
                f"Appointments must be exactly {self._step} minutes long",
                details={"duration_minutes": window.duration_minutes, "granularity_minutes": self._step},
            )
        return window

    async def create(
        self,
        patient_id: str,
        doctor_id: str,
        hospital_id: str,
        day: date,
        start: time,
        end: time,
        reason: Optional[str] = None,
    ) -> AppointmentRecord:
        """Book one slot for a patient.

        Raises:
            InvalidRangeError: malformed or off-grid interval
            NotFoundError: no schedule for the doctor at the hospital
            SlotUnavailableError: day off, outside hours, during the break, or taken
            StorageError: transient storage failure or timeout
        """
        self.validate_range(start, end)
        draft = AppointmentDraft(
            patient_id=patient_id,
            doctor_id=doctor_id,
            hospital_id=hospital_id,
            date=day,
            start=start,
            end=end,
            reason=reason,
        )
        record = await run_with_timeout(
            self._create_in_transaction(draft), self._timeout_seconds, "create appointment"
        )
        logger.info(
            f"Appointment {record.id} booked: doctor={doctor_id} date={day} "
            f"slot={record.window} patient={patient_id}"
        )
        return record

    async def _create_in_transaction(self, draft: AppointmentDraft) -> AppointmentRecord:
        window = TimeWindow(draft.start, draft.end)
        async with self._provider.transaction(write=True) as storage:
            schedule = await ScheduleResolver(storage).resolve(
                draft.doctor_id, draft.hospital_id, draft.date
            )
            if schedule.is_time_off:
                raise SlotUnavailableError("Doctor is not available on this date", reason="time_off")

            working_hours = schedule.working_hours
            if working_hours is None:
                raise SlotUnavailableError(
                    "Doctor does not work on this weekday", reason="no_working_hours"
                )

            if not is_on_grid(to_minutes(draft.start), working_hours, self._step):
                raise InvalidRangeError(
                    f"Appointment must start on a {self._step}-minute boundary "
                    f"counted from {working_hours.start:%H:%M}",
                    details={"start": draft.start.isoformat()},
                )

            booked = await storage.read_booked_intervals(draft.doctor_id, draft.date, lock=True)
            conflict = find_conflict(window, working_hours, schedule.break_window, booked)
            if conflict is not None:
                raise SlotUnavailableError(reason=conflict)

            return await storage.insert_appointment(draft, self._clock())
