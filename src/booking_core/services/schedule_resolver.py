"""Resolve a doctor's schedule for a calendar date."""

from __future__ import annotations

import logging
from datetime import date

from booking_core.domain import DaySchedule
from booking_core.exceptions import NotFoundError
from booking_core.storage.base import StorageSession

logger = logging.getLogger(__name__)


class ScheduleResolver:
    """Turns weekly schedule configuration plus day-off records into a DaySchedule."""

    def __init__(self, storage: StorageSession):
        self._storage = storage

    async def resolve(self, doctor_id: str, hospital_id: str, day: date) -> DaySchedule:
        """Resolve working hours, break window and day-off flag for ``day``.

        Raises:
            NotFoundError: the doctor has no schedule at this hospital
        """
        weekly = await self._storage.read_schedule(doctor_id, hospital_id)
        if weekly is None:
            raise NotFoundError(
                "Schedule",
                resource_id=f"{doctor_id}@{hospital_id}",
                details={"doctor_id": doctor_id, "hospital_id": hospital_id},
            )

        working_hours = weekly.for_weekday(day.weekday())
        is_time_off = await self._storage.is_time_off(doctor_id, hospital_id, day)

        logger.debug(
            f"Resolved schedule doctor={doctor_id} hospital={hospital_id} date={day}: "
            f"hours={'none' if working_hours is None else working_hours.window} "
            f"time_off={is_time_off}"
        )
        return DaySchedule(date=day, working_hours=working_hours, is_time_off=is_time_off)
