"""Doctor schedule and time-off repository."""

from __future__ import annotations

import logging
from datetime import date
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.database.models import DoctorSchedule, DoctorTimeOff
from booking_core.exceptions import StorageError
from booking_core.repositories.base import BaseRepository, is_serialization_failure

logger = logging.getLogger(__name__)


class ScheduleRepository(BaseRepository[DoctorSchedule]):
    """Read access to weekly schedules and day-off records."""

    def __init__(self, session: AsyncSession):
        super().__init__(DoctorSchedule, session)

    async def get_weekly_rows(self, doctor_id: str, hospital_id: str) -> List[DoctorSchedule]:
        """Return all weekday rows configured for a doctor at a hospital."""
        try:
            result = await self.session.execute(
                select(DoctorSchedule)
                .where(
                    DoctorSchedule.doctor_id == doctor_id,
                    DoctorSchedule.hospital_id == hospital_id,
                )
                .order_by(DoctorSchedule.weekday)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            if is_serialization_failure(e):
                raise
            logger.error(f"Error getting schedule for doctor {doctor_id} at {hospital_id}: {e}")
            raise StorageError("Failed to retrieve doctor schedule") from e

    async def has_time_off(self, doctor_id: str, hospital_id: str, day: date) -> bool:
        """Whether a day-off record exists for the date."""
        try:
            result = await self.session.execute(
                select(DoctorTimeOff.id)
                .where(
                    DoctorTimeOff.doctor_id == doctor_id,
                    DoctorTimeOff.hospital_id == hospital_id,
                    DoctorTimeOff.off_date == day,
                )
                .limit(1)
            )
            return result.scalar_one_or_none() is not None
        except SQLAlchemyError as e:
            if is_serialization_failure(e):
                raise
            logger.error(f"Error checking time off for doctor {doctor_id} on {day}: {e}")
            raise StorageError("Failed to retrieve doctor time off") from e
