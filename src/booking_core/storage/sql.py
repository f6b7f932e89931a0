"""SQLAlchemy-backed storage provider."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booking_core.domain import (
    AppointmentDraft,
    AppointmentRecord,
    AppointmentStatus,
    TimeWindow,
    WeeklySchedule,
    WorkingHours,
)
from booking_core.exceptions import ConflictError, SlotUnavailableError, StorageError
from booking_core.repositories import AppointmentsRepository, ScheduleRepository, to_record
from booking_core.repositories.base import is_serialization_failure
from booking_core.storage.base import StorageProvider, StorageSession

logger = logging.getLogger(__name__)


class SQLStorageSession(StorageSession):
    """Storage session bound to one SQLAlchemy ``AsyncSession``."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.schedules = ScheduleRepository(session)
        self.appointments = AppointmentsRepository(session)
        # What the unit of work is doing, used to classify serialization failures
        self.booking = False
        self.updating = False

    async def read_schedule(self, doctor_id: str, hospital_id: str) -> Optional[WeeklySchedule]:
        rows = await self.schedules.get_weekly_rows(doctor_id, hospital_id)
        if not rows:
            return None
        hours = {
            row.weekday: WorkingHours(
                start=row.start_time,
                end=row.end_time,
                break_start=row.break_start_time,
                break_end=row.break_end_time,
            )
            for row in rows
        }
        return WeeklySchedule(doctor_id=doctor_id, hospital_id=hospital_id, hours=hours)

    async def is_time_off(self, doctor_id: str, hospital_id: str, day: date) -> bool:
        return await self.schedules.has_time_off(doctor_id, hospital_id, day)

    async def read_booked_intervals(
        self, doctor_id: str, day: date, lock: bool = False
    ) -> List[TimeWindow]:
        if lock:
            self.booking = True
        rows = await self.appointments.get_live_for_doctor_day(doctor_id, day, for_update=lock)
        return [TimeWindow(row.start_time, row.end_time) for row in rows]

    async def insert_appointment(self, draft: AppointmentDraft, now: datetime) -> AppointmentRecord:
        self.booking = True
        row = await self.appointments.create_from_draft(draft, now)
        return to_record(row)

    async def read_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        row = await self.appointments.get_by_id(appointment_id)
        return to_record(row) if row is not None else None

    async def update_appointment_status(
        self,
        appointment_id: str,
        expected_version: int,
        status: AppointmentStatus,
        notes: Optional[str],
        updated_at: datetime,
    ) -> Optional[AppointmentRecord]:
        self.updating = True
        row = await self.appointments.update_status_if_version(
            appointment_id, expected_version, status, notes, updated_at
        )
        return to_record(row) if row is not None else None

    async def list_appointments(
        self,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> List[AppointmentRecord]:
        rows = await self.appointments.list_filtered(
            patient_id=patient_id,
            doctor_id=doctor_id,
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
        return [to_record(row) for row in rows]


class SQLStorageProvider(StorageProvider):
    """Storage provider over an async SQLAlchemy session factory.

    Write transactions run at ``isolation_level`` when one is given. A
    serialization failure is the database telling us a concurrent writer won:
    it is reported as SlotUnavailableError for bookings and ConflictError for
    status changes, never as a transient error.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        isolation_level: Optional[str] = None,
    ):
        self._session_factory = session_factory
        self._isolation_level = isolation_level

    @asynccontextmanager
    async def transaction(self, write: bool = False) -> AsyncIterator[StorageSession]:
        async with self._session_factory() as session:
            storage = SQLStorageSession(session)
            try:
                if write and self._isolation_level:
                    await session.connection(
                        execution_options={"isolation_level": self._isolation_level}
                    )
                yield storage
                if write:
                    await session.commit()
                else:
                    await session.rollback()
            except SQLAlchemyError as e:
                await session.rollback()
                raise self._translate(e, storage) from e
            except Exception:
                await session.rollback()
                raise

    @staticmethod
    def _translate(error: SQLAlchemyError, storage: SQLStorageSession) -> Exception:
        if isinstance(error, IntegrityError) and storage.booking:
            return SlotUnavailableError(reason="already_booked")
        if is_serialization_failure(error):
            if storage.booking:
                logger.info("Booking lost a serialization race")
                return SlotUnavailableError(reason="already_booked")
            if storage.updating:
                logger.info("Status change lost a serialization race")
                return ConflictError("Appointment was modified concurrently; re-fetch and retry")
        logger.error(f"Storage transaction failed: {error}")
        return StorageError("Storage transaction failed")
