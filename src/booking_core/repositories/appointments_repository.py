"""Appointments repository for data access operations."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_core.database.models import Appointment
from booking_core.domain import (
    RELEASED_STATUSES,
    AppointmentDraft,
    AppointmentRecord,
    AppointmentStatus,
)
from booking_core.exceptions import SlotUnavailableError, StorageError
from booking_core.repositories.base import BaseRepository, is_serialization_failure

logger = logging.getLogger(__name__)

_RELEASED = [status.value for status in RELEASED_STATUSES]


def to_record(row: Appointment) -> AppointmentRecord:
    """Convert an ORM row into the domain record."""
    return AppointmentRecord(
        id=row.id,
        patient_id=row.patient_id,
        doctor_id=row.doctor_id,
        hospital_id=row.hospital_id,
        date=row.appointment_date,
        start=row.start_time,
        end=row.end_time,
        status=AppointmentStatus(row.status),
        reason=row.reason,
        notes=row.notes,
        version=row.version,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class AppointmentsRepository(BaseRepository[Appointment]):
    """Repository for appointment data access operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Appointment, session)

    async def get_live_for_doctor_day(
        self, doctor_id: str, day: date, for_update: bool = False
    ) -> List[Appointment]:
        """Return appointments still holding their slot for a doctor on a date.

        With ``for_update`` the rows are locked until the transaction ends
        (ignored by SQLite, which serializes writers itself).
        """
        query = select(Appointment).where(
            Appointment.doctor_id == doctor_id,
            Appointment.appointment_date == day,
            Appointment.status.notin_(_RELEASED),
        )
        if for_update:
            query = query.with_for_update()
        try:
            result = await self.session.execute(query.order_by(Appointment.start_time))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            if is_serialization_failure(e):
                raise
            logger.error(f"Error getting booked intervals for doctor {doctor_id} on {day}: {e}")
            raise StorageError("Failed to retrieve booked intervals") from e

    async def create_from_draft(self, draft: AppointmentDraft, now: datetime) -> Appointment:
        """Insert a pending appointment.

        Raises:
            SlotUnavailableError: another live appointment already holds the slot
            StorageError: any other database failure
        """
        try:
            return await self.create(
                patient_id=draft.patient_id,
                doctor_id=draft.doctor_id,
                hospital_id=draft.hospital_id,
                appointment_date=draft.date,
                start_time=draft.start,
                end_time=draft.end,
                status=AppointmentStatus.PENDING.value,
                reason=draft.reason,
                notes=None,
                version=1,
                created_at=now,
                updated_at=now,
            )
        except IntegrityError as e:
            logger.info(
                f"Slot {draft.start} on {draft.date} for doctor {draft.doctor_id} "
                f"taken concurrently: {e.orig}"
            )
            raise SlotUnavailableError(reason="already_booked") from e
        except SQLAlchemyError as e:
            if is_serialization_failure(e):
                raise
            logger.error(f"Error creating appointment: {e}")
            raise StorageError("Failed to create appointment") from e

    async def update_status_if_version(
        self,
        appointment_id: str,
        expected_version: int,
        status: AppointmentStatus,
        notes: Optional[str],
        updated_at: datetime,
    ) -> Optional[Appointment]:
        """Compare-and-set a status change on ``version``.

        Returns:
            The refreshed row, or None when no row matched id and version
        """
        try:
            result = await self.session.execute(
                update(Appointment)
                .where(
                    Appointment.id == appointment_id,
                    Appointment.version == expected_version,
                )
                .values(
                    status=status.value,
                    notes=notes,
                    version=Appointment.version + 1,
                    updated_at=updated_at,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None

            refreshed = await self.session.execute(
                select(Appointment)
                .where(Appointment.id == appointment_id)
                .execution_options(populate_existing=True)
            )
            return refreshed.scalar_one()
        except SQLAlchemyError as e:
            if is_serialization_failure(e):
                raise
            logger.error(f"Error updating status of appointment {appointment_id}: {e}")
            raise StorageError("Failed to update appointment status") from e

    async def list_filtered(
        self,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> List[Appointment]:
        """List appointments ordered by date and start time."""
        query = select(Appointment)
        if patient_id is not None:
            query = query.where(Appointment.patient_id == patient_id)
        if doctor_id is not None:
            query = query.where(Appointment.doctor_id == doctor_id)
        if start_date is not None:
            query = query.where(Appointment.appointment_date >= start_date)
        if end_date is not None:
            query = query.where(Appointment.appointment_date <= end_date)
        if status is not None:
            query = query.where(Appointment.status == status.value)

        try:
            result = await self.session.execute(
                query.order_by(Appointment.appointment_date, Appointment.start_time)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            if is_serialization_failure(e):
                raise
            logger.error(f"Error listing appointments: {e}")
            raise StorageError("Failed to list appointments") from e
