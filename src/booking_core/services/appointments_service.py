"""Appointments and scheduling service.

Entry point used by the HTTP layer. Reads go through one storage snapshot;
writes are delegated to the booking manager and the status state machine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import List, Optional

from booking_core.config import BookingSettings, get_settings
from booking_core.domain import (
    AppointmentRecord,
    AppointmentStatus,
    Principal,
    Role,
    Slot,
    TimeWindow,
    WorkingHours,
)
from booking_core.exceptions import ForbiddenError, NotFoundError
from booking_core.services.availability import compute_slots
from booking_core.services.booking_service import BookingTransactionManager
from booking_core.services.schedule_resolver import ScheduleResolver
from booking_core.services.status_machine import StatusStateMachine, check_ownership
from booking_core.services.timeouts import run_with_timeout
from booking_core.storage.base import StorageProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Availability:
    """Everything the UI needs to render a doctor's day."""

    doctor_id: str
    hospital_id: str
    date: date
    granularity_minutes: int
    working_hours: Optional[WorkingHours]
    break_window: Optional[TimeWindow]
    is_time_off: bool
    booked_intervals: List[TimeWindow]
    available_slots: List[Slot]


class AppointmentsService:
    """Service for availability queries, bookings and status changes."""

    def __init__(self, provider: StorageProvider, settings: Optional[BookingSettings] = None) -> None:
        settings = settings or get_settings().booking
        self._provider = provider
        self._granularity = timedelta(minutes=settings.slot_granularity_minutes)
        self._timeout_seconds = settings.storage_timeout_seconds
        self.booking = BookingTransactionManager(
            provider, granularity=self._granularity, timeout_seconds=self._timeout_seconds
        )
        self.status_machine = StatusStateMachine(provider, timeout_seconds=self._timeout_seconds)

    async def get_availability(self, doctor_id: str, hospital_id: str, day: date) -> Availability:
        """Free slots for a doctor on a date.

        Runs on a snapshot without locking; a slot shown here can still be
        taken before the caller books it.
        """
        return await run_with_timeout(
            self._read_availability(doctor_id, hospital_id, day),
            self._timeout_seconds,
            "availability query",
        )

    async def _read_availability(self, doctor_id: str, hospital_id: str, day: date) -> Availability:
        async with self._provider.transaction() as storage:
            schedule = await ScheduleResolver(storage).resolve(doctor_id, hospital_id, day)
            booked = await storage.read_booked_intervals(doctor_id, day)

        slots = compute_slots(
            schedule.working_hours,
            schedule.break_window,
            booked,
            schedule.is_time_off,
            self._granularity,
        )
        return Availability(
            doctor_id=doctor_id,
            hospital_id=hospital_id,
            date=day,
            granularity_minutes=int(self._granularity.total_seconds() // 60),
            working_hours=schedule.working_hours,
            break_window=schedule.break_window,
            is_time_off=schedule.is_time_off,
            booked_intervals=booked,
            available_slots=slots,
        )

    async def book_appointment(
        self,
        principal: Principal,
        doctor_id: str,
        hospital_id: str,
        day: date,
        start: time,
        end: time,
        reason: Optional[str] = None,
    ) -> AppointmentRecord:
        """Book a slot for the calling patient."""
        if principal.role != Role.PATIENT:
            raise ForbiddenError("Only patients can book appointments")
        return await self.booking.create(
            patient_id=principal.user_id,
            doctor_id=doctor_id,
            hospital_id=hospital_id,
            day=day,
            start=start,
            end=end,
            reason=reason,
        )

    async def update_status(
        self,
        principal: Principal,
        appointment_id: str,
        new_status: AppointmentStatus,
        expected_version: int,
        notes: Optional[str] = None,
    ) -> AppointmentRecord:
        return await self.status_machine.transition_by_id(
            appointment_id,
            expected_version,
            principal.role,
            principal.user_id,
            new_status,
            notes,
        )

    async def get_appointment(self, principal: Principal, appointment_id: str) -> AppointmentRecord:
        async with self._provider.transaction() as storage:
            record = await storage.read_appointment(appointment_id)
        if record is None:
            raise NotFoundError("Appointment", resource_id=appointment_id)
        check_ownership(record, principal.role, principal.user_id)
        return record

    async def list_patient_appointments(
        self,
        principal: Principal,
        include_past: bool = False,
        today: Optional[date] = None,
    ) -> List[AppointmentRecord]:
        """The caller's own appointments, upcoming only unless ``include_past``."""
        start_date = None if include_past else (today or date.today())
        async with self._provider.transaction() as storage:
            return await storage.list_appointments(
                patient_id=principal.user_id, start_date=start_date
            )

    async def list_doctor_appointments(
        self,
        principal: Principal,
        doctor_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> List[AppointmentRecord]:
        """A doctor's appointments; restricted to doctors and admins."""
        if principal.role not in (Role.DOCTOR, Role.ADMIN):
            raise ForbiddenError("Only doctors and admins can list a doctor's appointments")
        async with self._provider.transaction() as storage:
            return await storage.list_appointments(
                doctor_id=doctor_id,
                start_date=start_date,
                end_date=end_date,
                status=status,
            )
