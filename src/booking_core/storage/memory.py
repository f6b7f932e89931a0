"""In-memory storage provider.

State lives on the provider instance. Write transactions are serialized by an
``asyncio.Lock`` and staged: nothing becomes visible to other transactions
until the block exits without an exception. Read-only transactions see the
committed state as of their start and never wait for the lock.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import AsyncIterator, Dict, List, Optional, Set, Tuple

from booking_core.domain import (
    AppointmentDraft,
    AppointmentRecord,
    AppointmentStatus,
    TimeWindow,
    WeeklySchedule,
    WorkingHours,
)
from booking_core.exceptions import SlotUnavailableError
from booking_core.storage.base import StorageProvider, StorageSession

logger = logging.getLogger(__name__)


class InMemoryStorageSession(StorageSession):
    """One unit of work over a snapshot of the provider's appointments."""

    def __init__(
        self,
        schedules: Dict[Tuple[str, str], WeeklySchedule],
        time_off: Set[Tuple[str, str, date]],
        appointments: Dict[str, AppointmentRecord],
        writable: bool,
    ):
        self._schedules = schedules
        self._time_off = time_off
        self._appointments = appointments
        self._writable = writable
        self.staged: Dict[str, AppointmentRecord] = {}

    def _current(self) -> Dict[str, AppointmentRecord]:
        if not self.staged:
            return self._appointments
        merged = dict(self._appointments)
        merged.update(self.staged)
        return merged

    def _require_writable(self) -> None:
        if not self._writable:
            raise RuntimeError("Write attempted in a read-only transaction")

    async def read_schedule(self, doctor_id: str, hospital_id: str) -> Optional[WeeklySchedule]:
        return self._schedules.get((doctor_id, hospital_id))

    async def is_time_off(self, doctor_id: str, hospital_id: str, day: date) -> bool:
        return (doctor_id, hospital_id, day) in self._time_off

    async def read_booked_intervals(
        self, doctor_id: str, day: date, lock: bool = False
    ) -> List[TimeWindow]:
        # Write transactions already hold the provider lock
        return sorted(
            record.window
            for record in self._current().values()
            if record.doctor_id == doctor_id and record.date == day and record.status.holds_slot
        )

    async def insert_appointment(self, draft: AppointmentDraft, now: datetime) -> AppointmentRecord:
        self._require_writable()
        for record in self._current().values():
            if (
                record.doctor_id == draft.doctor_id
                and record.date == draft.date
                and record.start == draft.start
                and record.status.holds_slot
            ):
                raise SlotUnavailableError(reason="already_booked")

        record = AppointmentRecord(
            id=str(uuid.uuid4()),
            patient_id=draft.patient_id,
            doctor_id=draft.doctor_id,
            hospital_id=draft.hospital_id,
            date=draft.date,
            start=draft.start,
            end=draft.end,
            status=AppointmentStatus.PENDING,
            reason=draft.reason,
            notes=None,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.staged[record.id] = record
        return record

    async def read_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        return self._current().get(appointment_id)

    async def update_appointment_status(
        self,
        appointment_id: str,
        expected_version: int,
        status: AppointmentStatus,
        notes: Optional[str],
        updated_at: datetime,
    ) -> Optional[AppointmentRecord]:
        self._require_writable()
        stored = self._current().get(appointment_id)
        if stored is None or stored.version != expected_version:
            return None

        updated = replace(
            stored,
            status=status,
            notes=notes,
            version=stored.version + 1,
            updated_at=updated_at,
        )
        self.staged[appointment_id] = updated
        return updated

    async def list_appointments(
        self,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> List[AppointmentRecord]:
        matches = [
            record
            for record in self._current().values()
            if (patient_id is None or record.patient_id == patient_id)
            and (doctor_id is None or record.doctor_id == doctor_id)
            and (start_date is None or record.date >= start_date)
            and (end_date is None or record.date <= end_date)
            and (status is None or record.status == status)
        ]
        return sorted(matches, key=lambda record: (record.date, record.start, record.created_at))


class InMemoryStorageProvider(StorageProvider):
    """Storage provider backed by plain dictionaries (tests and local demos)."""

    def __init__(self) -> None:
        self._schedules: Dict[Tuple[str, str], WeeklySchedule] = {}
        self._time_off: Set[Tuple[str, str, date]] = set()
        self._appointments: Dict[str, AppointmentRecord] = {}
        self._write_lock = asyncio.Lock()

    def set_working_hours(
        self, doctor_id: str, hospital_id: str, weekday: int, hours: WorkingHours
    ) -> None:
        """Configure one weekday (Monday = 0) of a doctor's schedule at a hospital."""
        if not 0 <= weekday <= 6:
            raise ValueError("weekday must be between 0 (Monday) and 6 (Sunday)")
        key = (doctor_id, hospital_id)
        existing = self._schedules.get(key)
        hours_by_day = dict(existing.hours) if existing else {}
        hours_by_day[weekday] = hours
        self._schedules[key] = WeeklySchedule(doctor_id, hospital_id, hours_by_day)

    def add_time_off(self, doctor_id: str, hospital_id: str, day: date) -> None:
        self._time_off.add((doctor_id, hospital_id, day))

    @asynccontextmanager
    async def transaction(self, write: bool = False) -> AsyncIterator[StorageSession]:
        if not write:
            yield InMemoryStorageSession(
                self._schedules, self._time_off, dict(self._appointments), writable=False
            )
            return

        async with self._write_lock:
            session = InMemoryStorageSession(
                self._schedules, self._time_off, self._appointments, writable=True
            )
            yield session
            if session.staged:
                self._appointments.update(session.staged)
                logger.debug(f"Committed {len(session.staged)} appointment change(s)")
