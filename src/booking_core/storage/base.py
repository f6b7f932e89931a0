"""Storage provider contract consumed by the booking engine.

A provider hands out units of work. Everything done through one
:class:`StorageSession` commits together when the ``transaction()`` block
exits normally and is discarded when it raises.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import AsyncContextManager, List, Optional

from booking_core.domain import (
    AppointmentDraft,
    AppointmentRecord,
    AppointmentStatus,
    TimeWindow,
    WeeklySchedule,
)


class StorageSession(ABC):
    """Operations available inside one transaction."""

    @abstractmethod
    async def read_schedule(self, doctor_id: str, hospital_id: str) -> Optional[WeeklySchedule]:
        """Weekly hours of a doctor at a hospital, or None when none are configured."""

    @abstractmethod
    async def is_time_off(self, doctor_id: str, hospital_id: str, day: date) -> bool:
        """Whether the doctor has the whole date off at the hospital."""

    @abstractmethod
    async def read_booked_intervals(
        self, doctor_id: str, day: date, lock: bool = False
    ) -> List[TimeWindow]:
        """Ranges held by live appointments of the doctor on the date, ascending.

        ``lock`` asks the backend to keep competing writers out until commit.
        """

    @abstractmethod
    async def insert_appointment(self, draft: AppointmentDraft, now: datetime) -> AppointmentRecord:
        """Store a new pending appointment (version 1).

        Must raise SlotUnavailableError if a live appointment already starts at
        the same time for the same doctor and date.
        """

    @abstractmethod
    async def read_appointment(self, appointment_id: str) -> Optional[AppointmentRecord]:
        """Fetch one appointment by id."""

    @abstractmethod
    async def update_appointment_status(
        self,
        appointment_id: str,
        expected_version: int,
        status: AppointmentStatus,
        notes: Optional[str],
        updated_at: datetime,
    ) -> Optional[AppointmentRecord]:
        """Apply a status change only if the stored version still equals ``expected_version``.

        Returns the updated record (version incremented), or None when the id
        is unknown or the version moved on.
        """

    @abstractmethod
    async def list_appointments(
        self,
        patient_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> List[AppointmentRecord]:
        """Appointments matching every given filter, ordered by date then start."""


class StorageProvider(ABC):
    """Factory of transactional storage sessions."""

    @abstractmethod
    def transaction(self, write: bool = False) -> AsyncContextManager[StorageSession]:
        """Open a unit of work.

        Read-only units (``write=False``) may run against a snapshot without
        locking. Write units must be isolated from each other strongly enough
        that a re-read followed by an insert cannot double book.
        """

    async def close(self) -> None:
        """Release any resources held by the provider."""
