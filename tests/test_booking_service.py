"""Tests for the booking transaction manager."""

import asyncio
from contextlib import asynccontextmanager
from datetime import time, timedelta, timezone

import pytest

from booking_core.domain import AppointmentStatus, TimeWindow
from booking_core.exceptions import (
    InvalidRangeError,
    NotFoundError,
    SlotUnavailableError,
    StorageError,
)
from booking_core.services.booking_service import BookingTransactionManager
from booking_core.storage import InMemoryStorageProvider
from booking_core.storage.sql import SQLStorageSession
from tests.conftest import (
    DAY_OFF,
    DOCTOR_ID,
    HOSPITAL_ID,
    MONDAY,
    OTHER_PATIENT_ID,
    PATIENT_ID,
    SATURDAY,
    TUESDAY,
)


async def book(manager, start, end, day=MONDAY, patient_id=PATIENT_ID, doctor_id=DOCTOR_ID):
    return await manager.create(
        patient_id=patient_id,
        doctor_id=doctor_id,
        hospital_id=HOSPITAL_ID,
        day=day,
        start=start,
        end=end,
        reason="Checkup",
    )


class TestCreate:
    """Booking behaviour shared by every storage provider."""

    async def test_creates_pending_appointment(self, provider):
        manager = BookingTransactionManager(provider)

        record = await book(manager, time(9, 0), time(9, 30))

        assert record.status == AppointmentStatus.PENDING
        assert record.version == 1
        assert record.patient_id == PATIENT_ID
        assert record.window == TimeWindow(time(9, 0), time(9, 30))
        assert record.reason == "Checkup"

        async with provider.transaction() as storage:
            stored = await storage.read_appointment(record.id)
        assert stored is not None
        assert stored.status == AppointmentStatus.PENDING

    async def test_taken_slot_is_unavailable(self, provider):
        manager = BookingTransactionManager(provider)
        await book(manager, time(10, 0), time(10, 30))

        with pytest.raises(SlotUnavailableError) as exc_info:
            await book(manager, time(10, 0), time(10, 30), patient_id=OTHER_PATIENT_ID)
        assert exc_info.value.details["reason"] == "already_booked"

    async def test_same_slot_on_another_day_is_free(self, provider):
        manager = BookingTransactionManager(provider)
        await book(manager, time(10, 0), time(10, 30))
        record = await book(manager, time(10, 0), time(10, 30), day=TUESDAY)
        assert record.date == TUESDAY

    async def test_break_is_unavailable(self, provider):
        manager = BookingTransactionManager(provider)
        with pytest.raises(SlotUnavailableError) as exc_info:
            await book(manager, time(12, 0), time(12, 30))
        assert exc_info.value.details["reason"] == "during_break"

    async def test_outside_working_hours(self, provider):
        manager = BookingTransactionManager(provider)
        with pytest.raises(SlotUnavailableError) as exc_info:
            await book(manager, time(17, 0), time(17, 30))
        assert exc_info.value.details["reason"] == "outside_working_hours"

    async def test_time_off(self, provider):
        manager = BookingTransactionManager(provider)
        with pytest.raises(SlotUnavailableError) as exc_info:
            await book(manager, time(9, 0), time(9, 30), day=DAY_OFF)
        assert exc_info.value.details["reason"] == "time_off"

    async def test_day_without_hours(self, provider):
        manager = BookingTransactionManager(provider)
        with pytest.raises(SlotUnavailableError) as exc_info:
            await book(manager, time(9, 0), time(9, 30), day=SATURDAY)
        assert exc_info.value.details["reason"] == "no_working_hours"

    async def test_unknown_doctor(self, provider):
        manager = BookingTransactionManager(provider)
        with pytest.raises(NotFoundError):
            await book(manager, time(9, 0), time(9, 30), doctor_id="nobody")

    async def test_cancelled_appointment_releases_slot(self, provider):
        manager = BookingTransactionManager(provider)
        first = await book(manager, time(11, 0), time(11, 30))
        async with provider.transaction(write=True) as storage:
            await storage.update_appointment_status(
                first.id, first.version, AppointmentStatus.CANCELLED, None, first.updated_at
            )

        second = await book(manager, time(11, 0), time(11, 30), patient_id=OTHER_PATIENT_ID)
        assert second.id != first.id

    async def test_completed_appointment_keeps_slot(self, provider):
        manager = BookingTransactionManager(provider)
        first = await book(manager, time(11, 0), time(11, 30))
        async with provider.transaction(write=True) as storage:
            confirmed = await storage.update_appointment_status(
                first.id, 1, AppointmentStatus.CONFIRMED, None, first.updated_at
            )
            await storage.update_appointment_status(
                first.id, confirmed.version, AppointmentStatus.COMPLETED, None, first.updated_at
            )

        with pytest.raises(SlotUnavailableError):
            await book(manager, time(11, 0), time(11, 30), patient_id=OTHER_PATIENT_ID)


class TestValidateRange:
    """Shape checks that run before any storage access."""

    @pytest.mark.parametrize(
        "start,end",
        [
            (time(9, 30), time(9, 30)),
            (time(10, 0), time(9, 30)),
            (time(9, 0), time(10, 0)),
            (time(9, 0), time(9, 15)),
            (time(9, 0, 30), time(9, 30, 30)),
            (time(9, 0, tzinfo=timezone.utc), time(9, 30, tzinfo=timezone.utc)),
            (time(9, 0), time(9, 30, tzinfo=timezone.utc)),
        ],
    )
    async def test_malformed_range(self, memory_provider, start, end):
        manager = BookingTransactionManager(memory_provider)
        with pytest.raises(InvalidRangeError):
            await book(manager, start, end)

    async def test_off_grid_start(self, memory_provider):
        manager = BookingTransactionManager(memory_provider)
        with pytest.raises(InvalidRangeError, match="boundary"):
            await book(manager, time(9, 15), time(9, 45))

    async def test_custom_granularity(self, memory_provider):
        manager = BookingTransactionManager(memory_provider, granularity=timedelta(minutes=15))
        record = await book(manager, time(9, 15), time(9, 30))
        assert record.window.duration_minutes == 15


@pytest.fixture(params=["memory", "sqlite_file"])
def concurrent_provider(request, memory_provider, file_sql_provider):
    """Providers whose transactions can genuinely overlap."""
    if request.param == "memory":
        return memory_provider
    return file_sql_provider


class TestConcurrency:
    """Concurrent attempts on the same slot."""

    @pytest.mark.parametrize("attempts", [2, 10])
    async def test_exactly_one_booking_wins(self, concurrent_provider, attempts):
        manager = BookingTransactionManager(concurrent_provider)

        results = await asyncio.gather(
            *[
                book(manager, time(14, 0), time(14, 30), patient_id=f"patient-{i}")
                for i in range(attempts)
            ],
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, BaseException)]
        rejected = [r for r in results if isinstance(r, SlotUnavailableError)]
        assert len(created) == 1
        assert len(rejected) == attempts - 1

        async with concurrent_provider.transaction() as storage:
            booked = await storage.read_booked_intervals(DOCTOR_ID, MONDAY)
        assert booked == [TimeWindow(time(14, 0), time(14, 30))]

    async def test_different_slots_all_succeed(self, memory_provider):
        manager = BookingTransactionManager(memory_provider)
        slots = [
            (time(9, 0), time(9, 30)),
            (time(9, 30), time(10, 0)),
            (time(10, 0), time(10, 30)),
            (time(10, 30), time(11, 0)),
        ]

        results = await asyncio.gather(*[book(manager, start, end) for start, end in slots])
        assert len({r.id for r in results}) == 4

    async def test_unique_index_rejects_a_missed_conflict(self, sql_provider, monkeypatch):
        """If the re-read misses a booking, the partial unique index still refuses the insert."""
        manager = BookingTransactionManager(sql_provider)
        await book(manager, time(15, 0), time(15, 30))

        async def nothing_booked(self, doctor_id, day, lock=False):
            return []

        monkeypatch.setattr(SQLStorageSession, "read_booked_intervals", nothing_booked)

        with pytest.raises(SlotUnavailableError) as exc_info:
            await book(manager, time(15, 0), time(15, 30), patient_id=OTHER_PATIENT_ID)
        assert exc_info.value.details["reason"] == "already_booked"

        async with sql_provider.transaction() as storage:
            appointments = await storage.list_appointments(doctor_id=DOCTOR_ID)
        assert len(appointments) == 1


class SlowProvider(InMemoryStorageProvider):
    """Provider whose write transactions stall before doing any work."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    @asynccontextmanager
    async def transaction(self, write: bool = False):
        await asyncio.sleep(self.delay)
        async with super().transaction(write) as storage:
            yield storage


async def test_storage_timeout_surfaces_storage_error():
    provider = SlowProvider(delay=1.0)
    manager = BookingTransactionManager(provider, timeout_seconds=0.05)

    with pytest.raises(StorageError) as exc_info:
        await book(manager, time(9, 0), time(9, 30), doctor_id="anyone")
    assert exc_info.value.details["retryable"] is True
    assert exc_info.value.status_code == 503
