"""Tests for the appointments service facade."""

from datetime import time

import pytest

from booking_core.config import BookingSettings
from booking_core.domain import AppointmentStatus, Principal, Role, TimeWindow
from booking_core.exceptions import ForbiddenError, NotFoundError
from booking_core.services.appointments_service import AppointmentsService
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

PATIENT = Principal(PATIENT_ID, Role.PATIENT)
OTHER_PATIENT = Principal(OTHER_PATIENT_ID, Role.PATIENT)
DOCTOR = Principal(DOCTOR_ID, Role.DOCTOR)
ADMIN = Principal("admin-1", Role.ADMIN)


@pytest.fixture
def service(provider):
    return AppointmentsService(provider, BookingSettings(storage_timeout_seconds=5.0))


async def book(service, principal=PATIENT, start=time(9, 0), end=time(9, 30), day=MONDAY):
    return await service.book_appointment(principal, DOCTOR_ID, HOSPITAL_ID, day, start, end, "Checkup")


class TestAvailability:
    """Availability as served to callers."""

    async def test_booked_slot_disappears(self, service):
        before = await service.get_availability(DOCTOR_ID, HOSPITAL_ID, MONDAY)
        await book(service, start=time(10, 0), end=time(10, 30))
        after = await service.get_availability(DOCTOR_ID, HOSPITAL_ID, MONDAY)

        slot = TimeWindow(time(10, 0), time(10, 30))
        assert slot in before.available_slots
        assert slot not in after.available_slots
        assert after.booked_intervals == [slot]
        assert len(after.available_slots) == len(before.available_slots) - 1

    async def test_reports_schedule(self, service):
        availability = await service.get_availability(DOCTOR_ID, HOSPITAL_ID, MONDAY)
        assert availability.working_hours.start == time(9, 0)
        assert availability.break_window == TimeWindow(time(12, 0), time(13, 0))
        assert availability.granularity_minutes == 30
        assert availability.available_slots[0] == TimeWindow(time(9, 0), time(9, 30))
        assert availability.available_slots[-1] == TimeWindow(time(16, 30), time(17, 0))

    async def test_time_off_has_no_slots(self, service):
        availability = await service.get_availability(DOCTOR_ID, HOSPITAL_ID, DAY_OFF)
        assert availability.is_time_off is True
        assert availability.available_slots == []

    async def test_weekend_has_no_slots(self, service):
        availability = await service.get_availability(DOCTOR_ID, HOSPITAL_ID, SATURDAY)
        assert availability.working_hours is None
        assert availability.available_slots == []

    async def test_unknown_doctor(self, service):
        with pytest.raises(NotFoundError):
            await service.get_availability("nobody", HOSPITAL_ID, MONDAY)


class TestBookingAndAccess:
    """Role and ownership rules of the facade."""

    async def test_only_patients_book(self, service):
        with pytest.raises(ForbiddenError):
            await book(service, principal=DOCTOR)

    async def test_patient_reads_own_appointment(self, service):
        record = await book(service)
        assert (await service.get_appointment(PATIENT, record.id)).id == record.id
        assert (await service.get_appointment(DOCTOR, record.id)).id == record.id

    async def test_patient_cannot_read_others(self, service):
        record = await book(service)
        with pytest.raises(ForbiddenError):
            await service.get_appointment(OTHER_PATIENT, record.id)

    async def test_missing_appointment(self, service):
        with pytest.raises(NotFoundError):
            await service.get_appointment(ADMIN, "missing")

    async def test_update_status(self, service):
        record = await book(service)
        confirmed = await service.update_status(DOCTOR, record.id, AppointmentStatus.CONFIRMED, record.version)
        assert confirmed.status == AppointmentStatus.CONFIRMED
        assert confirmed.version == 2


class TestListing:
    """Patient and doctor listings."""

    async def test_patient_listing_is_scoped_and_upcoming(self, service):
        monday = await book(service, day=MONDAY)
        tuesday = await book(service, day=TUESDAY)
        await book(service, principal=OTHER_PATIENT, start=time(10, 0), end=time(10, 30))

        upcoming = await service.list_patient_appointments(PATIENT, today=TUESDAY)
        everything = await service.list_patient_appointments(PATIENT, include_past=True, today=TUESDAY)

        assert [r.id for r in upcoming] == [tuesday.id]
        assert [r.id for r in everything] == [monday.id, tuesday.id]

    async def test_doctor_listing_filters(self, service):
        first = await book(service, start=time(9, 0), end=time(9, 30))
        await book(service, principal=OTHER_PATIENT, start=time(9, 30), end=time(10, 0))
        await service.update_status(DOCTOR, first.id, AppointmentStatus.CONFIRMED, 1)

        confirmed = await service.list_doctor_appointments(
            DOCTOR, DOCTOR_ID, start_date=MONDAY, end_date=MONDAY, status=AppointmentStatus.CONFIRMED
        )
        all_monday = await service.list_doctor_appointments(ADMIN, DOCTOR_ID, start_date=MONDAY, end_date=MONDAY)

        assert [r.id for r in confirmed] == [first.id]
        assert [r.start for r in all_monday] == [time(9, 0), time(9, 30)]

    async def test_patients_cannot_list_doctor_schedule(self, service):
        with pytest.raises(ForbiddenError):
            await service.list_doctor_appointments(PATIENT, DOCTOR_ID)
