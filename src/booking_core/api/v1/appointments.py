"""Appointments endpoints: availability, booking and status workflow.

Authentication is a bearer JWT carrying ``sub`` and ``role``. Domain errors
propagate as APIException subclasses and are rendered by the application's
exception handler.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from booking_core.auth.dependencies import get_current_principal
from booking_core.dependencies import get_appointments_service
from booking_core.domain import AppointmentStatus, Principal
from booking_core.models.appointments import (
    AppointmentCreateRequest,
    AppointmentListResponse,
    AppointmentResponse,
    AvailabilityResponse,
    StatusUpdateRequest,
    TimeWindowModel,
    WorkingHoursModel,
)
from booking_core.services.appointments_service import AppointmentsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a doctor's availability",
    description="Return the bookable slots of a doctor at a hospital on one date.",
    dependencies=[Depends(get_current_principal)],
)
async def get_availability(
    doctor_id: str = Query(..., min_length=1, description="Doctor ID"),
    hospital_id: str = Query(..., min_length=1, description="Hospital ID"),
    day: date = Query(..., alias="date", description="Date (YYYY-MM-DD)"),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AvailabilityResponse:
    availability = await service.get_availability(doctor_id, hospital_id, day)
    return AvailabilityResponse(
        doctor_id=availability.doctor_id,
        hospital_id=availability.hospital_id,
        date=availability.date,
        granularity_minutes=availability.granularity_minutes,
        is_time_off=availability.is_time_off,
        working_hours=(
            WorkingHoursModel.from_hours(availability.working_hours)
            if availability.working_hours
            else None
        ),
        break_window=(
            TimeWindowModel.from_window(availability.break_window)
            if availability.break_window
            else None
        ),
        booked_intervals=[TimeWindowModel.from_window(w) for w in availability.booked_intervals],
        available_slots=[TimeWindowModel.from_window(s) for s in availability.available_slots],
    )


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    description=(
        "Book one slot for the calling patient. The slot is re-checked at write time; "
        "if it was taken in the meantime the request fails with SLOT_UNAVAILABLE."
    ),
)
async def book_appointment(
    request: AppointmentCreateRequest,
    principal: Principal = Depends(get_current_principal),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    record = await service.book_appointment(
        principal,
        doctor_id=request.doctor_id,
        hospital_id=request.hospital_id,
        day=request.date,
        start=request.start_time,
        end=request.end_time,
        reason=request.reason,
    )
    return AppointmentResponse.from_record(record)


@router.get(
    "/patient",
    response_model=AppointmentListResponse,
    summary="List the caller's appointments",
)
async def list_patient_appointments(
    include_past: bool = Query(False, description="Include appointments before today"),
    principal: Principal = Depends(get_current_principal),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentListResponse:
    records = await service.list_patient_appointments(principal, include_past=include_past)
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_record(r) for r in records],
        total=len(records),
    )


@router.get(
    "/doctor",
    response_model=AppointmentListResponse,
    summary="List a doctor's appointments",
    description="Doctors and admins only. Optionally filtered by date range and status.",
)
async def list_doctor_appointments(
    doctor_id: str = Query(..., min_length=1, description="Doctor ID"),
    start_date: Optional[date] = Query(None, description="First date (inclusive)"),
    end_date: Optional[date] = Query(None, description="Last date (inclusive)"),
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status", description="Status filter"),
    principal: Principal = Depends(get_current_principal),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentListResponse:
    records = await service.list_doctor_appointments(
        principal,
        doctor_id,
        start_date=start_date,
        end_date=end_date,
        status=status_filter,
    )
    return AppointmentListResponse(
        appointments=[AppointmentResponse.from_record(r) for r in records],
        total=len(records),
    )


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get an appointment",
)
async def get_appointment(
    appointment_id: str,
    principal: Principal = Depends(get_current_principal),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    record = await service.get_appointment(principal, appointment_id)
    return AppointmentResponse.from_record(record)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    summary="Change an appointment's status",
    description=(
        "Apply one workflow transition. ``version`` must be the version the caller "
        "last read; a stale version fails with CONFLICT."
    ),
)
async def update_status(
    appointment_id: str,
    request: StatusUpdateRequest,
    principal: Principal = Depends(get_current_principal),
    service: AppointmentsService = Depends(get_appointments_service),
) -> AppointmentResponse:
    record = await service.update_status(
        principal,
        appointment_id,
        new_status=request.status,
        expected_version=request.version,
        notes=request.notes,
    )
    return AppointmentResponse.from_record(record)
