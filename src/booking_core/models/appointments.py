"""Pydantic models for availability, booking and status endpoints."""

from __future__ import annotations

import datetime as dt
from datetime import datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field

from booking_core.domain import AppointmentRecord, AppointmentStatus, TimeWindow, WorkingHours


class TimeWindowModel(BaseModel):
    """A half-open clock interval ``[start, end)``."""

    start: time = Field(..., description="Window start (HH:MM)")
    end: time = Field(..., description="Window end (HH:MM, exclusive)")

    @classmethod
    def from_window(cls, window: TimeWindow) -> "TimeWindowModel":
        return cls(start=window.start, end=window.end)


class WorkingHoursModel(BaseModel):
    """Working hours of a doctor on one weekday."""

    start: time = Field(..., description="Start of the working day")
    end: time = Field(..., description="End of the working day")
    break_start: Optional[time] = Field(None, description="Start of the break, if any")
    break_end: Optional[time] = Field(None, description="End of the break, if any")

    @classmethod
    def from_hours(cls, hours: WorkingHours) -> "WorkingHoursModel":
        return cls(
            start=hours.start,
            end=hours.end,
            break_start=hours.break_start,
            break_end=hours.break_end,
        )


class AvailabilityResponse(BaseModel):
    """Response model for a doctor's availability on one date."""

    doctor_id: str = Field(..., description="Doctor ID")
    hospital_id: str = Field(..., description="Hospital ID")
    date: dt.date = Field(..., description="Requested date")
    granularity_minutes: int = Field(..., description="Slot width in minutes")
    is_time_off: bool = Field(False, description="Whether the doctor is off on this date")
    working_hours: Optional[WorkingHoursModel] = Field(
        None, description="Working hours for the weekday (absent if the doctor does not work)"
    )
    break_window: Optional[TimeWindowModel] = Field(
        None, description="Break within the working hours, if any"
    )
    booked_intervals: List[TimeWindowModel] = Field(
        default_factory=list, description="Intervals held by live appointments"
    )
    available_slots: List[TimeWindowModel] = Field(
        default_factory=list, description="Bookable slots, ascending by start"
    )


class AppointmentCreateRequest(BaseModel):
    """Request model for booking a slot."""

    doctor_id: str = Field(..., min_length=1, description="Doctor ID")
    hospital_id: str = Field(..., min_length=1, description="Hospital ID")
    date: dt.date = Field(..., description="Appointment date (YYYY-MM-DD)")
    start_time: time = Field(..., description="Slot start (HH:MM)")
    end_time: time = Field(..., description="Slot end (HH:MM)")
    reason: Optional[str] = Field(None, max_length=1000, description="Reason for the visit")


class StatusUpdateRequest(BaseModel):
    """Request model for changing an appointment's status."""

    status: AppointmentStatus = Field(..., description="Requested status")
    version: int = Field(..., ge=1, description="Version of the appointment the caller last read")
    notes: Optional[str] = Field(None, max_length=2000, description="Notes appended to the appointment")


class AppointmentResponse(BaseModel):
    """Response model for a stored appointment."""

    appointment_id: str = Field(..., description="Appointment ID")
    patient_id: str = Field(..., description="Patient ID")
    doctor_id: str = Field(..., description="Doctor ID")
    hospital_id: str = Field(..., description="Hospital ID")
    date: dt.date = Field(..., description="Appointment date")
    start_time: time = Field(..., description="Slot start")
    end_time: time = Field(..., description="Slot end")
    status: AppointmentStatus = Field(..., description="Current status")
    reason: Optional[str] = Field(None, description="Reason for the visit")
    notes: Optional[str] = Field(None, description="Notes")
    version: int = Field(..., description="Optimistic concurrency version")
    created_at: datetime = Field(..., description="Created at timestamp")
    updated_at: datetime = Field(..., description="Updated at timestamp")

    @classmethod
    def from_record(cls, record: AppointmentRecord) -> "AppointmentResponse":
        return cls(
            appointment_id=record.id,
            patient_id=record.patient_id,
            doctor_id=record.doctor_id,
            hospital_id=record.hospital_id,
            date=record.date,
            start_time=record.start,
            end_time=record.end,
            status=record.status,
            reason=record.reason,
            notes=record.notes,
            version=record.version,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class AppointmentListResponse(BaseModel):
    """Response model for appointment listings."""

    appointments: List[AppointmentResponse] = Field(default_factory=list, description="Appointments")
    total: int = Field(..., description="Number of appointments returned")
