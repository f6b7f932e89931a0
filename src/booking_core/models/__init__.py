"""Request and response models."""

from booking_core.models.appointments import (
    AppointmentCreateRequest,
    AppointmentListResponse,
    AppointmentResponse,
    AvailabilityResponse,
    StatusUpdateRequest,
    TimeWindowModel,
    WorkingHoursModel,
)

__all__ = [
    "AppointmentCreateRequest",
    "AppointmentListResponse",
    "AppointmentResponse",
    "AvailabilityResponse",
    "StatusUpdateRequest",
    "TimeWindowModel",
    "WorkingHoursModel",
]
