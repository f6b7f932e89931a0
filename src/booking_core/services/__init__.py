"""Service layer for business logic."""

from booking_core.services.appointments_service import Availability, AppointmentsService
from booking_core.services.availability import compute_slots, find_conflict
from booking_core.services.booking_service import BookingTransactionManager
from booking_core.services.schedule_resolver import ScheduleResolver
from booking_core.services.status_machine import (
    ALLOWED_TRANSITIONS,
    StatusStateMachine,
    check_transition,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Availability",
    "AppointmentsService",
    "BookingTransactionManager",
    "ScheduleResolver",
    "StatusStateMachine",
    "check_transition",
    "compute_slots",
    "find_conflict",
]
