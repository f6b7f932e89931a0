"""Repository layer for data access operations."""

from booking_core.repositories.appointments_repository import AppointmentsRepository, to_record
from booking_core.repositories.base import BaseRepository
from booking_core.repositories.schedule_repository import ScheduleRepository

__all__ = [
    "BaseRepository",
    "AppointmentsRepository",
    "ScheduleRepository",
    "to_record",
]
