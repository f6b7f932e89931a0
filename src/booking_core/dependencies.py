"""FastAPI dependencies."""

from fastapi import Request

from booking_core.config import get_settings
from booking_core.services.appointments_service import AppointmentsService
from booking_core.storage.base import StorageProvider


def get_storage(request: Request) -> StorageProvider:
    """Storage provider created during application startup."""
    return request.app.state.storage


def get_appointments_service(request: Request) -> AppointmentsService:
    return AppointmentsService(get_storage(request), get_settings().booking)


__all__ = ["get_appointments_service", "get_storage"]
