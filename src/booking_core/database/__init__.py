"""Database connection and session management."""

from booking_core.database.connection import (
    check_connection,
    close_engine,
    create_engine,
    get_engine,
)
from booking_core.database.models import (
    Appointment,
    Base,
    DoctorSchedule,
    DoctorTimeOff,
)
from booking_core.database.session import (
    close_db,
    get_session_factory,
    init_db,
)

__all__ = [
    # Models
    "Base",
    "Appointment",
    "DoctorSchedule",
    "DoctorTimeOff",
    # Connection
    "get_engine",
    "create_engine",
    "close_engine",
    "check_connection",
    # Session
    "get_session_factory",
    "init_db",
    "close_db",
]
