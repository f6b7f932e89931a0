"""SQLAlchemy database models."""

import uuid
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Statuses that still occupy their time range; kept in sync with domain.RELEASED_STATUSES
LIVE_STATUS_PREDICATE = "status NOT IN ('rejected', 'cancelled')"


def _uuid() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class DoctorSchedule(Base):
    """Weekly working hours of a doctor at a hospital (one row per weekday)."""

    __tablename__ = "doctor_schedules"
    __table_args__ = (
        UniqueConstraint("doctor_id", "hospital_id", "weekday", name="uq_doctor_schedules_weekday"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid, index=True)
    doctor_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    hospital_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)

    # Monday = 0 ... Sunday = 6
    weekday: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    break_start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    break_end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<DoctorSchedule(doctor_id={self.doctor_id}, hospital_id={self.hospital_id}, "
            f"weekday={self.weekday}, {self.start_time}-{self.end_time})>"
        )


class DoctorTimeOff(Base):
    """A full day on which the doctor does not see patients at a hospital."""

    __tablename__ = "doctor_time_off"
    __table_args__ = (
        UniqueConstraint("doctor_id", "hospital_id", "off_date", name="uq_doctor_time_off_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid, index=True)
    doctor_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    hospital_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    off_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<DoctorTimeOff(doctor_id={self.doctor_id}, off_date={self.off_date})>"


class Appointment(Base):
    """Appointment database model."""

    __tablename__ = "appointments"
    __table_args__ = (
        # Last line of defence against double booking: one live appointment per slot start.
        Index(
            "uq_appointments_live_slot",
            "doctor_id",
            "appointment_date",
            "start_time",
            unique=True,
            postgresql_where=text(LIVE_STATUS_PREDICATE),
            sqlite_where=text(LIVE_STATUS_PREDICATE),
        ),
        Index("ix_appointments_doctor_date", "doctor_id", "appointment_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid, index=True)
    patient_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    doctor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    hospital_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)

    appointment_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    status: Mapped[str] = mapped_column(String(20), index=True, nullable=False, default="pending")
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Optimistic concurrency token, bumped on every status change
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, "
            f"date={self.appointment_date}, start={self.start_time}, status={self.status})>"
        )
