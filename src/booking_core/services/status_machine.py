"""Appointment status workflow.

Every allowed change is one row of ``ALLOWED_TRANSITIONS``, keyed by
``(current, requested)`` and listing the roles that may perform it. Patients
additionally have to own the appointment. Anything absent from the table,
including every change out of a terminal state, is an invalid transition.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, FrozenSet, Optional, Tuple, Union

from booking_core.domain import AppointmentRecord, AppointmentStatus, Role
from booking_core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
)
from booking_core.services.booking_service import utcnow
from booking_core.services.timeouts import run_with_timeout
from booking_core.storage.base import StorageProvider

logger = logging.getLogger(__name__)

_STAFF = frozenset({Role.DOCTOR, Role.ADMIN})
_ANYONE = frozenset({Role.PATIENT, Role.DOCTOR, Role.ADMIN})

ALLOWED_TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentStatus], FrozenSet[Role]] = {
    (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED): _STAFF,
    (AppointmentStatus.PENDING, AppointmentStatus.REJECTED): _STAFF,
    (AppointmentStatus.PENDING, AppointmentStatus.CANCELLED): _ANYONE,
    (AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED): _STAFF,
    (AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED): _ANYONE,
}


def _coerce_role(role: Union[Role, str]) -> Role:
    try:
        return Role(role)
    except ValueError as e:
        raise ForbiddenError(f"Unknown role: {role}") from e


def check_ownership(
    appointment: AppointmentRecord,
    requester_role: Union[Role, str],
    requester_id: str,
) -> Role:
    """Patients may only act on their own appointments; staff on any."""
    role = _coerce_role(requester_role)
    if role == Role.PATIENT and requester_id != appointment.patient_id:
        raise ForbiddenError(
            "Patients can only access their own appointments",
            details={"appointment_id": appointment.id},
        )
    return role


def check_transition(
    appointment: AppointmentRecord,
    requester_role: Union[Role, str],
    requester_id: str,
    new_status: AppointmentStatus,
) -> None:
    """Validate a status change against ownership, the transition table and roles.

    Raises:
        ForbiddenError: a patient acting on someone else's appointment, or a
            role not listed for an existing edge
        InvalidTransitionError: the edge does not exist
    """
    role = check_ownership(appointment, requester_role, requester_id)

    allowed_roles = ALLOWED_TRANSITIONS.get((appointment.status, new_status))
    if allowed_roles is None:
        raise InvalidTransitionError(appointment.status.value, new_status.value)

    if role not in allowed_roles:
        raise ForbiddenError(
            f"Role {role.value} cannot change an appointment from "
            f"{appointment.status.value} to {new_status.value}",
            details={"role": role.value},
        )


def append_notes(existing: Optional[str], notes: Optional[str]) -> Optional[str]:
    if not notes:
        return existing
    if not existing:
        return notes
    return f"{existing}\n{notes}"


class StatusStateMachine:
    """Validates and persists status transitions with optimistic concurrency.

    The write succeeds only while the stored version equals the version of the
    appointment the caller read; otherwise ConflictError is raised and the
    caller must re-fetch. There is no automatic retry.
    """

    def __init__(
        self,
        provider: StorageProvider,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._provider = provider
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    async def transition(
        self,
        appointment: AppointmentRecord,
        requester_role: Union[Role, str],
        requester_id: str,
        new_status: AppointmentStatus,
        notes: Optional[str] = None,
    ) -> AppointmentRecord:
        """Move ``appointment`` (as the caller last read it) to ``new_status``."""
        check_transition(appointment, requester_role, requester_id, new_status)
        updated = await run_with_timeout(
            self._persist(appointment, new_status, append_notes(appointment.notes, notes)),
            self._timeout_seconds,
            "update appointment status",
        )
        logger.info(
            f"Appointment {appointment.id} {appointment.status.value} -> {new_status.value} "
            f"by {Role(requester_role).value} {requester_id} (version {updated.version})"
        )
        return updated

    async def transition_by_id(
        self,
        appointment_id: str,
        expected_version: int,
        requester_role: Union[Role, str],
        requester_id: str,
        new_status: AppointmentStatus,
        notes: Optional[str] = None,
    ) -> AppointmentRecord:
        """Load the appointment, check the caller's version, then transition it.

        Raises:
            NotFoundError: unknown appointment id
            ConflictError: ``expected_version`` is no longer the stored version
        """
        current = await run_with_timeout(
            self._read(appointment_id), self._timeout_seconds, "read appointment"
        )
        if current is None:
            raise NotFoundError("Appointment", resource_id=appointment_id)
        check_ownership(current, requester_role, requester_id)
        if current.version != expected_version:
            raise ConflictError(
                "Appointment was modified since it was read; re-fetch and retry",
                details={"expected_version": expected_version, "current_version": current.version},
            )
        return await self.transition(current, requester_role, requester_id, new_status, notes)

    async def _read(self, appointment_id: str) -> Optional[AppointmentRecord]:
        async with self._provider.transaction() as storage:
            return await storage.read_appointment(appointment_id)

    async def _persist(
        self,
        appointment: AppointmentRecord,
        new_status: AppointmentStatus,
        notes: Optional[str],
    ) -> AppointmentRecord:
        async with self._provider.transaction(write=True) as storage:
            updated = await storage.update_appointment_status(
                appointment.id, appointment.version, new_status, notes, self._clock()
            )
            if updated is not None:
                return updated

            stored = await storage.read_appointment(appointment.id)
            if stored is None:
                raise NotFoundError("Appointment", resource_id=appointment.id)
            raise ConflictError(
                "Appointment was modified since it was read; re-fetch and retry",
                details={"expected_version": appointment.version, "current_version": stored.version},
            )
