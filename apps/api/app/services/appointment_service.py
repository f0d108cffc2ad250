"""Appointment service - business logic for scheduling listing appointments.

Handles:
- Booking requests against a listing's agent with conflict detection
- Rescheduling and status changes (strict lifecycle)
- Reassignment to another agent, checked against the new agent's calendar
- Hard removal

Every write that depends on a conflict scan runs inside the per-agent
serialization point provided by the appointment store, and re-reads the
records it depends on once the lock is held.
"""

import logging
from contextlib import contextmanager
from typing import Iterator
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.structured_logging import build_log_context, mask_email
from app.db.enums import AppointmentStatus, DEFAULT_APPOINTMENT_STATUS
from app.db.models import Appointment, Property, User
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.services import (
    agent_service,
    appointment_store,
    notification_service,
    property_service,
)
from app.services.conflict_window import conflict_window, to_utc
from app.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, PaginationParams

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base exception for scheduling errors."""

    pass


class AppointmentNotFoundError(SchedulingError):
    """Appointment not found."""

    pass


class PropertyNotFoundError(SchedulingError):
    """Listing referenced by a booking request not found."""

    pass


class AppointmentConflictError(SchedulingError):
    """The agent already has an appointment inside the exclusion window."""

    def __init__(self, agent_id: UUID, message: str | None = None):
        self.agent_id = agent_id
        super().__init__(
            message
            or f"Agent {agent_id} already has an appointment that overlaps the selected time. "
            "Please choose another time."
        )


class InvalidAgentError(SchedulingError):
    """Reassignment target is missing, inactive, or not agent-capable."""

    pass


class InvalidStatusTransitionError(SchedulingError):
    """Requested status change is not allowed by the appointment lifecycle."""

    pass


class AppointmentChangedError(SchedulingError):
    """The record changed under the request; the caller should reload and retry."""

    pass


class SchedulingIntegrityError(SchedulingError):
    """Stored data violates an invariant the engine relies on."""

    pass


# =============================================================================
# Reads
# =============================================================================

def get_appointment(db: Session, appointment_id: UUID) -> Appointment:
    """Get a populated appointment or raise AppointmentNotFoundError."""
    appointment = appointment_store.get_appointment(db, appointment_id)
    if not appointment:
        raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
    return appointment


def list_appointments(
    db: Session,
    search: str | None = None,
    status: AppointmentStatus | None = None,
    pagination: PaginationParams | None = None,
) -> tuple[list[Appointment], int]:
    """Paginated listing for staff."""
    pagination = pagination or PaginationParams(page=DEFAULT_PAGE, limit=DEFAULT_LIMIT)
    return appointment_store.list_appointments(
        db,
        search=search,
        status=status.value if status else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )


def list_for_client(db: Session, email: str, phone_number: str | None) -> list[Appointment]:
    """Appointments requested with the caller's email or phone."""
    return appointment_store.list_appointments_for_client(db, email, phone_number)


# =============================================================================
# Locking helpers
# =============================================================================

# Times a request re-reads and re-locks when the agent it locked is no longer
# the one the record points to.
LOCK_ATTEMPTS = 3


def _resolve_listing_agent(db: Session, property_id: UUID) -> tuple[Property, User]:
    """Listing and its active agent, or the matching scheduling error."""
    listing = property_service.get_property(db, property_id)
    if not listing:
        raise PropertyNotFoundError(f"Property {property_id} not found")

    agent = listing.agent
    if not agent:
        logger.error(
            "Listing has no agent assigned",
            extra=build_log_context(property_id=str(listing.id)),
        )
        raise SchedulingIntegrityError("The listing has no agent assigned")
    if not agent.is_active:
        logger.error(
            "Listing is assigned to an inactive agent",
            extra=build_log_context(property_id=str(listing.id), agent_id=str(agent.id)),
        )
        raise SchedulingIntegrityError("The listing's agent is no longer active")
    return listing, agent


def _resolve_target_agent(db: Session, agent_id: UUID) -> User:
    try:
        return agent_service.resolve_assignable_agent(db, agent_id)
    except agent_service.AgentDirectoryError as e:
        raise InvalidAgentError(str(e)) from e


@contextmanager
def _locked_appointment(
    db: Session,
    appointment_id: UUID,
    *other_agent_ids: UUID,
) -> Iterator[Appointment]:
    """
    Lock the appointment's agent (plus ``other_agent_ids``) and yield the
    appointment as re-read under that lock.

    If the appointment moved to another agent between the first read and
    the lock, the locks are dropped and taken again for the new agent.
    """
    for _ in range(LOCK_ATTEMPTS):
        agent_id = get_appointment(db, appointment_id).agent_id
        with appointment_store.agent_schedule_lock(db, agent_id, *other_agent_ids):
            appointment = get_appointment(db, appointment_id)
            if appointment.agent_id == agent_id:
                yield appointment
                return
            db.rollback()
    raise AppointmentChangedError(f"Appointment {appointment_id} keeps changing agents; try again")


def _apply_update(db: Session, appointment: Appointment, values: dict[str, object]) -> None:
    """Write ``values`` only if the row still holds what was checked, then commit."""
    expected = {
        "agent_id": appointment.agent_id,
        "appointment_at": appointment.appointment_at,
        "status": appointment.status,
    }
    if not appointment_store.update_appointment_fields(db, appointment.id, values, expected):
        raise AppointmentChangedError(
            f"Appointment {appointment.id} was changed or removed by another request"
        )
    db.commit()


# =============================================================================
# Create
# =============================================================================

def create_appointment(db: Session, data: AppointmentCreate) -> Appointment:
    """
    Create a pending appointment with the listing's agent.

    - The agent always comes from the listing
    - Rejects the request if the agent is busy inside the exclusion window
    - Notifies agent and client after commit (best-effort)
    """
    appointment_at = to_utc(data.appointment_date)
    window = conflict_window(appointment_at)

    for _ in range(LOCK_ATTEMPTS):
        listing, agent = _resolve_listing_agent(db, data.property_id)
        with appointment_store.agent_schedule_lock(db, agent.id):
            # The listing may have moved (and its old agent retired) before the lock
            listing, current_agent = _resolve_listing_agent(db, data.property_id)
            if current_agent.id != agent.id:
                db.rollback()
                continue

            logger.info(
                "Checking availability between %s and %s",
                window.lower.isoformat(),
                window.upper.isoformat(),
                extra=build_log_context(agent_id=str(agent.id), property_id=str(listing.id)),
            )
            conflict = appointment_store.find_conflicting_appointment(db, agent.id, window)
            if conflict:
                logger.warning(
                    "Appointment conflict for requested time %s",
                    appointment_at.isoformat(),
                    extra=build_log_context(agent_id=str(agent.id)),
                )
                raise AppointmentConflictError(agent.id)

            appointment = Appointment(
                property_id=listing.id,
                agent_id=agent.id,
                client_name=data.name,
                client_email=str(data.email),
                client_phone=data.phone_number,
                message=data.message,
                appointment_at=appointment_at,
                status=DEFAULT_APPOINTMENT_STATUS.value,
            )
            appointment_store.add_appointment(db, appointment)
            db.commit()
            break
    else:
        raise AppointmentChangedError(f"Property {data.property_id} keeps changing agents; try again")

    logger.info(
        "Appointment created for client %s",
        mask_email(appointment.client_email),
        extra=build_log_context(
            appointment_id=str(appointment.id),
            agent_id=str(agent.id),
            property_id=str(listing.id),
        ),
    )

    appointment = get_appointment(db, appointment.id)
    notification_service.notify_appointment_created(appointment)
    return appointment


# =============================================================================
# Update
# =============================================================================

def update_appointment(
    db: Session,
    appointment_id: UUID,
    actor_id: UUID,
    patch: AppointmentUpdate,
) -> Appointment:
    """
    Partially update time and/or status.

    A new time is checked against the same agent's other appointments
    (the appointment itself is excluded). Status changes follow the
    lifecycle; cancelled is terminal.
    """
    fields = patch.model_fields_set
    new_time = None
    if "appointment_date" in fields and patch.appointment_date is not None:
        new_time = to_utc(patch.appointment_date)

    with _locked_appointment(db, appointment_id) as existing:
        current_status = AppointmentStatus(existing.status)
        target_status = current_status
        if "status" in fields and patch.status is not None:
            target_status = patch.status
            if not current_status.can_transition_to(target_status):
                raise InvalidStatusTransitionError(
                    f"Cannot change appointment status from {current_status.value} "
                    f"to {target_status.value}"
                )

        values: dict[str, object] = {}
        if target_status != current_status:
            values["status"] = target_status.value
        if new_time is not None:
            values["appointment_at"] = new_time

        log_context = build_log_context(
            appointment_id=str(appointment_id),
            agent_id=str(existing.agent_id),
            actor_id=str(actor_id),
        )

        if new_time is not None and target_status != AppointmentStatus.CANCELLED:
            conflict = appointment_store.find_conflicting_appointment(
                db,
                existing.agent_id,
                conflict_window(new_time),
                exclude_appointment_id=appointment_id,
            )
            if conflict:
                logger.warning("Reschedule conflicts with another appointment", extra=log_context)
                raise AppointmentConflictError(
                    existing.agent_id,
                    "The agent already has another appointment at the selected time.",
                )
        _apply_update(db, existing, values)

    logger.info("Appointment updated (%s)", ", ".join(sorted(values)) or "no changes", extra=log_context)
    return get_appointment(db, appointment_id)


# =============================================================================
# Reassign
# =============================================================================

def reassign_agent(
    db: Session,
    appointment_id: UUID,
    actor_id: UUID,
    new_agent_id: UUID,
) -> Appointment:
    """
    Move an appointment to another agent.

    The appointment keeps its time; the conflict scan runs against the
    new agent's calendar. Both the current and the new agent are locked,
    so a concurrent reschedule or deactivation of either one waits.
    Reassigning to the current agent is a no-op.
    """
    _resolve_target_agent(db, new_agent_id)
    log_context = build_log_context(
        appointment_id=str(appointment_id),
        agent_id=str(new_agent_id),
        actor_id=str(actor_id),
    )

    with _locked_appointment(db, appointment_id, new_agent_id) as appointment:
        previous_agent_id = appointment.agent_id
        if previous_agent_id == new_agent_id:
            db.rollback()
            logger.info("Agent already assigned to appointment; nothing to do", extra=log_context)
            return get_appointment(db, appointment_id)

        # Re-check under the lock: the agent may have been deactivated since
        _resolve_target_agent(db, new_agent_id)

        conflict = appointment_store.find_conflicting_appointment(
            db,
            new_agent_id,
            conflict_window(appointment.appointment_at),
            exclude_appointment_id=appointment_id,
        )
        if conflict:
            logger.warning("New agent is busy at the appointment time", extra=log_context)
            raise AppointmentConflictError(
                new_agent_id,
                f"The new agent ({new_agent_id}) already has an appointment at that time.",
            )
        _apply_update(db, appointment, {"agent_id": new_agent_id})

    logger.info(
        "Appointment reassigned from agent %s",
        previous_agent_id,
        extra=log_context,
    )
    return get_appointment(db, appointment_id)


# =============================================================================
# Remove
# =============================================================================

def remove_appointment(db: Session, appointment_id: UUID, actor_id: UUID) -> str:
    """Hard delete an appointment and return a confirmation message."""
    if not appointment_store.delete_appointment(db, appointment_id):
        db.rollback()
        raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
    db.commit()
    logger.info(
        "Appointment deleted",
        extra=build_log_context(appointment_id=str(appointment_id), actor_id=str(actor_id)),
    )
    return f"Appointment {appointment_id} deleted successfully"
