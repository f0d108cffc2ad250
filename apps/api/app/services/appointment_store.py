"""Appointment store - query and invariant layer for the scheduling engine.

All conflict scans, counts and conditional writes against the appointments
table live here. Writes that depend on a conflict scan must run inside
``agent_schedule_lock`` for every agent whose calendar the write touches.
"""

import logging
import threading
import weakref
from contextlib import ExitStack, contextmanager
from typing import Any, Iterator
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session, joinedload

from app.db.enums import (
    NON_BLOCKING_APPOINTMENT_STATUSES,
    OPEN_APPOINTMENT_STATUSES,
)
from app.db.models import Appointment, User
from app.services.conflict_window import ConflictWindow
from app.utils.normalization import escape_like, normalize_email

logger = logging.getLogger(__name__)


# =============================================================================
# Per-agent serialization
# =============================================================================

# Entries vanish once no caller holds the lock, so the registry stays bounded
# by the number of agents currently being scheduled.
_agent_locks: "weakref.WeakValueDictionary[UUID, threading.Lock]" = weakref.WeakValueDictionary()
_agent_locks_guard = threading.Lock()


def _lock_for_agent(agent_id: UUID) -> threading.Lock:
    with _agent_locks_guard:
        lock = _agent_locks.get(agent_id)
        if lock is None:
            lock = threading.Lock()
            _agent_locks[agent_id] = lock
        return lock


@contextmanager
def agent_schedule_lock(db: Session, *agent_ids: UUID) -> Iterator[None]:
    """
    Serialize conflict-scan + write for one or more agents.

    Holds a process-local lock per agent and row-locks the agents' ``users``
    rows (SELECT ... FOR UPDATE) so that other processes sharing the
    database queue behind this transaction as well. Locks are always taken
    in id order, so callers locking overlapping sets cannot deadlock.
    The caller must commit before leaving the block; on error the session
    is rolled back.
    """
    ordered = sorted(set(agent_ids), key=str)
    with ExitStack() as stack:
        for agent_id in ordered:
            stack.enter_context(_lock_for_agent(agent_id))
        try:
            db.execute(
                select(User.id)
                .where(User.id.in_(ordered))
                .order_by(User.id)
                .with_for_update()
            )
            yield
        except Exception:
            db.rollback()
            raise


# =============================================================================
# Reads
# =============================================================================

def _populated():
    return (joinedload(Appointment.property), joinedload(Appointment.agent))


def get_appointment(db: Session, appointment_id: UUID) -> Appointment | None:
    """Get appointment by ID with agent and listing loaded."""
    return db.execute(
        select(Appointment)
        .options(*_populated())
        .where(Appointment.id == appointment_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def find_conflicting_appointment(
    db: Session,
    agent_id: UUID,
    window: ConflictWindow,
    exclude_appointment_id: UUID | None = None,
) -> Appointment | None:
    """
    First blocking appointment of ``agent_id`` strictly inside ``window``.

    Cancelled appointments never block.
    """
    query = select(Appointment).where(
        Appointment.agent_id == agent_id,
        Appointment.appointment_at > window.lower,
        Appointment.appointment_at < window.upper,
        Appointment.status.not_in([s.value for s in NON_BLOCKING_APPOINTMENT_STATUSES]),
    )
    if exclude_appointment_id:
        query = query.where(Appointment.id != exclude_appointment_id)
    return db.execute(query.limit(1)).scalar_one_or_none()


def count_open_appointments_for_agent(db: Session, agent_id: UUID) -> int:
    """Count appointments of an agent that still need handling."""
    return db.execute(
        select(func.count(Appointment.id)).where(
            Appointment.agent_id == agent_id,
            Appointment.status.in_([s.value for s in OPEN_APPOINTMENT_STATUSES]),
        )
    ).scalar_one()


def list_appointments(
    db: Session,
    search: str | None = None,
    status: str | None = None,
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[Appointment], int]:
    """List appointments newest first, optionally filtered by client search and status."""
    filters = []
    if search:
        pattern = f"%{escape_like(search.strip())}%"
        filters.append(
            or_(
                Appointment.client_name.ilike(pattern, escape="\\"),
                Appointment.client_email.ilike(pattern, escape="\\"),
                Appointment.client_phone.ilike(pattern, escape="\\"),
            )
        )
    if status:
        filters.append(Appointment.status == status)

    total = db.execute(
        select(func.count(Appointment.id)).where(*filters)
    ).scalar_one()
    appointments = db.execute(
        select(Appointment)
        .options(*_populated())
        .where(*filters)
        .order_by(Appointment.created_at.desc(), Appointment.id)
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return list(appointments), total


def list_appointments_for_client(
    db: Session,
    email: str,
    phone_number: str | None = None,
) -> list[Appointment]:
    """Appointments requested with the given email or phone, latest instant first."""
    conditions = [func.lower(Appointment.client_email) == normalize_email(email)]
    if phone_number:
        conditions.append(Appointment.client_phone == phone_number)
    return list(
        db.execute(
            select(Appointment)
            .options(*_populated())
            .where(or_(*conditions))
            .order_by(Appointment.appointment_at.desc())
        ).scalars().all()
    )


# =============================================================================
# Writes
# =============================================================================

def add_appointment(db: Session, appointment: Appointment) -> Appointment:
    """Stage a new appointment and flush it so the id is assigned."""
    db.add(appointment)
    db.flush()
    return appointment


def update_appointment_fields(
    db: Session,
    appointment_id: UUID,
    values: dict[str, Any],
    expected: dict[str, Any] | None = None,
) -> bool:
    """
    Conditionally update one appointment.

    ``expected`` maps column names to the values the caller checked; the
    row is only written while it still holds them. Returns False when no
    row matched (the record vanished or changed since it was read).
    """
    conditions = [Appointment.id == appointment_id]
    for column, value in (expected or {}).items():
        conditions.append(getattr(Appointment, column) == value)

    if not values:
        exists = db.execute(select(Appointment.id).where(*conditions)).scalar_one_or_none()
        return exists is not None
    result = db.execute(
        update(Appointment)
        .where(*conditions)
        .values(**values, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0


def delete_appointment(db: Session, appointment_id: UUID) -> bool:
    """Hard delete. Returns False when nothing was deleted."""
    result = db.execute(
        delete(Appointment)
        .where(Appointment.id == appointment_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount > 0
