"""Agent directory - resolves agents and guards their deactivation."""

import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.structured_logging import build_log_context
from app.db.models import Property, User
from app.services import appointment_store

logger = logging.getLogger(__name__)


class AgentDirectoryError(Exception):
    """Base exception for agent directory errors."""

    pass


class AgentNotFoundError(AgentDirectoryError):
    """User not found."""

    pass


class NotAnAgentError(AgentDirectoryError):
    """User exists but does not hold an agent-capable role."""

    pass


class AgentInactiveError(AgentDirectoryError):
    """Agent has been deactivated."""

    pass


class AgentHasDependentsError(AgentDirectoryError):
    """Agent still owns listings or open appointments."""

    def __init__(self, message: str, property_count: int = 0, appointment_count: int = 0):
        self.property_count = property_count
        self.appointment_count = appointment_count
        super().__init__(message)


def get_user(db: Session, user_id: UUID) -> User | None:
    """Get user by ID."""
    return db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    ).scalar_one_or_none()


def count_listings_for_agent(db: Session, agent_id: UUID) -> int:
    """Count listings currently assigned to an agent."""
    return db.execute(
        select(func.count(Property.id)).where(Property.agent_id == agent_id)
    ).scalar_one()


def resolve_assignable_agent(db: Session, agent_id: UUID) -> User:
    """
    Return the user if it can take listings/appointments right now.

    Raises:
        AgentNotFoundError: No such user
        NotAnAgentError: User lacks an agent-capable role
        AgentInactiveError: Agent is deactivated
    """
    user = get_user(db, agent_id)
    if not user:
        raise AgentNotFoundError(f"Agent {agent_id} not found")
    if not user.is_agent:
        raise NotAnAgentError(f"User {agent_id} is not a valid agent")
    if not user.is_active:
        raise AgentInactiveError(f"Agent {agent_id} is inactive")
    return user


def deactivate_agent(db: Session, agent_id: UUID, actor_id: UUID) -> User:
    """
    Soft-deactivate an agent.

    Refuses while the agent still has listings or pending/contacted
    appointments; the caller must reassign those first. Runs under the
    agent's scheduling lock so no booking slips in between the checks
    and the flag flip. Existing sessions of the agent are revoked.
    """
    user = get_user(db, agent_id)
    if not user:
        raise AgentNotFoundError(f"User {agent_id} not found")

    log_context = build_log_context(agent_id=str(agent_id), actor_id=str(actor_id))

    with appointment_store.agent_schedule_lock(db, agent_id):
        property_count = count_listings_for_agent(db, agent_id)
        if property_count > 0:
            logger.warning("Deactivation blocked by %d listing(s)", property_count, extra=log_context)
            raise AgentHasDependentsError(
                f"This agent cannot be deactivated. They still have {property_count} "
                "listing(s) assigned. Please reassign them first.",
                property_count=property_count,
            )

        appointment_count = appointment_store.count_open_appointments_for_agent(db, agent_id)
        if appointment_count > 0:
            logger.warning(
                "Deactivation blocked by %d open appointment(s)", appointment_count, extra=log_context
            )
            raise AgentHasDependentsError(
                f"This agent cannot be deactivated. They still have {appointment_count} "
                "pending appointment(s). Please reassign them first.",
                appointment_count=appointment_count,
            )

        user.is_active = False
        user.token_version = user.token_version + 1
        db.commit()

    logger.info("Agent deactivated", extra=log_context)
    db.refresh(user)
    return user
