"""Listing lookups and listing-to-agent reassignment."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.core.structured_logging import build_log_context
from app.db.models import Property
from app.services import agent_service, appointment_store

logger = logging.getLogger(__name__)


class PropertyServiceError(Exception):
    """Base exception for listing errors."""

    pass


class PropertyNotFoundError(PropertyServiceError):
    """Listing not found."""

    pass


class InvalidPropertyAgentError(PropertyServiceError):
    """Target agent cannot take the listing."""

    pass


def get_property(db: Session, property_id: UUID) -> Property | None:
    """Get listing by ID with its agent loaded."""
    return db.execute(
        select(Property)
        .options(joinedload(Property.agent))
        .where(Property.id == property_id)
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()


def reassign_property_agent(
    db: Session,
    property_id: UUID,
    new_agent_id: UUID,
    actor_id: UUID,
) -> Property:
    """
    Move a listing to another active agent.

    Existing appointments of the listing keep their agent; only future
    booking requests go to the new one.
    """
    listing = get_property(db, property_id)
    if not listing:
        raise PropertyNotFoundError(f"Property {property_id} not found")

    try:
        agent = agent_service.resolve_assignable_agent(db, new_agent_id)
    except agent_service.AgentDirectoryError as e:
        raise InvalidPropertyAgentError(str(e)) from e

    # Same lock as deactivation so a listing can't land on an agent mid-deactivation
    with appointment_store.agent_schedule_lock(db, agent.id):
        db.refresh(agent)
        if not agent.is_active:
            raise InvalidPropertyAgentError(f"Agent {new_agent_id} is inactive")
        previous_agent_id = listing.agent_id
        listing.agent_id = agent.id
        db.commit()

    logger.info(
        "Listing moved from agent %s",
        previous_agent_id,
        extra=build_log_context(
            property_id=str(property_id),
            agent_id=str(new_agent_id),
            actor_id=str(actor_id),
        ),
    )
    db.refresh(listing)
    return listing
