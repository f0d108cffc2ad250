"""Tests for agent resolution, deactivation guards and listing reassignment."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest

from app.db.enums import AppointmentStatus, Role
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.services import agent_service, appointment_service, property_service

from conftest import create_property, create_user


T = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)


def _book(db, listing, when=T):
    return appointment_service.create_appointment(
        db,
        AppointmentCreate(
            property_id=listing.id,
            name="Jane Buyer",
            email="jane@example.com",
            phone_number="+15550001111",
            message="I would like to visit this apartment.",
            appointment_date=when,
        ),
    )


# =============================================================================
# Resolution
# =============================================================================

def test_resolve_assignable_agent(db, agent, superadmin, client_user):
    assert agent_service.resolve_assignable_agent(db, agent.id).id == agent.id
    assert agent_service.resolve_assignable_agent(db, superadmin.id).id == superadmin.id

    with pytest.raises(agent_service.AgentNotFoundError):
        agent_service.resolve_assignable_agent(db, uuid4())
    with pytest.raises(agent_service.NotAnAgentError):
        agent_service.resolve_assignable_agent(db, client_user.id)

    inactive = create_user(db, Role.ADMIN, is_active=False)
    with pytest.raises(agent_service.AgentInactiveError):
        agent_service.resolve_assignable_agent(db, inactive.id)


# =============================================================================
# Deactivation
# =============================================================================

def test_deactivation_blocked_by_pending_then_allowed_after_reassign(
    db, agent, other_agent, superadmin
):
    listing = create_property(db, agent)
    appointment = _book(db, listing)

    # Listing guard first
    with pytest.raises(agent_service.AgentHasDependentsError) as exc_info:
        agent_service.deactivate_agent(db, agent.id, superadmin.id)
    assert exc_info.value.property_count == 1

    property_service.reassign_property_agent(db, listing.id, other_agent.id, superadmin.id)

    # Then the pending appointment
    with pytest.raises(agent_service.AgentHasDependentsError) as exc_info:
        agent_service.deactivate_agent(db, agent.id, superadmin.id)
    assert exc_info.value.appointment_count == 1
    assert "reassign" in str(exc_info.value)
    assert agent_service.get_user(db, agent.id).is_active is True

    appointment_service.reassign_agent(db, appointment.id, superadmin.id, other_agent.id)

    deactivated = agent_service.deactivate_agent(db, agent.id, superadmin.id)
    assert deactivated.is_active is False
    assert deactivated.token_version == 2


def test_confirmed_and_cancelled_appointments_do_not_block_deactivation(
    db, agent, other_agent, superadmin
):
    listing = create_property(db, agent)
    confirmed = _book(db, listing)
    cancelled = _book(db, listing, T.replace(hour=16))
    appointment_service.update_appointment(
        db, confirmed.id, superadmin.id, AppointmentUpdate(status=AppointmentStatus.CONFIRMED)
    )
    appointment_service.update_appointment(
        db, cancelled.id, superadmin.id, AppointmentUpdate(status=AppointmentStatus.CANCELLED)
    )
    property_service.reassign_property_agent(db, listing.id, other_agent.id, superadmin.id)

    assert agent_service.deactivate_agent(db, agent.id, superadmin.id).is_active is False


def test_deactivate_unknown_user(db, superadmin):
    with pytest.raises(agent_service.AgentNotFoundError):
        agent_service.deactivate_agent(db, uuid4(), superadmin.id)


def test_deactivated_agent_cannot_receive_appointments(db, agent, other_agent, superadmin):
    listing = create_property(db, agent)
    appointment = _book(db, listing)
    agent_service.deactivate_agent(db, other_agent.id, superadmin.id)

    with pytest.raises(appointment_service.InvalidAgentError):
        appointment_service.reassign_agent(db, appointment.id, superadmin.id, other_agent.id)


# =============================================================================
# Listing reassignment
# =============================================================================

def test_reassign_property_agent_routes_new_requests(db, agent, other_agent, superadmin):
    listing = create_property(db, agent)
    old = _book(db, listing)

    moved = property_service.reassign_property_agent(db, listing.id, other_agent.id, superadmin.id)
    assert moved.agent_id == other_agent.id

    new = _book(db, listing)
    assert new.agent_id == other_agent.id
    # Existing appointments keep their agent
    assert appointment_service.get_appointment(db, old.id).agent_id == agent.id


def test_reassign_property_agent_rejects_invalid_targets(db, agent, client_user, superadmin):
    listing = create_property(db, agent)

    with pytest.raises(property_service.PropertyNotFoundError):
        property_service.reassign_property_agent(db, uuid4(), agent.id, superadmin.id)
    with pytest.raises(property_service.InvalidPropertyAgentError):
        property_service.reassign_property_agent(db, listing.id, client_user.id, superadmin.id)
    with pytest.raises(property_service.InvalidPropertyAgentError):
        property_service.reassign_property_agent(db, listing.id, uuid4(), superadmin.id)
