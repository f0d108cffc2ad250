"""Tests for PII-safe logging helpers."""

import logging
from datetime import datetime, timezone

from app.core.structured_logging import build_log_context, mask_email
from app.schemas.appointment import AppointmentCreate
from app.services import appointment_service


def test_build_log_context_drops_empty_values():
    context = build_log_context(agent_id="a1", appointment_id=None, actor_id="", route="/appointments")
    assert context == {"agent_id": "a1", "route": "/appointments"}


def test_mask_email():
    assert mask_email("jane.buyer@example.com") == "jan***@example.com"
    assert mask_email("jo@example.com") == "jo***@example.com"
    assert mask_email("no-domain") == "no-***"
    assert mask_email(None) == ""


def test_create_logs_mask_client_email(db, listing, caplog):
    data = AppointmentCreate(
        property_id=listing.id,
        name="Jane Buyer",
        email="jane.buyer@example.com",
        phone_number="+15550001111",
        message="I would like to visit this apartment.",
        appointment_date=datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc),
    )

    with caplog.at_level(logging.INFO, logger="app.services"):
        appointment = appointment_service.create_appointment(db, data)

    assert "jane.buyer@example.com" not in caplog.text
    created = [r for r in caplog.records if r.getMessage().startswith("Appointment created")]
    assert created
    assert created[0].appointment_id == str(appointment.id)
    assert created[0].agent_id == str(listing.agent_id)
