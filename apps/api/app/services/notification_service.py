"""Notification service - best-effort appointment emails.

Provides:
- HTML templates for the agent alert and the client confirmation
- Variable building for appointment context
- Delivery through a Resend-compatible HTTP API

Delivery failures are logged and swallowed: a scheduling decision is never
rolled back or retried because an email could not be sent.
"""

import html
import logging
import re

import httpx

from app.core.config import settings
from app.core.structured_logging import build_log_context, mask_email
from app.db.enums import AppointmentEmailType
from app.db.models import Appointment
from app.services.conflict_window import to_utc

logger = logging.getLogger(__name__)


# Variable pattern for template substitution: {{variable_name}}
VARIABLE_PATTERN = re.compile(r"\{\{(\w+)\}\}")


class EmailDeliveryError(Exception):
    """Email provider rejected or failed the request."""

    pass


# =============================================================================
# Templates
# =============================================================================

TEMPLATES: dict[AppointmentEmailType, dict[str, str]] = {
    AppointmentEmailType.AGENT_ALERT: {
        "subject": "New appointment request for: {{property_title}}",
        "body": """<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 22px;">New appointment request</h1>
    <p>Hello {{agent_name}},</p>
    <p>{{client_name}} asked for an appointment for <a href="{{property_url}}">{{property_title}}</a>.</p>
    <img src="{{property_image}}" alt="{{property_title}}" style="max-width: 100%; border-radius: 8px;">
    <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
        <tr><td style="padding: 6px 0; color: #6b7280;">When:</td><td><strong>{{appointment_date}}</strong></td></tr>
        <tr><td style="padding: 6px 0; color: #6b7280;">Client email:</td><td>{{client_email}}</td></tr>
        <tr><td style="padding: 6px 0; color: #6b7280;">Client phone:</td><td>{{client_phone}}</td></tr>
    </table>
    <p style="white-space: pre-line;">{{message}}</p>
</body>
</html>""",
    },
    AppointmentEmailType.CLIENT_CONFIRMATION: {
        "subject": "We received your request - {{property_title}}",
        "body": """<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 22px;">Appointment request received</h1>
    <p>Hello {{client_name}},</p>
    <p>Your request for <a href="{{property_url}}">{{property_title}}</a> on <strong>{{appointment_date}}</strong> was sent to our agent.</p>
    <img src="{{property_image}}" alt="{{property_title}}" style="max-width: 100%; border-radius: 8px;">
    <p>Your agent: {{agent_name}} &middot; {{agent_email}} &middot; {{agent_phone}}</p>
    <p style="color: #9ca3af; font-size: 12px;">This is an automated message. Please do not reply directly to this email.</p>
</body>
</html>""",
    },
}


def render_template(
    subject: str,
    body: str,
    variables: dict[str, str],
) -> tuple[str, str]:
    """
    Render a template with variable substitution.
    
    Body values are HTML-escaped; missing variables become empty strings.
    
    Returns (rendered_subject, rendered_body).
    """
    def replace_subject_var(match: re.Match) -> str:
        return variables.get(match.group(1), "")

    def replace_body_var(match: re.Match) -> str:
        return html.escape(variables.get(match.group(1), ""))

    rendered_subject = VARIABLE_PATTERN.sub(replace_subject_var, subject)
    rendered_body = VARIABLE_PATTERN.sub(replace_body_var, body)
    return rendered_subject, rendered_body


def build_appointment_variables(appointment: Appointment) -> dict[str, str]:
    """Template variables for an appointment with agent and listing loaded."""
    listing = appointment.property
    agent = appointment.agent
    base_url = str(settings.FRONTEND_URL).rstrip("/")
    return {
        "agent_name": agent.name if agent else "",
        "agent_email": agent.email if agent else "",
        "agent_phone": agent.phone_number if agent else "",
        "client_name": appointment.client_name,
        "client_email": appointment.client_email,
        "client_phone": appointment.client_phone,
        "message": appointment.message,
        "property_title": listing.title if listing else "",
        "property_url": f"{base_url}/properties/{appointment.property_id}",
        "property_image": (listing.cover_image if listing else None)
        or settings.PROPERTY_PLACEHOLDER_IMAGE,
        "appointment_date": to_utc(appointment.appointment_at).strftime("%Y-%m-%d %H:%M UTC"),
    }


# =============================================================================
# Delivery
# =============================================================================

def send_email(to_email: str, subject: str, html_body: str) -> str | None:
    """
    Send one email through the configured provider.

    Returns the provider message id, or None when delivery is disabled.

    Raises:
        EmailDeliveryError: Provider unreachable or returned an error
    """
    if not settings.email_enabled:
        logger.info("Email delivery disabled; skipping message to %s", mask_email(to_email))
        return None

    payload = {
        "from": settings.EMAIL_FROM,
        "to": [to_email],
        "subject": subject,
        "html": html_body,
    }
    headers = {
        "Authorization": f"Bearer {settings.EMAIL_API_KEY}",
        "Content-Type": "application/json",
    }
    try:
        response = httpx.post(
            settings.EMAIL_API_URL,
            json=payload,
            headers=headers,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise EmailDeliveryError(str(exc)) from exc

    try:
        return response.json().get("id")
    except ValueError:
        return None


def _send_template(
    email_type: AppointmentEmailType,
    to_email: str,
    variables: dict[str, str],
    appointment: Appointment,
) -> bool:
    template = TEMPLATES[email_type]
    subject, body = render_template(template["subject"], template["body"], variables)
    try:
        send_email(to_email, subject, body)
    except Exception:
        logger.exception(
            "Failed to send %s email to %s",
            email_type.value,
            mask_email(to_email),
            extra=build_log_context(appointment_id=str(appointment.id)),
        )
        return False
    return True


def notify_appointment_created(appointment: Appointment) -> dict[AppointmentEmailType, bool]:
    """
    Alert the agent and confirm to the client that a request was created.

    Never raises; returns per-message success for callers that care.
    """
    try:
        variables = build_appointment_variables(appointment)
    except Exception:
        logger.exception(
            "Failed to build appointment notification",
            extra=build_log_context(appointment_id=str(appointment.id)),
        )
        return {email_type: False for email_type in TEMPLATES}

    results: dict[AppointmentEmailType, bool] = {}
    agent = appointment.agent
    if agent:
        results[AppointmentEmailType.AGENT_ALERT] = _send_template(
            AppointmentEmailType.AGENT_ALERT, agent.email, variables, appointment
        )
    else:
        results[AppointmentEmailType.AGENT_ALERT] = False
    results[AppointmentEmailType.CLIENT_CONFIRMATION] = _send_template(
        AppointmentEmailType.CLIENT_CONFIRMATION,
        appointment.client_email,
        variables,
        appointment,
    )
    return results
