"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    agent_id: str | None = None,
    appointment_id: str | None = None,
    property_id: str | None = None,
    actor_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict."""
    context: dict[str, Any] = {}
    if agent_id:
        context["agent_id"] = agent_id
    if appointment_id:
        context["appointment_id"] = appointment_id
    if property_id:
        context["property_id"] = property_id
    if actor_id:
        context["actor_id"] = actor_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context


def mask_email(email: str | None) -> str:
    """Mask the local part of an email address for log output."""
    if not email:
        return ""
    local, _, domain = email.partition("@")
    prefix = local[:3] if local else ""
    if not domain:
        return f"{prefix}***"
    return f"{prefix}***@{domain}"
