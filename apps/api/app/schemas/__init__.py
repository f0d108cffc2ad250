"""Pydantic schemas for API request/response models."""

from app.schemas.auth import TokenPayload, UserSession
from app.schemas.appointment import (
    AgentSummary,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentRead,
    AppointmentUpdate,
    MessageResponse,
    PropertyAgentRead,
    PropertySummary,
    ReassignAgentRequest,
)

__all__ = [
    # Auth
    "TokenPayload",
    "UserSession",
    # Appointments
    "AgentSummary",
    "AppointmentCreate",
    "AppointmentListResponse",
    "AppointmentRead",
    "AppointmentUpdate",
    "MessageResponse",
    "PropertyAgentRead",
    "PropertySummary",
    "ReassignAgentRequest",
]
