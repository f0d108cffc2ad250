"""Appointment schemas - Pydantic models for appointments API.

Request/response bodies use camelCase on the wire and accept snake_case
field names as well.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from app.db.enums import AppointmentStatus
from app.utils.normalization import normalize_email, normalize_name

MIN_MESSAGE_LENGTH = 10


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# Requests
# =============================================================================

class AppointmentCreate(_CamelModel):
    """Schema for creating an appointment (public booking request)."""
    property_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone_number: str = Field(..., min_length=1, max_length=30)
    message: str = Field(..., min_length=MIN_MESSAGE_LENGTH, max_length=5000)
    appointment_date: datetime

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        return normalize_name(value) or value

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value) or value


class AppointmentUpdate(_CamelModel):
    """Schema for updating an appointment. Unset fields are left untouched."""
    appointment_date: datetime | None = None
    status: AppointmentStatus | None = None


class ReassignAgentRequest(_CamelModel):
    """Schema for moving an appointment or listing to another agent."""
    new_agent_id: UUID


# =============================================================================
# Responses
# =============================================================================

class AgentSummary(_CamelModel):
    """Public-safe agent fields embedded in appointments."""
    id: UUID
    name: str
    email: str
    phone_number: str


class PropertySummary(_CamelModel):
    """Listing fields embedded in appointments."""
    id: UUID
    title: str
    price: Decimal


class AppointmentRead(_CamelModel):
    """Schema for reading a populated appointment."""
    id: UUID
    property: PropertySummary | None
    agent: AgentSummary | None
    name: str
    email: str
    phone_number: str
    message: str
    appointment_date: datetime
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime

    @field_serializer("appointment_date", "created_at", "updated_at")
    def _serialize_utc(self, value: datetime) -> str:
        # SQLite hands back naive datetimes; every stored instant is UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()


class AppointmentListResponse(_CamelModel):
    """Paginated appointment envelope."""
    data: list[AppointmentRead]
    total: int
    page: int
    limit: int


class MessageResponse(BaseModel):
    """Confirmation message for destructive actions."""
    message: str


class PropertyAgentRead(_CamelModel):
    """Listing after an agent change."""
    id: UUID
    title: str
    agent_id: UUID | None
