"""SQLAlchemy ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING

import uuid
from datetime import datetime

from sqlalchemy import (
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import AppointmentStatus

if TYPE_CHECKING:
    from app.db.models import Property, User


class Appointment(Base):
    """
    Requested visit or call for a listing.

    Lifecycle: pending → contacted → confirmed, any open status → cancelled.
    The agent is always a single user; cancelled rows never block a slot.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("idx_appointments_agent_time", "agent_id", "appointment_at"),
        Index("idx_appointments_status", "status"),
        Index("idx_appointments_client_email", "client_email"),
        Index("idx_appointments_property", "property_id"),
        Index("idx_appointments_created", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )

    # Client info
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    client_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # Scheduling (stored in UTC)
    appointment_at: Mapped[datetime] = mapped_column(nullable=False)

    # Status
    status: Mapped[str] = mapped_column(
        String(20),
        server_default=text(f"'{AppointmentStatus.PENDING.value}'"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    property: Mapped["Property"] = relationship()
    agent: Mapped["User"] = relationship()

    def __repr__(self) -> str:
        return f"<Appointment {self.id} - {self.appointment_at} ({self.status})>"
