"""SQLAlchemy ORM models for the agent directory."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String, Uuid, func, text, true
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.enums import AGENT_CAPABLE_ROLES, Role


class User(Base):
    """
    Application user.

    Agents are users holding an agent-capable role. Authentication is
    delegated to the identity service; no credentials are stored here.
    Users are never hard-deleted, only deactivated.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_role_active", "role", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), server_default=text(f"'{Role.USER.value}'"), nullable=False
    )
    token_version: Mapped[int] = mapped_column(Integer, server_default=text("1"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, server_default=true(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def role_enum(self) -> Role | None:
        """Role as enum, or None if the stored value is unknown."""
        if not Role.has_value(self.role):
            return None
        return Role(self.role)

    @property
    def is_agent(self) -> bool:
        """Whether this user can be assigned listings and appointments."""
        return self.role_enum in AGENT_CAPABLE_ROLES

    def __repr__(self) -> str:
        return f"<User {self.id} ({self.role})>"
