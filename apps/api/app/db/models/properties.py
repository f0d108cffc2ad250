"""SQLAlchemy ORM models for listings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import JSON, ForeignKey, Index, Numeric, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.db.models import User


class Property(Base):
    """
    Real-estate listing.

    Only the fields needed for scheduling and notifications live here;
    the catalog itself (search, images, locations) is managed elsewhere.
    """

    __tablename__ = "properties"
    __table_args__ = (
        Index("idx_properties_agent", "agent_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    images: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Nullable at the storage level; a listing without an agent is a data error
    agent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    agent: Mapped[Optional["User"]] = relationship()

    @property
    def cover_image(self) -> str | None:
        """First listing image, if any."""
        return self.images[0] if self.images else None
