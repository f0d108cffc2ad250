"""SQLAlchemy ORM models."""

from app.db.models.auth import User
from app.db.models.properties import Property
from app.db.models.appointments import Appointment

__all__ = ["Appointment", "Property", "User"]
