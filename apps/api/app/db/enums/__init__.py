"""Enum definitions for application constants."""

from app.db.enums.appointments import (
    ALLOWED_STATUS_TRANSITIONS,
    DEFAULT_APPOINTMENT_STATUS,
    NON_BLOCKING_APPOINTMENT_STATUSES,
    OPEN_APPOINTMENT_STATUSES,
    AppointmentEmailType,
    AppointmentStatus,
)
from app.db.enums.auth import Role
from app.db.enums.permissions import (
    AGENT_CAPABLE_ROLES,
    ROLES_CAN_DEACTIVATE_AGENTS,
    ROLES_CAN_MANAGE_APPOINTMENTS,
    ROLES_CAN_REASSIGN,
)

__all__ = [
    "ALLOWED_STATUS_TRANSITIONS",
    "DEFAULT_APPOINTMENT_STATUS",
    "NON_BLOCKING_APPOINTMENT_STATUSES",
    "OPEN_APPOINTMENT_STATUSES",
    "AppointmentEmailType",
    "AppointmentStatus",
    "Role",
    "AGENT_CAPABLE_ROLES",
    "ROLES_CAN_DEACTIVATE_AGENTS",
    "ROLES_CAN_MANAGE_APPOINTMENTS",
    "ROLES_CAN_REASSIGN",
]
