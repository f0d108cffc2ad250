"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with increasing privilege levels.

    - USER: Registered client (can see their own appointments)
    - ADMIN: Agent (owns listings, handles appointments)
    - SUPERADMIN: Agent with directory powers (reassignment, deactivation)
    """

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
