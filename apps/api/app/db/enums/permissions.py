"""Role permission helper sets."""

from app.db.enums.auth import Role

# Roles that can be assigned as the agent of a listing or appointment
AGENT_CAPABLE_ROLES = frozenset({Role.ADMIN, Role.SUPERADMIN})

# Roles that can list, read, update and delete appointments
ROLES_CAN_MANAGE_APPOINTMENTS = frozenset({Role.ADMIN, Role.SUPERADMIN})

# Roles that can move appointments/listings between agents
ROLES_CAN_REASSIGN = frozenset({Role.SUPERADMIN})

# Roles that can deactivate agents
ROLES_CAN_DEACTIVATE_AGENTS = frozenset({Role.SUPERADMIN})
