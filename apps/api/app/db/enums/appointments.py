"""Appointment and scheduling enums."""

from enum import Enum


class AppointmentStatus(str, Enum):
    """
    Appointment lifecycle status.

    Flow: pending → contacted → confirmed
              ↘         ↘          ↘
                      cancelled (terminal)
    """

    PENDING = "pending"  # Requested by a client, not yet handled
    CONTACTED = "contacted"  # Agent reached out to the client
    CONFIRMED = "confirmed"  # Visit/call agreed with the client
    CANCELLED = "cancelled"  # No longer takes place; frees the slot

    def can_transition_to(self, target: "AppointmentStatus") -> bool:
        """Whether moving from this status to ``target`` is allowed."""
        if target == self:
            return True
        return target in ALLOWED_STATUS_TRANSITIONS[self]


ALLOWED_STATUS_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset(
        {AppointmentStatus.CONTACTED, AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONTACTED: frozenset(
        {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CANCELLED}),
    AppointmentStatus.CANCELLED: frozenset(),
}

# Statuses that keep an agent "busy" for deactivation purposes
OPEN_APPOINTMENT_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONTACTED})

# Statuses that never occupy a slot in the conflict scan
NON_BLOCKING_APPOINTMENT_STATUSES = frozenset({AppointmentStatus.CANCELLED})


class AppointmentEmailType(str, Enum):
    """Types of emails sent for appointments."""

    AGENT_ALERT = "agent_alert"
    CLIENT_CONFIRMATION = "client_confirmation"


# Default appointment status
DEFAULT_APPOINTMENT_STATUS = AppointmentStatus.PENDING
