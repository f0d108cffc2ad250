"""Appointments router - API endpoints for listing appointments.

Public:
- Booking request for a listing (rate limited)

Authenticated:
- Caller's own requests
- Staff listing, detail, update, reassignment and removal
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from app.core.deps import (
    get_current_session,
    get_db,
    require_csrf_header,
    require_roles,
)
from app.core.rate_limit import BOOKING_LIMIT, limiter
from app.db.enums import (
    ROLES_CAN_MANAGE_APPOINTMENTS,
    ROLES_CAN_REASSIGN,
    AppointmentStatus,
)
from app.db.models import Appointment
from app.schemas.auth import UserSession
from app.schemas.appointment import (
    AgentSummary,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentRead,
    AppointmentUpdate,
    MessageResponse,
    PropertySummary,
    ReassignAgentRequest,
)
from app.services import appointment_service
from app.utils.pagination import PaginationParams, get_pagination

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Helper Functions
# =============================================================================

def _to_read(appointment: Appointment) -> AppointmentRead:
    """Convert a populated Appointment model to read schema."""
    listing = appointment.property
    agent = appointment.agent
    return AppointmentRead(
        id=appointment.id,
        property=(
            PropertySummary(id=listing.id, title=listing.title, price=listing.price)
            if listing
            else None
        ),
        agent=(
            AgentSummary(
                id=agent.id,
                name=agent.name,
                email=agent.email,
                phone_number=agent.phone_number,
            )
            if agent
            else None
        ),
        name=appointment.client_name,
        email=appointment.client_email,
        phone_number=appointment.client_phone,
        message=appointment.message,
        appointment_date=appointment.appointment_at,
        status=AppointmentStatus(appointment.status),
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


def _http_error(e: appointment_service.SchedulingError) -> HTTPException:
    """Translate a scheduling error into the matching HTTP error."""
    if isinstance(
        e,
        (appointment_service.AppointmentNotFoundError, appointment_service.PropertyNotFoundError),
    ):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(
        e,
        (appointment_service.AppointmentConflictError, appointment_service.AppointmentChangedError),
    ):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(
        e,
        (appointment_service.InvalidStatusTransitionError, appointment_service.InvalidAgentError),
    ):
        return HTTPException(status_code=400, detail=str(e))
    logger.error("Scheduling integrity failure: %s", e)
    return HTTPException(status_code=500, detail="Unable to schedule this appointment")


# =============================================================================
# Public
# =============================================================================

@router.post("", response_model=AppointmentRead, status_code=201)
@limiter.limit(BOOKING_LIMIT)
def create_appointment(
    data: AppointmentCreate,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Submit a booking request for a listing.
    
    The listing's agent is assigned automatically; the request is rejected
    when the agent already has an appointment within the hour.
    Rate limited to prevent spam.
    """
    try:
        appointment = appointment_service.create_appointment(db, data)
    except appointment_service.SchedulingError as e:
        raise _http_error(e)
    return _to_read(appointment)


# =============================================================================
# Authenticated
# =============================================================================

@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    search: str | None = Query(None, max_length=255),
    status: AppointmentStatus | None = Query(None),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_APPOINTMENTS)),
    db: Session = Depends(get_db),
):
    """List appointments, newest requests first."""
    items, total = appointment_service.list_appointments(
        db,
        search=search,
        status=status,
        pagination=pagination,
    )
    return AppointmentListResponse(
        data=[_to_read(a) for a in items],
        total=total,
        page=pagination.page,
        limit=pagination.limit,
    )


@router.get("/me", response_model=list[AppointmentRead])
def list_my_appointments(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Appointments requested with the caller's email or phone number."""
    items = appointment_service.list_for_client(db, session.email, session.phone_number)
    return [_to_read(a) for a in items]


@router.get("/{appointment_id}", response_model=AppointmentRead)
def get_appointment(
    appointment_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_APPOINTMENTS)),
    db: Session = Depends(get_db),
):
    """Get appointment details."""
    try:
        appointment = appointment_service.get_appointment(db, appointment_id)
    except appointment_service.SchedulingError as e:
        raise _http_error(e)
    return _to_read(appointment)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_APPOINTMENTS)),
    db: Session = Depends(get_db),
):
    """Reschedule an appointment and/or change its status."""
    try:
        appointment = appointment_service.update_appointment(
            db,
            appointment_id=appointment_id,
            actor_id=session.user_id,
            patch=data,
        )
    except appointment_service.SchedulingError as e:
        raise _http_error(e)
    return _to_read(appointment)


@router.patch(
    "/{appointment_id}/reassign-agent",
    response_model=AppointmentRead,
    dependencies=[Depends(require_csrf_header)],
)
def reassign_agent(
    appointment_id: UUID,
    data: ReassignAgentRequest,
    session: UserSession = Depends(require_roles(ROLES_CAN_REASSIGN)),
    db: Session = Depends(get_db),
):
    """Move an appointment to another agent, keeping its time."""
    try:
        appointment = appointment_service.reassign_agent(
            db,
            appointment_id=appointment_id,
            actor_id=session.user_id,
            new_agent_id=data.new_agent_id,
        )
    except appointment_service.SchedulingError as e:
        raise _http_error(e)
    return _to_read(appointment)


@router.delete(
    "/{appointment_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_csrf_header)],
)
def delete_appointment(
    appointment_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_CAN_MANAGE_APPOINTMENTS)),
    db: Session = Depends(get_db),
):
    """Permanently remove an appointment."""
    try:
        message = appointment_service.remove_appointment(db, appointment_id, session.user_id)
    except appointment_service.SchedulingError as e:
        raise _http_error(e)
    return MessageResponse(message=message)
