"""Agents router - agent lifecycle endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_roles
from app.db.enums import ROLES_CAN_DEACTIVATE_AGENTS
from app.schemas.appointment import MessageResponse
from app.schemas.auth import UserSession
from app.services import agent_service

router = APIRouter()


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    dependencies=[Depends(require_csrf_header)],
)
def deactivate_user(
    user_id: UUID,
    session: UserSession = Depends(require_roles(ROLES_CAN_DEACTIVATE_AGENTS)),
    db: Session = Depends(get_db),
):
    """
    Deactivate an agent.
    
    Blocked while the agent still has listings or pending appointments.
    The user row is kept; only the active flag changes.
    """
    try:
        agent_service.deactivate_agent(db, user_id, session.user_id)
    except agent_service.AgentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except agent_service.AgentHasDependentsError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return MessageResponse(message=f"User {user_id} deactivated successfully")
