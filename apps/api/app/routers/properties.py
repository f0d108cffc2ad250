"""Properties router - listing agent assignment."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_csrf_header, require_roles
from app.db.enums import ROLES_CAN_REASSIGN
from app.schemas.appointment import PropertyAgentRead, ReassignAgentRequest
from app.schemas.auth import UserSession
from app.services import property_service

router = APIRouter()


@router.patch(
    "/{property_id}/reassign-agent",
    response_model=PropertyAgentRead,
    dependencies=[Depends(require_csrf_header)],
)
def reassign_property_agent(
    property_id: UUID,
    data: ReassignAgentRequest,
    session: UserSession = Depends(require_roles(ROLES_CAN_REASSIGN)),
    db: Session = Depends(get_db),
):
    """Move a listing to another agent so future requests go to them."""
    try:
        listing = property_service.reassign_property_agent(
            db,
            property_id=property_id,
            new_agent_id=data.new_agent_id,
            actor_id=session.user_id,
        )
    except property_service.PropertyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except property_service.InvalidPropertyAgentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PropertyAgentRead(id=listing.id, title=listing.title, agent_id=listing.agent_id)
