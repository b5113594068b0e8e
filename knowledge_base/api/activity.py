"""Activity API router — per-user activity and the raw activity log."""

from typing import Optional, List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from knowledge_base.db.session import get_db
from knowledge_base.schemas.schemas import ActivityItemOut, ActivityLogOut
from knowledge_base.services.activity_service import activity_service
from knowledge_base.services.moderation_service import moderation_service
from knowledge_base.core.security import Actor, get_current_actor

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("/log")
async def get_activity_log(
    user_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Query raw activity entries (admin only)."""
    result = activity_service.query_log(db, actor, user_id, action, page, page_size)
    return {
        "logs": [ActivityLogOut.model_validate(log) for log in result["logs"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.get("/{user_id}", response_model=List[ActivityItemOut])
async def get_activity(
    user_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Questions and answers authored by a user; owners and admins only."""
    return moderation_service.get_activity(db, actor, user_id)
