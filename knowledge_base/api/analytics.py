"""Stats and analytics API router (admin only)."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from knowledge_base.db.session import get_db
from knowledge_base.schemas.schemas import StatsOut, AnalyticsOut
from knowledge_base.services.moderation_service import moderation_service
from knowledge_base.core.security import Actor, get_current_actor

router = APIRouter(tags=["analytics"])


@router.get("/stats", response_model=StatsOut)
async def get_stats(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Dashboard counters."""
    return moderation_service.get_stats(db, actor)


@router.get("/analytics", response_model=AnalyticsOut)
async def get_analytics(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Grouped counts, top contributors and trending questions."""
    return moderation_service.get_analytics(db, actor)
