"""Answers API router."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from knowledge_base.db.session import get_db
from knowledge_base.schemas.schemas import StatusUpdate, AnswerOut, ErrorResponse
from knowledge_base.services.moderation_service import moderation_service
from knowledge_base.core.security import Actor, get_current_actor

router = APIRouter(
    prefix="/answers",
    tags=["answers"],
    responses={code: {"model": ErrorResponse} for code in (400, 403, 404)},
)


@router.patch("/{answer_id}/status", response_model=AnswerOut)
async def set_answer_status(
    answer_id: str,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Approve or reject an answer (admin only)."""
    return moderation_service.set_answer_status(db, actor, answer_id, body.status)
