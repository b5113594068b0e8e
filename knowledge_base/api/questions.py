"""Questions API router — raise, list, view, moderate, delete, answer."""

from typing import Optional, List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from knowledge_base.db.session import get_db
from knowledge_base.schemas.schemas import (
    QuestionCreate, FinalQuestionCreate, StatusUpdate,
    QuestionOut, QuestionDetailOut, FinalQuestionOut,
    AnswerCreate, AnswerOut, AnswerDetailOut, MessageResponse, ErrorResponse,
)
from knowledge_base.services.moderation_service import moderation_service
from knowledge_base.core.security import Actor, get_current_actor

router = APIRouter(
    prefix="/questions",
    tags=["questions"],
    responses={code: {"model": ErrorResponse} for code in (400, 403, 404, 409, 422, 429)},
)


@router.get("/", response_model=List[QuestionDetailOut])
async def list_questions(
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    limit: Optional[int] = Query(None),
    offset: int = Query(0),
    author_id: Optional[str] = Query(None, alias="authorId"),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """List questions with filters; sortBy is trending, recent, views or answers."""
    questions = moderation_service.list_questions(
        db, category, status, search, sort_by, limit, offset, author_id,
    )
    return [QuestionDetailOut.model_validate(q) for q in questions]


@router.post("/", response_model=QuestionOut, status_code=status.HTTP_201_CREATED)
async def submit_question(
    body: QuestionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Raise a new question."""
    return moderation_service.submit_question(
        db, actor, body.title, body.description, body.category,
        body.priority, body.attachment,
    )


@router.post("/final", response_model=FinalQuestionOut, status_code=status.HTTP_201_CREATED)
async def post_final_question(
    body: FinalQuestionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Publish a question with its final answer (admin only)."""
    question, answer = moderation_service.post_final_question(
        db, actor, body.title, body.description, body.category, body.answer_text,
        body.priority, body.attachment, body.answer_attachment,
    )
    return FinalQuestionOut(
        question=QuestionOut.model_validate(question),
        answer=AnswerOut.model_validate(answer),
    )


@router.get("/{question_id}", response_model=QuestionDetailOut)
async def get_question(
    question_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Get a single question; every fetch counts as a view."""
    return QuestionDetailOut.model_validate(moderation_service.get_question(db, question_id))


@router.patch("/{question_id}/status", response_model=QuestionOut)
async def set_question_status(
    question_id: str,
    body: StatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Approve, reject or re-open a question (admins and supervisors)."""
    return moderation_service.set_question_status(db, actor, question_id, body.status)


@router.delete("/{question_id}", response_model=MessageResponse)
async def delete_question(
    question_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Delete a rejected question and its answers (admin only)."""
    removed = moderation_service.delete_question(db, actor, question_id)
    return MessageResponse(message="Question deleted", detail={"answers_removed": removed})


@router.get("/{question_id}/answers", response_model=List[AnswerDetailOut])
async def list_answers(
    question_id: str,
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """List answers for a question, newest first."""
    answers = moderation_service.list_answers(db, question_id, status)
    return [AnswerDetailOut.model_validate(a) for a in answers]


@router.post(
    "/{question_id}/answers", response_model=AnswerOut, status_code=status.HTTP_201_CREATED,
)
async def submit_answer(
    question_id: str,
    body: AnswerCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Answer a question (admins and supervisors)."""
    return moderation_service.submit_answer(
        db, actor, question_id, body.answer_text, body.attachment,
    )
