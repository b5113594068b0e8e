"""Moderation service — the question/answer lifecycle and its role rules.

Questions and answers move ``pending -> approved | rejected``; the open
transition rule lets moderators move any status to any other. A rejected
question may additionally be hard-deleted by an admin, taking its answers
with it.

Every operation receives an explicit ``Actor`` and runs as one unit of work:
the state change and its activity entry commit together or not at all.
Reviewer notifications are handed to the dispatcher only after the commit,
and dispatcher failures are logged, never raised.
"""

import logging
from contextlib import contextmanager
from datetime import timedelta
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from knowledge_base.core.config import settings
from knowledge_base.core.exceptions import (
    Forbidden, InvalidState, InvalidStatus, Locked, NotFound, ThrottleViolation,
    ValidationError,
)
from knowledge_base.core.security import Actor, require_role
from knowledge_base.core.validation import parse_choice, require_text, optional_text
from knowledge_base.db.base import utcnow
from knowledge_base.models.question import (
    Question, Answer, ContentStatus, Category, Priority, TITLE_LENGTH, ATTACHMENT_LENGTH,
)
from knowledge_base.models.user import UserRole
from knowledge_base.services.activity_service import activity_service
from knowledge_base.services.content_store import content_store, QuestionSummary, AnswerSummary
from knowledge_base.services.identity_service import identity_service
from knowledge_base.services.notification_service import (
    NotificationDispatcher, notification_dispatcher,
    question_snapshot, answer_snapshot, author_snapshot,
)
from knowledge_base.services.ranking_service import SortOrder, score_of

logger = logging.getLogger("knowledge_base")

MODERATORS = (UserRole.admin, UserRole.supervisor)

THROTTLE_MESSAGE = (
    "You already have a question awaiting review; "
    "wait until it is approved or rejected"
)


@contextmanager
def unit_of_work(db: Session):
    """Commit on success, roll back everything on any error."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def parse_status(value) -> ContentStatus:
    return parse_choice(ContentStatus, value, "status", InvalidStatus)


def is_pending_slot_violation(exc: IntegrityError) -> bool:
    """True when ``exc`` comes from the unique constraint on ``pending_slot``."""
    return "pending_slot" in str(exc.orig)


class ModerationService:
    """Enforces the content state machine for questions and answers."""

    def __init__(self, notifier: Optional[NotificationDispatcher] = None):
        self.notifier = notifier or notification_dispatcher

    # ---- Notifications ----

    def _dispatch(self, event: str, *args) -> None:
        try:
            getattr(self.notifier, event)(*args)
        except Exception:
            logger.warning("Notification %s failed; content change kept", event, exc_info=True)

    def _author_notice(self, db: Session, actor: Actor) -> Optional[Dict[str, Any]]:
        return author_snapshot(identity_service.get_user(db, actor.id))

    # ---- Questions ----

    def submit_question(
        self,
        db: Session,
        actor: Actor,
        title: str,
        description: str,
        category: str,
        priority: Optional[str] = None,
        attachment: Optional[str] = None,
    ) -> Question:
        """Raise a new question.

        Admin questions are approved immediately; everyone else's wait for
        review. A supervisor may have only one pending question at a time.

        Raises:
            ValidationError: empty title/description or unknown category/priority.
            NotFound: the author is not in the directory.
            ThrottleViolation: supervisor already has a pending question.
        """
        title = require_text(title, "Title", TITLE_LENGTH)
        description = require_text(description, "Description")
        category = parse_choice(Category, category, "category")
        priority = parse_choice(Priority, priority or Priority.medium, "priority")
        attachment = optional_text(attachment, "Attachment", ATTACHMENT_LENGTH)
        throttled = actor.role == UserRole.supervisor
        notice = None

        with unit_of_work(db):
            identity_service.require_user(db, actor.id)
            if throttled and content_store.count_pending_questions(db, actor.id):
                raise ThrottleViolation(THROTTLE_MESSAGE)
            try:
                question = content_store.add_question(
                    db,
                    title=title,
                    description=description,
                    category=category,
                    priority=priority,
                    status=ContentStatus.approved if actor.is_admin else ContentStatus.pending,
                    created_by=actor.id,
                    is_final=False,
                    attachment=attachment,
                    pending_slot=actor.id if throttled else None,
                )
            except IntegrityError as exc:
                if throttled and is_pending_slot_violation(exc):
                    raise ThrottleViolation(THROTTLE_MESSAGE)
                raise
            activity_service.record(db, actor.id, f"Created question: {title}")

            if actor.role == UserRole.user:
                notice = (
                    identity_service.reviewer_emails(db),
                    question_snapshot(question),
                    self._author_notice(db, actor),
                )

        db.refresh(question)
        logger.info("Question %s submitted by %s (%s)", question.id, actor.id, question.status.value)
        if notice:
            self._dispatch("notify_new_question", *notice)
        return question

    def set_question_status(
        self, db: Session, actor: Actor, question_id: str, new_status: str,
    ) -> Question:
        """Move a question to any status (admins and supervisors)."""
        require_role(actor, MODERATORS, "moderate questions")
        status = parse_status(new_status)

        with unit_of_work(db):
            question = content_store.require_question(db, question_id, for_update=True)
            previous = question.status
            question.status = status
            if status != ContentStatus.pending:
                question.pending_slot = None
            activity_service.record(
                db, actor.id, f"Updated question status to: {status.value}",
            )

        db.refresh(question)
        logger.info(
            "Question %s %s -> %s by %s", question_id, previous.value, status.value, actor.id,
        )
        return question

    def view_question(self, db: Session, question_id: str) -> None:
        """Count one view; every call counts."""
        with unit_of_work(db):
            if not content_store.increment_views(db, question_id):
                raise NotFound(f"Question {question_id} not found")

    def get_question(self, db: Session, question_id: str) -> QuestionSummary:
        """Fetch a question for display, counting the view."""
        self.view_question(db, question_id)
        summary = content_store.get_question_summary(db, question_id)
        if summary is None:
            raise NotFound(f"Question {question_id} not found")
        return summary

    def delete_question(self, db: Session, actor: Actor, question_id: str) -> int:
        """Hard-delete a rejected question and its answers (admin only).

        Returns the number of answers removed with it.
        """
        require_role(actor, [UserRole.admin], "delete questions")

        with unit_of_work(db):
            question = content_store.require_question(db, question_id, for_update=True)
            if question.status != ContentStatus.rejected:
                raise InvalidState(
                    f"Only rejected questions can be deleted (status is {question.status.value})"
                )
            title = question.title
            removed = content_store.delete_question_cascade(db, question)
            activity_service.record(db, actor.id, f"Deleted question: {title}")

        logger.info("Question %s deleted by %s with %d answer(s)", question_id, actor.id, removed)
        return removed

    # ---- Answers ----

    def submit_answer(
        self,
        db: Session,
        actor: Actor,
        question_id: str,
        answer_text: str,
        attachment: Optional[str] = None,
    ) -> Answer:
        """Answer an open question.

        Raises:
            Forbidden: the actor has the ``user`` role.
            NotFound: the question does not exist.
            Locked: the question already carries a final answer.
        """
        if actor.role == UserRole.user:
            raise Forbidden("Users may raise questions but cannot answer them")
        answer_text = require_text(answer_text, "Answer text")
        attachment = optional_text(attachment, "Attachment", ATTACHMENT_LENGTH)
        notice = None

        with unit_of_work(db):
            identity_service.require_user(db, actor.id)
            question = content_store.require_question(db, question_id, for_update=True)
            if question.is_final:
                raise Locked("This question has a final answer and accepts no further answers")
            answer = content_store.add_answer(
                db,
                question_id=question.id,
                answer_text=answer_text,
                status=ContentStatus.approved if actor.is_admin else ContentStatus.pending,
                created_by=actor.id,
                attachment=attachment,
            )
            activity_service.record(db, actor.id, f"Answered question: {question.title}")

            if actor.role == UserRole.supervisor:
                notice = (
                    identity_service.reviewer_emails(db),
                    question_snapshot(question),
                    answer_snapshot(answer),
                    self._author_notice(db, actor),
                )

        db.refresh(answer)
        logger.info("Answer %s on %s by %s (%s)", answer.id, question_id, actor.id, answer.status.value)
        if notice:
            self._dispatch("notify_pending_answer", *notice)
        return answer

    def set_answer_status(
        self, db: Session, actor: Actor, answer_id: str, new_status: str,
    ) -> Answer:
        """Move an answer to any status (admin only)."""
        require_role(actor, [UserRole.admin], "moderate answers")
        status = parse_status(new_status)

        with unit_of_work(db):
            answer = content_store.require_answer(db, answer_id)
            answer.status = status
            activity_service.record(db, actor.id, f"Updated answer status to: {status.value}")

        db.refresh(answer)
        logger.info("Answer %s -> %s by %s", answer_id, status.value, actor.id)
        return answer

    def post_final_question(
        self,
        db: Session,
        actor: Actor,
        title: str,
        description: str,
        category: str,
        answer_text: str,
        priority: Optional[str] = None,
        question_attachment: Optional[str] = None,
        answer_attachment: Optional[str] = None,
    ) -> Tuple[Question, Answer]:
        """Publish a question together with its authoritative answer (admin only).

        Both rows are created approved in one transaction; the question is
        marked final so the ordinary answer path refuses it from then on.
        """
        require_role(actor, [UserRole.admin], "post final answers")
        title = require_text(title, "Title", TITLE_LENGTH)
        description = require_text(description, "Description")
        answer_text = require_text(answer_text, "Answer text")
        category = parse_choice(Category, category, "category")
        priority = parse_choice(Priority, priority or Priority.medium, "priority")
        question_attachment = optional_text(question_attachment, "Attachment", ATTACHMENT_LENGTH)
        answer_attachment = optional_text(answer_attachment, "Attachment", ATTACHMENT_LENGTH)

        with unit_of_work(db):
            identity_service.require_user(db, actor.id)
            question = content_store.add_question(
                db,
                title=title,
                description=description,
                category=category,
                priority=priority,
                status=ContentStatus.approved,
                created_by=actor.id,
                is_final=True,
                attachment=question_attachment,
            )
            answer = content_store.add_answer(
                db,
                question_id=question.id,
                answer_text=answer_text,
                status=ContentStatus.approved,
                created_by=actor.id,
                attachment=answer_attachment,
            )
            activity_service.record(db, actor.id, f"Posted final question: {title}")

        db.refresh(question)
        db.refresh(answer)
        logger.info("Final question %s posted by %s", question.id, actor.id)
        return question, answer

    # ---- Reads ----

    def list_questions(
        self,
        db: Session,
        category: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
        author_id: Optional[str] = None,
    ) -> List[QuestionSummary]:
        """Filtered, ordered page of questions."""
        limit = settings.DEFAULT_PAGE_SIZE if limit is None else limit
        if limit < 1 or offset < 0:
            raise ValidationError("limit must be positive and offset non-negative")

        return content_store.list_questions(
            db,
            category=parse_choice(Category, category, "category") if category else None,
            status=parse_status(status) if status else None,
            search=optional_text(search),
            sort_by=parse_choice(SortOrder, sort_by or SortOrder.recent, "sort order"),
            limit=min(limit, settings.MAX_PAGE_SIZE),
            offset=offset,
            author_id=author_id,
        )

    def list_answers(
        self, db: Session, question_id: str, status: Optional[str] = None,
    ) -> List[AnswerSummary]:
        content_store.require_question(db, question_id)
        return content_store.list_answers(
            db, question_id, parse_status(status) if status else None,
        )

    def get_activity(self, db: Session, viewer: Actor, user_id: str) -> List[Dict[str, Any]]:
        return activity_service.get_activity(db, viewer, user_id)

    def get_stats(self, db: Session, actor: Actor) -> Dict[str, Any]:
        """Dashboard counters (admin only)."""
        require_role(actor, [UserRole.admin], "view statistics")
        total = content_store.count_questions(db)
        pending = (
            content_store.count_questions(db, ContentStatus.pending)
            + content_store.count_answers_by_status(db, ContentStatus.pending)
        )
        since = utcnow() - timedelta(days=settings.ACTIVE_USER_WINDOW_DAYS)
        resolved = content_store.count_resolved_questions(db)
        return {
            "total_questions": total,
            "pending_approvals": pending,
            "active_users": content_store.count_users_since(db, since),
            "resolution_rate": int(resolved * 100 / total + 0.5) if total else 0,
        }

    def get_analytics(self, db: Session, actor: Actor) -> Dict[str, Any]:
        """Grouped counts plus the current trending list (admin only)."""
        require_role(actor, [UserRole.admin], "view analytics")
        now = utcnow()
        trending = content_store.list_questions(
            db, sort_by=SortOrder.trending, limit=settings.TRENDING_LIMIT,
        )
        return {
            "questions_by_category": content_store.questions_by_category(db),
            "questions_by_status": content_store.questions_by_status(db),
            "answers_by_status": content_store.answers_by_status(db),
            "users_by_role": content_store.users_by_role(db),
            "top_users": content_store.top_users(db),
            "trending_questions": [
                {
                    "id": q.id,
                    "title": q.title,
                    "category": q.category.value,
                    "views": q.views,
                    "approved_answer_count": q.approved_answer_count,
                    "created_at": q.created_at,
                    "score": round(score_of(q, now), 4),
                }
                for q in trending
            ],
        }


moderation_service = ModerationService()
