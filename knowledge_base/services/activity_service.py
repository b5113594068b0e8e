"""Activity service — append-only trail of state-changing actions."""

import logging
from typing import Optional, Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from knowledge_base.core.exceptions import Forbidden
from knowledge_base.core.security import Actor, require_role
from knowledge_base.models.activity_log import ActivityLog
from knowledge_base.models.question import Question, Answer
from knowledge_base.models.user import UserRole

logger = logging.getLogger("knowledge_base")


class ActivityService:
    """Records immutable activity entries and builds per-user activity views."""

    @staticmethod
    def record(db: Session, user_id: str, action: str) -> Optional[ActivityLog]:
        """Append a single entry to the caller's open transaction.

        The entry is written inside a savepoint: if it cannot be persisted the
        savepoint is rolled back, the failure is logged, and the caller's own
        changes are left intact so its commit still goes through.
        """
        # The caller's own pending writes must fail loudly, not in here.
        db.flush()
        try:
            with db.begin_nested():
                entry = ActivityLog(user_id=user_id, action=action)
                db.add(entry)
            return entry
        except SQLAlchemyError:
            logger.exception("Failed to record activity for user %s: %s", user_id, action)
            return None

    @staticmethod
    def get_activity(db: Session, viewer: Actor, user_id: str) -> List[Dict[str, Any]]:
        """Questions and answers authored by ``user_id``, newest first.

        Raises:
            Forbidden: if ``viewer`` is neither the owner nor an admin.
        """
        if viewer.id != user_id and not viewer.is_admin:
            raise Forbidden("Can only view your own activity")

        questions = (
            db.query(Question)
            .filter(Question.created_by == user_id)
            .all()
        )
        answers = (
            db.query(Answer, Question.title)
            .outerjoin(Question, Answer.question_id == Question.id)
            .filter(Answer.created_by == user_id)
            .all()
        )

        items: List[Dict[str, Any]] = [
            {
                "type": "question",
                "id": q.id,
                "title": q.title,
                "status": q.status.value,
                "created_at": q.created_at,
            }
            for q in questions
        ]
        items.extend(
            {
                "type": "answer",
                "id": a.id,
                "question_id": a.question_id,
                "question_title": title,
                "status": a.status.value,
                "created_at": a.created_at,
            }
            for a, title in answers
        )
        items.sort(key=lambda item: item["created_at"], reverse=True)
        return items

    @staticmethod
    def query_log(
        db: Session,
        actor: Actor,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """Query raw activity entries with filters and pagination (admin only)."""
        require_role(actor, [UserRole.admin], "read the activity log")
        query = db.query(ActivityLog)

        if user_id:
            query = query.filter(ActivityLog.user_id == user_id)
        if action:
            query = query.filter(ActivityLog.action.ilike(f"%{action}%"))

        total = query.count()
        logs = (
            query.order_by(ActivityLog.timestamp.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }


activity_service = ActivityService()
