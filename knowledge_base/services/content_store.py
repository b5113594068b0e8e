"""Content store — persistence and queries for questions and answers.

Reads return plain summary records (value copies joined with their author and
approved-answer count) rather than live ORM objects, so callers never trigger
hidden lazy loads. Mutating helpers work inside the caller's transaction and
never commit; the moderation service owns transaction boundaries.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Dict, Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from knowledge_base.core.exceptions import NotFound
from knowledge_base.models.question import Question, Answer, ContentStatus, Category
from knowledge_base.models.user import User, UserRole
from knowledge_base.services.ranking_service import SortOrder, rank_trending


@dataclass(frozen=True)
class AuthorSummary:
    id: str
    username: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]


@dataclass(frozen=True)
class QuestionSummary:
    id: str
    title: str
    description: str
    category: Category
    priority: str
    status: ContentStatus
    created_by: str
    created_at: datetime
    views: int
    is_final: bool
    attachment: Optional[str]
    approved_answer_count: int
    author: AuthorSummary


@dataclass(frozen=True)
class AnswerSummary:
    id: str
    question_id: str
    answer_text: str
    status: ContentStatus
    created_by: str
    created_at: datetime
    attachment: Optional[str]
    author: AuthorSummary


def _author(user_id: str, user: Optional[User]) -> AuthorSummary:
    if user is None:
        return AuthorSummary(id=user_id, username=None, first_name=None, last_name=None)
    return AuthorSummary(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def _question_summary(question: Question, user: Optional[User], approved: int) -> QuestionSummary:
    return QuestionSummary(
        id=question.id,
        title=question.title,
        description=question.description,
        category=question.category,
        priority=question.priority.value,
        status=question.status,
        created_by=question.created_by,
        created_at=question.created_at,
        views=question.views,
        is_final=bool(question.is_final),
        attachment=question.attachment,
        approved_answer_count=int(approved or 0),
        author=_author(question.created_by, user),
    )


class ContentStore:
    """Query and persistence helpers for questions and answers."""

    # ---- Questions ----

    @staticmethod
    def _approved_counts(db: Session):
        return (
            db.query(
                Answer.question_id.label("question_id"),
                func.count(Answer.id).label("approved_count"),
            )
            .filter(Answer.status == ContentStatus.approved)
            .group_by(Answer.question_id)
            .subquery()
        )

    @staticmethod
    def _summary_query(db: Session):
        counts = ContentStore._approved_counts(db)
        approved = func.coalesce(counts.c.approved_count, 0)
        query = (
            db.query(Question, User, approved.label("approved_count"))
            .outerjoin(User, User.id == Question.created_by)
            .outerjoin(counts, counts.c.question_id == Question.id)
        )
        return query, approved

    @staticmethod
    def get_question(db: Session, question_id: str, for_update: bool = False) -> Optional[Question]:
        query = db.query(Question).filter(Question.id == question_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def require_question(db: Session, question_id: str, for_update: bool = False) -> Question:
        """Get a question by id or raise NotFound."""
        question = ContentStore.get_question(db, question_id, for_update)
        if not question:
            raise NotFound(f"Question {question_id} not found")
        return question

    @staticmethod
    def get_question_summary(db: Session, question_id: str) -> Optional[QuestionSummary]:
        query, _ = ContentStore._summary_query(db)
        row = query.filter(Question.id == question_id).first()
        if row is None:
            return None
        return _question_summary(*row)

    @staticmethod
    def list_questions(
        db: Session,
        category: Optional[Category] = None,
        status: Optional[ContentStatus] = None,
        search: Optional[str] = None,
        sort_by: SortOrder = SortOrder.recent,
        limit: int = 20,
        offset: int = 0,
        author_id: Optional[str] = None,
    ) -> List[QuestionSummary]:
        """Filter, order and page question summaries.

        Trending order only ever ranks approved questions; the score is
        computed in Python by the ranking service, the other orders run in SQL.
        """
        query, approved = ContentStore._summary_query(db)

        if category:
            query = query.filter(Question.category == category)
        if status:
            query = query.filter(Question.status == status)
        if author_id:
            query = query.filter(Question.created_by == author_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Question.title.ilike(pattern), Question.description.ilike(pattern))
            )

        if sort_by == SortOrder.trending:
            query = query.filter(Question.status == ContentStatus.approved)
            ranked = rank_trending(_question_summary(*row) for row in query.all())
            return ranked[offset:offset + limit]

        if sort_by == SortOrder.views:
            query = query.order_by(Question.views.desc(), Question.created_at.desc())
        elif sort_by == SortOrder.answers:
            query = query.order_by(approved.desc(), Question.created_at.desc())
        else:
            query = query.order_by(Question.created_at.desc())

        rows = query.offset(offset).limit(limit).all()
        return [_question_summary(*row) for row in rows]

    @staticmethod
    def count_pending_questions(db: Session, author_id: str) -> int:
        return (
            db.query(Question)
            .filter(
                Question.created_by == author_id,
                Question.status == ContentStatus.pending,
            )
            .count()
        )

    @staticmethod
    def add_question(db: Session, **fields) -> Question:
        question = Question(**fields)
        db.add(question)
        db.flush()
        return question

    @staticmethod
    def increment_views(db: Session, question_id: str) -> bool:
        """Atomic in-place ``views = views + 1``; False when the row is missing."""
        updated = (
            db.query(Question)
            .filter(Question.id == question_id)
            .update({Question.views: Question.views + 1}, synchronize_session=False)
        )
        return updated > 0

    @staticmethod
    def delete_question_cascade(db: Session, question: Question) -> int:
        """Delete a question's answers, then the question. Returns answers removed."""
        removed = (
            db.query(Answer)
            .filter(Answer.question_id == question.id)
            .delete(synchronize_session=False)
        )
        db.delete(question)
        db.flush()
        return removed

    # ---- Answers ----

    @staticmethod
    def get_answer(db: Session, answer_id: str) -> Optional[Answer]:
        return db.query(Answer).filter(Answer.id == answer_id).first()

    @staticmethod
    def require_answer(db: Session, answer_id: str) -> Answer:
        """Get an answer by id or raise NotFound."""
        answer = ContentStore.get_answer(db, answer_id)
        if not answer:
            raise NotFound(f"Answer {answer_id} not found")
        return answer

    @staticmethod
    def add_answer(db: Session, **fields) -> Answer:
        answer = Answer(**fields)
        db.add(answer)
        db.flush()
        return answer

    @staticmethod
    def list_answers(
        db: Session,
        question_id: str,
        status: Optional[ContentStatus] = None,
    ) -> List[AnswerSummary]:
        """Answers of a question with their authors, newest first."""
        query = (
            db.query(Answer, User)
            .outerjoin(User, User.id == Answer.created_by)
            .filter(Answer.question_id == question_id)
        )
        if status:
            query = query.filter(Answer.status == status)

        return [
            AnswerSummary(
                id=answer.id,
                question_id=answer.question_id,
                answer_text=answer.answer_text,
                status=answer.status,
                created_by=answer.created_by,
                created_at=answer.created_at,
                attachment=answer.attachment,
                author=_author(answer.created_by, user),
            )
            for answer, user in query.order_by(Answer.created_at.desc()).all()
        ]

    @staticmethod
    def count_answers(db: Session, question_id: str) -> int:
        return db.query(Answer).filter(Answer.question_id == question_id).count()

    # ---- Aggregates ----

    @staticmethod
    def count_questions(db: Session, status: Optional[ContentStatus] = None) -> int:
        query = db.query(Question)
        if status:
            query = query.filter(Question.status == status)
        return query.count()

    @staticmethod
    def count_answers_by_status(db: Session, status: ContentStatus) -> int:
        return db.query(Answer).filter(Answer.status == status).count()

    @staticmethod
    def count_resolved_questions(db: Session) -> int:
        """Questions with at least one approved answer."""
        return (
            db.query(func.count(func.distinct(Answer.question_id)))
            .filter(Answer.status == ContentStatus.approved)
            .scalar()
        ) or 0

    @staticmethod
    def count_users_since(db: Session, since: datetime) -> int:
        return db.query(User).filter(User.created_at > since).count()

    @staticmethod
    def questions_by_category(db: Session) -> List[Dict[str, Any]]:
        rows = (
            db.query(Question.category, func.count(Question.id))
            .group_by(Question.category)
            .all()
        )
        return [{"category": c.value, "count": n} for c, n in rows]

    @staticmethod
    def questions_by_status(db: Session) -> List[Dict[str, Any]]:
        rows = (
            db.query(Question.status, func.count(Question.id))
            .group_by(Question.status)
            .all()
        )
        return [{"status": s.value, "count": n} for s, n in rows]

    @staticmethod
    def answers_by_status(db: Session) -> List[Dict[str, Any]]:
        rows = (
            db.query(Answer.status, func.count(Answer.id))
            .group_by(Answer.status)
            .all()
        )
        return [{"status": s.value, "count": n} for s, n in rows]

    @staticmethod
    def users_by_role(db: Session) -> List[Dict[str, Any]]:
        rows = db.query(User.role, func.count(User.id)).group_by(User.role).all()
        return [{"role": UserRole(r).value, "count": n} for r, n in rows]

    @staticmethod
    def top_users(db: Session, limit: int = 10) -> List[Dict[str, Any]]:
        """Users ordered by questions authored, with their answer counts."""
        q_counts = (
            db.query(Question.created_by.label("user_id"), func.count(Question.id).label("n"))
            .group_by(Question.created_by)
            .subquery()
        )
        a_counts = (
            db.query(Answer.created_by.label("user_id"), func.count(Answer.id).label("n"))
            .group_by(Answer.created_by)
            .subquery()
        )
        question_count = func.coalesce(q_counts.c.n, 0)
        answer_count = func.coalesce(a_counts.c.n, 0)
        rows = (
            db.query(User, question_count, answer_count)
            .outerjoin(q_counts, q_counts.c.user_id == User.id)
            .outerjoin(a_counts, a_counts.c.user_id == User.id)
            .order_by(question_count.desc(), answer_count.desc(), User.username)
            .limit(limit)
            .all()
        )
        return [
            {
                "user_id": user.id,
                "username": user.username,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "question_count": int(qn),
                "answer_count": int(an),
            }
            for user, qn, an in rows
        ]


content_store = ContentStore()
