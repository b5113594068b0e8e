"""Shared fixtures: an in-memory database, seeded actors, a recording notifier."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

import pytest
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import knowledge_base.models  # noqa: F401
from knowledge_base.core.security import Actor
from knowledge_base.db.base import Base
from knowledge_base.db.session import build_engine
from knowledge_base.models.user import User, UserRole
from knowledge_base.services.moderation_service import ModerationService
from knowledge_base.services.notification_service import NotificationDispatcher


class RecordingDispatcher(NotificationDispatcher):
    """Keeps every notification instead of enqueuing it."""

    def __init__(self) -> None:
        self.new_questions: list = []
        self.pending_answers: list = []

    def notify_new_question(self, recipients, question, author) -> None:
        self.new_questions.append((recipients, question, author))

    def notify_pending_answer(self, recipients, question, answer, author) -> None:
        self.pending_answers.append((recipients, question, answer, author))


class FailingDispatcher(NotificationDispatcher):
    def notify_new_question(self, recipients, question, author) -> None:
        raise RuntimeError("mail relay down")

    def notify_pending_answer(self, recipients, question, answer, author) -> None:
        raise RuntimeError("mail relay down")


def make_user(db: Session, username: str, role: UserRole, email: str = None) -> Actor:
    user = User(username=username, role=role, email=email, first_name=username.title())
    db.add(user)
    db.commit()
    return Actor.from_user(user)


@pytest.fixture
def engine():
    eng = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def service(notifier: RecordingDispatcher) -> ModerationService:
    return ModerationService(notifier)


@pytest.fixture
def admin(db: Session) -> Actor:
    return make_user(db, "admin", UserRole.admin, email="admin@example.com")


@pytest.fixture
def supervisor(db: Session) -> Actor:
    return make_user(db, "qcsupervisor1", UserRole.supervisor)


@pytest.fixture
def user(db: Session) -> Actor:
    return make_user(db, "u1", UserRole.user)


@pytest.fixture
def other_user(db: Session) -> Actor:
    return make_user(db, "u2", UserRole.user)
