"""Question and answer models."""

import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum, text,
)
from knowledge_base.db.base import Base, new_id, utcnow


TITLE_LENGTH = 500
ATTACHMENT_LENGTH = 500


class ContentStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Category(str, enum.Enum):
    ibml = "ibml"
    softtrac = "softtrac"
    omniscan = "omniscan"


class Priority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class Question(Base):
    """A raised issue; status, views and is_final change only through moderation."""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(TITLE_LENGTH), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(Enum(Category), nullable=False, index=True)
    priority = Column(Enum(Priority), default=Priority.medium, nullable=False)
    status = Column(Enum(ContentStatus), default=ContentStatus.pending, nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    views = Column(Integer, default=0, server_default=text("0"), nullable=False)
    is_final = Column(Boolean, default=False, nullable=False)
    attachment = Column(String(ATTACHMENT_LENGTH), nullable=True)
    # Holds the author id while a supervisor-submitted question is pending.
    # The unique constraint makes the one-pending-question throttle race-safe.
    pending_slot = Column(String(36), unique=True, nullable=True)


class Answer(Base):
    """Answer bound to exactly one question."""
    __tablename__ = "answers"

    id = Column(String(36), primary_key=True, default=new_id)
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False, index=True)
    answer_text = Column(Text, nullable=False)
    status = Column(Enum(ContentStatus), default=ContentStatus.pending, nullable=False, index=True)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    attachment = Column(String(ATTACHMENT_LENGTH), nullable=True)
