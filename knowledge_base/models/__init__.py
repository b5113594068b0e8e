"""Models package — import all models so metadata.create_all can discover them."""

from knowledge_base.models.user import User, UserRole, SupervisorType
from knowledge_base.models.question import (
    Question, Answer, ContentStatus, Category, Priority,
)
from knowledge_base.models.activity_log import ActivityLog

__all__ = [
    "User", "UserRole", "SupervisorType",
    "Question", "Answer", "ContentStatus", "Category", "Priority",
    "ActivityLog",
]
