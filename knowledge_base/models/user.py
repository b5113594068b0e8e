"""User model."""

import enum

from sqlalchemy import Column, String, DateTime, Enum
from knowledge_base.db.base import Base, new_id, utcnow


USERNAME_LENGTH = 150
NAME_LENGTH = 150
EMAIL_LENGTH = 255


class UserRole(str, enum.Enum):
    admin = "admin"
    supervisor = "supervisor"
    user = "user"


class SupervisorType(str, enum.Enum):
    """Informational sub-type for supervisors; never used for gating."""
    qc = "qc"
    validation = "validation"
    scanner = "scanner"


class User(Base):
    """Directory entry with the role used by every moderation rule."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(USERNAME_LENGTH), unique=True, nullable=False, index=True)
    role = Column(Enum(UserRole), default=UserRole.user, nullable=False, index=True)
    supervisor_type = Column(Enum(SupervisorType), nullable=True)
    first_name = Column(String(NAME_LENGTH), nullable=True)
    last_name = Column(String(NAME_LENGTH), nullable=True)
    email = Column(String(EMAIL_LENGTH), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        full = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full or self.username
