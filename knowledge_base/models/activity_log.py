"""Activity log model — append-only."""

from sqlalchemy import Column, String, Text, DateTime
from knowledge_base.db.base import Base, new_id, utcnow


class ActivityLog(Base):
    """Immutable record of every state-changing action.

    This table is APPEND-ONLY: no UPDATE or DELETE operations should ever
    be performed on it (enforced at application level).
    """
    __tablename__ = "activity_log"

    id = Column(String(36), primary_key=True, default=new_id)
    # No foreign key: entries outlive the user they describe.
    user_id = Column(String(36), nullable=False, index=True)
    action = Column(Text, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False, index=True)
