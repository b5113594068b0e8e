"""Pydantic schemas for API request/response serialization.

Request bodies take enum-valued fields as plain strings: the moderation
service validates them so every bad value surfaces as one of its typed errors.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

from knowledge_base.models.question import ContentStatus, Category, Priority
from knowledge_base.models.user import UserRole, SupervisorType


# ---- User ----
class UserOut(BaseModel):
    id: str
    username: str
    role: UserRole
    supervisor_type: Optional[SupervisorType] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserCreateRequest(BaseModel):
    username: str
    role: str = "user"
    supervisor_type: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None

class UserUpdateRequest(BaseModel):
    role: Optional[str] = None
    supervisor_type: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


# ---- Question ----
class AuthorOut(BaseModel):
    id: str
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    class Config:
        from_attributes = True

class QuestionCreate(BaseModel):
    title: str
    description: str
    category: str
    priority: Optional[str] = None
    attachment: Optional[str] = None

class FinalQuestionCreate(QuestionCreate):
    answer_text: str
    answer_attachment: Optional[str] = None

class StatusUpdate(BaseModel):
    status: str

class QuestionOut(BaseModel):
    id: str
    title: str
    description: str
    category: Category
    priority: Priority
    status: ContentStatus
    created_by: str
    created_at: Optional[datetime] = None
    views: int = 0
    is_final: bool = False
    attachment: Optional[str] = None

    class Config:
        from_attributes = True

class QuestionDetailOut(QuestionOut):
    approved_answer_count: int = 0
    author: Optional[AuthorOut] = None


# ---- Answer ----
class AnswerCreate(BaseModel):
    answer_text: str
    attachment: Optional[str] = None

class AnswerOut(BaseModel):
    id: str
    question_id: str
    answer_text: str
    status: ContentStatus
    created_by: str
    created_at: Optional[datetime] = None
    attachment: Optional[str] = None

    class Config:
        from_attributes = True

class AnswerDetailOut(AnswerOut):
    author: Optional[AuthorOut] = None

class FinalQuestionOut(BaseModel):
    question: QuestionOut
    answer: AnswerOut


# ---- Activity ----
class ActivityItemOut(BaseModel):
    type: str
    id: str
    status: str
    created_at: datetime
    title: Optional[str] = None
    question_id: Optional[str] = None
    question_title: Optional[str] = None

class ActivityLogOut(BaseModel):
    id: str
    user_id: str
    action: str
    timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Analytics ----
class StatsOut(BaseModel):
    total_questions: int
    pending_approvals: int
    active_users: int
    resolution_rate: int

class AnalyticsOut(BaseModel):
    questions_by_category: List[Dict[str, Any]]
    questions_by_status: List[Dict[str, Any]]
    answers_by_status: List[Dict[str, Any]]
    users_by_role: List[Dict[str, Any]]
    top_users: List[Dict[str, Any]]
    trending_questions: List[Dict[str, Any]]


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None

class ErrorResponse(BaseModel):
    detail: str
    code: str = Field(..., description="Stable error kind, e.g. 'locked'")
