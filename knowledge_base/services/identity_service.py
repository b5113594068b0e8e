"""Identity directory — user records and the roles that gate moderation."""

import logging
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from knowledge_base.core.exceptions import InvalidState, NotFound, ValidationError
from knowledge_base.core.security import Actor, require_role
from knowledge_base.core.validation import parse_choice, require_text, optional_text
from knowledge_base.models.question import Question, Answer
from knowledge_base.models.user import (
    User, UserRole, SupervisorType, USERNAME_LENGTH, NAME_LENGTH, EMAIL_LENGTH,
)
from knowledge_base.services.activity_service import activity_service

logger = logging.getLogger("knowledge_base")

# Accounts created by ``kbctl db seed``.
PREDEFINED_USERS = [
    {"username": "admin", "role": "admin", "first_name": "Admin", "last_name": "1"},
    {"username": "superadmin", "role": "admin", "first_name": "Super", "last_name": "Admin"},
    {"username": "qcsupervisor1", "role": "supervisor", "supervisor_type": "qc",
     "first_name": "QC", "last_name": "Supervisor 1"},
    {"username": "qcsupervisor2", "role": "supervisor", "supervisor_type": "qc",
     "first_name": "QC", "last_name": "Supervisor 2"},
    {"username": "valsupervisor1", "role": "supervisor", "supervisor_type": "validation",
     "first_name": "Validation", "last_name": "Supervisor 1"},
    {"username": "valsupervisor2", "role": "supervisor", "supervisor_type": "validation",
     "first_name": "Validation", "last_name": "Supervisor 2"},
    {"username": "scannersupervisor1", "role": "supervisor", "supervisor_type": "scanner",
     "first_name": "Scanner", "last_name": "Supervisor 1"},
    {"username": "scannersupervisor2", "role": "supervisor", "supervisor_type": "scanner",
     "first_name": "Scanner", "last_name": "Supervisor 2"},
    {"username": "user1", "role": "user", "first_name": "Test", "last_name": "User 1"},
    {"username": "user2", "role": "user", "first_name": "Test", "last_name": "User 2"},
]


class IdentityService:
    """Looks up users and handles admin-driven user management."""

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_name(db: Session, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    @staticmethod
    def require_user(db: Session, user_id: str) -> User:
        """Get a user by id or raise NotFound."""
        user = IdentityService.get_user(db, user_id)
        if not user:
            raise NotFound(f"User {user_id} not found")
        return user

    @staticmethod
    def create_user(
        db: Session,
        username: str,
        role: str = "user",
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        supervisor_type: Optional[str] = None,
        actor: Optional[Actor] = None,
    ) -> User:
        """Create a new user.

        ``actor`` is None only for trusted callers such as the seed command;
        otherwise it must be an admin.
        """
        if actor is not None:
            require_role(actor, [UserRole.admin], "create users")

        username = require_text(username, "Username", USERNAME_LENGTH)
        role = parse_choice(UserRole, role, "role")
        sup_type = (
            parse_choice(SupervisorType, supervisor_type, "supervisor type")
            if supervisor_type else None
        )
        if IdentityService.get_user_by_name(db, username):
            raise ValidationError(f"Username '{username}' already exists")

        user = User(
            username=username,
            role=role,
            supervisor_type=sup_type,
            first_name=optional_text(first_name, "First name", NAME_LENGTH),
            last_name=optional_text(last_name, "Last name", NAME_LENGTH),
            email=optional_text(email, "Email", EMAIL_LENGTH),
        )
        db.add(user)
        db.flush()
        activity_service.record(
            db, actor.id if actor else user.id, f"Created user: {username}",
        )
        db.commit()
        db.refresh(user)
        logger.info("Created user %s (%s)", username, role.value)
        return user

    @staticmethod
    def list_users(db: Session, page: int = 1, page_size: int = 20) -> Dict[str, Any]:
        """List all users, newest first."""
        total = db.query(User).count()
        users = (
            db.query(User)
            .order_by(User.created_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {"users": users, "total": total, "page": page}

    @staticmethod
    def update_user(
        db: Session,
        actor: Actor,
        user_id: str,
        role: Optional[str] = None,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        supervisor_type: Optional[str] = None,
    ) -> User:
        """Edit a user's role or name fields (admin only)."""
        require_role(actor, [UserRole.admin], "edit users")
        user = IdentityService.require_user(db, user_id)

        changes = []
        if role is not None:
            user.role = parse_choice(UserRole, role, "role")
            changes.append(f"role={user.role.value}")
        if supervisor_type is not None:
            user.supervisor_type = (
                parse_choice(SupervisorType, supervisor_type, "supervisor type")
                if supervisor_type else None
            )
            changes.append("supervisor_type")
        if first_name is not None:
            user.first_name = optional_text(first_name, "First name", NAME_LENGTH)
            changes.append("first_name")
        if last_name is not None:
            user.last_name = optional_text(last_name, "Last name", NAME_LENGTH)
            changes.append("last_name")
        if email is not None:
            user.email = optional_text(email, "Email", EMAIL_LENGTH)
            changes.append("email")

        if changes:
            activity_service.record(
                db, actor.id, f"Updated user {user.username}: {', '.join(changes)}",
            )
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def delete_user(db: Session, actor: Actor, user_id: str) -> None:
        """Remove a user who authors no content (admin only)."""
        require_role(actor, [UserRole.admin], "delete users")
        if user_id == actor.id:
            raise InvalidState("Cannot delete your own account")
        user = IdentityService.require_user(db, user_id)

        authored = (
            db.query(Question).filter(Question.created_by == user_id).count()
            + db.query(Answer).filter(Answer.created_by == user_id).count()
        )
        if authored:
            raise InvalidState(
                f"User {user.username} still authors {authored} question(s)/answer(s)"
            )

        username = user.username
        db.delete(user)
        activity_service.record(db, actor.id, f"Deleted user: {username}")
        db.commit()

    @staticmethod
    def reviewer_emails(db: Session) -> List[str]:
        """Addresses of the admins who review pending content."""
        rows = (
            db.query(User.email)
            .filter(User.role == UserRole.admin, User.email.isnot(None))
            .order_by(User.username)
            .all()
        )
        return [email for (email,) in rows]

    @staticmethod
    def seed_predefined_users(db: Session) -> int:
        """Insert the predefined accounts that do not exist yet."""
        created = 0
        for data in PREDEFINED_USERS:
            if IdentityService.get_user_by_name(db, data["username"]):
                continue
            IdentityService.create_user(db, **data)
            created += 1
        return created


identity_service = IdentityService()
