"""Actor context and role-gate helpers.

The moderation core never reads ambient session state: every call receives an
``Actor`` value. At the HTTP boundary the upstream session layer forwards the
authenticated user id in the ``X-User-Id`` header, which is resolved here
through the identity directory.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from knowledge_base.core.exceptions import Forbidden
from knowledge_base.db.session import get_db
from knowledge_base.models.user import User, UserRole

USER_ID_HEADER = "X-User-Id"


@dataclass(frozen=True)
class Actor:
    """The caller of a moderation operation."""

    id: str
    role: UserRole

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=UserRole(user.role))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin


def require_role(actor: Actor, roles: Iterable[UserRole], action: str) -> None:
    """Raise Forbidden unless the actor holds one of ``roles``."""
    allowed = tuple(roles)
    if actor.role not in allowed:
        names = ", ".join(r.value for r in allowed)
        raise Forbidden(f"Role '{actor.role.value}' may not {action} (requires {names})")


async def get_current_actor(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the forwarded user id into an Actor."""
    from knowledge_base.services.identity_service import identity_service

    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    user = identity_service.get_user(db, x_user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )
    return Actor.from_user(user)


class RequireRole:
    """Dependency that checks the actor holds one of the given roles."""

    def __init__(self, *roles: UserRole):
        self.roles = roles

    async def __call__(self, actor: Actor = Depends(get_current_actor)) -> Actor:
        require_role(actor, self.roles, "access this resource")
        return actor


require_admin = RequireRole(UserRole.admin)
