"""User management API router (admin only)."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from knowledge_base.db.session import get_db
from knowledge_base.schemas.schemas import (
    UserOut, UserCreateRequest, UserUpdateRequest, MessageResponse,
)
from knowledge_base.services.identity_service import identity_service
from knowledge_base.core.security import Actor, get_current_actor, require_admin

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Get the calling user's profile."""
    return identity_service.require_user(db, actor.id)


@router.get("/")
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    """List all users."""
    result = identity_service.list_users(db, page, page_size)
    return {
        "users": [UserOut.model_validate(u) for u in result["users"]],
        "total": result["total"],
        "page": result["page"],
    }


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Create a user."""
    return identity_service.create_user(
        db, body.username, body.role, body.first_name, body.last_name,
        body.email, body.supervisor_type, actor=actor,
    )


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    body: UserUpdateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Update a user's role or name."""
    return identity_service.update_user(
        db, actor, user_id, body.role, body.first_name, body.last_name,
        body.email, body.supervisor_type,
    )


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """Delete a user who has no authored content."""
    identity_service.delete_user(db, actor, user_id)
    return MessageResponse(message="User deleted")
