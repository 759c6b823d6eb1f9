from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user
from backend.app.api.errors import raise_http
from backend.app.api.permission_deps import require_permission
from backend.app.core.database import get_db
from backend.app.models.user import User
from backend.app.schemas.common import MessageOut
from backend.app.schemas.user import (
    ChangePasswordIn,
    ResetPasswordIn,
    UserCreate,
    UserOut,
    UserUpdate,
)
from backend.app.services.exceptions import ServiceError
from backend.app.services.user_management import (
    change_own_password,
    create_user,
    deactivate_user,
    get_user,
    list_users,
    reset_password,
    update_user,
)

router = APIRouter()


@router.get("", response_model=list[UserOut])
def list_all_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("user:manage")),
) -> list[User]:
    """List all users. Admin only."""
    return list_users(db)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_new_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("user:manage")),
) -> User:
    """Create a new user account. Admin only."""
    try:
        user = create_user(db, **body.model_dump(), admin_id=current_user.id)
        db.commit()
        return user
    except ServiceError as e:
        raise_http(e)


@router.post("/me/change-password", response_model=MessageOut)
def change_my_password(
    body: ChangePasswordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, str]:
    try:
        change_own_password(
            db,
            user_id=current_user.id,
            current_password=body.current_password,
            new_password=body.new_password,
        )
        db.commit()
    except ServiceError as e:
        raise_http(e)
    return {"detail": "Password changed"}


@router.get("/{user_id}", response_model=UserOut)
def read_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("user:manage")),
) -> User:
    try:
        return get_user(db, user_id)
    except ServiceError as e:
        raise_http(e)


@router.put("/{user_id}", response_model=UserOut)
def update_existing_user(
    user_id: UUID,
    body: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("user:manage")),
) -> User:
    """Update identity, role or profile of a user. Admin only."""
    try:
        user = update_user(
            db,
            user_id=user_id,
            admin_id=current_user.id,
            **body.model_dump(exclude_unset=True),
        )
        db.commit()
        return user
    except ServiceError as e:
        raise_http(e)


@router.patch("/{user_id}/deactivate", response_model=UserOut)
def deactivate(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("user:manage")),
) -> User:
    """Deactivate a user account. Admin only."""
    try:
        user = deactivate_user(db, user_id=user_id, admin_id=current_user.id)
        db.commit()
        return user
    except ServiceError as e:
        raise_http(e)


@router.post("/{user_id}/reset-password", response_model=MessageOut)
def admin_reset_password(
    user_id: UUID,
    body: ResetPasswordIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("user:manage")),
) -> dict[str, str]:
    """Admin resets a user's password."""
    try:
        reset_password(
            db, user_id=user_id, new_password=body.new_password, admin_id=current_user.id
        )
        db.commit()
    except ServiceError as e:
        raise_http(e)
    return {"detail": "Password reset"}
