"""User management service: CRUD operations for back-office accounts.

All mutations are audit-logged. This module does NOT call db.commit();
the caller (endpoint) is responsible for committing.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.app.core.security import MIN_PASSWORD_LENGTH, get_password_hash, verify_password
from backend.app.models.user import RoleEnum, User
from backend.app.services.audit import log_action
from backend.app.services.exceptions import ConflictError, NotFoundError, ValidationError

PROFILE_FIELDS = ("first_name", "last_name", "phone", "position")


def _get(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user


def _check_unique(
    db: Session, *, username: str | None, email: str | None, exclude_id: UUID | None = None
) -> None:
    if username is not None:
        query = db.query(User.id).filter(func.lower(User.username) == username.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Username already exists")
    if email is not None:
        query = db.query(User.id).filter(func.lower(User.email) == email.lower())
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        if query.first():
            raise ConflictError("Email already registered")


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def list_users(db: Session) -> list[User]:
    """Return all users ordered by creation date descending."""
    return db.query(User).order_by(User.created_at.desc()).all()


def get_user(db: Session, user_id: UUID) -> User:
    return _get(db, user_id)


def create_user(
    db: Session,
    *,
    username: str,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: RoleEnum = RoleEnum.USER,
    phone: str | None = None,
    position: str | None = None,
    admin_id: UUID | None,
) -> User:
    """Create a new user account. Raises ConflictError if username/email taken."""
    email = email.strip().lower()
    _check_unique(db, username=username, email=email)
    _check_password(password)

    user = User(
        username=username,
        email=email,
        hashed_password=get_password_hash(password),
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        position=position,
        role=role,
    )
    db.add(user)
    db.flush()

    log_action(
        db,
        user_id=admin_id,
        action="USER_CREATED",
        resource_type="users",
        resource_id=str(user.id),
        changes={"username": username, "role": role.value},
    )
    return user


def update_user(
    db: Session,
    *,
    user_id: UUID,
    admin_id: UUID,
    username: str | None = None,
    email: str | None = None,
    role: RoleEnum | None = None,
    **profile: str | None,
) -> User:
    """Update identity, role and profile fields that were supplied."""
    user = _get(db, user_id)
    if email is not None:
        email = email.strip().lower()
    _check_unique(
        db,
        username=username if username != user.username else None,
        email=email if email != user.email else None,
        exclude_id=user.id,
    )

    changes: dict[str, object] = {}
    if username is not None and username != user.username:
        changes["username"] = {"old": user.username, "new": username}
        user.username = username
    if email is not None and email != user.email:
        changes["email"] = {"old": user.email, "new": email}
        user.email = email
    if role is not None and role != user.role:
        if user.id == admin_id and user.role == RoleEnum.ADMIN:
            raise ValidationError("Cannot change your own admin role")
        changes["role"] = {"old": user.role.value, "new": role.value}
        user.role = role
    for field in PROFILE_FIELDS:
        value = profile.get(field)
        if value is not None and value != getattr(user, field):
            changes[field] = value
            setattr(user, field, value)

    if changes:
        db.flush()
        log_action(
            db,
            user_id=admin_id,
            action="USER_UPDATED",
            resource_type="users",
            resource_id=str(user.id),
            changes=changes,
        )
    return user


def deactivate_user(db: Session, *, user_id: UUID, admin_id: UUID) -> User:
    """Deactivate an account. Admins cannot deactivate themselves."""
    user = _get(db, user_id)
    if user_id == admin_id:
        raise ValidationError("Cannot deactivate yourself")

    user.is_active = False
    db.flush()

    log_action(
        db,
        user_id=admin_id,
        action="USER_DEACTIVATED",
        resource_type="users",
        resource_id=str(user.id),
        changes={"is_active": False},
    )
    return user


def reset_password(
    db: Session,
    *,
    user_id: UUID,
    new_password: str,
    admin_id: UUID | None,
) -> User:
    """Set a new password and clear any lockout."""
    user = _get(db, user_id)
    _check_password(new_password)

    user.hashed_password = get_password_hash(new_password)
    user.failed_login_attempts = 0
    user.locked_until = None
    db.flush()

    log_action(
        db,
        user_id=admin_id,
        action="USER_PASSWORD_RESET",
        resource_type="users",
        resource_id=str(user.id),
        changes={"reset_by": str(admin_id) if admin_id else "cli"},
    )
    return user


def change_own_password(
    db: Session,
    *,
    user_id: UUID,
    current_password: str,
    new_password: str,
) -> User:
    """User changes their own password. Raises ValidationError if current is wrong."""
    user = _get(db, user_id)
    if not verify_password(current_password, user.hashed_password):
        raise ValidationError("Current password is incorrect")
    _check_password(new_password)

    user.hashed_password = get_password_hash(new_password)
    db.flush()

    log_action(
        db,
        user_id=user_id,
        action="USER_PASSWORD_CHANGED",
        resource_type="users",
        resource_id=str(user_id),
    )
    return user
