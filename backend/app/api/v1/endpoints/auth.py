from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.app.api.deps import get_current_user, oauth2_scheme
from backend.app.core.config import settings
from backend.app.core.database import get_db
from backend.app.core.permissions import permissions_for
from backend.app.core.security import (
    create_access_token,
    revoke_token,
    verify_password,
)
from backend.app.middleware.rate_limit import InMemoryRateLimiter
from backend.app.models.user import User
from backend.app.schemas.common import MessageOut
from backend.app.schemas.user import TokenOut, UserOut
from backend.app.services.audit import log_action

logger = logging.getLogger(__name__)

router = APIRouter()

# ─── Rate limiting ────────────────────────────────────────────────────────────
# In-memory per-IP rate limiter; a multi-replica deployment needs a shared store.
login_limiter = InMemoryRateLimiter(window_seconds=60, max_attempts=10)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@router.post("/login/access-token", response_model=TokenOut)
def login_access_token(
    request: Request,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
) -> dict[str, str]:
    ip = request.client.host if request.client else "unknown"
    login_limiter.check(ip)

    login = form_data.username.strip()
    user = (
        db.query(User)
        .filter(
            (func.lower(User.username) == login.lower())
            | (func.lower(User.email) == login.lower())
        )
        .first()
    )
    now = datetime.now(timezone.utc)

    # Account lockout
    if user and user.locked_until:
        locked_until = _as_utc(user.locked_until)
        if now < locked_until:
            remaining = int((locked_until - now).total_seconds() // 60) + 1
            log_action(
                db,
                user_id=user.id,
                action="LOGIN_BLOCKED",
                resource_type="auth",
                resource_id=login,
                ip_address=ip,
                changes={"reason": "account_locked"},
            )
            db.commit()
            raise HTTPException(
                status_code=status.HTTP_423_LOCKED,
                detail=f"Account locked. Try again in {remaining} minutes.",
            )
        # Lockout expired
        user.failed_login_attempts = 0
        user.locked_until = None

    if not user or not verify_password(form_data.password, user.hashed_password):
        if user:
            user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
            if user.failed_login_attempts >= settings.MAX_LOGIN_ATTEMPTS:
                user.locked_until = now + timedelta(minutes=settings.LOCKOUT_MINUTES)
                logger.warning("Account %s locked after %d failed logins", user.username, user.failed_login_attempts)
                log_action(
                    db,
                    user_id=user.id,
                    action="ACCOUNT_LOCKED",
                    resource_type="auth",
                    resource_id=login,
                    ip_address=ip,
                    changes={"failed_attempts": user.failed_login_attempts},
                )

        log_action(
            db,
            user_id=user.id if user else None,
            action="LOGIN_FAILED",
            resource_type="auth",
            resource_id=login,
            ip_address=ip,
            changes={"reason": "invalid_credentials"},
        )
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        log_action(
            db,
            user_id=user.id,
            action="LOGIN_FAILED",
            resource_type="auth",
            resource_id=login,
            ip_address=ip,
            changes={"reason": "inactive_user"},
        )
        db.commit()
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user"
        )

    user.failed_login_attempts = 0
    user.locked_until = None
    user.last_login = now

    log_action(
        db,
        user_id=user.id,
        action="LOGIN_SUCCESS",
        resource_type="auth",
        resource_id=str(user.id),
        ip_address=ip,
        changes={"username": user.username, "role": user.role.value},
    )
    db.commit()

    return {
        "access_token": create_access_token(subject=str(user.id)),
        "token_type": "bearer",
    }


@router.post("/logout", response_model=MessageOut)
def logout(token: str = Depends(oauth2_scheme)) -> dict[str, str]:
    """Invalidate the current access token."""
    revoke_token(token)
    return {"detail": "Logged out successfully"}


@router.get("/me", response_model=UserOut)
def read_current_user(current_user: User = Depends(get_current_user)) -> dict:
    data = UserOut.model_validate(current_user).model_dump()
    data["permissions"] = sorted(permissions_for(current_user.role))
    return data
