"""Granular permission dependencies.

Usage in endpoints::

    @router.post("")
    def create_quote(
        body: QuoteCreate,
        db: Session = Depends(get_db),
        current_user: User = Depends(require_permission("quote:write")),
    ):
        ...
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status

from backend.app.api.deps import get_current_user
from backend.app.core.permissions import permissions_for
from backend.app.models.user import User


def require_permission(*permission_codes: str):
    """FastAPI dependency factory: checks the user has **all** listed permissions.

    Returns the authenticated ``User`` so the endpoint can use it::

        current_user = Depends(require_permission("quote:write"))
    """

    def _checker(current_user: User = Depends(get_current_user)) -> User:
        missing = set(permission_codes) - permissions_for(current_user.role)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(sorted(missing))}",
            )
        return current_user

    return _checker
