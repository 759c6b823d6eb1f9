from __future__ import annotations

from typing import NoReturn

from fastapi import HTTPException, status

from backend.app.services.exceptions import (
    ConflictError,
    FolioAllocationError,
    IllegalTransitionError,
    NotFoundError,
    ServiceError,
)

_STATUS_BY_ERROR: list[tuple[type[Exception], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (IllegalTransitionError, status.HTTP_409_CONFLICT),
    (FolioAllocationError, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ServiceError, status.HTTP_400_BAD_REQUEST),
]


def raise_http(exc: ServiceError | FolioAllocationError) -> NoReturn:
    """Re-raise a service exception as the matching ``HTTPException``."""
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=code, detail=str(exc)) from exc
    raise exc
