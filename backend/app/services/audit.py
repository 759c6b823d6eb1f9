"""Audit trail helper shared by every mutating service."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from backend.app.core.logging import get_request_id
from backend.app.models.audit import AuditLog


def log_action(
    db: Session,
    *,
    user_id: UUID | None,
    action: str,
    resource_type: str,
    resource_id: str,
    changes: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> AuditLog:
    """Stage one audit row in the caller's transaction.

    Nothing is committed here, so the row persists only if the audited
    change does. The current request id is stamped on the row.
    """
    entry = AuditLog(
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        user_id=user_id,
        changes=changes,
        ip_address=ip_address,
        request_id=get_request_id(),
    )
    db.add(entry)
    return entry
