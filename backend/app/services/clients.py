"""Client directory: hospitals, clinics and other buyers.

The quote statistics columns are deliberately absent from every write path
here; they belong to ``client_stats``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backend.app.models.client import Client, ClientStatus, ClientType
from backend.app.services.audit import log_action
from backend.app.services.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

RFC_PATTERN = re.compile(r"^[A-ZÑ&]{3,4}\d{6}[A-Z\d]{3}$")

WRITABLE_FIELDS = frozenset({
    "name",
    "contact",
    "email",
    "phone",
    "street",
    "city",
    "state",
    "zip_code",
    "country",
    "rfc",
    "client_type",
    "status",
    "notes",
    "hospital_name",
    "agency",
    "contract",
})

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


def build_full_address(
    street: str | None,
    city: str | None,
    state: str | None,
    zip_code: str | None,
    country: str | None,
) -> str | None:
    """Join the non-empty address parts, e.g. ``Av. Reforma 1, CDMX, CDMX, 06600, México``."""
    parts = [p.strip() for p in (street, city, state, zip_code, country) if p and p.strip()]
    return ", ".join(parts) or None


def normalize_rfc(rfc: str | None) -> str | None:
    if rfc is None or not rfc.strip():
        return None
    value = rfc.strip().upper()
    if not RFC_PATTERN.match(value):
        raise ValidationError(f"Invalid RFC: {rfc}")
    return value


def _email_taken(db: Session, email: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(Client.id).filter(func.lower(Client.email) == email)
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    return query.first() is not None


def _clean(data: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(data) - WRITABLE_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be set: {', '.join(sorted(unknown))}")

    values = dict(data)
    if "email" in values:
        email = (values["email"] or "").strip().lower()
        if not email:
            raise ValidationError("Client email is required")
        values["email"] = email
    if "rfc" in values:
        values["rfc"] = normalize_rfc(values["rfc"])
    if values.get("client_type") is not None:
        try:
            values["client_type"] = ClientType(values["client_type"])
        except ValueError:
            raise ValidationError(f"Invalid client type: {values['client_type']}")
    if values.get("status") is not None:
        try:
            values["status"] = ClientStatus(values["status"])
        except ValueError:
            raise ValidationError(f"Invalid client status: {values['status']}")
    return values


# ─── Queries ──────────────────────────────────────────────────────────────────


def get_client(db: Session, client_id: UUID) -> Client:
    client = (
        db.query(Client)
        .filter(Client.id == client_id, Client.deleted_at.is_(None))
        .first()
    )
    if client is None:
        raise NotFoundError("Client not found")
    return client


def list_clients(
    db: Session,
    *,
    search: str | None = None,
    client_type: str | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Client], int]:
    query = db.query(Client).filter(Client.deleted_at.is_(None))
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Client.name.ilike(like),
                Client.contact.ilike(like),
                Client.email.ilike(like),
            )
        )
    if client_type:
        query = query.filter(Client.client_type == ClientType(client_type))
    if status:
        query = query.filter(Client.status == ClientStatus(status))

    total = query.count()
    clients = (
        query.order_by(Client.created_at.desc(), Client.name)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return clients, total


def client_stats(db: Session) -> dict:
    base = db.query(Client).filter(Client.deleted_at.is_(None))
    by_type = {t.value: 0 for t in ClientType}
    rows = (
        db.query(Client.client_type, func.count(Client.id))
        .filter(Client.deleted_at.is_(None))
        .group_by(Client.client_type)
    )
    for client_type, count in rows:
        by_type[client_type.value] = count

    return {
        "total": base.count(),
        "active": base.filter(Client.status == ClientStatus.ACTIVE).count(),
        "inactive": base.filter(Client.status != ClientStatus.ACTIVE).count(),
        "by_type": by_type,
    }


# ─── Mutations ────────────────────────────────────────────────────────────────


def create_client(
    db: Session,
    *,
    data: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Client:
    values = _clean(data)
    for required in ("name", "contact", "email", "phone"):
        if not values.get(required):
            raise ValidationError(f"Client {required} is required")
    if _email_taken(db, values["email"]):
        raise ConflictError("A client with this email already exists")

    values.setdefault("country", "México")
    client = Client(**values, created_by=user_id)
    client.full_address = build_full_address(
        client.street, client.city, client.state, client.zip_code, client.country
    )
    db.add(client)
    db.flush()

    log_action(
        db,
        user_id=user_id,
        action="CLIENT_CREATED",
        resource_type="clients",
        resource_id=str(client.id),
        ip_address=ip_address,
        changes={"name": client.name, "email": client.email},
    )
    db.commit()
    logger.info("Client %s created (%s)", client.id, client.name)
    return client


def update_client(
    db: Session,
    client_id: UUID,
    *,
    data: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Client:
    client = get_client(db, client_id)
    values = _clean(data)

    if "email" in values and _email_taken(db, values["email"], exclude_id=client.id):
        raise ConflictError("A client with this email already exists")
    for required in ("name", "contact", "phone"):
        if required in values and not values[required]:
            raise ValidationError(f"Client {required} is required")

    changes: dict[str, Any] = {}
    for field, value in values.items():
        if getattr(client, field) != value:
            changes[field] = value.value if hasattr(value, "value") else value
            setattr(client, field, value)

    if any(f in values for f in ADDRESS_FIELDS):
        client.full_address = build_full_address(
            client.street, client.city, client.state, client.zip_code, client.country
        )

    if changes:
        log_action(
            db,
            user_id=user_id,
            action="CLIENT_UPDATED",
            resource_type="clients",
            resource_id=str(client.id),
            ip_address=ip_address,
            changes=changes,
        )
    db.commit()
    return client


def delete_client(
    db: Session,
    client_id: UUID,
    *,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> None:
    """Soft-delete: the row stays so existing quotes keep their reference."""
    client = get_client(db, client_id)
    client.deleted_at = datetime.now(timezone.utc)
    client.status = ClientStatus.INACTIVE

    log_action(
        db,
        user_id=user_id,
        action="CLIENT_DELETED",
        resource_type="clients",
        resource_id=str(client.id),
        ip_address=ip_address,
        changes={"name": client.name},
    )
    db.commit()
    logger.info("Client %s soft-deleted", client.id)
