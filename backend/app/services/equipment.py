"""Installed equipment and its preventive-maintenance schedule."""

from __future__ import annotations

import calendar
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backend.app.models.client import Client
from backend.app.models.equipment import Equipment, EquipmentCategory, EquipmentStatus
from backend.app.services.audit import log_action
from backend.app.services.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAINTENANCE_WARNING_DAYS = 30

EQUIPMENT_FIELDS = frozenset({
    "name", "model", "serial_number", "category", "brand", "location",
    "install_date", "purchase_date", "warranty_expiry", "last_maintenance",
    "maintenance_interval", "status", "notes", "supplier", "cost", "currency",
})

NOT_NULL_FIELDS = frozenset({
    "name", "model", "serial_number", "category", "brand", "location",
    "maintenance_interval", "status", "currency",
})


# ─── Maintenance schedule ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class MaintenanceStatus:
    next_maintenance: date | None
    needed: bool
    overdue: bool
    days_until: int | None


def add_months(day: date, months: int) -> date:
    """Calendar month arithmetic; 31 Jan + 1 month is 28/29 Feb."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def maintenance_status(equipment: Equipment, today: date | None = None) -> MaintenanceStatus:
    today = today or date.today()
    if equipment.last_maintenance is None:
        return MaintenanceStatus(next_maintenance=None, needed=True, overdue=True, days_until=None)

    next_date = add_months(equipment.last_maintenance, equipment.maintenance_interval or 12)
    days_until = (next_date - today).days
    return MaintenanceStatus(
        next_maintenance=next_date,
        needed=days_until <= MAINTENANCE_WARNING_DAYS,
        overdue=days_until < 0,
        days_until=days_until,
    )


# ─── Queries ──────────────────────────────────────────────────────────────────


def _active_client(db: Session, client_id: UUID) -> Client:
    client = (
        db.query(Client)
        .filter(Client.id == client_id, Client.deleted_at.is_(None))
        .first()
    )
    if client is None:
        raise NotFoundError("Client not found")
    return client


def get_equipment(db: Session, equipment_id: UUID) -> Equipment:
    equipment = db.query(Equipment).filter(Equipment.id == equipment_id).first()
    if equipment is None:
        raise NotFoundError("Equipment not found")
    return equipment


def list_client_equipment(
    db: Session,
    client_id: UUID,
    *,
    search: str | None = None,
    status: EquipmentStatus | None = None,
    category: EquipmentCategory | None = None,
) -> list[Equipment]:
    _active_client(db, client_id)
    query = db.query(Equipment).filter(Equipment.client_id == client_id)
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Equipment.name.ilike(like),
                Equipment.model.ilike(like),
                Equipment.serial_number.ilike(like),
                Equipment.brand.ilike(like),
                Equipment.location.ilike(like),
            )
        )
    if status:
        query = query.filter(Equipment.status == status)
    if category:
        query = query.filter(Equipment.category == category)
    return query.order_by(Equipment.created_at.desc(), Equipment.name).all()


def equipment_stats(db: Session, *, client_id: UUID | None = None) -> dict:
    by_status = {s.value: 0 for s in EquipmentStatus}
    by_category = {c.value: 0 for c in EquipmentCategory}

    status_q = db.query(Equipment.status, func.count(Equipment.id))
    category_q = db.query(Equipment.category, func.count(Equipment.id))
    if client_id is not None:
        status_q = status_q.filter(Equipment.client_id == client_id)
        category_q = category_q.filter(Equipment.client_id == client_id)

    for status, count in status_q.group_by(Equipment.status):
        by_status[status.value] = count
    for category, count in category_q.group_by(Equipment.category):
        by_category[category.value] = count

    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "by_category": by_category,
    }


def maintenance_alerts(
    db: Session, *, client_id: UUID | None = None, today: date | None = None
) -> list[tuple[Equipment, MaintenanceStatus]]:
    """Equipment in service whose maintenance is due, most urgent first."""
    query = db.query(Equipment).filter(Equipment.status != EquipmentStatus.RETIRED)
    if client_id is not None:
        query = query.filter(Equipment.client_id == client_id)

    alerts = []
    for equipment in query.all():
        status = maintenance_status(equipment, today)
        if status.needed:
            alerts.append((equipment, status))
    # Never-maintained first, then by days remaining
    alerts.sort(key=lambda pair: (pair[1].days_until is not None, pair[1].days_until or 0))
    return alerts


# ─── Mutations ────────────────────────────────────────────────────────────────


def _clean(data: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(data) - EQUIPMENT_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be set: {', '.join(sorted(unknown))}")
    values = dict(data)
    if "serial_number" in values:
        serial = (values["serial_number"] or "").strip().upper()
        if not serial:
            raise ValidationError("Serial number is required")
        values["serial_number"] = serial
    interval = values.get("maintenance_interval")
    if interval is not None and not 1 <= int(interval) <= 60:
        raise ValidationError("Maintenance interval must be between 1 and 60 months")
    if values.get("category") is not None:
        values["category"] = EquipmentCategory(values["category"])
    if values.get("status") is not None:
        values["status"] = EquipmentStatus(values["status"])
    return values


def _serial_taken(db: Session, serial: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(Equipment.id).filter(Equipment.serial_number == serial)
    if exclude_id is not None:
        query = query.filter(Equipment.id != exclude_id)
    return query.first() is not None


def create_equipment(
    db: Session,
    client_id: UUID,
    *,
    data: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Equipment:
    client = _active_client(db, client_id)
    values = {k: v for k, v in _clean(data).items() if v is not None}
    for required in ("name", "model", "serial_number", "category", "brand", "location"):
        if not values.get(required):
            raise ValidationError(f"Equipment {required} is required")
    if _serial_taken(db, values["serial_number"]):
        raise ConflictError(f"Serial number {values['serial_number']} already registered")

    equipment = Equipment(client_id=client.id, created_by=user_id, **values)
    db.add(equipment)
    db.flush()

    log_action(
        db,
        user_id=user_id,
        action="EQUIPMENT_CREATED",
        resource_type="equipment",
        resource_id=str(equipment.id),
        ip_address=ip_address,
        changes={"client_id": str(client.id), "serial_number": equipment.serial_number},
    )
    db.commit()
    logger.info("Equipment %s registered for client %s", equipment.serial_number, client.id)
    return equipment


def update_equipment(
    db: Session,
    equipment_id: UUID,
    *,
    data: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Equipment:
    equipment = get_equipment(db, equipment_id)
    values = _clean(data)
    if "serial_number" in values and _serial_taken(db, values["serial_number"], equipment.id):
        raise ConflictError(f"Serial number {values['serial_number']} already registered")

    changes: dict[str, Any] = {}
    for field, value in values.items():
        if value is None and field in NOT_NULL_FIELDS:
            continue
        setattr(equipment, field, value)
        changes[field] = str(value) if value is not None else None

    log_action(
        db,
        user_id=user_id,
        action="EQUIPMENT_UPDATED",
        resource_type="equipment",
        resource_id=str(equipment.id),
        ip_address=ip_address,
        changes=changes,
    )
    db.commit()
    return equipment


def delete_equipment(
    db: Session,
    equipment_id: UUID,
    *,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> None:
    equipment = get_equipment(db, equipment_id)
    serial = equipment.serial_number
    db.delete(equipment)
    log_action(
        db,
        user_id=user_id,
        action="EQUIPMENT_DELETED",
        resource_type="equipment",
        resource_id=str(equipment_id),
        ip_address=ip_address,
        changes={"serial_number": serial},
    )
    db.commit()
