from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from backend.app.api.errors import raise_http
from backend.app.api.permission_deps import require_permission
from backend.app.core.database import get_db
from backend.app.models.equipment import Equipment
from backend.app.models.user import User
from backend.app.schemas.common import MessageOut
from backend.app.schemas.equipment import (
    EquipmentOut,
    EquipmentStatsOut,
    EquipmentUpdate,
    MaintenanceAlertOut,
)
from backend.app.services import equipment as equipment_service
from backend.app.services.exceptions import ServiceError

router = APIRouter()


def equipment_out(equipment: Equipment) -> dict:
    """Serialize *equipment* together with its maintenance status."""
    data = EquipmentOut.model_validate(equipment).model_dump()
    data["maintenance"] = asdict(equipment_service.maintenance_status(equipment))
    return data


@router.get("/stats", response_model=EquipmentStatsOut)
def equipment_stats(
    client_id: UUID | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("equipment:read")),
) -> dict:
    return equipment_service.equipment_stats(db, client_id=client_id)


@router.get("/maintenance-alerts", response_model=list[MaintenanceAlertOut])
def maintenance_alerts(
    client_id: UUID | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("equipment:read")),
) -> list[dict]:
    return [
        {
            "equipment": equipment_out(equipment),
            "client_name": equipment.client.name,
            "maintenance": asdict(status),
        }
        for equipment, status in equipment_service.maintenance_alerts(db, client_id=client_id)
    ]


@router.get("/{equipment_id}", response_model=EquipmentOut)
def get_equipment(
    equipment_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("equipment:read")),
) -> dict:
    try:
        return equipment_out(equipment_service.get_equipment(db, equipment_id))
    except ServiceError as e:
        raise_http(e)


@router.put("/{equipment_id}", response_model=EquipmentOut)
def update_equipment(
    equipment_id: UUID,
    payload: EquipmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("equipment:write")),
) -> dict:
    try:
        equipment = equipment_service.update_equipment(
            db,
            equipment_id,
            data=payload.model_dump(exclude_unset=True),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return equipment_out(equipment)


@router.delete("/{equipment_id}", response_model=MessageOut)
def delete_equipment(
    equipment_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("equipment:write")),
) -> dict[str, str]:
    try:
        equipment_service.delete_equipment(
            db,
            equipment_id,
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return {"detail": "Equipment deleted"}
