from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from backend.app.api.errors import raise_http
from backend.app.api.permission_deps import require_permission
from backend.app.api.v1.endpoints.equipment import equipment_out
from backend.app.core.database import get_db
from backend.app.models.client import Client, ClientStatus, ClientType
from backend.app.models.equipment import EquipmentCategory, EquipmentStatus
from backend.app.models.user import User
from backend.app.schemas.client import (
    ClientCreate,
    ClientListOut,
    ClientOut,
    ClientStatsOut,
    ClientUpdate,
)
from backend.app.schemas.common import MessageOut, Pagination
from backend.app.schemas.equipment import EquipmentCreate, EquipmentOut
from backend.app.services import clients as client_service
from backend.app.services import equipment as equipment_service
from backend.app.services.exceptions import ServiceError

router = APIRouter()


@router.get("", response_model=ClientListOut)
def list_clients(
    search: str | None = Query(None, description="Search by name, contact or email"),
    client_type: ClientType | None = None,
    status_filter: ClientStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("client:read")),
) -> dict:
    clients, total = client_service.list_clients(
        db,
        search=search,
        client_type=client_type.value if client_type else None,
        status=status_filter.value if status_filter else None,
        page=page,
        limit=limit,
    )
    return {
        "items": clients,
        "pagination": Pagination.build(page=page, limit=limit, total=total),
    }


@router.get("/stats", response_model=ClientStatsOut)
def client_stats(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("client:read")),
) -> dict:
    return client_service.client_stats(db)


@router.post("", response_model=ClientOut, status_code=status.HTTP_201_CREATED)
def create_client(
    payload: ClientCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("client:write")),
) -> Client:
    try:
        return client_service.create_client(
            db,
            data=payload.model_dump(),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)


@router.get("/{client_id}", response_model=ClientOut)
def get_client(
    client_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("client:read")),
) -> Client:
    try:
        return client_service.get_client(db, client_id)
    except ServiceError as e:
        raise_http(e)


@router.put("/{client_id}", response_model=ClientOut)
def update_client(
    client_id: UUID,
    payload: ClientUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("client:write")),
) -> Client:
    try:
        return client_service.update_client(
            db,
            client_id,
            data=payload.model_dump(exclude_unset=True),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)


@router.delete("/{client_id}", response_model=MessageOut)
def delete_client(
    client_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("client:write")),
) -> dict[str, str]:
    try:
        client_service.delete_client(
            db,
            client_id,
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return {"detail": "Client deleted"}


# ─── Equipment installed at a client ──────────────────────────────────────────


@router.get("/{client_id}/equipment", response_model=list[EquipmentOut])
def list_client_equipment(
    client_id: UUID,
    search: str | None = None,
    status_filter: EquipmentStatus | None = Query(None, alias="status"),
    category: EquipmentCategory | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("equipment:read")),
) -> list[dict]:
    try:
        items = equipment_service.list_client_equipment(
            db, client_id, search=search, status=status_filter, category=category
        )
    except ServiceError as e:
        raise_http(e)
    return [equipment_out(item) for item in items]


@router.post(
    "/{client_id}/equipment",
    response_model=EquipmentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_client_equipment(
    client_id: UUID,
    payload: EquipmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("equipment:write")),
) -> dict:
    try:
        equipment = equipment_service.create_equipment(
            db,
            client_id,
            data=payload.model_dump(),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return equipment_out(equipment)
