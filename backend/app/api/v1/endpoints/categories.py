from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from backend.app.api.errors import raise_http
from backend.app.api.permission_deps import require_permission
from backend.app.core.database import get_db
from backend.app.models.catalog import Category
from backend.app.models.user import User
from backend.app.schemas.catalog import CategoryCreate, CategoryOut, CategoryUpdate
from backend.app.schemas.common import MessageOut
from backend.app.services import catalog
from backend.app.services.exceptions import ServiceError

router = APIRouter()


def _out(db: Session, category: Category) -> dict:
    data = CategoryOut.model_validate(category).model_dump()
    data["product_count"] = catalog.product_count(db, category.id)
    return data


@router.get("", response_model=list[CategoryOut])
def list_categories(
    active: bool | None = None,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("catalog:read")),
) -> list[dict]:
    return [_out(db, c) for c in catalog.list_categories(db, active=active)]


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("catalog:write")),
) -> dict:
    try:
        category = catalog.create_category(
            db,
            **payload.model_dump(),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return _out(db, category)


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("catalog:read")),
) -> dict:
    try:
        return _out(db, catalog.get_category(db, category_id))
    except ServiceError as e:
        raise_http(e)


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("catalog:write")),
) -> dict:
    try:
        category = catalog.update_category(
            db,
            category_id,
            data=payload.model_dump(exclude_unset=True),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return _out(db, category)


@router.delete("/{category_id}", response_model=MessageOut)
def delete_category(
    category_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("catalog:write")),
) -> dict[str, str]:
    try:
        catalog.delete_category(
            db,
            category_id,
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return {"detail": "Category deleted"}
