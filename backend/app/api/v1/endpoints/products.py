from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from backend.app.api.errors import raise_http
from backend.app.api.permission_deps import require_permission
from backend.app.core.database import get_db
from backend.app.models.catalog import Product
from backend.app.models.user import User
from backend.app.schemas.catalog import (
    ProductCreate,
    ProductListOut,
    ProductOut,
    ProductUpdate,
)
from backend.app.schemas.common import MessageOut, Pagination
from backend.app.services import catalog
from backend.app.services.exceptions import ServiceError

router = APIRouter()


def _out(product: Product) -> dict:
    data = ProductOut.model_validate(product).model_dump()
    data["category_name"] = product.category.name if product.category else None
    data["final_price"] = catalog.final_price(product)
    data["is_expired"] = catalog.is_expired(product)
    data["is_near_expiry"] = catalog.is_near_expiry(product)
    return data


@router.get("", response_model=ProductListOut)
def list_products(
    search: str | None = Query(None, description="Code, name, service, specialty, classification or supplier"),
    category_id: UUID | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("catalog:read")),
) -> dict:
    products, total = catalog.list_products(
        db,
        search=search,
        category_id=category_id,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )
    return {
        "items": [_out(p) for p in products],
        "pagination": Pagination.build(page=page, limit=limit, total=total),
    }


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("catalog:write")),
) -> dict:
    try:
        product = catalog.create_product(
            db,
            data=payload.model_dump(),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return _out(product)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("catalog:read")),
) -> dict:
    try:
        return _out(catalog.get_product(db, product_id))
    except ServiceError as e:
        raise_http(e)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: UUID,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("catalog:write")),
) -> dict:
    try:
        product = catalog.update_product(
            db,
            product_id,
            data=payload.model_dump(exclude_unset=True),
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return _out(product)


@router.delete("/{product_id}", response_model=MessageOut)
def delete_product(
    product_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("catalog:write")),
) -> dict[str, str]:
    try:
        catalog.delete_product(
            db,
            product_id,
            user_id=current_user.id,
            ip_address=request.client.host if request.client else None,
        )
    except ServiceError as e:
        raise_http(e)
    return {"detail": "Product deleted"}
