from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from backend.app.api.deps import get_quote_defaults
from backend.app.api.errors import raise_http
from backend.app.api.permission_deps import require_permission
from backend.app.core.database import get_db
from backend.app.models.quote import Quote, QuoteStatus
from backend.app.models.user import User
from backend.app.schemas.common import MessageOut, Pagination
from backend.app.schemas.quotes import (
    QuoteCreate,
    QuoteListOut,
    QuoteOut,
    QuoteStatsOut,
    QuoteStatusUpdate,
    QuoteUpdate,
)
from backend.app.services.exceptions import FolioAllocationError, ServiceError
from backend.app.services.quote_config import QuoteDefaults
from backend.app.services.quotes import (
    create_quote,
    delete_quote,
    get_quote,
    list_quotes,
    quote_stats,
    transition_quote,
    update_quote,
)

router = APIRouter()


def _ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.get("", response_model=QuoteListOut)
def list_all_quotes(
    status_filter: QuoteStatus | None = Query(None, alias="status"),
    client_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = Query(None, description="Folio, client name or contact"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    defaults: QuoteDefaults = Depends(get_quote_defaults),
    _current_user: User = Depends(require_permission("quote:read")),
) -> dict:
    quotes, total = list_quotes(
        db,
        status=status_filter.value if status_filter else None,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
        search=search,
        page=page,
        limit=limit,
        tz_name=defaults.timezone,
    )
    return {
        "items": quotes,
        "pagination": Pagination.build(page=page, limit=limit, total=total),
    }


@router.get("/stats", response_model=QuoteStatsOut)
def get_quote_stats(
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("quote:read")),
) -> dict:
    return quote_stats(db)


@router.post("", response_model=QuoteOut, status_code=status.HTTP_201_CREATED)
def create_new_quote(
    body: QuoteCreate,
    request: Request,
    db: Session = Depends(get_db),
    defaults: QuoteDefaults = Depends(get_quote_defaults),
    current_user: User = Depends(require_permission("quote:write")),
) -> Quote:
    try:
        return create_quote(
            db,
            email=body.client_email,
            line_items=[item.model_dump() for item in body.line_items],
            defaults=defaults,
            client_id=body.client_id,
            client_name=body.client_name,
            client_contact=body.client_contact,
            client_phone=body.client_phone,
            client_address=body.client_address,
            client_position=body.client_position,
            terms=body.terms.model_dump() if body.terms else None,
            currency=body.currency.value if body.currency else None,
            notes=body.notes,
            user_id=current_user.id,
            ip_address=_ip(request),
        )
    except (ServiceError, FolioAllocationError) as e:
        raise_http(e)


@router.get("/{quote_id}", response_model=QuoteOut)
def read_quote(
    quote_id: UUID,
    db: Session = Depends(get_db),
    _current_user: User = Depends(require_permission("quote:read")),
) -> Quote:
    try:
        return get_quote(db, quote_id)
    except ServiceError as e:
        raise_http(e)


@router.put("/{quote_id}", response_model=QuoteOut)
def update_existing_quote(
    quote_id: UUID,
    body: QuoteUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("quote:write")),
) -> Quote:
    patch = body.model_dump(exclude_unset=True)
    if patch.get("currency") is not None:
        patch["currency"] = patch["currency"].value
    if patch.get("line_items") is not None:
        patch["line_items"] = [dict(item) for item in patch["line_items"]]
    try:
        return update_quote(
            db, quote_id, patch=patch, user_id=current_user.id, ip_address=_ip(request)
        )
    except ServiceError as e:
        raise_http(e)


@router.patch("/{quote_id}/status", response_model=QuoteOut)
def change_quote_status(
    quote_id: UUID,
    body: QuoteStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("quote:write")),
) -> Quote:
    try:
        return transition_quote(
            db, quote_id, body.status, user_id=current_user.id, ip_address=_ip(request)
        )
    except ServiceError as e:
        raise_http(e)


@router.delete("/{quote_id}", response_model=MessageOut)
def delete_existing_quote(
    quote_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("quote:delete")),
) -> dict[str, str]:
    try:
        delete_quote(db, quote_id, user_id=current_user.id, ip_address=_ip(request))
    except ServiceError as e:
        raise_http(e)
    return {"detail": "Quote deleted"}
