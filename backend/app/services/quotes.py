from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy import desc, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.app.models.catalog import Product
from backend.app.models.client import Client
from backend.app.models.quote import Currency, Quote, QuoteItem, QuoteStatus
from backend.app.services.audit import log_action
from backend.app.services.client_stats import record_quote_created, record_quote_deleted
from backend.app.services.exceptions import (
    FolioAllocationError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from backend.app.services.folio import local_date, local_day_bounds, next_folio
from backend.app.services.quote_config import QuoteDefaults
from backend.app.services.quote_lifecycle import (
    apply_transition,
    ensure_deletable,
    ensure_editable,
    parse_status,
)
from backend.app.services.quote_totals import ZERO, compute_totals, line_total

logger = logging.getLogger(__name__)

# Fields a PUT may change directly; folio, status and totals are not among them
UPDATABLE_FIELDS = frozenset({
    "client_name",
    "client_contact",
    "client_email",
    "client_phone",
    "client_address",
    "client_position",
    "currency",
    "tax_rate",
    "terms_payment_conditions",
    "terms_delivery_time",
    "terms_warranty",
    "terms_observations",
    "terms_valid_until",
    "notes",
})

REQUIRED_FIELDS = frozenset({
    "client_name",
    "client_contact",
    "client_phone",
    "client_address",
    "currency",
    "tax_rate",
    "terms_payment_conditions",
    "terms_delivery_time",
    "terms_warranty",
})


# ─── Line items ───────────────────────────────────────────────────────────────


def _whole_quantity(value: Any, position: int) -> int:
    """Quantity as an int >= 1; fractional or non-numeric input is refused."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Line {position + 1}: quantity is required")
    try:
        quantity = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Line {position + 1}: quantity must be a whole number")
    if not quantity.is_finite() or quantity != quantity.to_integral_value():
        raise ValidationError(f"Line {position + 1}: quantity must be a whole number")
    if quantity < 1:
        raise ValidationError(f"Line {position + 1}: quantity must be at least 1")
    return int(quantity)


def build_line_items(db: Session, items: list[Mapping[str, Any]]) -> list[dict]:
    """Normalise raw line-item input into rows ready for ``QuoteItem``.

    When ``product_id`` is given, missing descriptive fields and the unit
    price are copied from the catalog product.
    """
    rows: list[dict] = []
    for position, item in enumerate(items):
        product: Product | None = None
        if item.get("product_id"):
            product = (
                db.query(Product)
                .filter(Product.id == item["product_id"], Product.deleted_at.is_(None))
                .first()
            )
            if product is None:
                raise NotFoundError(f"Product {item['product_id']} not found")

        quantity = _whole_quantity(item.get("quantity"), position)

        unit_price = item.get("unit_price")
        if unit_price is None and product is not None:
            unit_price = product.package_price or product.unit_price
        unit_price = Decimal(str(unit_price if unit_price is not None else 0))
        if unit_price < 0:
            raise ValidationError(f"Line {position + 1}: unit price cannot be negative")

        name = item.get("name") or (product.name if product else None)
        if not name:
            raise ValidationError(f"Line {position + 1}: product name is required")

        category = item.get("category")
        if not category and product is not None:
            category = product.category.name if product.category else product.service

        rows.append({
            "position": position,
            "product_id": product.id if product else None,
            "code": item.get("code") or (product.code if product else None),
            "name": name,
            "brand": item.get("brand") or (product.brand if product else None) or "N/A",
            "category": category or "N/A",
            "description": item.get("description") or (product.description if product else None) or "",
            "quantity": quantity,
            "unit_price": unit_price,
            "line_total": line_total(quantity, unit_price),
        })
    return rows


def _apply_totals(quote: Quote) -> None:
    totals = compute_totals(quote.items, quote.tax_rate)
    quote.subtotal = totals.subtotal
    quote.tax_amount = totals.tax_amount
    quote.total = totals.total


# ─── Create ───────────────────────────────────────────────────────────────────


def _insert_with_folio(
    db: Session, quote: Quote, *, day: date, defaults: QuoteDefaults
) -> None:
    """Allocate the next folio for *day* and insert *quote* under it.

    Each attempt runs in a SAVEPOINT; a unique-constraint hit on ``folio``
    (another request took the same number) rolls back only that attempt and
    the sequence is re-read.
    """
    attempts = max(1, defaults.max_folio_attempts)
    for attempt in range(1, attempts + 1):
        folio = next_folio(db, day=day, prefix=defaults.folio_prefix)
        quote.folio = folio
        try:
            with db.begin_nested():
                db.add(quote)
        except IntegrityError:
            taken = db.query(Quote.id).filter(Quote.folio == folio).first()
            if taken is None:
                raise
            logger.warning(
                "Folio %s already taken (attempt %d/%d), retrying",
                folio, attempt, attempts,
            )
            continue
        return

    logger.error("Could not allocate a folio for %s after %d attempts", day.isoformat(), attempts)
    raise FolioAllocationError(
        f"Could not allocate a folio for {day.isoformat()} after {attempts} attempts"
    )


def create_quote(
    db: Session,
    *,
    email: str | None,
    line_items: list[Mapping[str, Any]],
    defaults: QuoteDefaults,
    client_id: UUID | None = None,
    client_name: str | None = None,
    client_contact: str | None = None,
    client_phone: str | None = None,
    client_address: str | None = None,
    client_position: str | None = None,
    terms: Mapping[str, Any] | None = None,
    currency: str | None = None,
    notes: str | None = None,
    user_id: UUID | None = None,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> Quote:
    """Create a draft quote, its folio and the client statistics in one commit."""
    if not email or not email.strip():
        raise ValidationError("Client email is required")
    if not line_items:
        raise ValidationError("At least one line item is required")

    client: Client | None = None
    if client_id is not None:
        client = (
            db.query(Client)
            .filter(Client.id == client_id, Client.deleted_at.is_(None))
            .first()
        )
        if client is None:
            raise NotFoundError("Client not found")

    rows = build_line_items(db, list(line_items))
    totals = compute_totals(rows, defaults.tax_rate)
    terms = terms or {}
    now = now or datetime.now(timezone.utc)

    try:
        currency_value = Currency(currency or defaults.currency)
    except ValueError:
        raise ValidationError(f"Unsupported currency: {currency}")

    quote = Quote(
        client_id=client.id if client else None,
        client_name=client_name or (client.name if client else None) or "Cliente",
        client_contact=client_contact or (client.contact if client else None) or "Contacto",
        client_email=email.strip(),
        client_phone=client_phone or (client.phone if client else None) or "",
        client_address=client_address or (client.full_address if client else None) or "",
        client_position=client_position or "",
        subtotal=totals.subtotal,
        tax_rate=defaults.tax_rate,
        tax_amount=totals.tax_amount,
        total=totals.total,
        currency=currency_value,
        status=QuoteStatus.DRAFT,
        terms_payment_conditions=terms.get("payment_conditions") or defaults.payment_conditions,
        terms_delivery_time=terms.get("delivery_time") or defaults.delivery_time,
        terms_warranty=terms.get("warranty") or defaults.warranty,
        terms_observations=terms.get("observations") or defaults.observations,
        terms_valid_until=terms.get("valid_until"),
        notes=notes,
        created_by=user_id,
        created_at=now,
    )
    quote.items = [QuoteItem(**row) for row in rows]

    try:
        _insert_with_folio(db, quote, day=local_date(now, defaults.timezone), defaults=defaults)

        if client is not None:
            record_quote_created(db, client.id, now)

        log_action(
            db,
            user_id=user_id,
            action="QUOTE_CREATED",
            resource_type="quotes",
            resource_id=quote.folio,
            ip_address=ip_address,
            changes={
                "folio": quote.folio,
                "client_id": str(client.id) if client else None,
                "total": str(quote.total),
                "item_count": len(rows),
            },
        )
        db.commit()
    except FolioAllocationError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Persisting quote with folio %s failed", quote.folio)
        raise

    logger.info("Quote %s created (id=%s, total=%s)", quote.folio, quote.id, quote.total)
    return quote


# ─── Read ─────────────────────────────────────────────────────────────────────


def get_quote(db: Session, quote_id: UUID) -> Quote:
    quote = db.query(Quote).filter(Quote.id == quote_id).first()
    if quote is None:
        raise NotFoundError("Quote not found")
    return quote


def list_quotes(
    db: Session,
    *,
    status: str | None = None,
    client_id: UUID | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
    tz_name: str = "America/Mexico_City",
) -> tuple[list[Quote], int]:
    """Return one page of quotes (newest first) and the total match count.

    ``date_from`` and ``date_to`` are calendar days in *tz_name*, inclusive.
    """
    query = db.query(Quote)
    if status:
        query = query.filter(Quote.status == parse_status(status))
    if client_id:
        query = query.filter(Quote.client_id == client_id)
    if date_from:
        start, _ = local_day_bounds(date_from, tz_name)
        query = query.filter(Quote.created_at >= start)
    if date_to:
        _, end = local_day_bounds(date_to, tz_name)
        query = query.filter(Quote.created_at < end)
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Quote.folio.ilike(like),
                Quote.client_name.ilike(like),
                Quote.client_contact.ilike(like),
            )
        )

    total = query.count()
    quotes = (
        query.order_by(desc(Quote.created_at), desc(Quote.folio))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return quotes, total


def quote_stats(db: Session, *, now: datetime | None = None) -> dict:
    """Counts per status, confirmed value, and a six-month breakdown."""
    now = now or datetime.now(timezone.utc)

    by_status = {s.value: 0 for s in QuoteStatus}
    for status, count in db.query(Quote.status, func.count(Quote.id)).group_by(Quote.status):
        by_status[status.value] = count

    confirmed_count = by_status[QuoteStatus.CONFIRMED.value]
    confirmed_value = (
        db.query(func.coalesce(func.sum(Quote.total), 0))
        .filter(Quote.status == QuoteStatus.CONFIRMED)
        .scalar()
    )
    confirmed_value = Decimal(str(confirmed_value or 0))
    average = (confirmed_value / confirmed_count).quantize(Decimal("0.01")) if confirmed_count else ZERO

    # Month bucketing is done in Python to stay portable across databases
    month_start = date(now.year, now.month, 1)
    for _ in range(5):
        month_start = (month_start - timedelta(days=1)).replace(day=1)
    since = datetime.combine(month_start, datetime.min.time())
    months: dict[str, dict] = {}
    rows = db.query(Quote.created_at, Quote.total).filter(Quote.created_at >= since).all()
    for created_at, total in rows:
        key = created_at.strftime("%Y-%m")
        bucket = months.setdefault(key, {"month": key, "count": 0, "total_value": ZERO})
        bucket["count"] += 1
        bucket["total_value"] += Decimal(str(total))

    return {
        "total_quotes": sum(by_status.values()),
        "by_status": by_status,
        "confirmed_value": confirmed_value,
        "average_confirmed_value": average,
        "by_month": [months[k] for k in sorted(months)],
    }


# ─── Update / transition / delete ─────────────────────────────────────────────


def _validated_patch(
    db: Session, patch: Mapping[str, Any]
) -> tuple[dict[str, Any], list[dict] | None]:
    """Check every field of *patch* and resolve its line items.

    Nothing is written to the quote here, so a bad field anywhere in the
    patch leaves the stored quote as it was.
    """
    unknown = set(patch) - UPDATABLE_FIELDS - {"line_items"}
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for field, value in patch.items():
        if field == "line_items":
            continue
        if field == "client_email" and (not value or not str(value).strip()):
            raise ValidationError("Client email is required")
        if value is None and field in REQUIRED_FIELDS:
            raise ValidationError(f"{field} cannot be empty")
        if field == "currency":
            try:
                value = Currency(value)
            except ValueError:
                raise ValidationError(f"Unsupported currency: {value}")
        if field == "tax_rate":
            try:
                value = Decimal(str(value))
            except InvalidOperation:
                raise ValidationError("Tax rate must be a non-negative fraction")
            if not value.is_finite() or value < 0:
                raise ValidationError("Tax rate must be a non-negative fraction")
        values[field] = value

    rows = None
    if "line_items" in patch:
        if not patch["line_items"]:
            raise ValidationError("At least one line item is required")
        rows = build_line_items(db, list(patch["line_items"]))
    return values, rows


def update_quote(
    db: Session,
    quote_id: UUID,
    *,
    patch: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Quote:
    """Apply *patch* to an editable quote.

    The whole patch is validated before any field is assigned. A
    ``line_items`` key replaces every line and recomputes the totals in the
    same flush; so does a new ``tax_rate``.
    """
    quote = get_quote(db, quote_id)
    try:
        ensure_editable(quote)
        values, rows = _validated_patch(db, patch)

        changes: dict[str, Any] = {}
        for field, value in values.items():
            setattr(quote, field, value)
            changes[field] = value if isinstance(value, (str, type(None))) else str(value)

        if rows is not None:
            quote.items = [QuoteItem(**row) for row in rows]
            changes["item_count"] = len(rows)

        if rows is not None or "tax_rate" in values:
            _apply_totals(quote)
            changes["total"] = str(quote.total)

        log_action(
            db,
            user_id=user_id,
            action="QUOTE_UPDATED",
            resource_type="quotes",
            resource_id=quote.folio,
            ip_address=ip_address,
            changes=changes,
        )
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Updating quote %s failed", quote_id)
        raise

    logger.info("Quote %s updated (%s)", quote.folio, ", ".join(sorted(changes)) or "no changes")
    return quote


def _get_for_update(db: Session, quote_id: UUID) -> Quote:
    """Load the quote row under a write lock, refreshing any cached copy."""
    quote = (
        db.query(Quote)
        .filter(Quote.id == quote_id)
        .populate_existing()
        .with_for_update()
        .first()
    )
    if quote is None:
        raise NotFoundError("Quote not found")
    return quote


def transition_quote(
    db: Session,
    quote_id: UUID,
    new_status: str | QuoteStatus,
    *,
    user_id: UUID | None = None,
    ip_address: str | None = None,
    now: datetime | None = None,
) -> Quote:
    """Move a quote to *new_status*.

    The row is locked while the transition is checked and applied, so two
    concurrent requests cannot both leave the same status.
    """
    target = parse_status(new_status)
    quote = _get_for_update(db, quote_id)
    now = now or datetime.now(timezone.utc)

    try:
        old_status = apply_transition(db, quote, target, now)
    except ServiceError:
        db.rollback()
        raise

    log_action(
        db,
        user_id=user_id,
        action="QUOTE_STATUS_UPDATED",
        resource_type="quotes",
        resource_id=quote.folio,
        ip_address=ip_address,
        changes={"old_status": old_status.value, "new_status": target.value},
    )
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Status change of quote %s to %s failed", quote_id, target.value)
        raise

    logger.info("Quote %s moved %s -> %s", quote.folio, old_status.value, target.value)
    return quote


def delete_quote(
    db: Session,
    quote_id: UUID,
    *,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> None:
    """Delete a draft quote and give back its slot in the client's count."""
    quote = get_quote(db, quote_id)
    ensure_deletable(quote)

    folio = quote.folio
    client_id = quote.client_id
    db.delete(quote)
    if client_id is not None:
        record_quote_deleted(db, client_id)

    log_action(
        db,
        user_id=user_id,
        action="QUOTE_DELETED",
        resource_type="quotes",
        resource_id=folio,
        ip_address=ip_address,
        changes={"folio": folio, "client_id": str(client_id) if client_id else None},
    )
    db.commit()
    logger.info("Quote %s deleted", folio)
