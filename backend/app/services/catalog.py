from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from backend.app.models.catalog import Category, Product
from backend.app.services.audit import log_action
from backend.app.services.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
NEAR_EXPIRY_DAYS = 30


def slugify(value: str) -> str:
    """``"Equipo Médico"`` → ``"equipo-medico"``."""
    ascii_value = (
        unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    )
    return re.sub(r"[^a-z0-9]+", "-", ascii_value.lower()).strip("-")


# ─── Categories ───────────────────────────────────────────────────────────────


def get_category(db: Session, category_id: UUID) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if category is None:
        raise NotFoundError("Category not found")
    return category


def list_categories(db: Session, *, active: bool | None = None) -> list[Category]:
    query = db.query(Category)
    if active is not None:
        query = query.filter(Category.is_active == active)
    return query.order_by(Category.sort_order, Category.name).all()


def product_count(db: Session, category_id: UUID) -> int:
    return (
        db.query(func.count(Product.id))
        .filter(Product.category_id == category_id, Product.deleted_at.is_(None))
        .scalar()
    )


def _check_category_name(db: Session, name: str, exclude_id: UUID | None = None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    query = db.query(Category.id).filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise ConflictError("A category with this name already exists")
    return name


def _check_parent(db: Session, parent_id: UUID | None, self_id: UUID | None = None) -> None:
    if parent_id is None:
        return
    if self_id is not None and parent_id == self_id:
        raise ValidationError("A category cannot be its own parent")
    get_category(db, parent_id)


def create_category(
    db: Session,
    *,
    name: str,
    description: str,
    parent_category_id: UUID | None = None,
    is_active: bool = True,
    sort_order: int = 0,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Category:
    name = _check_category_name(db, name)
    _check_parent(db, parent_category_id)

    category = Category(
        name=name,
        description=description,
        slug=slugify(name),
        parent_category_id=parent_category_id,
        is_active=is_active,
        sort_order=sort_order,
        created_by=user_id,
    )
    db.add(category)
    db.flush()

    log_action(
        db,
        user_id=user_id,
        action="CATEGORY_CREATED",
        resource_type="categories",
        resource_id=str(category.id),
        ip_address=ip_address,
        changes={"name": name},
    )
    db.commit()
    return category


def update_category(
    db: Session,
    category_id: UUID,
    *,
    data: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Category:
    category = get_category(db, category_id)
    changes: dict[str, Any] = {}

    if "name" in data and data["name"] != category.name:
        category.name = _check_category_name(db, data["name"], exclude_id=category.id)
        category.slug = slugify(category.name)
        changes["name"] = category.name
    if "parent_category_id" in data:
        _check_parent(db, data["parent_category_id"], self_id=category.id)
        category.parent_category_id = data["parent_category_id"]
        changes["parent_category_id"] = (
            str(data["parent_category_id"]) if data["parent_category_id"] else None
        )
    for field in ("description", "is_active", "sort_order"):
        if field in data and data[field] is not None:
            setattr(category, field, data[field])
            changes[field] = data[field]

    log_action(
        db,
        user_id=user_id,
        action="CATEGORY_UPDATED",
        resource_type="categories",
        resource_id=str(category.id),
        ip_address=ip_address,
        changes=changes,
    )
    db.commit()
    return category


def delete_category(
    db: Session,
    category_id: UUID,
    *,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> None:
    category = get_category(db, category_id)
    if product_count(db, category.id):
        raise ConflictError("Category still has products assigned")
    if db.query(Category.id).filter(Category.parent_category_id == category.id).first():
        raise ConflictError("Category still has sub-categories")

    db.delete(category)
    log_action(
        db,
        user_id=user_id,
        action="CATEGORY_DELETED",
        resource_type="categories",
        resource_id=str(category_id),
        ip_address=ip_address,
        changes={"name": category.name},
    )
    db.commit()


# ─── Product pricing ──────────────────────────────────────────────────────────


def per_unit(package_amount: Decimal | None, package_quantity: int) -> Decimal | None:
    if package_amount is None:
        return None
    return (Decimal(str(package_amount)) / max(package_quantity, 1)).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )


def final_price(product: Product) -> Decimal | None:
    """Selling price built up from the factory price and its factors.

    Falls back to the package price when no factory price is recorded.
    """
    if product.factory_price is None:
        return product.package_price
    price = (
        Decimal(str(product.factory_price))
        * Decimal(str(product.landed_factor))
        * Decimal(str(product.margin_factor))
        * Decimal(str(product.currency_factor))
        * (1 + Decimal(str(product.sales_commission)) / 100)
    )
    return price.quantize(CENTS, rounding=ROUND_HALF_UP)


def is_expired(product: Product, today: date | None = None) -> bool:
    today = today or date.today()
    return product.expiry_date is not None and product.expiry_date < today


def is_near_expiry(product: Product, today: date | None = None) -> bool:
    today = today or date.today()
    if product.expiry_date is None or product.expiry_date < today:
        return False
    return product.expiry_date <= today + timedelta(days=NEAR_EXPIRY_DAYS)


# ─── Products ─────────────────────────────────────────────────────────────────


PRODUCT_FIELDS = frozenset({
    "code", "name", "description", "brand", "supplier", "category_id",
    "service", "specialty", "classification", "warehouse", "currency",
    "package_quantity", "package_price", "unit_price", "cost", "unit_cost",
    "tax_percent", "factory_price", "landed_factor", "margin_factor",
    "currency_factor", "sales_commission", "expiry_date",
})

# NOT NULL columns; a null in an update leaves the stored value alone
REQUIRED_PRODUCT_FIELDS = frozenset({
    "code", "name", "currency", "package_quantity", "tax_percent",
    "landed_factor", "margin_factor", "currency_factor", "sales_commission",
})


def get_product(db: Session, product_id: UUID) -> Product:
    product = (
        db.query(Product)
        .filter(Product.id == product_id, Product.deleted_at.is_(None))
        .first()
    )
    if product is None:
        raise NotFoundError("Product not found")
    return product


def list_products(
    db: Session,
    *,
    search: str | None = None,
    category_id: UUID | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Product], int]:
    query = db.query(Product).filter(Product.deleted_at.is_(None))
    if search:
        like = f"%{search}%"
        query = query.filter(
            or_(
                Product.code.ilike(like),
                Product.name.ilike(like),
                Product.service.ilike(like),
                Product.specialty.ilike(like),
                Product.classification.ilike(like),
                Product.supplier.ilike(like),
            )
        )
    if category_id:
        query = query.filter(Product.category_id == category_id)
    if min_price is not None:
        query = query.filter(Product.package_price >= min_price)
    if max_price is not None:
        query = query.filter(Product.package_price <= max_price)

    total = query.count()
    products = (
        query.order_by(Product.name).offset((page - 1) * limit).limit(limit).all()
    )
    return products, total


def _clean_product(db: Session, data: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(data) - PRODUCT_FIELDS
    if unknown:
        raise ValidationError(f"Fields cannot be set: {', '.join(sorted(unknown))}")
    values = dict(data)
    if "code" in values:
        code = (values["code"] or "").strip().upper()
        if not code:
            raise ValidationError("Product code is required")
        values["code"] = code
    if "name" in values and not (values["name"] or "").strip():
        raise ValidationError("Product name is required")
    if values.get("category_id") is not None:
        get_category(db, values["category_id"])
    if values.get("package_quantity") is not None and int(values["package_quantity"]) < 1:
        raise ValidationError("Package quantity must be at least 1")
    for pct in ("tax_percent", "sales_commission"):
        if values.get(pct) is not None and not 0 <= Decimal(str(values[pct])) <= 100:
            raise ValidationError(f"{pct} must be between 0 and 100")
    return values


def _code_taken(db: Session, code: str, exclude_id: UUID | None = None) -> bool:
    query = db.query(Product.id).filter(Product.code == code)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


def _derive_unit_figures(product: Product, explicit: Mapping[str, Any]) -> None:
    if explicit.get("unit_price") is None:
        product.unit_price = per_unit(product.package_price, product.package_quantity)
    if explicit.get("unit_cost") is None:
        product.unit_cost = per_unit(product.cost, product.package_quantity)


def create_product(
    db: Session,
    *,
    data: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Product:
    values = _clean_product(db, data)
    if not values.get("code") or not values.get("name"):
        raise ValidationError("Product code and name are required")
    if _code_taken(db, values["code"]):
        raise ConflictError(f"Product code {values['code']} already exists")

    values.setdefault("package_quantity", 1)
    product = Product(**{k: v for k, v in values.items() if v is not None}, created_by=user_id)
    if product.package_quantity is None:
        product.package_quantity = 1
    _derive_unit_figures(product, values)
    db.add(product)
    db.flush()

    log_action(
        db,
        user_id=user_id,
        action="PRODUCT_CREATED",
        resource_type="products",
        resource_id=str(product.id),
        ip_address=ip_address,
        changes={"code": product.code, "name": product.name},
    )
    db.commit()
    logger.info("Product %s created", product.code)
    return product


def update_product(
    db: Session,
    product_id: UUID,
    *,
    data: Mapping[str, Any],
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> Product:
    product = get_product(db, product_id)
    values = _clean_product(db, data)
    if "code" in values and _code_taken(db, values["code"], exclude_id=product.id):
        raise ConflictError(f"Product code {values['code']} already exists")

    for field, value in values.items():
        if value is None and field in REQUIRED_PRODUCT_FIELDS:
            continue
        setattr(product, field, value)
    if {"package_price", "package_quantity", "cost"} & set(values):
        _derive_unit_figures(product, values)

    log_action(
        db,
        user_id=user_id,
        action="PRODUCT_UPDATED",
        resource_type="products",
        resource_id=str(product.id),
        ip_address=ip_address,
        changes={k: str(v) if v is not None else None for k, v in values.items()},
    )
    db.commit()
    return product


def delete_product(
    db: Session,
    product_id: UUID,
    *,
    user_id: UUID | None = None,
    ip_address: str | None = None,
) -> None:
    product = get_product(db, product_id)
    product.deleted_at = datetime.now(timezone.utc)
    log_action(
        db,
        user_id=user_id,
        action="PRODUCT_DELETED",
        resource_type="products",
        resource_id=str(product.id),
        ip_address=ip_address,
        changes={"code": product.code},
    )
    db.commit()
