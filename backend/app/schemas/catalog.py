from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backend.app.schemas.common import Pagination


# ─── Categories ───────────────────────────────────────────────────────────────


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=300)
    parent_category_id: UUID | None = None
    is_active: bool = True
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=300)
    parent_category_id: UUID | None = None
    is_active: bool | None = None
    sort_order: int | None = None


class CategoryOut(BaseModel):
    id: UUID
    name: str
    description: str
    slug: str
    parent_category_id: UUID | None
    is_active: bool
    sort_order: int
    product_count: int = 0

    class Config:
        from_attributes = True


# ─── Products ─────────────────────────────────────────────────────────────────


class ProductBase(BaseModel):
    description: str | None = None
    brand: str | None = None
    supplier: str | None = None
    category_id: UUID | None = None
    service: str | None = None
    specialty: str | None = None
    classification: str | None = None
    warehouse: str | None = None
    package_price: Decimal | None = Field(None, ge=0)
    unit_price: Decimal | None = Field(None, ge=0)
    cost: Decimal | None = Field(None, ge=0)
    unit_cost: Decimal | None = Field(None, ge=0)
    factory_price: Decimal | None = Field(None, ge=0)
    expiry_date: date | None = None


class ProductCreate(ProductBase):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    currency: str = "MXN"
    package_quantity: int = Field(1, ge=1)
    tax_percent: Decimal = Field(Decimal("16"), ge=0, le=100)
    landed_factor: Decimal = Field(Decimal("1"), gt=0)
    margin_factor: Decimal = Field(Decimal("1"), gt=0)
    currency_factor: Decimal = Field(Decimal("1"), gt=0)
    sales_commission: Decimal = Field(Decimal("0"), ge=0, le=100)

    @field_validator("code")
    @classmethod
    def code_upper(cls, v: str) -> str:
        return v.strip().upper()


class ProductUpdate(ProductBase):
    code: str | None = Field(None, min_length=1, max_length=50)
    name: str | None = Field(None, min_length=1, max_length=200)
    currency: str | None = None
    package_quantity: int | None = Field(None, ge=1)
    tax_percent: Decimal | None = Field(None, ge=0, le=100)
    landed_factor: Decimal | None = Field(None, gt=0)
    margin_factor: Decimal | None = Field(None, gt=0)
    currency_factor: Decimal | None = Field(None, gt=0)
    sales_commission: Decimal | None = Field(None, ge=0, le=100)


class ProductOut(BaseModel):
    id: UUID
    code: str
    name: str
    description: str | None
    brand: str | None
    supplier: str | None
    category_id: UUID | None
    category_name: str | None = None
    service: str | None
    specialty: str | None
    classification: str | None
    warehouse: str | None
    currency: str
    package_quantity: int
    package_price: Decimal | None
    unit_price: Decimal | None
    cost: Decimal | None
    unit_cost: Decimal | None
    tax_percent: Decimal
    factory_price: Decimal | None
    landed_factor: Decimal
    margin_factor: Decimal
    currency_factor: Decimal
    sales_commission: Decimal
    expiry_date: date | None
    final_price: Decimal | None = None
    is_expired: bool = False
    is_near_expiry: bool = False
    created_at: datetime

    class Config:
        from_attributes = True


class ProductListOut(BaseModel):
    items: list[ProductOut]
    pagination: Pagination
