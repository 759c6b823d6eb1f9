from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backend.app.models.quote import Currency, QuoteStatus
from backend.app.schemas.common import Pagination


# ─── Request ──────────────────────────────────────────────────────────────────


class LineItemIn(BaseModel):
    product_id: UUID | None = None
    code: str | None = None
    name: str | None = None
    brand: str | None = None
    category: str | None = None
    description: str | None = None
    quantity: int
    unit_price: Decimal | None = None

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v

    @field_validator("unit_price")
    @classmethod
    def price_not_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("Unit price cannot be negative")
        return v


class QuoteTerms(BaseModel):
    payment_conditions: str | None = None
    delivery_time: str | None = None
    warranty: str | None = None
    observations: str | None = None
    valid_until: date | None = None


class QuoteCreate(BaseModel):
    client_id: UUID | None = None
    client_name: str | None = None
    client_contact: str | None = None
    client_email: str = ""
    client_phone: str | None = None
    client_address: str | None = None
    client_position: str | None = None
    currency: Currency | None = None
    notes: str | None = None
    terms: QuoteTerms | None = None
    line_items: list[LineItemIn] = Field(default_factory=list)


class QuoteUpdate(BaseModel):
    client_name: str | None = None
    client_contact: str | None = None
    client_email: str | None = None
    client_phone: str | None = None
    client_address: str | None = None
    client_position: str | None = None
    currency: Currency | None = None
    tax_rate: Decimal | None = Field(None, ge=0, le=1)
    terms_payment_conditions: str | None = None
    terms_delivery_time: str | None = None
    terms_warranty: str | None = None
    terms_observations: str | None = None
    terms_valid_until: date | None = None
    notes: str | None = None
    line_items: list[LineItemIn] | None = None


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus


# ─── Response ─────────────────────────────────────────────────────────────────


class QuoteItemOut(BaseModel):
    id: UUID
    position: int
    product_id: UUID | None
    code: str | None
    name: str
    brand: str
    category: str
    description: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    class Config:
        from_attributes = True


class QuoteOut(BaseModel):
    id: UUID
    folio: str
    client_id: UUID | None
    client_name: str
    client_contact: str
    client_email: str
    client_phone: str
    client_address: str
    client_position: str | None
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total: Decimal
    currency: Currency
    status: QuoteStatus
    terms_payment_conditions: str
    terms_delivery_time: str
    terms_warranty: str
    terms_observations: str | None
    terms_valid_until: date | None
    notes: str | None
    sent_date: datetime | None
    confirmed_date: datetime | None
    rejected_date: datetime | None
    created_by: UUID | None
    created_at: datetime
    updated_at: datetime | None
    items: list[QuoteItemOut]

    class Config:
        from_attributes = True


class QuoteListItem(BaseModel):
    id: UUID
    folio: str
    client_id: UUID | None
    client_name: str
    client_email: str
    total: Decimal
    currency: Currency
    status: QuoteStatus
    created_at: datetime

    class Config:
        from_attributes = True


class QuoteListOut(BaseModel):
    items: list[QuoteListItem]
    pagination: Pagination


class MonthlyQuoteStats(BaseModel):
    month: str
    count: int
    total_value: Decimal


class QuoteStatsOut(BaseModel):
    total_quotes: int
    by_status: dict[str, int]
    confirmed_value: Decimal
    average_confirmed_value: Decimal
    by_month: list[MonthlyQuoteStats]
