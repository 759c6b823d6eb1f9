from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.core.database import Base


# ─── Enums ────────────────────────────────────────────────────────────────────


class QuoteStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Currency(str, enum.Enum):
    MXN = "MXN"
    USD = "USD"
    EUR = "EUR"


# ─── Quote ────────────────────────────────────────────────────────────────────


class Quote(Base):
    """A price quotation.

    The ``client_*`` columns are a snapshot taken at creation time and do not
    follow later edits of the referenced client. ``subtotal``, ``tax_amount``
    and ``total`` are always derived from ``items`` and ``tax_rate``.
    """

    __tablename__ = "quotes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    folio: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("clients.id"), nullable=True
    )

    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_contact: Mapped[str] = mapped_column(String(100), nullable=False)
    client_email: Mapped[str] = mapped_column(String(100), nullable=False)
    client_phone: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    client_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    client_position: Mapped[str | None] = mapped_column(String(100), nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2), nullable=False, default=Decimal("0")
    )
    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(precision=5, scale=4), nullable=False, default=Decimal("0.16")
    )
    tax_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2), nullable=False, default=Decimal("0")
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2), nullable=False, default=Decimal("0")
    )
    currency: Mapped[Currency] = mapped_column(
        Enum(Currency), nullable=False, default=Currency.MXN
    )
    status: Mapped[QuoteStatus] = mapped_column(
        Enum(QuoteStatus), nullable=False, default=QuoteStatus.DRAFT
    )

    terms_payment_conditions: Mapped[str] = mapped_column(Text, nullable=False)
    terms_delivery_time: Mapped[str] = mapped_column(String(100), nullable=False)
    terms_warranty: Mapped[str] = mapped_column(Text, nullable=False)
    terms_observations: Mapped[str | None] = mapped_column(Text, nullable=True)
    terms_valid_until: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    sent_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    items: Mapped[list[QuoteItem]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.position",
    )
    client: Mapped["Client | None"] = relationship()  # noqa: F821

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_quote_subtotal_non_negative"),
        CheckConstraint("total >= 0", name="ck_quote_total_non_negative"),
        Index("ix_quotes_status", "status"),
        Index("ix_quotes_client", "client_id"),
        Index("ix_quotes_created_at", "created_at"),
    )


# ─── Quote Item ───────────────────────────────────────────────────────────────


class QuoteItem(Base):
    """One line of a quote; product fields are copied, not referenced live."""

    __tablename__ = "quote_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    quote_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("quotes.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("products.id"), nullable=True
    )
    code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    brand: Mapped[str] = mapped_column(String(100), nullable=False, default="N/A")
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="N/A")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2), nullable=False
    )
    line_total: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2), nullable=False
    )

    quote: Mapped[Quote] = relationship(back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_quote_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_quote_item_unit_price_non_negative"),
        Index("ix_quote_items_quote", "quote_id"),
    )
