from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
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


class ClientType(str, enum.Enum):
    HOSPITAL = "Hospital"
    CLINIC = "Clínica"
    LABORATORY = "Laboratorio"
    DIAGNOSTIC_CENTER = "Centro Diagnóstico"
    PRACTICE = "Consultorio"
    OTHER = "Otro"


class ClientStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Client(Base):
    """A hospital, clinic or other buyer of medical equipment.

    ``total_quotes``, ``total_amount`` and ``last_quote_date`` are owned by the
    quote lifecycle (see ``services/client_stats.py``) and are never written
    by the client endpoints.
    """

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    phone: Mapped[str] = mapped_column(String(20), nullable=False)

    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    zip_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    country: Mapped[str | None] = mapped_column(String(100), nullable=True, default="México")
    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    rfc: Mapped[str | None] = mapped_column(String(13), nullable=True)
    client_type: Mapped[ClientType] = mapped_column(
        Enum(ClientType), nullable=False, default=ClientType.HOSPITAL
    )
    status: Mapped[ClientStatus] = mapped_column(
        Enum(ClientStatus), nullable=False, default=ClientStatus.ACTIVE
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Public-sector hospital details
    hospital_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    agency: Mapped[str | None] = mapped_column(String(200), nullable=True)
    contract: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Quote statistics
    total_quotes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2), nullable=False, default=Decimal("0")
    )
    last_quote_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    equipment: Mapped[list["Equipment"]] = relationship(back_populates="client")  # noqa: F821

    __table_args__ = (
        Index("ix_clients_name", "name"),
        Index("ix_clients_client_type", "client_type"),
        Index("ix_clients_status", "status"),
        Index("ix_clients_created_at", "created_at"),
    )
