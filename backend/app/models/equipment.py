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


class EquipmentCategory(str, enum.Enum):
    MONITORING = "Monitoreo"
    EMERGENCY = "Emergencia"
    VENTILATION = "Ventilación"
    DIAGNOSTICS = "Diagnóstico"
    LABORATORY = "Laboratorio"
    SURGERY = "Cirugía"
    RADIOLOGY = "Radiología"
    REHABILITATION = "Rehabilitación"
    ANESTHESIA = "Anestesia"
    NEONATOLOGY = "Neonatología"
    CARDIOLOGY = "Cardiología"
    NEUROLOGY = "Neurología"
    OTHER = "Otro"


class EquipmentStatus(str, enum.Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"
    RETIRED = "retired"


class Equipment(Base):
    """Biomedical equipment installed at a client site."""

    __tablename__ = "equipment"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("clients.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    serial_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    category: Mapped[EquipmentCategory] = mapped_column(
        Enum(EquipmentCategory), nullable=False
    )
    brand: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    install_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    warranty_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_maintenance: Mapped[date | None] = mapped_column(Date, nullable=True)
    maintenance_interval: Mapped[int] = mapped_column(Integer, nullable=False, default=12)
    status: Mapped[EquipmentStatus] = mapped_column(
        Enum(EquipmentStatus), nullable=False, default=EquipmentStatus.ACTIVE
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    supplier: Mapped[str | None] = mapped_column(String(200), nullable=True)
    cost: Mapped[Decimal | None] = mapped_column(Numeric(precision=12, scale=2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="MXN")
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    client: Mapped["Client"] = relationship(back_populates="equipment")  # noqa: F821

    __table_args__ = (
        CheckConstraint(
            "maintenance_interval >= 1 AND maintenance_interval <= 60",
            name="ck_equipment_maintenance_interval_range",
        ),
        Index("ix_equipment_client", "client_id"),
        Index("ix_equipment_category", "category"),
        Index("ix_equipment_status", "status"),
        Index("ix_equipment_last_maintenance", "last_maintenance"),
    )
