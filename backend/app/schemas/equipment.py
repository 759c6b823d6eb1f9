from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from backend.app.models.equipment import EquipmentCategory, EquipmentStatus


class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    model: str = Field(..., min_length=1, max_length=100)
    serial_number: str = Field(..., min_length=1, max_length=100)
    category: EquipmentCategory
    brand: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=200)
    install_date: date | None = None
    purchase_date: date | None = None
    warranty_expiry: date | None = None
    last_maintenance: date | None = None
    maintenance_interval: int = Field(12, ge=1, le=60)
    status: EquipmentStatus = EquipmentStatus.ACTIVE
    notes: str | None = None
    supplier: str | None = None
    cost: Decimal | None = Field(None, ge=0)
    currency: str = "MXN"


class EquipmentUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    model: str | None = Field(None, min_length=1, max_length=100)
    serial_number: str | None = Field(None, min_length=1, max_length=100)
    category: EquipmentCategory | None = None
    brand: str | None = None
    location: str | None = None
    install_date: date | None = None
    purchase_date: date | None = None
    warranty_expiry: date | None = None
    last_maintenance: date | None = None
    maintenance_interval: int | None = Field(None, ge=1, le=60)
    status: EquipmentStatus | None = None
    notes: str | None = None
    supplier: str | None = None
    cost: Decimal | None = Field(None, ge=0)
    currency: str | None = None


class MaintenanceOut(BaseModel):
    next_maintenance: date | None
    needed: bool
    overdue: bool
    days_until: int | None


class EquipmentOut(BaseModel):
    id: UUID
    client_id: UUID
    name: str
    model: str
    serial_number: str
    category: EquipmentCategory
    brand: str
    location: str
    install_date: date | None
    purchase_date: date | None
    warranty_expiry: date | None
    last_maintenance: date | None
    maintenance_interval: int
    status: EquipmentStatus
    notes: str | None
    supplier: str | None
    cost: Decimal | None
    currency: str
    created_at: datetime
    maintenance: MaintenanceOut | None = None

    class Config:
        from_attributes = True


class EquipmentStatsOut(BaseModel):
    total: int
    by_status: dict[str, int]
    by_category: dict[str, int]


class MaintenanceAlertOut(BaseModel):
    equipment: EquipmentOut
    client_name: str
    maintenance: MaintenanceOut
