from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backend.app.models.client import ClientStatus, ClientType
from backend.app.schemas.common import Pagination


# ─── Client CRUD ──────────────────────────────────────────────────────────────


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    contact: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., max_length=100)
    phone: str = Field(..., min_length=1, max_length=20)
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = Field(None, max_length=10)
    country: str | None = "México"
    rfc: str | None = None
    client_type: ClientType = ClientType.HOSPITAL
    status: ClientStatus = ClientStatus.ACTIVE
    notes: str | None = None
    # Public-sector hospital details
    hospital_name: str | None = None
    agency: str | None = None
    contract: str | None = None

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v


class ClientUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    contact: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, max_length=100)
    phone: str | None = Field(None, min_length=1, max_length=20)
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = Field(None, max_length=10)
    country: str | None = None
    rfc: str | None = None
    client_type: ClientType | None = None
    status: ClientStatus | None = None
    notes: str | None = None
    hospital_name: str | None = None
    agency: str | None = None
    contract: str | None = None


class ClientOut(BaseModel):
    id: UUID
    name: str
    contact: str
    email: str
    phone: str
    street: str | None
    city: str | None
    state: str | None
    zip_code: str | None
    country: str | None
    full_address: str | None
    rfc: str | None
    client_type: ClientType
    status: ClientStatus
    notes: str | None
    hospital_name: str | None
    agency: str | None
    contract: str | None
    total_quotes: int
    total_amount: Decimal
    last_quote_date: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class ClientListOut(BaseModel):
    items: list[ClientOut]
    pagination: Pagination


class ClientStatsOut(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: dict[str, int]
