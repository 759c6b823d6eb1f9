from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backend.app.core.security import MIN_PASSWORD_LENGTH
from backend.app.models.user import RoleEnum


class UserOut(BaseModel):
    id: UUID
    username: str
    email: str
    first_name: str
    last_name: str
    phone: str | None
    position: str | None
    role: RoleEnum
    is_active: bool
    last_login: datetime | None
    permissions: list[str] = []

    class Config:
        from_attributes = True


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=100)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: str | None = None
    position: str | None = None
    role: RoleEnum = RoleEnum.USER

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("Invalid email address")
        return v.strip().lower()


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=50)
    email: str | None = Field(None, max_length=100)
    first_name: str | None = Field(None, min_length=1, max_length=50)
    last_name: str | None = Field(None, min_length=1, max_length=50)
    phone: str | None = None
    position: str | None = None
    role: RoleEnum | None = None


class ResetPasswordIn(BaseModel):
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class ChangePasswordIn(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=128)


class TokenOut(BaseModel):
    access_token: str
    token_type: str
