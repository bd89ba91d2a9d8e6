# backend/rental/schemas/auth.py
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

from rental.core.roles import Role
from rental.schemas.common import blank_to_none
from rental.schemas.tenant import TenantOut


def _normalize_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    v = " ".join(value.strip().split())
    return v or None


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=1, max_length=128)
    role: Role = Role.TENANT

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        return v.strip()

    @field_validator("role", mode="before")
    @classmethod
    def lower_role(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: str = Field(min_length=1, max_length=64)
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=100)

    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=32)
    room_number: Optional[str] = Field(default=None, max_length=32)
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    rent_amount: Optional[float] = Field(default=None, ge=0)

    @field_validator("email", "phone", "room_number", "lease_start", "lease_end", "rent_amount", mode="before")
    @classmethod
    def empty_is_missing(cls, v):
        return blank_to_none(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username must not be blank")
        if any(ch.isspace() for ch in v):
            raise ValueError("username must not contain whitespace")
        return v

    @field_validator("name", "phone", "room_number")
    @classmethod
    def collapse_whitespace(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_text(v)

    @model_validator(mode="after")
    def check_lease_window(self) -> "RegisterRequest":
        if not self.name:
            raise ValueError("name must not be blank")
        if self.lease_start and self.lease_end and self.lease_end < self.lease_start:
            raise ValueError("lease_end must not be before lease_start")
        return self


class AuthOut(BaseModel):
    success: bool = True
    token: str
    user: TenantOut


class RegisterOut(AuthOut):
    message: str


class ProfileOut(BaseModel):
    success: bool = True
    user: TenantOut
