"""Domain models for customer and staff accounts."""
from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRole(str, Enum):
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


STAFF_ROLES = (UserRole.ADMIN, UserRole.MANAGER)


class UserAccount(BaseModel):
    id: str
    email: str
    role: Optional[UserRole] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    birthdate: Optional[date] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def display_name(self) -> str:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) or self.email

    @property
    def profile_complete(self) -> bool:
        return bool(self.first_name and self.last_name and self.phone)


class StoredCredentials(BaseModel):
    account: UserAccount
    password_hash: str

    model_config = ConfigDict(frozen=True)


class SignupRequest(BaseModel):
    email: EmailStr
    password: str
    confirm_password: str = Field(alias="confirmPassword")
    birthdate: Optional[date] = None
    first_name: Optional[str] = Field(alias="firstName", default=None)
    last_name: Optional[str] = Field(alias="lastName", default=None)

    model_config = ConfigDict(populate_by_name=True)


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(alias="firstName", default=None)
    last_name: Optional[str] = Field(alias="lastName", default=None)
    phone: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)
