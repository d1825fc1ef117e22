"""API schemas for authentication and profile endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from ..accounts import UserAccount, UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AccountOut(BaseModel):
    id: str
    email: str
    role: Optional[UserRole] = None
    first_name: Optional[str] = Field(alias="firstName", default=None)
    last_name: Optional[str] = Field(alias="lastName", default=None)
    phone: Optional[str] = None
    birthdate: Optional[date] = None
    profile_complete: bool = Field(alias="profileComplete", default=False)
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_account(cls, account: UserAccount) -> "AccountOut":
        return cls(
            id=account.id,
            email=account.email,
            role=account.role,
            first_name=account.first_name,
            last_name=account.last_name,
            phone=account.phone,
            birthdate=account.birthdate,
            profile_complete=account.profile_complete,
            created_at=account.created_at,
        )


class SessionResponse(BaseModel):
    user: AccountOut
    access_token: str = Field(alias="accessToken")
    token_type: str = Field(alias="tokenType", default="bearer")

    model_config = ConfigDict(populate_by_name=True)


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(min_length=1)
    password: str
    confirm_password: str = Field(alias="confirmPassword")

    model_config = ConfigDict(populate_by_name=True)


class MessageResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
