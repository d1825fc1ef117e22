"""API schemas for staff user management and the audit log."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..accounts import EmailChangeResult, IdentityCheck, IdentityCheckResult
from ..audit import AuditAction, AuditEntry
from .accounts import AccountOut


class RoleAssignmentRequest(BaseModel):
    role: Optional[str] = None


class UserListResponse(BaseModel):
    items: List[AccountOut]
    total: int


class AuditEntryOut(BaseModel):
    id: Optional[str] = None
    action: AuditAction
    actor_id: Optional[str] = Field(alias="actorId", default=None)
    actor_email: Optional[str] = Field(alias="actorEmail", default=None)
    actor_role: Optional[str] = Field(alias="actorRole", default=None)
    target_id: Optional[str] = Field(alias="targetId", default=None)
    target_description: Optional[str] = Field(alias="targetDescription", default=None)
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = Field(alias="ipAddress", default=None)
    user_agent: Optional[str] = Field(alias="userAgent", default=None)
    timestamp: datetime
    success: bool
    error_message: Optional[str] = Field(alias="errorMessage", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_entry(cls, entry: AuditEntry) -> "AuditEntryOut":
        return cls(**entry.model_dump())


class AuditLogResponse(BaseModel):
    items: List[AuditEntryOut]
    total: int


class EmailChangeAction(str, Enum):
    VALIDATE = "validate"
    CHANGE = "change"


class EmailChangeRequest(IdentityCheck):
    action: EmailChangeAction
    new_email: Optional[str] = Field(alias="newEmail", default=None)

    @property
    def identity(self) -> IdentityCheck:
        return IdentityCheck(**self.model_dump(exclude={"action", "new_email"}))


class EmailChangeResponse(BaseModel):
    success: bool
    validated: bool
    error: Optional[str] = None
    user: Optional[AccountOut] = None
    billing_synced: Optional[bool] = Field(alias="billingSynced", default=None)
    confirmation_sent: Optional[bool] = Field(alias="confirmationSent", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_check(cls, result: IdentityCheckResult) -> "EmailChangeResponse":
        return cls(success=result.validated, validated=result.validated, error=result.message)

    @classmethod
    def from_change(cls, result: EmailChangeResult) -> "EmailChangeResponse":
        return cls(
            success=True,
            validated=True,
            user=AccountOut.from_account(result.account),
            billing_synced=result.billing_synced,
            confirmation_sent=result.confirmation_sent,
        )
