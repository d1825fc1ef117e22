"""Audit trail records for privileged and sensitive actions."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuditAction(str, Enum):
    ROLE_CHANGE = "role_change"
    SENSITIVE_DATA_ACCESS = "sensitive_data_access"
    SUBSCRIPTION_MODIFY = "subscription_modify"
    SERVICE_SUSPENDED = "service_suspended"
    SERVICE_UNSUSPENDED = "service_unsuspended"
    PASSWORD_RESET_SENT = "password_reset_sent"
    EMAIL_CHANGE = "email_change"
    TICKET_DELETED = "ticket_deleted"
    LOGIN = "login"
    LOGOUT = "logout"


class AuditActor(BaseModel):
    """Who performed an audited action and from where."""

    id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class AuditEntry(BaseModel):
    id: Optional[str] = None
    action: AuditAction
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    actor_role: Optional[str] = None
    target_id: Optional[str] = None
    target_description: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    success: bool = True
    error_message: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def build(
        cls,
        action: AuditAction,
        actor: AuditActor,
        *,
        target_id: Optional[str] = None,
        target_description: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        success: bool = True,
        error_message: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> "AuditEntry":
        return cls(
            action=action,
            actor_id=actor.id,
            actor_email=actor.email,
            actor_role=actor.role,
            target_id=target_id,
            target_description=target_description,
            details=details or {},
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            timestamp=timestamp or datetime.now(timezone.utc),
            success=success,
            error_message=error_message,
        )


class AuditLogQuery(BaseModel):
    action: Optional[AuditAction] = None
    actor_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)

    model_config = ConfigDict(populate_by_name=True, frozen=True)
