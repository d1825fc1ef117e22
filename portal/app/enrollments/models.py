"""Domain models for service agreements and their linked broker accounts."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

PASSWORD_MASK = "•" * 8


class AgreementStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    SUSPENDED = "suspended"


LIVE_STATUSES = (AgreementStatus.ACTIVE, AgreementStatus.PAUSED)
# Suspended agreements still occupy one of the user's instances.
HELD_STATUSES = LIVE_STATUSES + (AgreementStatus.SUSPENDED,)


class ServiceAgreement(BaseModel):
    """One customer's enrollment in a service."""

    id: str
    user_id: str
    service_name: str
    service_version: str
    confirmed_fields: Dict[str, bool] = Field(default_factory=dict)
    agreed_to_terms: bool = False
    agreed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    terms_sha256: Optional[str] = None
    status: AgreementStatus = AgreementStatus.ACTIVE
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    suspended_at: Optional[datetime] = None
    suspended_by: Optional[str] = None
    suspension_reason: Optional[str] = None
    suspension_notes: Optional[str] = None
    version: int = Field(default=1, ge=1)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_live(self) -> bool:
        return self.status in LIVE_STATUSES


class BrokerAccount(BaseModel):
    """Broker credentials captured during enrollment."""

    id: str
    user_id: str
    broker_name: str
    account_number: str
    account_password: str
    api_key: Optional[str] = None
    is_active: bool = True
    service_agreement_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def masked(self) -> "MaskedBrokerAccount":
        return MaskedBrokerAccount(
            id=self.id,
            broker_name=self.broker_name,
            account_number=self.account_number,
            account_password=PASSWORD_MASK,
            api_key=mask_secret(self.api_key) if self.api_key else None,
            has_api_key=bool(self.api_key),
            is_active=self.is_active,
            service_agreement_id=self.service_agreement_id,
        )


class MaskedBrokerAccount(BaseModel):
    """Broker account safe to send to any client."""

    id: str
    broker_name: str
    account_number: str
    account_password: str = PASSWORD_MASK
    api_key: Optional[str] = None
    has_api_key: bool = False
    is_active: bool
    service_agreement_id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Enrollment(BaseModel):
    """An agreement together with its linked broker account."""

    agreement: ServiceAgreement
    broker_account: Optional[BrokerAccount] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class AgreementDraft(BaseModel):
    """Values written for a new agreement at wizard completion."""

    user_id: str
    service_name: str
    service_version: str
    confirmed_fields: Dict[str, bool]
    agreed_to_terms: bool = True
    agreed_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    terms_sha256: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class BrokerAccountDraft(BaseModel):
    user_id: str
    broker_name: str
    account_number: str
    account_password: str
    api_key: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class StatusChange(BaseModel):
    """Column values applied by a lifecycle transition."""

    status: AgreementStatus
    broker_active: bool
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    suspended_at: Optional[datetime] = None
    suspended_by: Optional[str] = None
    suspension_reason: Optional[str] = None
    suspension_notes: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class SuspensionReason(BaseModel):
    code: str
    label: str
    description: Optional[str] = None
    is_active: bool = True

    model_config = ConfigDict(populate_by_name=True, frozen=True)


def mask_secret(value: str, *, visible: int = 4) -> str:
    if len(value) <= visible:
        return "•" * len(value)
    return "•" * (len(value) - visible) + value[-visible:]


class DashboardSummary(BaseModel):
    """A user's live enrollments grouped the way the dashboard lists them."""

    active: tuple[Enrollment, ...] = tuple()
    paused: tuple[Enrollment, ...] = tuple()

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def active_count(self) -> int:
        return len(self.active)

    @property
    def paused_count(self) -> int:
        return len(self.paused)
