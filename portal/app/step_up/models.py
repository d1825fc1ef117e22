"""Models for step-up verification and scoped elevation grants."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict


class StepUpPurpose(str, Enum):
    VIEW_BROKER_PASSWORD = "view_broker_password"
    VIEW_BROKER_API_KEY = "view_broker_api_key"
    EDIT_SUBSCRIPTION = "edit_subscription"


class DeliveryMethod(str, Enum):
    EMAIL = "email"
    SMS = "sms"


class SecretField(str, Enum):
    """Broker account fields that can only be revealed after step-up."""

    PASSWORD = "password"
    API_KEY = "api_key"

    @property
    def purpose(self) -> StepUpPurpose:
        if self is SecretField.PASSWORD:
            return StepUpPurpose.VIEW_BROKER_PASSWORD
        return StepUpPurpose.VIEW_BROKER_API_KEY


class StepUpGrant(NamedTuple):
    """Elevation for exactly one ``(purpose, resource_id)`` pair until ``expires_at``."""

    purpose: StepUpPurpose
    resource_id: str
    expires_at: datetime

    def covers(self, purpose: StepUpPurpose, resource_id: str, now: datetime) -> bool:
        return self.purpose == purpose and self.resource_id == resource_id and now < self.expires_at


class VerificationChallenge(BaseModel):
    id: str
    user_id: str
    purpose: StepUpPurpose
    resource_id: str
    method: DeliveryMethod
    destination: str
    code_hash: str
    expires_at: datetime
    used_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def is_usable(self, now: datetime) -> bool:
        return self.used_at is None and now < self.expires_at


class ChallengeReceipt(BaseModel):
    challenge_id: str
    method: DeliveryMethod
    masked_destination: str
    expires_at: datetime

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class RevealedSecret(BaseModel):
    broker_account_id: str
    field: SecretField
    value: Optional[str]
    grant_expires_at: datetime

    model_config = ConfigDict(populate_by_name=True, frozen=True)


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"
