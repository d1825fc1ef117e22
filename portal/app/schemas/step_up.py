"""API schemas for step-up verification."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..step_up import DeliveryMethod, SecretField, StepUpPurpose


class ChallengeRequest(BaseModel):
    purpose: StepUpPurpose
    resource_id: str = Field(alias="resourceId", min_length=1)
    method: DeliveryMethod = DeliveryMethod.EMAIL

    model_config = ConfigDict(populate_by_name=True)


class ChallengeResponse(BaseModel):
    challenge_id: str = Field(alias="challengeId")
    method: DeliveryMethod
    masked_destination: str = Field(alias="maskedDestination")
    expires_at: datetime = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)


class VerifyRequest(BaseModel):
    challenge_id: str = Field(alias="challengeId")
    code: str = Field(pattern=r"^\s*\d{6}\s*$")

    model_config = ConfigDict(populate_by_name=True)


class SessionStatus(BaseModel):
    valid: bool
    purpose: StepUpPurpose
    resource_id: str = Field(alias="resourceId")
    expires_at: Optional[datetime] = Field(alias="expiresAt", default=None)

    model_config = ConfigDict(populate_by_name=True)


class RevokeResponse(BaseModel):
    revoked: int


class RevealedSecretResponse(BaseModel):
    broker_account_id: str = Field(alias="brokerAccountId")
    field: SecretField
    value: Optional[str] = None
    expires_at: datetime = Field(alias="expiresAt")

    model_config = ConfigDict(populate_by_name=True)
