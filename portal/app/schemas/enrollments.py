"""API schemas for enrollment, lifecycle and staff suspension endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enrollments import AgreementStatus, DashboardSummary, Enrollment, MaskedBrokerAccount, ServiceAgreement


class BrokerAccountOut(BaseModel):
    id: str
    broker_name: str = Field(alias="brokerName")
    account_number: str = Field(alias="accountNumber")
    account_password: str = Field(alias="accountPassword")
    api_key: Optional[str] = Field(alias="apiKey", default=None)
    has_api_key: bool = Field(alias="hasApiKey", default=False)
    is_active: bool = Field(alias="isActive")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_masked(cls, broker: MaskedBrokerAccount) -> "BrokerAccountOut":
        return cls(
            id=broker.id,
            broker_name=broker.broker_name,
            account_number=broker.account_number,
            account_password=broker.account_password,
            api_key=broker.api_key,
            has_api_key=broker.has_api_key,
            is_active=broker.is_active,
        )


class AgreementOut(BaseModel):
    id: str
    user_id: str = Field(alias="userId")
    service_name: str = Field(alias="serviceName")
    service_version: str = Field(alias="serviceVersion")
    status: AgreementStatus
    confirmed_fields: Dict[str, bool] = Field(alias="confirmedFields")
    agreed_to_terms: bool = Field(alias="agreedToTerms")
    agreed_at: datetime = Field(alias="agreedAt")
    terms_sha256: Optional[str] = Field(alias="termsSha256", default=None)
    cancelled_at: Optional[datetime] = Field(alias="cancelledAt", default=None)
    cancellation_reason: Optional[str] = Field(alias="cancellationReason", default=None)
    suspended_at: Optional[datetime] = Field(alias="suspendedAt", default=None)
    suspension_reason: Optional[str] = Field(alias="suspensionReason", default=None)
    version: int

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_agreement(cls, agreement: ServiceAgreement) -> "AgreementOut":
        return cls(
            id=agreement.id,
            user_id=agreement.user_id,
            service_name=agreement.service_name,
            service_version=agreement.service_version,
            status=agreement.status,
            confirmed_fields=dict(agreement.confirmed_fields),
            agreed_to_terms=agreement.agreed_to_terms,
            agreed_at=agreement.agreed_at,
            terms_sha256=agreement.terms_sha256,
            cancelled_at=agreement.cancelled_at,
            cancellation_reason=agreement.cancellation_reason,
            suspended_at=agreement.suspended_at,
            suspension_reason=agreement.suspension_reason,
            version=agreement.version,
        )


class EnrollmentOut(BaseModel):
    agreement: AgreementOut
    broker_account: Optional[BrokerAccountOut] = Field(alias="brokerAccount", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_enrollment(cls, enrollment: Enrollment) -> "EnrollmentOut":
        broker = enrollment.broker_account
        return cls(
            agreement=AgreementOut.from_agreement(enrollment.agreement),
            broker_account=BrokerAccountOut.from_masked(broker.masked()) if broker else None,
        )


class PauseRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)
    version: Optional[int] = Field(default=None, ge=1)


class VersionRequest(BaseModel):
    version: Optional[int] = Field(default=None, ge=1)


class DashboardSection(BaseModel):
    title: str
    count: int
    items: List[EnrollmentOut]


class DashboardResponse(BaseModel):
    active: DashboardSection
    paused: DashboardSection
    profile_complete: bool = Field(alias="profileComplete")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_summary(cls, summary: DashboardSummary, *, profile_complete: bool) -> "DashboardResponse":
        return cls(
            active=DashboardSection(
                title="Active Services",
                count=summary.active_count,
                items=[EnrollmentOut.from_enrollment(e) for e in summary.active],
            ),
            paused=DashboardSection(
                title="Paused Services",
                count=summary.paused_count,
                items=[EnrollmentOut.from_enrollment(e) for e in summary.paused],
            ),
            profile_complete=profile_complete,
        )


class EnrollmentListResponse(BaseModel):
    items: List[EnrollmentOut]
    total: int


class SuspendRequest(BaseModel):
    reason_code: str = Field(alias="reasonCode", min_length=1)
    notes: Optional[str] = Field(default=None, max_length=2000)
    version: Optional[int] = Field(default=None, ge=1)

    model_config = ConfigDict(populate_by_name=True)


class SuspensionReasonOut(BaseModel):
    code: str
    label: str
    description: Optional[str] = None


class BrokerOption(BaseModel):
    value: str
    label: str
