"""Service enrollment wizard and agreement lifecycle."""

from .models import (
    HELD_STATUSES,
    LIVE_STATUSES,
    PASSWORD_MASK,
    AgreementDraft,
    AgreementStatus,
    BrokerAccount,
    BrokerAccountDraft,
    DashboardSummary,
    Enrollment,
    MaskedBrokerAccount,
    ServiceAgreement,
    StatusChange,
    SuspensionReason,
    mask_secret,
)
from .service import AdminNotifier, EnrollmentRepository, EnrollmentService, ServiceCatalog, terms_digest
from .wizard import BROKER_OPTIONS, EnrollmentSubmission, EnrollmentWizard, WizardStep

__all__ = [
    "AdminNotifier",
    "AgreementDraft",
    "AgreementStatus",
    "BROKER_OPTIONS",
    "BrokerAccount",
    "BrokerAccountDraft",
    "DashboardSummary",
    "Enrollment",
    "EnrollmentRepository",
    "EnrollmentService",
    "EnrollmentSubmission",
    "EnrollmentWizard",
    "HELD_STATUSES",
    "LIVE_STATUSES",
    "MaskedBrokerAccount",
    "PASSWORD_MASK",
    "ServiceAgreement",
    "ServiceCatalog",
    "StatusChange",
    "SuspensionReason",
    "WizardStep",
    "mask_secret",
    "terms_digest",
]
