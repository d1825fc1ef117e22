"""Enrollment commit, customer lifecycle transitions and staff suspension."""
from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Protocol, Sequence, Tuple

from ..accounts import STAFF_ROLES
from ..audit import AuditAction, AuditActor, AuditEntry, AuditLogger
from ..catalog import ServiceDefinition
from ..errors import ConflictError, InvalidTransitionError, LimitReachedError, ValidationFailed
from .models import (
    LIVE_STATUSES,
    AgreementDraft,
    AgreementStatus,
    BrokerAccount,
    BrokerAccountDraft,
    DashboardSummary,
    Enrollment,
    ServiceAgreement,
    StatusChange,
    SuspensionReason,
)
from .wizard import EnrollmentSubmission, EnrollmentWizard

logger = logging.getLogger("enrollments")

SERVICE_UNAVAILABLE_MESSAGE = "This service is not currently available"
INVALID_SUSPENSION_REASON_MESSAGE = "Invalid suspension reason"

_REMOVABLE_STATUSES = (
    AgreementStatus.ACTIVE,
    AgreementStatus.PAUSED,
    AgreementStatus.CANCELLED,
    AgreementStatus.EXPIRED,
)


class EnrollmentRepository(Protocol):
    """Data access layer for agreements and their broker accounts."""

    def list_live_agreements(
        self,
        user_id: str,
        *,
        service_name: Optional[str] = None,
        statuses: Sequence[AgreementStatus] = LIVE_STATUSES,
    ) -> Sequence[ServiceAgreement]:
        ...

    def list_enrollments_for_user(
        self, user_id: str, *, statuses: Sequence[AgreementStatus] = LIVE_STATUSES
    ) -> Sequence[Enrollment]:
        ...

    def get_enrollment(self, agreement_id: str, *, user_id: Optional[str] = None) -> Optional[Enrollment]:
        ...

    def create_enrollment(
        self,
        agreement: AgreementDraft,
        broker: BrokerAccountDraft,
        *,
        max_instances: int,
    ) -> Optional[Enrollment]:
        ...

    def apply_status_change(
        self,
        agreement_id: str,
        change: StatusChange,
        *,
        expected_version: int,
        user_id: Optional[str] = None,
    ) -> Optional[Enrollment]:
        ...

    def delete_enrollment(
        self, agreement_id: str, *, user_id: str, expected_version: Optional[int] = None
    ) -> bool:
        ...

    def list_agreements(
        self,
        *,
        status: Optional[AgreementStatus] = None,
        service_name: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[Sequence[Enrollment], int]:
        ...

    def get_broker_account(self, broker_account_id: str) -> Optional[BrokerAccount]:
        ...

    def list_suspension_reasons(self, *, active_only: bool = True) -> Sequence[SuspensionReason]:
        ...


class ServiceCatalog(Protocol):
    def get_service_by_name(self, name: str) -> ServiceDefinition:
        ...


class AdminNotifier(Protocol):
    """Collaborator that alerts staff about notable enrollment events."""

    def notify(self, kind: str, title: str, message: str, metadata: Mapping[str, object]) -> None:
        ...


def terms_digest(terms: str) -> str:
    return hashlib.sha256(terms.encode("utf-8")).hexdigest()


class EnrollmentService:
    """Coordinates enrollment writes and lifecycle transitions.

    Every mutation of an existing agreement is conditional on its version;
    a stale version surfaces as :class:`ConflictError`.
    """

    def __init__(
        self,
        repository: EnrollmentRepository,
        catalog: ServiceCatalog,
        audit_logger: AuditLogger,
        notifier: AdminNotifier,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        record_terms_hash: bool = True,
    ) -> None:
        self._repository = repository
        self._catalog = catalog
        self._audit_logger = audit_logger
        self._notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._record_terms_hash = record_terms_hash

    # Enrollment

    def enroll(self, actor: AuditActor, submission: EnrollmentSubmission) -> Enrollment:
        if not actor.id:
            raise PermissionError("Sign in to enroll in a service")
        service = self._catalog.get_service_by_name(submission.service_name)
        if not service.enabled:
            raise ValidationFailed(SERVICE_UNAVAILABLE_MESSAGE, field="serviceName")

        wizard = EnrollmentWizard.replay(service, submission)
        accepted = wizard.build_submission()

        agreement = AgreementDraft(
            user_id=actor.id,
            service_name=service.name,
            service_version=service.version,
            confirmed_fields=accepted.acknowledgments,
            agreed_to_terms=True,
            agreed_at=self._clock(),
            ip_address=actor.ip_address,
            user_agent=actor.user_agent,
            terms_sha256=terms_digest(service.terms_content) if self._record_terms_hash else None,
        )
        broker = BrokerAccountDraft(
            user_id=actor.id,
            broker_name=accepted.broker_name,
            account_number=accepted.account_number,
            account_password=accepted.account_password,
            api_key=accepted.api_key,
        )
        enrollment = self._repository.create_enrollment(
            agreement, broker, max_instances=service.max_instances_per_user
        )
        if enrollment is None:
            raise LimitReachedError(service.display_name, service.max_instances_per_user)

        self._audit(actor, enrollment.agreement, "enroll")
        logger.info(
            "User %s enrolled in %s agreement=%s",
            actor.id,
            service.name,
            enrollment.agreement.id,
        )
        return enrollment

    # Customer reads

    def get_enrollment(self, user_id: str, agreement_id: str) -> Enrollment:
        enrollment = self._repository.get_enrollment(agreement_id, user_id=user_id)
        if enrollment is None:
            raise LookupError(f"Service agreement {agreement_id} not found")
        return enrollment

    def dashboard(self, user_id: str) -> DashboardSummary:
        enrollments = self._repository.list_enrollments_for_user(user_id)
        return DashboardSummary(
            active=tuple(e for e in enrollments if e.agreement.status == AgreementStatus.ACTIVE),
            paused=tuple(e for e in enrollments if e.agreement.status == AgreementStatus.PAUSED),
        )

    # Customer lifecycle

    def pause(
        self,
        actor: AuditActor,
        agreement_id: str,
        *,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Enrollment:
        current = self._load_owned(actor, agreement_id, expected_version)
        if self._already_in(current, AgreementStatus.PAUSED, broker_active=False):
            return current
        agreement = current.agreement
        if agreement.status not in LIVE_STATUSES:
            raise InvalidTransitionError(agreement.status.value, AgreementStatus.PAUSED.value)

        if agreement.status == AgreementStatus.PAUSED:
            # Broker left active by an earlier partial write; keep the original pause details.
            change = StatusChange(
                status=AgreementStatus.PAUSED,
                broker_active=False,
                cancelled_at=agreement.cancelled_at,
                cancellation_reason=agreement.cancellation_reason,
            )
        else:
            change = StatusChange(
                status=AgreementStatus.PAUSED,
                broker_active=False,
                cancelled_at=self._clock(),
                cancellation_reason=(reason or "").strip() or None,
            )
        updated = self._apply(actor, current, change)
        self._audit(actor, updated.agreement, "pause", reason=change.cancellation_reason)
        return updated

    def reactivate(
        self,
        actor: AuditActor,
        agreement_id: str,
        *,
        expected_version: Optional[int] = None,
    ) -> Enrollment:
        current = self._load_owned(actor, agreement_id, expected_version)
        if self._already_in(current, AgreementStatus.ACTIVE, broker_active=True):
            return current
        if current.agreement.status not in LIVE_STATUSES:
            raise InvalidTransitionError(current.agreement.status.value, AgreementStatus.ACTIVE.value)

        change = StatusChange(status=AgreementStatus.ACTIVE, broker_active=True)
        updated = self._apply(actor, current, change)
        self._audit(actor, updated.agreement, "reactivate")
        return updated

    def remove(
        self,
        actor: AuditActor,
        agreement_id: str,
        *,
        expected_version: Optional[int] = None,
    ) -> None:
        current = self._load_owned(actor, agreement_id, expected_version)
        if current.agreement.status not in _REMOVABLE_STATUSES:
            raise InvalidTransitionError(current.agreement.status.value, "removed")

        deleted = self._repository.delete_enrollment(
            agreement_id, user_id=actor.id, expected_version=current.agreement.version
        )
        if not deleted:
            raise self._missing_or_conflict(agreement_id, actor.id)
        self._audit(actor, current.agreement, "remove")
        logger.info("User %s removed agreement %s", actor.id, agreement_id)

    # Staff operations

    def list_suspension_reasons(self) -> Sequence[SuspensionReason]:
        return list(self._repository.list_suspension_reasons(active_only=True))

    def list_agreements(
        self,
        *,
        status: Optional[AgreementStatus] = None,
        service_name: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[Sequence[Enrollment], int]:
        return self._repository.list_agreements(
            status=status, service_name=service_name, user_id=user_id, limit=limit, offset=offset
        )

    def suspend(
        self,
        actor: AuditActor,
        agreement_id: str,
        *,
        reason_code: str,
        notes: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Enrollment:
        self._require_staff(actor)
        reasons = {reason.code: reason for reason in self._repository.list_suspension_reasons(active_only=True)}
        if reason_code not in reasons:
            raise ValidationFailed(INVALID_SUSPENSION_REASON_MESSAGE, field="reasonCode")

        current = self._load_any(agreement_id, expected_version)
        agreement = current.agreement
        if agreement.status == AgreementStatus.SUSPENDED:
            raise InvalidTransitionError(agreement.status.value, AgreementStatus.SUSPENDED.value)

        change = StatusChange(
            status=AgreementStatus.SUSPENDED,
            broker_active=False,
            cancelled_at=agreement.cancelled_at,
            cancellation_reason=agreement.cancellation_reason,
            suspended_at=self._clock(),
            suspended_by=actor.id,
            suspension_reason=reason_code,
            suspension_notes=(notes or "").strip() or None,
        )
        updated = self._apply(actor, current, change, scope_to_owner=False)
        self._audit_logger.record(
            AuditEntry.build(
                AuditAction.SERVICE_SUSPENDED,
                actor,
                target_id=agreement.id,
                target_description=f"{agreement.service_name} for user {agreement.user_id}",
                details={
                    "previous_status": agreement.status.value,
                    "reason_code": reason_code,
                    "notes": change.suspension_notes,
                },
                timestamp=self._clock(),
            )
        )
        self._notifier.notify(
            "service_suspended",
            "Service suspended",
            f"{agreement.service_name} was suspended: {reasons[reason_code].label}",
            {"agreement_id": agreement.id, "user_id": agreement.user_id, "suspended_by": actor.id},
        )
        return updated

    def unsuspend(
        self,
        actor: AuditActor,
        agreement_id: str,
        *,
        expected_version: Optional[int] = None,
    ) -> Enrollment:
        self._require_staff(actor)
        current = self._load_any(agreement_id, expected_version)
        agreement = current.agreement
        if agreement.status != AgreementStatus.SUSPENDED:
            raise InvalidTransitionError(agreement.status.value, AgreementStatus.ACTIVE.value)

        change = StatusChange(status=AgreementStatus.ACTIVE, broker_active=True)
        updated = self._apply(actor, current, change, scope_to_owner=False)
        self._audit_logger.record(
            AuditEntry.build(
                AuditAction.SERVICE_UNSUSPENDED,
                actor,
                target_id=agreement.id,
                target_description=f"{agreement.service_name} for user {agreement.user_id}",
                details={"previous_reason": agreement.suspension_reason},
                timestamp=self._clock(),
            )
        )
        return updated

    # Helpers

    @staticmethod
    def _require_staff(actor: AuditActor) -> None:
        if actor.role not in {role.value for role in STAFF_ROLES}:
            raise PermissionError("Only admins and managers can change service status")

    @staticmethod
    def _already_in(current: Enrollment, status: AgreementStatus, *, broker_active: bool) -> bool:
        if current.agreement.status != status:
            return False
        broker = current.broker_account
        return broker is None or broker.is_active == broker_active

    def _load_owned(self, actor: AuditActor, agreement_id: str, expected_version: Optional[int]) -> Enrollment:
        if not actor.id:
            raise PermissionError("Sign in to manage services")
        current = self.get_enrollment(actor.id, agreement_id)
        if expected_version is not None and current.agreement.version != expected_version:
            raise ConflictError(agreement_id)
        return current

    def _load_any(self, agreement_id: str, expected_version: Optional[int]) -> Enrollment:
        current = self._repository.get_enrollment(agreement_id)
        if current is None:
            raise LookupError(f"Service agreement {agreement_id} not found")
        if expected_version is not None and current.agreement.version != expected_version:
            raise ConflictError(agreement_id)
        return current

    def _apply(
        self,
        actor: AuditActor,
        current: Enrollment,
        change: StatusChange,
        *,
        scope_to_owner: bool = True,
    ) -> Enrollment:
        owner = current.agreement.user_id if scope_to_owner else None
        updated = self._repository.apply_status_change(
            current.agreement.id,
            change,
            expected_version=current.agreement.version,
            user_id=owner,
        )
        if updated is None:
            raise self._missing_or_conflict(current.agreement.id, owner)
        logger.info(
            "Agreement %s %s -> %s by %s version=%s",
            current.agreement.id,
            current.agreement.status.value,
            updated.agreement.status.value,
            actor.id,
            updated.agreement.version,
        )
        return updated

    def _missing_or_conflict(self, agreement_id: str, user_id: Optional[str]) -> Exception:
        if self._repository.get_enrollment(agreement_id, user_id=user_id) is None:
            return LookupError(f"Service agreement {agreement_id} not found")
        return ConflictError(agreement_id)

    def _audit(
        self,
        actor: AuditActor,
        agreement: ServiceAgreement,
        operation: str,
        *,
        reason: Optional[str] = None,
    ) -> None:
        details = {"operation": operation, "service_name": agreement.service_name}
        if reason:
            details["reason"] = reason
        self._audit_logger.record(
            AuditEntry.build(
                AuditAction.SUBSCRIPTION_MODIFY,
                actor,
                target_id=agreement.id,
                target_description=agreement.service_name,
                details=details,
                timestamp=self._clock(),
            )
        )
