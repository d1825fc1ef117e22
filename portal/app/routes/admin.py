"""Staff routes for the admin portal."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..accounts import UserRole
from ..audit import AuditAction, AuditLogQuery
from ..catalog import ServiceDefinitionInput
from ..enrollments import AgreementStatus
from ..schemas.accounts import AccountOut, MessageResponse
from ..schemas.admin import (
    AuditEntryOut,
    AuditLogResponse,
    EmailChangeAction,
    EmailChangeRequest,
    EmailChangeResponse,
    RoleAssignmentRequest,
    UserListResponse,
)
from ..schemas.billing import InvoiceListResponse, InvoiceOut
from ..schemas.catalog import ServiceDetail, ServiceEnabledUpdate, ServiceListResponse
from ..schemas.enrollments import (
    EnrollmentListResponse,
    EnrollmentOut,
    SuspendRequest,
    SuspensionReasonOut,
    VersionRequest,
)
from ..schemas.notifications import AdminNotification, AdminNotificationListResponse
from ..schemas.step_up import RevealedSecretResponse
from ..services import admin_notifications
from ..services.accounts import get_account_admin_service, get_account_service, get_role_service
from ..services.audit import get_audit_repository
from ..services.catalog import get_catalog_service
from ..services.enrollments import get_enrollment_service
from ..services.step_up import get_step_up_service
from ..step_up import SecretField
from .dependencies import DOMAIN_ERRORS, raise_http, require_admin, require_staff

_DEFAULT_PAGE_SIZE = 25
_MAX_PAGE_SIZE = 100

router = APIRouter(prefix="/api/admin", tags=["admin"])


# Users and roles


@router.get("/users", response_model=UserListResponse)
def list_users(
    *,
    search: Optional[str] = Query(default=None),
    role: Optional[UserRole] = Query(default=None),
    limit: int = Query(default=_DEFAULT_PAGE_SIZE, ge=1, le=_MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    user=Depends(require_staff),
) -> UserListResponse:
    accounts, total = get_account_service().list_users(search=search, role=role, limit=limit, offset=offset)
    return UserListResponse(items=[AccountOut.from_account(account) for account in accounts], total=total)


@router.post("/users/{user_id}/role", response_model=AccountOut)
def assign_role(
    user_id: UUID,
    payload: RoleAssignmentRequest,
    *,
    user=Depends(require_admin),
) -> AccountOut:
    try:
        account = get_role_service().assign_role(
            actor=user.as_actor(), target_user_id=str(user_id), role=payload.role
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return AccountOut.from_account(account)


@router.get("/users/{user_id}", response_model=AccountOut)
def get_user(user_id: UUID, *, user=Depends(require_staff)) -> AccountOut:
    try:
        account = get_account_admin_service().get_user(user.as_actor(), str(user_id))
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return AccountOut.from_account(account)


@router.get("/users/{user_id}/invoices", response_model=InvoiceListResponse)
def list_user_invoices(user_id: UUID, *, user=Depends(require_staff)) -> InvoiceListResponse:
    try:
        invoices = get_account_admin_service().list_user_invoices(user.as_actor(), str(user_id))
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return InvoiceListResponse(invoices=[InvoiceOut.from_invoice(invoice) for invoice in invoices])


@router.post("/users/{user_id}/password-reset", response_model=MessageResponse)
def send_password_reset(user_id: UUID, *, user=Depends(require_staff)) -> MessageResponse:
    try:
        account = get_account_admin_service().send_password_reset(user.as_actor(), str(user_id))
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return MessageResponse(message=f"Password reset email sent to {account.email}")


@router.post("/users/{user_id}/email", response_model=EmailChangeResponse)
def change_user_email(
    user_id: UUID,
    payload: EmailChangeRequest,
    *,
    user=Depends(require_admin),
) -> EmailChangeResponse:
    """Validate a customer's identity, or change their login email once validated."""

    service = get_account_admin_service()
    try:
        if payload.action == EmailChangeAction.VALIDATE:
            return EmailChangeResponse.from_check(
                service.validate_identity(user.as_actor(), str(user_id), payload.identity)
            )
        result = service.change_email(user.as_actor(), str(user_id), payload.identity, payload.new_email)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EmailChangeResponse.from_change(result)


# Service definitions


@router.get("/services", response_model=ServiceListResponse)
def list_services(*, user=Depends(require_staff)) -> ServiceListResponse:
    services = get_catalog_service().list_all_services()
    return ServiceListResponse(items=[ServiceDetail.from_definition(service) for service in services])


@router.post("/services", response_model=ServiceDetail, status_code=status.HTTP_201_CREATED)
def create_service(payload: ServiceDefinitionInput, *, user=Depends(require_admin)) -> ServiceDetail:
    try:
        service = get_catalog_service().create_service(payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return ServiceDetail.from_definition(service)


@router.put("/services/{name}", response_model=ServiceDetail)
def update_service(name: str, payload: ServiceDefinitionInput, *, user=Depends(require_admin)) -> ServiceDetail:
    try:
        service = get_catalog_service().update_service(name, payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return ServiceDetail.from_definition(service)


@router.post("/services/{name}/enabled", response_model=ServiceDetail)
def set_service_enabled(
    name: str,
    payload: ServiceEnabledUpdate,
    *,
    user=Depends(require_admin),
) -> ServiceDetail:
    try:
        service = get_catalog_service().set_enabled(name, payload.enabled)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return ServiceDetail.from_definition(service)


# Enrollments and suspension


@router.get("/enrollments", response_model=EnrollmentListResponse)
def list_enrollments(
    *,
    status_filter: Optional[AgreementStatus] = Query(default=None, alias="status"),
    service_name: Optional[str] = Query(default=None, alias="serviceName"),
    user_id: Optional[UUID] = Query(default=None, alias="userId"),
    limit: int = Query(default=_DEFAULT_PAGE_SIZE, ge=1, le=_MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
    user=Depends(require_staff),
) -> EnrollmentListResponse:
    enrollments, total = get_enrollment_service().list_agreements(
        status=status_filter,
        service_name=service_name,
        user_id=str(user_id) if user_id else None,
        limit=limit,
        offset=offset,
    )
    return EnrollmentListResponse(
        items=[EnrollmentOut.from_enrollment(enrollment) for enrollment in enrollments],
        total=total,
    )


@router.post("/enrollments/{agreement_id}/suspend", response_model=EnrollmentOut)
def suspend_enrollment(
    agreement_id: UUID,
    payload: SuspendRequest,
    *,
    user=Depends(require_staff),
) -> EnrollmentOut:
    try:
        enrollment = get_enrollment_service().suspend(
            user.as_actor(),
            str(agreement_id),
            reason_code=payload.reason_code,
            notes=payload.notes,
            expected_version=payload.version,
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EnrollmentOut.from_enrollment(enrollment)


@router.post("/enrollments/{agreement_id}/unsuspend", response_model=EnrollmentOut)
def unsuspend_enrollment(
    agreement_id: UUID,
    payload: VersionRequest,
    *,
    user=Depends(require_staff),
) -> EnrollmentOut:
    try:
        enrollment = get_enrollment_service().unsuspend(
            user.as_actor(), str(agreement_id), expected_version=payload.version
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EnrollmentOut.from_enrollment(enrollment)


@router.get("/suspension-reasons", response_model=List[SuspensionReasonOut])
def list_suspension_reasons(*, user=Depends(require_staff)) -> List[SuspensionReasonOut]:
    reasons = get_enrollment_service().list_suspension_reasons()
    return [
        SuspensionReasonOut(code=reason.code, label=reason.label, description=reason.description)
        for reason in reasons
    ]


# Sensitive broker data


@router.get("/broker-accounts/{broker_account_id}/secret", response_model=RevealedSecretResponse)
def reveal_broker_secret(
    broker_account_id: UUID,
    *,
    field: SecretField = Query(...),
    user=Depends(require_staff),
) -> RevealedSecretResponse:
    """Return a broker credential in plaintext while a matching step-up grant is live."""

    try:
        secret = get_step_up_service().reveal_broker_secret(
            user.as_actor(),
            user.session_id,
            broker_account_id=str(broker_account_id),
            field=field,
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return RevealedSecretResponse(
        broker_account_id=secret.broker_account_id,
        field=secret.field,
        value=secret.value,
        expires_at=secret.grant_expires_at,
    )


# Audit log


@router.get("/audit-logs", response_model=AuditLogResponse)
def list_audit_logs(
    *,
    action: Optional[AuditAction] = Query(default=None),
    actor_id: Optional[str] = Query(default=None, alias="actorId"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user=Depends(require_admin),
) -> AuditLogResponse:
    query = AuditLogQuery(
        action=action,
        actor_id=actor_id,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    entries, total = get_audit_repository().list_entries(query)
    return AuditLogResponse(items=[AuditEntryOut.from_entry(entry) for entry in entries], total=total)


# Notifications


@router.get("/notifications", response_model=AdminNotificationListResponse)
def list_notifications(
    *,
    limit: int = Query(default=admin_notifications.DEFAULT_PAGE_SIZE, ge=1, le=admin_notifications.MAX_PAGE_SIZE),
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    user=Depends(require_staff),
) -> AdminNotificationListResponse:
    items = admin_notifications.list_notifications(limit=limit, unread_only=unread_only)
    return AdminNotificationListResponse(items=items, unread_count=admin_notifications.unread_count())


@router.post("/notifications/{notification_id}/read", response_model=AdminNotification)
def mark_notification_read(notification_id: int, *, user=Depends(require_staff)) -> AdminNotification:
    notification = admin_notifications.mark_read(notification_id)
    if notification is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return notification
