"""Enrollment and customer lifecycle routes."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..enrollments import BROKER_OPTIONS, EnrollmentSubmission
from ..schemas.enrollments import (
    BrokerOption,
    DashboardResponse,
    EnrollmentOut,
    PauseRequest,
    VersionRequest,
)
from ..services.accounts import get_account_service
from ..services.enrollments import get_enrollment_service
from .dependencies import DOMAIN_ERRORS, current_user, raise_http

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])
dashboard_router = APIRouter(prefix="/api/dashboard", tags=["enrollments"])


@router.get("/broker-options", response_model=List[BrokerOption])
def list_broker_options() -> List[BrokerOption]:
    return [BrokerOption(value=value, label=label) for value, label in BROKER_OPTIONS.items()]


@router.post("", response_model=EnrollmentOut, status_code=status.HTTP_201_CREATED)
def create_enrollment(payload: EnrollmentSubmission, *, user=Depends(current_user)) -> EnrollmentOut:
    try:
        enrollment = get_enrollment_service().enroll(user.as_actor(), payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EnrollmentOut.from_enrollment(enrollment)


@router.get("/{agreement_id}", response_model=EnrollmentOut)
def get_enrollment(agreement_id: UUID, *, user=Depends(current_user)) -> EnrollmentOut:
    try:
        enrollment = get_enrollment_service().get_enrollment(user.id, str(agreement_id))
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EnrollmentOut.from_enrollment(enrollment)


@router.post("/{agreement_id}/pause", response_model=EnrollmentOut)
def pause_enrollment(
    agreement_id: UUID,
    payload: PauseRequest,
    *,
    user=Depends(current_user),
) -> EnrollmentOut:
    try:
        enrollment = get_enrollment_service().pause(
            user.as_actor(),
            str(agreement_id),
            reason=payload.reason,
            expected_version=payload.version,
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EnrollmentOut.from_enrollment(enrollment)


@router.post("/{agreement_id}/reactivate", response_model=EnrollmentOut)
def reactivate_enrollment(
    agreement_id: UUID,
    payload: VersionRequest,
    *,
    user=Depends(current_user),
) -> EnrollmentOut:
    try:
        enrollment = get_enrollment_service().reactivate(
            user.as_actor(), str(agreement_id), expected_version=payload.version
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EnrollmentOut.from_enrollment(enrollment)


@router.delete("/{agreement_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_enrollment(
    agreement_id: UUID,
    *,
    version: Optional[int] = Query(default=None, ge=1),
    user=Depends(current_user),
) -> Response:
    try:
        get_enrollment_service().remove(user.as_actor(), str(agreement_id), expected_version=version)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@dashboard_router.get("", response_model=DashboardResponse)
def get_dashboard(*, user=Depends(current_user)) -> DashboardResponse:
    """Return the caller's active and paused services."""

    try:
        summary = get_enrollment_service().dashboard(user.id)
        account = get_account_service().get_account(user.id)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return DashboardResponse.from_summary(summary, profile_complete=account.profile_complete)
