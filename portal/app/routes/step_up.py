"""Step-up verification routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ..schemas.step_up import (
    ChallengeRequest,
    ChallengeResponse,
    RevokeResponse,
    SessionStatus,
    VerifyRequest,
)
from ..services.step_up import get_step_up_service
from ..step_up import StepUpPurpose
from .dependencies import DOMAIN_ERRORS, current_user, raise_http

router = APIRouter(prefix="/api/step-up", tags=["step-up"])


@router.post("/challenge", response_model=ChallengeResponse)
def request_challenge(payload: ChallengeRequest, *, user=Depends(current_user)) -> ChallengeResponse:
    try:
        receipt = get_step_up_service().request_challenge(
            user.as_actor(),
            purpose=payload.purpose,
            resource_id=payload.resource_id,
            method=payload.method,
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return ChallengeResponse(
        challenge_id=receipt.challenge_id,
        method=receipt.method,
        masked_destination=receipt.masked_destination,
        expires_at=receipt.expires_at,
    )


@router.post("/verify", response_model=SessionStatus)
def verify_challenge(payload: VerifyRequest, *, user=Depends(current_user)) -> SessionStatus:
    try:
        grant = get_step_up_service().verify(
            user.as_actor(),
            user.session_id,
            challenge_id=payload.challenge_id,
            code=payload.code,
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return SessionStatus(
        valid=True,
        purpose=grant.purpose,
        resource_id=grant.resource_id,
        expires_at=grant.expires_at,
    )


@router.get("/sessions", response_model=SessionStatus)
def get_session_status(
    *,
    purpose: StepUpPurpose = Query(...),
    resource_id: str = Query(..., alias="resourceId", min_length=1),
    user=Depends(current_user),
) -> SessionStatus:
    grant = get_step_up_service().get_grant(user.session_id, purpose, resource_id)
    return SessionStatus(
        valid=grant is not None,
        purpose=purpose,
        resource_id=resource_id,
        expires_at=grant.expires_at if grant else None,
    )


@router.delete("/sessions", response_model=RevokeResponse)
def revoke_all_sessions(*, user=Depends(current_user)) -> RevokeResponse:
    """Drop every elevated grant held by the caller's session."""

    return RevokeResponse(revoked=get_step_up_service().revoke_all(user.session_id))


@router.delete("/sessions/{purpose}/{resource_id}", response_model=RevokeResponse)
def revoke_session(
    purpose: StepUpPurpose,
    resource_id: str,
    *,
    user=Depends(current_user),
) -> RevokeResponse:
    return RevokeResponse(revoked=get_step_up_service().revoke(user.session_id, purpose, resource_id))
