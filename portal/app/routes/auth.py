"""Authentication, password recovery and profile routes."""
from __future__ import annotations

import logging
from datetime import timedelta
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from ...auth import client_ip, create_access_token
from ...config import get_config
from ..accounts import ProfileUpdate, SignupRequest
from ..audit import AuditAction, AuditActor, AuditEntry
from ..schemas.accounts import (
    AccountOut,
    LoginRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    SessionResponse,
)
from ..services.accounts import get_account_service
from ..services.audit import get_audit_repository
from ..services.step_up import get_grant_store
from .dependencies import DOMAIN_ERRORS, current_user, optional_current_user, raise_http

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "If an account matches that email, a reset link has been sent."

router = APIRouter(prefix="/api/auth", tags=["auth"])
profile_router = APIRouter(prefix="/api/profile", tags=["profile"])


def _set_session_cookie(response: Response, token: str) -> None:
    config = get_config()
    response.set_cookie(
        key=config.session_cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=config.session_cookie_secure,
        max_age=int(timedelta(minutes=config.jwt_exp_minutes).total_seconds()),
        path="/",
    )


def _start_session(response: Response, account) -> SessionResponse:
    token = create_access_token(subject=account.id, session_id=uuid4().hex)
    _set_session_cookie(response, token)
    return SessionResponse(user=AccountOut.from_account(account), access_token=token)


@router.post("/signup", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, response: Response) -> SessionResponse:
    try:
        account = get_account_service().signup(payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return _start_session(response, account)


@router.post("/login", response_model=SessionResponse)
def login(payload: LoginRequest, request: Request, response: Response) -> SessionResponse:
    try:
        account = get_account_service().authenticate(str(payload.email), payload.password)
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    actor = AuditActor(
        id=account.id,
        email=account.email,
        role=account.role.value if account.role else None,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    get_audit_repository().record(AuditEntry.build(AuditAction.LOGIN, actor, target_id=account.id))
    logger.info("User %s signed in", account.id)
    return _start_session(response, account)


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response, *, user=Depends(optional_current_user)) -> MessageResponse:
    config = get_config()
    response.delete_cookie(
        config.session_cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=config.session_cookie_secure,
    )
    if user is not None:
        get_grant_store().revoke_all(user.session_id)
        get_audit_repository().record(AuditEntry.build(AuditAction.LOGOUT, user.as_actor(), target_id=user.id))
    return MessageResponse()


@router.get("/me", response_model=AccountOut)
def read_current_user(*, user=Depends(current_user)) -> AccountOut:
    try:
        account = get_account_service().get_account(user.id)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return AccountOut.from_account(account)


@router.post("/password-reset/request", response_model=MessageResponse)
def request_password_reset(payload: PasswordResetRequest) -> MessageResponse:
    try:
        get_account_service().request_password_reset(str(payload.email))
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/password-reset/confirm", response_model=MessageResponse)
def confirm_password_reset(payload: PasswordResetConfirm) -> MessageResponse:
    try:
        get_account_service().confirm_password_reset(payload.token, payload.password, payload.confirm_password)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return MessageResponse(message="Your password has been updated.")


@profile_router.get("", response_model=AccountOut)
def get_profile(*, user=Depends(current_user)) -> AccountOut:
    return read_current_user(user=user)


@profile_router.put("", response_model=AccountOut)
def update_profile(payload: ProfileUpdate, *, user=Depends(current_user)) -> AccountOut:
    try:
        account = get_account_service().update_profile(user.id, payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return AccountOut.from_account(account)
