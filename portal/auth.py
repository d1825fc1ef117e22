"""Session tokens and request authentication."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt
from pydantic import BaseModel, ConfigDict, Field

from .app.accounts import STAFF_ROLES, UserAccount, UserRole
from .app.audit import AuditActor
from .config import get_config

logger = logging.getLogger(__name__)


class CurrentUser(BaseModel):
    """The authenticated caller of a request."""

    id: str
    email: str
    role: Optional[UserRole] = None
    session_id: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def as_actor(self) -> AuditActor:
        return AuditActor(
            id=self.id,
            email=self.email,
            role=self.role.value if self.role else None,
            ip_address=self.ip_address,
            user_agent=self.user_agent,
        )


def create_access_token(
    *,
    subject: str,
    session_id: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    config = get_config()
    if expires_delta is None:
        expires_delta = timedelta(minutes=config.jwt_exp_minutes)
    payload = {
        "sub": subject,
        "sid": session_id or uuid4().hex,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, config.jwt_secret_key, algorithm=config.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    config = get_config()
    try:
        payload = jwt.decode(token, config.jwt_secret_key, algorithms=[config.jwt_algorithm])
    except JWTError:
        return None
    if not payload.get("sub") or not payload.get("sid"):
        return None
    return payload


def extract_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization") or ""
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(get_config().session_cookie_name)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


def resolve_user(request: Request, *, lookup=None) -> Optional[CurrentUser]:
    """Return the caller for a request or ``None`` when unauthenticated."""

    token = extract_token(request)
    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None

    if lookup is None:
        from .app.services.accounts import get_account_service

        lookup = get_account_service().get_account
    try:
        account: UserAccount = lookup(str(payload["sub"]))
    except LookupError:
        return None

    return CurrentUser(
        id=account.id,
        email=account.email,
        role=account.role,
        session_id=str(payload["sid"]),
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        metadata={"first_name": account.first_name, "last_name": account.last_name},
    )


def get_current_user(request: Request) -> CurrentUser:
    user = resolve_user(request)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


def get_optional_current_user(request: Request) -> Optional[CurrentUser]:
    return resolve_user(request)
