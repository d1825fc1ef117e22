"""Signup, login, profile and password recovery flows."""
from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Protocol, Sequence, Tuple

from passlib.hash import bcrypt

from ...mail import EmailProvider, render_password_reset
from ..errors import RemoteServiceError, ValidationFailed
from .models import ProfileUpdate, SignupRequest, StoredCredentials, UserAccount, UserRole
from .validation import normalize_phone, validate_new_password, validate_signup

logger = logging.getLogger(__name__)

INVALID_LOGIN_MESSAGE = "Invalid email or password"
INVALID_RESET_MESSAGE = "This password reset link is invalid or has expired"


class AccountRepository(Protocol):
    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        birthdate: Optional[date],
        first_name: Optional[str],
        last_name: Optional[str],
    ) -> UserAccount:
        ...

    def get_user_by_id(self, user_id: str) -> Optional[UserAccount]:
        ...

    def get_user_by_email(self, email: str) -> Optional[UserAccount]:
        ...

    def get_credentials(self, email: str) -> Optional[StoredCredentials]:
        ...

    def update_profile(
        self,
        user_id: str,
        *,
        first_name: Optional[str],
        last_name: Optional[str],
        phone: Optional[str],
    ) -> Optional[UserAccount]:
        ...

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        ...

    def set_role(self, user_id: str, role: Optional[UserRole]) -> Optional[UserAccount]:
        ...

    def set_email(self, user_id: str, email: str) -> Optional[UserAccount]:
        ...

    def list_users(
        self,
        *,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[Sequence[UserAccount], int]:
        ...

    def store_reset_token(self, user_id: str, token_hash: str, expires_at: datetime, *, now: datetime) -> None:
        ...

    def consume_reset_token(self, token_hash: str, *, now: datetime) -> Optional[str]:
        ...


class PasswordHasher(Protocol):
    def hash(self, secret: str) -> str:
        ...

    def verify(self, secret: str, hashed: str) -> bool:
        ...


class BcryptPasswordHasher:
    """Password hashing backed by passlib's bcrypt handler."""

    def hash(self, secret: str) -> str:
        return bcrypt.hash(secret)

    def verify(self, secret: str, hashed: str) -> bool:
        try:
            return bcrypt.verify(secret, hashed)
        except ValueError:
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AccountService:
    def __init__(
        self,
        repository: AccountRepository,
        *,
        hasher: Optional[PasswordHasher] = None,
        email_provider: Optional[EmailProvider] = None,
        app_base_url: str = "http://localhost:5174",
        product_name: str = "Client Portal",
        reset_ttl: timedelta = timedelta(minutes=60),
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._hasher = hasher or BcryptPasswordHasher()
        self._email_provider = email_provider
        self._app_base_url = app_base_url.rstrip("/")
        self._product_name = product_name
        self._reset_ttl = reset_ttl
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def signup(self, request: SignupRequest) -> UserAccount:
        validate_signup(
            birthdate=request.birthdate,
            password=request.password,
            confirm_password=request.confirm_password,
            today=self._clock().date(),
        )
        account = self._repository.create_user(
            email=str(request.email),
            password_hash=self._hasher.hash(request.password),
            birthdate=request.birthdate,
            first_name=(request.first_name or "").strip() or None,
            last_name=(request.last_name or "").strip() or None,
        )
        logger.info("Registered user %s", account.id)
        return account

    def authenticate(self, email: str, password: str) -> UserAccount:
        credentials = self._repository.get_credentials(email.strip())
        if credentials is None or not self._hasher.verify(password, credentials.password_hash):
            raise PermissionError(INVALID_LOGIN_MESSAGE)
        return credentials.account

    def get_account(self, user_id: str) -> UserAccount:
        account = self._repository.get_user_by_id(user_id)
        if account is None:
            raise LookupError(f"User {user_id} not found")
        return account

    def update_profile(self, user_id: str, update: ProfileUpdate) -> UserAccount:
        phone = normalize_phone(update.phone) if update.phone and update.phone.strip() else None
        account = self._repository.update_profile(
            user_id,
            first_name=(update.first_name or "").strip() or None,
            last_name=(update.last_name or "").strip() or None,
            phone=phone,
        )
        if account is None:
            raise LookupError(f"User {user_id} not found")
        return account

    def request_password_reset(self, email: str) -> None:
        """Email a single use reset link; unknown addresses are silently ignored."""

        account = self._repository.get_user_by_email(email.strip())
        if account is None:
            logger.info("Password reset requested for unknown email")
            return

        now = self._clock()
        token = secrets.token_urlsafe(32)
        expires_at = now + self._reset_ttl
        self._repository.store_reset_token(account.id, hash_token(token), expires_at, now=now)

        if self._email_provider is None:
            logger.warning("No email provider configured; reset link for user %s not sent", account.id)
            return
        subject, text_body, html_body = render_password_reset(
            {
                "recipient_name": account.first_name or "there",
                "product_name": self._product_name,
                "reset_url": f"{self._app_base_url}/reset-password?token={token}",
                "expires_at": expires_at.isoformat(),
            }
        )
        try:
            self._email_provider.send_email(account.email, subject, html_body, text_body)
        except Exception as exc:
            logger.exception("Failed to send password reset email to user %s", account.id)
            raise RemoteServiceError("Failed to send password reset email") from exc

    def confirm_password_reset(self, token: str, password: str, confirm_password: str) -> UserAccount:
        validate_new_password(password, confirm_password)
        user_id = self._repository.consume_reset_token(hash_token(token), now=self._clock())
        if user_id is None:
            raise ValidationFailed(INVALID_RESET_MESSAGE, field="token")
        self._repository.set_password_hash(user_id, self._hasher.hash(password))
        logger.info("Password reset completed for user %s", user_id)
        return self.get_account(user_id)

    def list_users(
        self,
        *,
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        limit: int = 25,
        offset: int = 0,
    ) -> Tuple[Sequence[UserAccount], int]:
        return self._repository.list_users(search=search, role=role, limit=limit, offset=offset)
