"""Staff operations on another user's account.

Email changes are a two step flow: the admin first confirms the caller's
identity against what is on file, then submits the new address together
with the same details, which are checked again before anything is written.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError

from ...mail import EmailProvider, render_email_changed
from ..audit import AuditAction, AuditActor, AuditEntry, AuditLogger
from ..errors import RemoteServiceError, ValidationFailed
from .models import STAFF_ROLES, UserAccount, UserRole
from .service import AccountRepository, AccountService

logger = logging.getLogger(__name__)

SAME_EMAIL_MESSAGE = "New email must be different from the current email"
INVALID_EMAIL_MESSAGE = "Please enter a valid email address"


class IdentityAddress(BaseModel):
    line1: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""

    model_config = ConfigDict(frozen=True)


class IdentityCheck(BaseModel):
    """Details the admin reads back from the customer before an email change."""

    current_email: str = Field(alias="currentEmail")
    first_name: str = Field(alias="firstName", default="")
    last_name: str = Field(alias="lastName", default="")
    phone: str = ""
    address: IdentityAddress = Field(default_factory=IdentityAddress)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class IdentityCheckResult(BaseModel):
    errors: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def validated(self) -> bool:
        return not self.errors

    @property
    def message(self) -> Optional[str]:
        return ", ".join(self.errors) or None


class EmailChangeResult(BaseModel):
    account: UserAccount
    previous_email: str
    billing_synced: bool = False
    confirmation_sent: bool = False

    model_config = ConfigDict(frozen=True)


class BillingDirectory(Protocol):
    """Billing reads and writes needed while administering a user."""

    def get_customer(self, user_id: str) -> Optional[Any]:
        ...

    def sync_customer_email(self, user_id: str, email: str) -> bool:
        ...

    def list_invoices(self, user_id: str) -> Sequence[Any]:
        ...


def _phone_digits(value: Optional[str]) -> str:
    digits = "".join(ch for ch in (value or "") if ch.isdigit())
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits


def _same_text(stored: Optional[str], provided: Optional[str]) -> bool:
    return (stored or "").strip().lower() == (provided or "").strip().lower()


def compare_identity(account: UserAccount, customer: Optional[Any], check: IdentityCheck) -> IdentityCheckResult:
    """List every detail in ``check`` that differs from the stored account.

    Address lines are only compared when the user has a billing customer.
    """

    errors = []
    if not _same_text(account.email, check.current_email):
        errors.append("Email does not match")
    if not _same_text(account.first_name, check.first_name):
        errors.append("First name does not match")
    if not _same_text(account.last_name, check.last_name):
        errors.append("Last name does not match")
    if _phone_digits(account.phone) != _phone_digits(check.phone):
        errors.append("Phone number does not match")
    if customer is not None:
        stored = customer.address
        if not _same_text(stored.line1, check.address.line1):
            errors.append("Address does not match")
        if not _same_text(stored.city, check.address.city):
            errors.append("City does not match")
        if not _same_text(stored.state, check.address.state):
            errors.append("State does not match")
        if (stored.zip or "").strip() != check.address.zip.strip():
            errors.append("ZIP code does not match")
    return IdentityCheckResult(errors=errors)


class _NewEmail(BaseModel):
    email: EmailStr


class AccountAdminService:
    def __init__(
        self,
        accounts: AccountService,
        repository: AccountRepository,
        billing: BillingDirectory,
        audit_logger: AuditLogger,
        *,
        email_provider: Optional[EmailProvider] = None,
        product_name: str = "Client Portal",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._accounts = accounts
        self._repository = repository
        self._billing = billing
        self._audit_logger = audit_logger
        self._email_provider = email_provider
        self._product_name = product_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_user(self, actor: AuditActor, user_id: str) -> UserAccount:
        _require_staff(actor)
        return self._accounts.get_account(user_id)

    def list_user_invoices(self, actor: AuditActor, user_id: str) -> Sequence[Any]:
        _require_staff(actor)
        self._accounts.get_account(user_id)
        return self._billing.list_invoices(user_id)

    def send_password_reset(self, actor: AuditActor, user_id: str) -> UserAccount:
        """Email the user a reset link on a staff member's behalf."""

        _require_staff(actor)
        account = self._accounts.get_account(user_id)
        try:
            self._accounts.request_password_reset(account.email)
        except RemoteServiceError as exc:
            self._record(AuditAction.PASSWORD_RESET_SENT, actor, account, {}, error=exc.message)
            raise
        self._record(AuditAction.PASSWORD_RESET_SENT, actor, account, {})
        logger.info("Password reset sent to user %s by %s", account.id, actor.id)
        return account

    def validate_identity(self, actor: AuditActor, user_id: str, check: IdentityCheck) -> IdentityCheckResult:
        _require_admin(actor)
        account = self._accounts.get_account(user_id)
        return compare_identity(account, self._billing.get_customer(user_id), check)

    def change_email(
        self,
        actor: AuditActor,
        user_id: str,
        check: IdentityCheck,
        new_email: Optional[str],
    ) -> EmailChangeResult:
        _require_admin(actor)
        account = self._accounts.get_account(user_id)
        result = compare_identity(account, self._billing.get_customer(user_id), check)
        if not result.validated:
            raise ValidationFailed(result.message, field="identity")

        try:
            email = _NewEmail(email=(new_email or "").strip()).email.lower()
        except ValidationError as exc:
            raise ValidationFailed(INVALID_EMAIL_MESSAGE, field="newEmail") from exc
        if email == account.email.lower():
            raise ValidationFailed(SAME_EMAIL_MESSAGE, field="newEmail")
        updated = self._repository.set_email(user_id, email)
        if updated is None:
            raise LookupError(f"User {user_id} not found")

        # The login email is already changed; the processor copy and the notice are best effort.
        try:
            billing_synced = self._billing.sync_customer_email(user_id, email)
        except RemoteServiceError:
            billing_synced = False
        confirmation_sent = self._send_change_notice(updated, account.email)

        self._record(
            AuditAction.EMAIL_CHANGE,
            actor,
            updated,
            {
                "previous_email": account.email,
                "new_email": email,
                "billing_synced": billing_synced,
                "confirmation_sent": confirmation_sent,
            },
        )
        logger.info("Email for user %s changed by %s", user_id, actor.id)
        return EmailChangeResult(
            account=updated,
            previous_email=account.email,
            billing_synced=billing_synced,
            confirmation_sent=confirmation_sent,
        )

    def _send_change_notice(self, account: UserAccount, previous_email: str) -> bool:
        if self._email_provider is None:
            return False
        subject, text_body, html_body = render_email_changed(
            {
                "recipient_name": account.first_name or "there",
                "product_name": self._product_name,
                "previous_email": previous_email,
                "new_email": account.email,
            }
        )
        try:
            self._email_provider.send_email(account.email, subject, html_body, text_body)
        except Exception:
            logger.exception("Failed to send email change notice to user %s", account.id)
            return False
        return True

    def _record(
        self,
        action: AuditAction,
        actor: AuditActor,
        account: UserAccount,
        details: dict,
        *,
        error: Optional[str] = None,
    ) -> None:
        self._audit_logger.record(
            AuditEntry.build(
                action,
                actor,
                target_id=account.id,
                target_description=account.email,
                details=details,
                success=error is None,
                error_message=error,
                timestamp=self._clock(),
            )
        )


def _require_staff(actor: AuditActor) -> None:
    if actor.role not in {role.value for role in STAFF_ROLES}:
        raise PermissionError("Staff access required")


def _require_admin(actor: AuditActor) -> None:
    if actor.role != UserRole.ADMIN.value:
        raise PermissionError("Only admins can change user emails")
