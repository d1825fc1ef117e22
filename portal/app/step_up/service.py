"""Step-up verification gating access to sensitive broker credentials."""
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

from ...mail import EmailProvider, render_verification_code
from ..accounts import STAFF_ROLES
from ..audit import AuditAction, AuditActor, AuditEntry, AuditLogger
from ..enrollments.models import BrokerAccount
from ..errors import RemoteServiceError, StepUpRequiredError, ValidationFailed
from .models import (
    ChallengeReceipt,
    DeliveryMethod,
    RevealedSecret,
    SecretField,
    StepUpGrant,
    StepUpPurpose,
    VerificationChallenge,
    mask_email,
)
from .store import GrantStore

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid or expired verification code"
SMS_UNAVAILABLE_MESSAGE = "SMS verification is not available, please use email"


class ChallengeRepository(Protocol):
    def create_challenge(
        self,
        *,
        user_id: str,
        purpose: StepUpPurpose,
        resource_id: str,
        method: DeliveryMethod,
        destination: str,
        code_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> VerificationChallenge:
        ...

    def get_challenge(self, challenge_id: str, *, user_id: str) -> Optional[VerificationChallenge]:
        ...

    def mark_used(self, challenge_id: str, *, now: datetime) -> bool:
        ...


class BrokerAccountReader(Protocol):
    def get_broker_account(self, broker_account_id: str) -> Optional[BrokerAccount]:
        ...


def _hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


class StepUpService:
    """Issues codes, records scoped grants and reveals secrets under a live grant."""

    def __init__(
        self,
        challenges: ChallengeRepository,
        grants: GrantStore,
        brokers: BrokerAccountReader,
        audit_logger: AuditLogger,
        email_provider: Optional[EmailProvider],
        *,
        clock: Optional[Callable[[], datetime]] = None,
        session_ttl: timedelta = timedelta(minutes=5),
        code_ttl: timedelta = timedelta(minutes=10),
        code_generator: Callable[[], str] = generate_code,
        product_name: str = "Client Portal",
    ) -> None:
        self._challenges = challenges
        self._grants = grants
        self._brokers = brokers
        self._audit_logger = audit_logger
        self._email_provider = email_provider
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._session_ttl = session_ttl
        self._code_ttl = code_ttl
        self._code_generator = code_generator
        self._product_name = product_name

    def request_challenge(
        self,
        actor: AuditActor,
        *,
        purpose: StepUpPurpose,
        resource_id: str,
        method: DeliveryMethod = DeliveryMethod.EMAIL,
    ) -> ChallengeReceipt:
        if not actor.id:
            raise PermissionError("Sign in to verify your identity")
        if method != DeliveryMethod.EMAIL:
            raise ValidationFailed(SMS_UNAVAILABLE_MESSAGE, field="method")
        if not actor.email:
            raise ValidationFailed("No email address is on file for verification", field="method")
        if self._email_provider is None:
            raise RemoteServiceError("Failed to send verification code")

        now = self._clock()
        code = self._code_generator()
        challenge = self._challenges.create_challenge(
            user_id=actor.id,
            purpose=purpose,
            resource_id=resource_id,
            method=method,
            destination=actor.email,
            code_hash=_hash_code(code),
            expires_at=now + self._code_ttl,
            now=now,
        )

        subject, text_body, html_body = render_verification_code(
            {
                "recipient_name": actor.email,
                "product_name": self._product_name,
                "code": code,
                "expires_minutes": int(self._code_ttl.total_seconds() // 60),
            }
        )
        try:
            self._email_provider.send_email(actor.email, subject, html_body, text_body)
        except Exception as exc:
            logger.exception("Failed to deliver verification code challenge=%s", challenge.id)
            raise RemoteServiceError("Failed to send verification code") from exc

        logger.info(
            "Issued step-up challenge %s purpose=%s resource=%s user=%s",
            challenge.id,
            purpose.value,
            resource_id,
            actor.id,
        )
        return ChallengeReceipt(
            challenge_id=challenge.id,
            method=method,
            masked_destination=mask_email(actor.email),
            expires_at=challenge.expires_at,
        )

    def verify(self, actor: AuditActor, session_id: str, *, challenge_id: str, code: str) -> StepUpGrant:
        if not actor.id:
            raise PermissionError("Sign in to verify your identity")
        now = self._clock()
        challenge = self._challenges.get_challenge(challenge_id, user_id=actor.id)
        if (
            challenge is None
            or not challenge.is_usable(now)
            or not hmac.compare_digest(challenge.code_hash, _hash_code(code.strip()))
        ):
            raise ValidationFailed(INVALID_CODE_MESSAGE, field="code")
        if not self._challenges.mark_used(challenge.id, now=now):
            raise ValidationFailed(INVALID_CODE_MESSAGE, field="code")

        grant = StepUpGrant(
            purpose=challenge.purpose,
            resource_id=challenge.resource_id,
            expires_at=now + self._session_ttl,
        )
        self._grants.add(session_id, grant, now)
        logger.info(
            "Step-up granted purpose=%s resource=%s user=%s until=%s",
            grant.purpose.value,
            grant.resource_id,
            actor.id,
            grant.expires_at.isoformat(),
        )
        return grant

    def get_grant(self, session_id: str, purpose: StepUpPurpose, resource_id: str) -> Optional[StepUpGrant]:
        return self._grants.find(session_id, purpose, resource_id, self._clock())

    def has_valid_session(self, session_id: str, purpose: StepUpPurpose, resource_id: str) -> bool:
        return self.get_grant(session_id, purpose, resource_id) is not None

    def revoke(self, session_id: str, purpose: StepUpPurpose, resource_id: str) -> int:
        return self._grants.revoke(session_id, purpose, resource_id)

    def revoke_all(self, session_id: str) -> int:
        return self._grants.revoke_all(session_id)

    def reveal_broker_secret(
        self,
        actor: AuditActor,
        session_id: str,
        *,
        broker_account_id: str,
        field: SecretField,
    ) -> RevealedSecret:
        if actor.role not in {role.value for role in STAFF_ROLES}:
            raise PermissionError("Only staff can view broker credentials")

        grant = self.get_grant(session_id, field.purpose, broker_account_id)
        if grant is None:
            raise StepUpRequiredError(field.purpose.value, broker_account_id)

        broker = self._brokers.get_broker_account(broker_account_id)
        if broker is None:
            raise LookupError(f"Broker account {broker_account_id} not found")

        value = broker.account_password if field == SecretField.PASSWORD else broker.api_key
        self._audit_logger.record(
            AuditEntry.build(
                AuditAction.SENSITIVE_DATA_ACCESS,
                actor,
                target_id=broker_account_id,
                target_description=f"{broker.broker_name} account {broker.account_number}",
                details={"field": field.value, "owner_id": broker.user_id},
                timestamp=self._clock(),
            )
        )
        return RevealedSecret(
            broker_account_id=broker_account_id,
            field=field,
            value=value,
            grant_expires_at=grant.expires_at,
        )
