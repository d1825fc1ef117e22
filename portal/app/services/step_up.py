"""Application wiring for step-up verification."""
from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from ...config import get_config
from ..step_up import InMemoryGrantStore, StepUpService
from ..step_up.repository import PostgresChallengeRepository
from .audit import get_audit_repository
from .enrollments import get_enrollment_repository
from .mail import get_email_config, get_email_provider


@lru_cache(maxsize=1)
def get_grant_store() -> InMemoryGrantStore:
    return InMemoryGrantStore()


@lru_cache(maxsize=1)
def get_step_up_service() -> StepUpService:
    config = get_config()
    return StepUpService(
        challenges=PostgresChallengeRepository(),
        grants=get_grant_store(),
        brokers=get_enrollment_repository(),
        audit_logger=get_audit_repository(),
        email_provider=get_email_provider(),
        session_ttl=timedelta(minutes=config.step_up_session_minutes),
        code_ttl=timedelta(minutes=config.step_up_code_minutes),
        product_name=get_email_config().product_name,
    )
