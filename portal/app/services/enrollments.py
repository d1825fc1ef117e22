"""Application wiring for enrollment and lifecycle management."""
from __future__ import annotations

from functools import lru_cache

from ...config import get_config
from ..enrollments import EnrollmentService
from ..enrollments.repository import PostgresEnrollmentRepository
from .admin_notifications import StoredAdminNotifier
from .audit import get_audit_repository
from .catalog import get_catalog_service


@lru_cache(maxsize=1)
def get_enrollment_repository() -> PostgresEnrollmentRepository:
    return PostgresEnrollmentRepository()


@lru_cache(maxsize=1)
def get_enrollment_service() -> EnrollmentService:
    return EnrollmentService(
        repository=get_enrollment_repository(),
        catalog=get_catalog_service(),
        audit_logger=get_audit_repository(),
        notifier=StoredAdminNotifier(),
        record_terms_hash=get_config().agreement_audit_hash,
    )
