"""Application wiring for the audit log."""
from __future__ import annotations

from functools import lru_cache

from ..audit.repository import PostgresAuditRepository


@lru_cache(maxsize=1)
def get_audit_repository() -> PostgresAuditRepository:
    return PostgresAuditRepository()
