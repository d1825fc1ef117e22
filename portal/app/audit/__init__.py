"""Audit logging domain."""

from typing import Protocol, Sequence, Tuple

from .models import AuditAction, AuditActor, AuditEntry, AuditLogQuery


class AuditLogger(Protocol):
    """Collaborator that persists audit entries."""

    def record(self, entry: AuditEntry) -> AuditEntry:
        ...


class AuditReader(Protocol):
    def list_entries(self, query: AuditLogQuery) -> Tuple[Sequence[AuditEntry], int]:
        ...


__all__ = [
    "AuditAction",
    "AuditActor",
    "AuditEntry",
    "AuditLogQuery",
    "AuditLogger",
    "AuditReader",
]
