"""Session scoped storage for step-up grants."""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from threading import Lock
from typing import Dict, Optional, Protocol, Set

from .models import StepUpGrant, StepUpPurpose


class GrantStore(Protocol):
    def add(self, session_id: str, grant: StepUpGrant, now: datetime) -> None:
        ...

    def find(self, session_id: str, purpose: StepUpPurpose, resource_id: str, now: datetime) -> Optional[StepUpGrant]:
        ...

    def revoke(self, session_id: str, purpose: StepUpPurpose, resource_id: str) -> int:
        ...

    def revoke_all(self, session_id: str) -> int:
        ...


class InMemoryGrantStore:
    """Keeps each session's grants as a set of ``(purpose, resource_id, expires_at)`` tuples."""

    def __init__(self) -> None:
        self._grants: Dict[str, Set[StepUpGrant]] = defaultdict(set)
        self._lock = Lock()

    def add(self, session_id: str, grant: StepUpGrant, now: datetime) -> None:
        """Store ``grant`` and drop expired grants of every session.

        Sessions that end without a logout are reclaimed here once their
        grants lapse.
        """

        with self._lock:
            self._sweep(now)
            grants = self._grants[session_id]
            # A fresh grant replaces any older one for the same scope.
            stale = {g for g in grants if g.purpose == grant.purpose and g.resource_id == grant.resource_id}
            grants.difference_update(stale)
            grants.add(grant)

    def find(
        self, session_id: str, purpose: StepUpPurpose, resource_id: str, now: datetime
    ) -> Optional[StepUpGrant]:
        with self._lock:
            grants = self._grants.get(session_id)
            if grants is None:
                return None
            expired = {grant for grant in grants if grant.expires_at <= now}
            grants.difference_update(expired)
            if not grants:
                del self._grants[session_id]
                return None
            for grant in grants:
                if grant.covers(purpose, resource_id, now):
                    return grant
        return None

    def revoke(self, session_id: str, purpose: StepUpPurpose, resource_id: str) -> int:
        with self._lock:
            grants = self._grants.get(session_id)
            if not grants:
                return 0
            matching = {g for g in grants if g.purpose == purpose and g.resource_id == resource_id}
            grants.difference_update(matching)
            if not grants:
                del self._grants[session_id]
            return len(matching)

    def revoke_all(self, session_id: str) -> int:
        with self._lock:
            grants = self._grants.pop(session_id, set())
        return len(grants)

    def session_count(self) -> int:
        with self._lock:
            return len(self._grants)

    def _sweep(self, now: datetime) -> None:
        for session_id in list(self._grants):
            live = {grant for grant in self._grants[session_id] if grant.expires_at > now}
            if live:
                self._grants[session_id] = live
            else:
                del self._grants[session_id]
