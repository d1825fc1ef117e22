"""Staff role assignment."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from ..accounts import UserAccount, UserRole
from ..audit import AuditAction, AuditActor, AuditEntry, AuditLogger
from ..errors import ValidationFailed

logger = logging.getLogger(__name__)

SELF_DEMOTION_MESSAGE = "You cannot remove your own admin role."
INVALID_ROLE_MESSAGE = "Invalid role"


class RoleStore(Protocol):
    """Identity store holding each user's application role."""

    def get_user_by_id(self, user_id: str) -> Optional[UserAccount]:
        ...

    def set_role(self, user_id: str, role: Optional[UserRole]) -> Optional[UserAccount]:
        ...


def parse_role(value: Optional[str]) -> Optional[UserRole]:
    if value is None or value == "":
        return None
    try:
        return UserRole(value)
    except ValueError as exc:
        raise ValidationFailed(INVALID_ROLE_MESSAGE, field="role") from exc


class RoleService:
    def __init__(self, store: RoleStore, audit_logger: AuditLogger) -> None:
        self._store = store
        self._audit_logger = audit_logger

    def assign_role(
        self,
        *,
        actor: AuditActor,
        target_user_id: str,
        role: Optional[str],
    ) -> UserAccount:
        """Assign ``role`` (or clear it with ``None``) on behalf of an admin.

        Checks run before the identity store is touched, so a rejected
        request leaves no trace besides the raised error.
        """

        if actor.role != UserRole.ADMIN.value:
            raise PermissionError("Only admins can assign roles")
        new_role = parse_role(role)
        if actor.id == target_user_id and new_role != UserRole.ADMIN:
            raise ValidationFailed(SELF_DEMOTION_MESSAGE, field="role")

        target = self._store.get_user_by_id(target_user_id)
        if target is None:
            raise LookupError(f"User {target_user_id} not found")

        updated = self._store.set_role(target_user_id, new_role)
        if updated is None:
            raise LookupError(f"User {target_user_id} not found")

        old_value = target.role.value if target.role else None
        new_value = new_role.value if new_role else None
        self._audit_logger.record(
            AuditEntry.build(
                AuditAction.ROLE_CHANGE,
                actor,
                target_id=target_user_id,
                target_description=target.email,
                details={"old_role": old_value, "new_role": new_value},
            )
        )
        logger.info("Role for user %s changed from %s to %s by %s", target_user_id, old_value, new_value, actor.id)
        return updated
