"""Staff role management."""

from .service import INVALID_ROLE_MESSAGE, SELF_DEMOTION_MESSAGE, RoleService, RoleStore, parse_role

__all__ = ["INVALID_ROLE_MESSAGE", "SELF_DEMOTION_MESSAGE", "RoleService", "RoleStore", "parse_role"]
