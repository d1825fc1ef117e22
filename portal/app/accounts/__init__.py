"""Customer and staff accounts."""

from .admin import AccountAdminService, EmailChangeResult, IdentityAddress, IdentityCheck, IdentityCheckResult
from .models import STAFF_ROLES, ProfileUpdate, SignupRequest, StoredCredentials, UserAccount, UserRole
from .service import AccountRepository, AccountService, BcryptPasswordHasher, PasswordHasher

__all__ = [
    "AccountAdminService",
    "AccountRepository",
    "AccountService",
    "BcryptPasswordHasher",
    "EmailChangeResult",
    "IdentityAddress",
    "IdentityCheck",
    "IdentityCheckResult",
    "PasswordHasher",
    "ProfileUpdate",
    "STAFF_ROLES",
    "SignupRequest",
    "StoredCredentials",
    "UserAccount",
    "UserRole",
]
