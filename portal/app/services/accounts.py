"""Application wiring for accounts and role management."""
from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from ...config import get_config
from ..accounts import AccountAdminService, AccountService
from ..accounts.repository import PostgresAccountRepository
from ..roles import RoleService
from .audit import get_audit_repository
from .billing import get_billing_service
from .mail import get_email_config, get_email_provider


@lru_cache(maxsize=1)
def get_account_repository() -> PostgresAccountRepository:
    return PostgresAccountRepository()


@lru_cache(maxsize=1)
def get_account_service() -> AccountService:
    email_config = get_email_config()
    return AccountService(
        get_account_repository(),
        email_provider=get_email_provider(),
        app_base_url=email_config.app_base_url,
        product_name=email_config.product_name,
        reset_ttl=timedelta(minutes=get_config().password_reset_minutes),
    )


@lru_cache(maxsize=1)
def get_role_service() -> RoleService:
    return RoleService(get_account_repository(), get_audit_repository())


@lru_cache(maxsize=1)
def get_account_admin_service() -> AccountAdminService:
    return AccountAdminService(
        get_account_service(),
        get_account_repository(),
        get_billing_service(),
        get_audit_repository(),
        email_provider=get_email_provider(),
        product_name=get_email_config().product_name,
    )
