"""Runtime configuration for the portal API."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:5174",
    "http://localhost:5175",
)


@dataclass(frozen=True)
class DatabaseConfig:
    host: str
    port: int
    dbname: str
    user: str
    password: str
    connect_timeout: int

    def connect_kwargs(self) -> dict:
        return {
            "host": self.host,
            "port": self.port,
            "dbname": self.dbname,
            "user": self.user,
            "password": self.password,
            "connect_timeout": self.connect_timeout,
        }


@dataclass(frozen=True)
class PortalConfig:
    """Settings shared by the API, the auth layer and the domain services."""

    database: DatabaseConfig
    jwt_secret_key: str
    jwt_algorithm: str
    jwt_exp_minutes: int
    session_cookie_name: str
    session_cookie_secure: bool
    cors_origins: Tuple[str, ...]
    step_up_session_minutes: int
    step_up_code_minutes: int
    password_reset_minutes: int
    payment_provider: str
    stripe_secret_key: Optional[str]
    agreement_audit_hash: bool


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_origins(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return DEFAULT_CORS_ORIGINS
    origins = tuple(origin.strip().rstrip("/") for origin in value.split(",") if origin.strip())
    return origins or DEFAULT_CORS_ORIGINS


def load_portal_config(env: Optional[Mapping[str, str]] = None) -> PortalConfig:
    """Load :class:`PortalConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    database = DatabaseConfig(
        host=env_mapping.get("DB_HOST", "127.0.0.1"),
        port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        dbname=env_mapping.get("DB_NAME", "portal_db"),
        user=env_mapping.get("DB_USER", "portal_user"),
        password=env_mapping.get("DB_PASSWORD", "portal_pass"),
        connect_timeout=max(1, _to_int(env_mapping.get("DB_CONNECT_TIMEOUT"), default=5)),
    )

    payment_provider = (env_mapping.get("PAYMENT_PROVIDER") or "sandbox").strip().lower() or "sandbox"

    return PortalConfig(
        database=database,
        jwt_secret_key=env_mapping.get("JWT_SECRET_KEY", "dev-secret-change-me"),
        jwt_algorithm=env_mapping.get("JWT_ALGORITHM", "HS256"),
        jwt_exp_minutes=max(1, _to_int(env_mapping.get("JWT_EXP_MINUTES"), default=60 * 24)),
        session_cookie_name=env_mapping.get("SESSION_COOKIE_NAME", "session"),
        session_cookie_secure=_to_bool(env_mapping.get("SESSION_COOKIE_SECURE"), default=False),
        cors_origins=_to_origins(env_mapping.get("CORS_ORIGINS")),
        step_up_session_minutes=max(1, _to_int(env_mapping.get("STEP_UP_SESSION_MINUTES"), default=5)),
        step_up_code_minutes=max(1, _to_int(env_mapping.get("STEP_UP_CODE_MINUTES"), default=10)),
        password_reset_minutes=max(5, _to_int(env_mapping.get("PASSWORD_RESET_TOKEN_TTL_MINUTES"), default=60)),
        payment_provider=payment_provider,
        stripe_secret_key=env_mapping.get("STRIPE_SECRET_KEY") or None,
        agreement_audit_hash=_to_bool(env_mapping.get("AGREEMENT_AUDIT_HASH"), default=True),
    )


_config: Optional[PortalConfig] = None


def get_config() -> PortalConfig:
    """Return the process-wide configuration, loading it on first use."""

    global _config
    if _config is None:
        _config = load_portal_config()
    return _config


def set_config(config: Optional[PortalConfig]) -> None:
    global _config
    _config = config
