"""Process-wide email provider."""
from __future__ import annotations

from functools import lru_cache

from ...mail import EmailConfig, EmailProvider, create_email_provider, load_email_config


@lru_cache(maxsize=1)
def get_email_config() -> EmailConfig:
    return load_email_config()


@lru_cache(maxsize=1)
def get_email_provider() -> EmailProvider:
    return create_email_provider(get_email_config())
