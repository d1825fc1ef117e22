"""Outbound email configuration, providers and templates."""

from .config import EmailConfig, load_email_config
from .providers import EmailProvider, LogOnlyProvider, SmtpProvider, compose_message, create_email_provider
from .renderer import render_email_changed, render_password_reset, render_verification_code

__all__ = [
    "EmailConfig",
    "EmailProvider",
    "LogOnlyProvider",
    "SmtpProvider",
    "compose_message",
    "create_email_provider",
    "load_email_config",
    "render_email_changed",
    "render_password_reset",
    "render_verification_code",
]
