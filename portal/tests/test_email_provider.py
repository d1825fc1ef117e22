from __future__ import annotations

from portal.mail import (
    LogOnlyProvider,
    SmtpProvider,
    compose_message,
    create_email_provider,
    load_email_config,
    render_email_changed,
    render_password_reset,
    render_verification_code,
)
from portal.mail import providers


class FakeSMTP:
    sessions = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.calls = []
        self.messages = []
        FakeSMTP.sessions.append(self)

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def send_message(self, message):
        self.messages.append(message)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def test_default_provider_only_logs():
    provider = create_email_provider(load_email_config(env={}))

    assert isinstance(provider, LogOnlyProvider)
    assert provider.sender == "noreply@example.com"


def test_unknown_provider_falls_back_to_log_only():
    provider = create_email_provider(load_email_config(env={"EMAIL_PROVIDER": "carrier-pigeon"}))

    assert isinstance(provider, LogOnlyProvider)


def test_log_only_provider_keeps_subject_but_not_body():
    provider = LogOnlyProvider("noreply@example.com")

    provider.send_email("user@example.com", "Your code", "<p>482913</p>", "482913")

    assert list(provider.outbox) == [("user@example.com", "Your code")]


def test_smtp_provider_configuration():
    config = load_email_config(
        env={
            "EMAIL_PROVIDER": "smtp",
            "SMTP_HOST": "mail.example.com",
            "SMTP_PORT": "2525",
            "SMTP_USER": "mailer",
            "SMTP_PASS": "secret",
            "SMTP_USE_TLS": "false",
            "FROM_EMAIL": "notifications@example.com",
        }
    )
    provider = create_email_provider(config)

    assert isinstance(provider, SmtpProvider)
    assert (provider.host, provider.port) == ("mail.example.com", 2525)
    assert provider.username == "mailer"
    assert provider.starttls is False
    assert provider.sender == "notifications@example.com"


def test_smtp_provider_upgrades_and_authenticates(monkeypatch):
    FakeSMTP.sessions = []
    monkeypatch.setattr(providers.smtplib, "SMTP", FakeSMTP)
    provider = SmtpProvider("noreply@example.com", "mail.example.com", 587, username="mailer", password="secret")

    provider.send_email("user@example.com", "Hello", "<p>hi</p>", "hi")

    session = FakeSMTP.sessions[-1]
    assert session.calls == ["starttls", ("login", "mailer")]
    assert session.messages[0]["To"] == "user@example.com"


def test_smtp_provider_skips_login_without_credentials(monkeypatch):
    FakeSMTP.sessions = []
    monkeypatch.setattr(providers.smtplib, "SMTP", FakeSMTP)

    SmtpProvider("noreply@example.com", "relay.internal", 25, starttls=False).send_email(
        "user@example.com", "Hello", "<p>hi</p>", "hi"
    )

    assert FakeSMTP.sessions[-1].calls == []


def test_composed_message_carries_both_bodies():
    message = compose_message("noreply@example.com", "user@example.com", "Hello", "<p>hi</p>", "hi")

    assert message.get_content_type() == "multipart/alternative"
    assert [part.get_content_type() for part in message.iter_parts()] == ["text/plain", "text/html"]
    assert message["Subject"] == "Hello"


def test_verification_code_template_includes_code():
    subject, text_body, html_body = render_verification_code(
        {"recipient_name": "Pat", "product_name": "Client Portal", "code": "482913", "expires_minutes": 10}
    )

    assert subject
    assert "482913" in text_body
    assert "482913" in html_body


def test_password_reset_template_includes_link():
    _, text_body, _ = render_password_reset(
        {
            "recipient_name": "Pat",
            "product_name": "Client Portal",
            "reset_url": "https://portal.example.com/reset-password?token=abc",
            "expires_at": "2024-03-01T10:00:00+00:00",
        }
    )

    assert "https://portal.example.com/reset-password?token=abc" in text_body


def test_email_changed_template_names_new_address():
    subject, text_body, html_body = render_email_changed(
        {"recipient_name": "Pat", "product_name": "Client Portal", "new_email": "pat@new.example.com"}
    )

    assert subject == "Your Email Address Has Been Changed"
    assert "pat@new.example.com" in text_body
    assert "pat@new.example.com" in html_body
