from __future__ import annotations

import re
from datetime import date

import pytest

from portal.app.accounts import AccountService, ProfileUpdate, SignupRequest, UserAccount
from portal.app.accounts.validation import (
    PHONE_MESSAGE,
    ZIP_MESSAGE,
    calculate_age,
    normalize_phone,
    validate_zip,
)
from portal.app.errors import RemoteServiceError, ValidationFailed
from portal.tests.fakes import FakeClock, InMemoryAccountRepository, PlainHasher, RecordingEmailProvider

_TOKEN_PATTERN = re.compile(r"token=([\w-]+)")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryAccountRepository:
    return InMemoryAccountRepository()


@pytest.fixture
def email() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def accounts(repository, email, clock) -> AccountService:
    return AccountService(
        repository,
        hasher=PlainHasher(),
        email_provider=email,
        app_base_url="https://portal.example.com/",
        clock=clock,
    )


def _signup(**overrides) -> SignupRequest:
    values = {
        "email": "user@example.com",
        "password": "secret1",
        "confirmPassword": "secret1",
        "birthdate": date(1990, 5, 1),
        "firstName": " Pat ",
    }
    values.update(overrides)
    return SignupRequest(**values)


@pytest.mark.parametrize("value", ["12345", "12345-6789", " 12345 "])
def test_validate_zip_accepts_us_formats(value):
    assert validate_zip(value) == value.strip()


@pytest.mark.parametrize("value", ["1234", "123456", "12345-67", "", None])
def test_validate_zip_rejects_other_formats(value):
    with pytest.raises(ValidationFailed) as exc:
        validate_zip(value)

    assert exc.value.message == ZIP_MESSAGE


@pytest.mark.parametrize("value", ["(555) 123-4567", "555.123.4567", "+1 555 123 4567"])
def test_normalize_phone_returns_e164(value):
    assert normalize_phone(value) == "+15551234567"


def test_normalize_phone_rejects_short_numbers():
    with pytest.raises(ValidationFailed) as exc:
        normalize_phone("123-4567")

    assert exc.value.message == PHONE_MESSAGE


def test_calculate_age_counts_birthday():
    assert calculate_age(date(2006, 3, 1), date(2024, 3, 1)) == 18
    assert calculate_age(date(2006, 3, 2), date(2024, 3, 1)) == 17


def test_signup_stores_hashed_password(accounts, repository):
    account = accounts.signup(_signup())

    assert account.first_name == "Pat"
    assert repository.password_hashes[account.id] == "hashed:secret1"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"birthdate": None}, "Birthdate is required"),
        ({"birthdate": date(2010, 1, 1)}, "You must be at least 18 years old to register"),
        ({"password": "abc", "confirmPassword": "abc"}, "Password must be at least 6 characters"),
        ({"confirmPassword": "secret2"}, "Passwords do not match"),
    ],
)
def test_signup_validation_messages(accounts, overrides, message):
    with pytest.raises(ValidationFailed) as exc:
        accounts.signup(_signup(**overrides))

    assert exc.value.message == message


def test_authenticate_checks_password(accounts):
    created = accounts.signup(_signup())

    assert accounts.authenticate("user@example.com", "secret1").id == created.id
    with pytest.raises(PermissionError):
        accounts.authenticate("user@example.com", "wrong")
    with pytest.raises(PermissionError):
        accounts.authenticate("nobody@example.com", "secret1")


def test_update_profile_normalizes_phone(accounts, repository):
    repository.add_user(UserAccount(id="u1", email="user@example.com"))

    account = accounts.update_profile(
        "u1", ProfileUpdate(firstName="Pat", lastName="Lee", phone="(555) 123-4567")
    )

    assert account.phone == "+15551234567"
    assert account.profile_complete


def test_update_profile_for_unknown_user(accounts):
    with pytest.raises(LookupError):
        accounts.update_profile("ghost", ProfileUpdate(firstName="Pat"))


def test_password_reset_round_trip(accounts, repository, email):
    created = accounts.signup(_signup())

    accounts.request_password_reset("user@example.com")

    message = email.sent[-1]
    assert message["to"] == "user@example.com"
    assert "https://portal.example.com/reset-password?token=" in message["text"]
    token = _TOKEN_PATTERN.search(message["text"]).group(1)

    accounts.confirm_password_reset(token, "newpass", "newpass")

    assert repository.password_hashes[created.id] == "hashed:newpass"
    with pytest.raises(ValidationFailed):
        accounts.confirm_password_reset(token, "again1", "again1")


def test_password_reset_token_expires(accounts, email, clock):
    accounts.signup(_signup())
    accounts.request_password_reset("user@example.com")
    token = _TOKEN_PATTERN.search(email.sent[-1]["text"]).group(1)

    clock.advance(minutes=61)

    with pytest.raises(ValidationFailed) as exc:
        accounts.confirm_password_reset(token, "newpass", "newpass")
    assert exc.value.message == "This password reset link is invalid or has expired"


def test_password_reset_for_unknown_email_is_silent(accounts, email, repository):
    accounts.request_password_reset("nobody@example.com")

    assert email.sent == []
    assert repository.reset_tokens == {}


def test_password_reset_delivery_failure(repository, clock):
    service = AccountService(
        repository,
        hasher=PlainHasher(),
        email_provider=RecordingEmailProvider(fail=True),
        clock=clock,
    )
    service.signup(_signup())

    with pytest.raises(RemoteServiceError):
        service.request_password_reset("user@example.com")
