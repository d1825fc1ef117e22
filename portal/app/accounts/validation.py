"""Field validation shared by signup, profile and billing forms."""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

from ..errors import ValidationFailed

MIN_SIGNUP_AGE = 18
MIN_PASSWORD_LENGTH = 6

_ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")

ZIP_MESSAGE = "Please enter a valid ZIP code (12345 or 12345-6789)"
PHONE_MESSAGE = "Please enter a valid 10-digit phone number"


def validate_zip(value: Optional[str]) -> str:
    candidate = (value or "").strip()
    if not _ZIP_PATTERN.match(candidate):
        raise ValidationFailed(ZIP_MESSAGE, field="zip")
    return candidate


def normalize_phone(value: str) -> str:
    """Return the US number in E.164 form (``+1XXXXXXXXXX``)."""

    digits = "".join(ch for ch in value if ch.isdigit())
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        raise ValidationFailed(PHONE_MESSAGE, field="phone")
    return f"+1{digits}"


def calculate_age(birthdate: date, today: date) -> int:
    years = today.year - birthdate.year
    if (today.month, today.day) < (birthdate.month, birthdate.day):
        years -= 1
    return years


def validate_signup(
    *,
    birthdate: Optional[date],
    password: str,
    confirm_password: str,
    today: date,
) -> None:
    if birthdate is None:
        raise ValidationFailed("Birthdate is required", field="birthdate")
    if calculate_age(birthdate, today) < MIN_SIGNUP_AGE:
        raise ValidationFailed("You must be at least 18 years old to register", field="birthdate")
    validate_new_password(password, confirm_password)


def validate_new_password(password: str, confirm_password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailed("Password must be at least 6 characters", field="password")
    if password != confirm_password:
        raise ValidationFailed("Passwords do not match", field="confirmPassword")
