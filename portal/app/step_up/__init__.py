"""Step-up re-verification for sensitive data."""

from .models import (
    ChallengeReceipt,
    DeliveryMethod,
    RevealedSecret,
    SecretField,
    StepUpGrant,
    StepUpPurpose,
    VerificationChallenge,
    mask_email,
)
from .service import INVALID_CODE_MESSAGE, ChallengeRepository, StepUpService, generate_code
from .store import GrantStore, InMemoryGrantStore

__all__ = [
    "ChallengeReceipt",
    "ChallengeRepository",
    "DeliveryMethod",
    "GrantStore",
    "INVALID_CODE_MESSAGE",
    "InMemoryGrantStore",
    "RevealedSecret",
    "SecretField",
    "StepUpGrant",
    "StepUpPurpose",
    "StepUpService",
    "VerificationChallenge",
    "generate_code",
    "mask_email",
]
