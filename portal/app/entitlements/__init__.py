"""Entitlement calculation for catalog services."""

from .models import EntitlementResult, EntitlementStatus, ServiceAction, decide_action
from .service import AgreementReader, EntitlementCalculator, ServiceLookup

__all__ = [
    "AgreementReader",
    "EntitlementCalculator",
    "EntitlementResult",
    "EntitlementStatus",
    "ServiceAction",
    "ServiceLookup",
    "decide_action",
]
