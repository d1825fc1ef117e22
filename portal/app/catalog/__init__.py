"""Service catalog domain."""

from .models import (
    Acknowledgment,
    CardPeriod,
    PricingPeriod,
    PricingType,
    ServiceCard,
    ServiceDefinition,
    ServiceDefinitionInput,
)
from .service import CatalogRepository, CatalogService, to_card

__all__ = [
    "Acknowledgment",
    "CardPeriod",
    "CatalogRepository",
    "CatalogService",
    "PricingPeriod",
    "PricingType",
    "ServiceCard",
    "ServiceDefinition",
    "ServiceDefinitionInput",
    "to_card",
]
