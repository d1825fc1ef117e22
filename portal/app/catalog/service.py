"""Read access to the service catalog plus staff maintenance operations."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from .models import (
    CardPeriod,
    PricingPeriod,
    PricingType,
    ServiceCard,
    ServiceDefinition,
    ServiceDefinitionInput,
)

logger = logging.getLogger(__name__)

_CARD_PERIODS = {
    PricingPeriod.WEEKLY: CardPeriod.WEEKLY,
    PricingPeriod.MONTHLY: CardPeriod.MONTHLY,
}


class CatalogRepository(Protocol):
    """Data access layer for service definitions."""

    def list_enabled_services(self) -> Sequence[ServiceDefinition]:
        ...

    def list_all_services(self) -> Sequence[ServiceDefinition]:
        ...

    def get_service_by_name(self, name: str) -> Optional[ServiceDefinition]:
        ...

    def get_services_by_names(self, names: Sequence[str]) -> Sequence[ServiceDefinition]:
        ...

    def create_service(self, payload: ServiceDefinitionInput) -> ServiceDefinition:
        ...

    def update_service(self, name: str, payload: ServiceDefinitionInput) -> Optional[ServiceDefinition]:
        ...

    def set_enabled(self, name: str, enabled: bool) -> Optional[ServiceDefinition]:
        ...


def _format_amount(amount: Decimal) -> str:
    quantized = amount.quantize(Decimal("0.01"))
    return f"${quantized:,.2f}"


def to_card(service: ServiceDefinition) -> ServiceCard:
    """Project a definition into the shape rendered on catalog cards."""

    period = _CARD_PERIODS.get(service.pricing_period, CardPeriod.MONTHLY)
    if service.pricing_type == PricingType.PERCENTAGE and service.pricing_percentage is not None:
        price_label = f"{service.pricing_percentage.normalize():f}% of profits"
    elif service.pricing_amount is not None:
        price_label = f"{_format_amount(service.pricing_amount)}/{period.value}"
    else:
        price_label = "Contact us"
    return ServiceCard(
        id=service.name,
        title=service.display_name,
        description=service.summary,
        pricing_type=service.pricing_type,
        price=service.pricing_amount,
        percentage=service.pricing_percentage,
        period=period,
        price_label=price_label,
        features=list(service.features),
    )


class CatalogService:
    """Pure reads over the catalog; no caching beyond what callers layer on."""

    def __init__(self, repository: CatalogRepository) -> None:
        self._repository = repository

    def list_enabled_services(self) -> Sequence[ServiceDefinition]:
        return list(self._repository.list_enabled_services())

    def get_service_by_name(self, name: str) -> ServiceDefinition:
        service = self._repository.get_service_by_name(name)
        if service is None:
            raise LookupError(f"Service {name!r} not found")
        return service

    def get_services_by_names(self, names: Sequence[str]) -> Sequence[ServiceDefinition]:
        unique = sorted({name for name in names if name})
        return list(self._repository.get_services_by_names(unique))

    def list_cards(self) -> Sequence[ServiceCard]:
        return [to_card(service) for service in self.list_enabled_services()]

    # Staff maintenance

    def list_all_services(self) -> Sequence[ServiceDefinition]:
        return list(self._repository.list_all_services())

    def create_service(self, payload: ServiceDefinitionInput) -> ServiceDefinition:
        self._validate_pricing(payload)
        service = self._repository.create_service(payload)
        logger.info("Created service %s version=%s", service.name, service.version)
        return service

    def update_service(self, name: str, payload: ServiceDefinitionInput) -> ServiceDefinition:
        if payload.name != name:
            raise ValueError("Service name cannot be changed")
        self._validate_pricing(payload)
        service = self._repository.update_service(name, payload)
        if service is None:
            raise LookupError(f"Service {name!r} not found")
        logger.info("Updated service %s version=%s", service.name, service.version)
        return service

    def set_enabled(self, name: str, enabled: bool) -> ServiceDefinition:
        service = self._repository.set_enabled(name, enabled)
        if service is None:
            raise LookupError(f"Service {name!r} not found")
        logger.info("Service %s enabled=%s", name, enabled)
        return service

    @staticmethod
    def _validate_pricing(payload: ServiceDefinitionInput) -> None:
        if payload.pricing_type == PricingType.PERCENTAGE:
            if payload.pricing_percentage is None:
                raise ValueError("Percentage pricing requires a percentage")
        elif payload.pricing_amount is None:
            raise ValueError("Fixed pricing requires an amount")
        ack_ids = [ack.id for ack in payload.acknowledgments]
        if len(set(ack_ids)) != len(ack_ids):
            raise ValueError("Acknowledgment ids must be unique")
