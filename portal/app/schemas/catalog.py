"""API schemas for the customer catalog and staff service maintenance."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..catalog import Acknowledgment, CardPeriod, PricingPeriod, PricingType, ServiceCard, ServiceDefinition
from ..entitlements import EntitlementResult, EntitlementStatus, ServiceAction


class EntitlementOut(BaseModel):
    status: EntitlementStatus
    agreement_id: Optional[str] = Field(alias="agreementId", default=None)
    enrollment_count: int = Field(alias="enrollmentCount")
    max_instances: int = Field(alias="maxInstances")
    limit_reached: bool = Field(alias="limitReached")
    action: ServiceAction
    action_label: str = Field(alias="actionLabel")
    action_enabled: bool = Field(alias="actionEnabled")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: EntitlementResult) -> "EntitlementOut":
        return cls(
            status=result.status,
            agreement_id=result.agreement_id,
            enrollment_count=result.enrollment_count,
            max_instances=result.max_instances,
            limit_reached=result.limit_reached,
            action=result.action,
            action_label=result.action.label,
            action_enabled=result.action.enabled,
        )


class CatalogCard(BaseModel):
    id: str
    title: str
    description: str
    pricing_type: PricingType = Field(alias="pricingType")
    price: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    period: CardPeriod
    price_label: str = Field(alias="priceLabel")
    features: List[str] = Field(default_factory=list)
    entitlement: Optional[EntitlementOut] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_card(cls, card: ServiceCard, entitlement: Optional[EntitlementResult] = None) -> "CatalogCard":
        return cls(
            id=card.id,
            title=card.title,
            description=card.description,
            pricing_type=card.pricing_type,
            price=card.price,
            percentage=card.percentage,
            period=card.period,
            price_label=card.price_label,
            features=list(card.features),
            entitlement=EntitlementOut.from_result(entitlement) if entitlement else None,
        )


class CatalogResponse(BaseModel):
    items: List[CatalogCard]


class ServiceDetail(BaseModel):
    """Everything the wizard needs to render a service."""

    id: str
    name: str
    display_name: str = Field(alias="displayName")
    description: Optional[str] = None
    display_description: Optional[str] = Field(alias="displayDescription", default=None)
    version: str
    enabled: bool
    requires_agreement: bool = Field(alias="requiresAgreement")
    terms_content: str = Field(alias="termsContent")
    terms_updated_at: Optional[datetime] = Field(alias="termsUpdatedAt", default=None)
    features: List[str]
    pricing_type: PricingType = Field(alias="pricingType")
    pricing_amount: Optional[Decimal] = Field(alias="pricingAmount", default=None)
    pricing_percentage: Optional[Decimal] = Field(alias="pricingPercentage", default=None)
    pricing_period: PricingPeriod = Field(alias="pricingPeriod")
    max_instances_per_user: int = Field(alias="maxInstancesPerUser")
    acknowledgments: List[Acknowledgment]
    settings: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_definition(cls, service: ServiceDefinition) -> "ServiceDetail":
        return cls(
            **service.model_dump(exclude={"features", "acknowledgments"}),
            features=list(service.features),
            acknowledgments=list(service.acknowledgments),
        )


class ServiceListResponse(BaseModel):
    items: List[ServiceDetail]


class ServiceEnabledUpdate(BaseModel):
    enabled: bool
