"""Domain models for the service catalog."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PricingType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    SUBSCRIPTION = "subscription"


class PricingPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one-time"


class CardPeriod(str, Enum):
    """Billing period vocabulary understood by the catalog cards."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Acknowledgment(BaseModel):
    """A single item the customer must confirm before enrolling."""

    id: str
    text: str
    required: bool = True

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ServiceDefinition(BaseModel):
    """Catalog entry describing a subscribable service."""

    id: str
    name: str = Field(description="Stable identifier referenced by customer agreements")
    display_name: str
    description: Optional[str] = None
    display_description: Optional[str] = None
    version: str = "1.0"
    enabled: bool = True
    requires_agreement: bool = True
    terms_content: str = ""
    terms_updated_at: Optional[datetime] = None
    features: Tuple[str, ...] = tuple()
    pricing_type: PricingType = PricingType.FIXED
    pricing_amount: Optional[Decimal] = None
    pricing_percentage: Optional[Decimal] = None
    pricing_period: PricingPeriod = PricingPeriod.MONTHLY
    max_instances_per_user: int = Field(default=1, ge=1)
    acknowledgments: Tuple[Acknowledgment, ...] = tuple()
    settings: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("max_instances_per_user", mode="before")
    @classmethod
    def _default_instances(cls, value: Any) -> Any:
        return 1 if value is None else value

    @property
    def summary(self) -> str:
        return self.display_description or self.description or ""


class ServiceCard(BaseModel):
    """Presentation friendly projection of a service for the catalog grid."""

    id: str
    title: str
    description: str
    pricing_type: PricingType
    price: Optional[Decimal] = None
    percentage: Optional[Decimal] = None
    period: CardPeriod
    price_label: str
    features: List[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ServiceDefinitionInput(BaseModel):
    """Fields staff may set when creating or editing a service."""

    name: str = Field(min_length=1, max_length=100)
    display_name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    display_description: Optional[str] = None
    version: str = Field(default="1.0", min_length=1)
    enabled: bool = True
    requires_agreement: bool = True
    terms_content: str = ""
    features: List[str] = Field(default_factory=list)
    pricing_type: PricingType = PricingType.FIXED
    pricing_amount: Optional[Decimal] = Field(default=None, ge=0)
    pricing_percentage: Optional[Decimal] = Field(default=None, ge=0, le=100)
    pricing_period: PricingPeriod = PricingPeriod.MONTHLY
    max_instances_per_user: int = Field(default=1, ge=1)
    acknowledgments: List[Acknowledgment] = Field(default_factory=list)
    settings: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("name")
    @classmethod
    def _normalize_name(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized or any(ch.isspace() for ch in normalized):
            raise ValueError("Service name must be a single word identifier")
        return normalized
