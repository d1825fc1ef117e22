"""Domain models for billing addresses and invoices."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    VOID = "void"
    UNCOLLECTIBLE = "uncollectible"


class BillingAddress(BaseModel):
    line1: str = Field(alias="addressLine1", default="")
    line2: Optional[str] = Field(alias="addressLine2", default=None)
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = "US"

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class BillingCustomer(BaseModel):
    """Link between a portal user and the payment processor customer."""

    user_id: str
    provider_customer_id: str
    address: BillingAddress
    billing_validated_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class InvoiceSummary(BaseModel):
    id: str
    customer_id: Optional[str] = None
    number: Optional[str] = None
    amount_due: int = 0
    amount_paid: int = 0
    currency: str = "usd"
    status: InvoiceStatus = InvoiceStatus.DRAFT
    due_date: Optional[datetime] = None
    created: Optional[datetime] = None
    hosted_invoice_url: Optional[str] = None
    invoice_pdf: Optional[str] = None
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)
