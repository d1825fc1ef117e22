"""API schemas for billing endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing import BillingAddress, BillingCustomer, InvoiceStatus, InvoiceSummary


class BillingProfileResponse(BaseModel):
    address: Optional[BillingAddress] = None
    billing_validated_at: Optional[datetime] = Field(alias="billingValidatedAt", default=None)
    has_customer: bool = Field(alias="hasCustomer", default=False)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_customer(cls, customer: Optional[BillingCustomer]) -> "BillingProfileResponse":
        if customer is None:
            return cls()
        return cls(
            address=customer.address,
            billing_validated_at=customer.billing_validated_at,
            has_customer=True,
        )


class InvoiceOut(BaseModel):
    id: str
    number: Optional[str] = None
    amount_due: int = Field(alias="amountDue")
    amount_paid: int = Field(alias="amountPaid")
    currency: str
    status: InvoiceStatus
    due_date: Optional[datetime] = Field(alias="dueDate", default=None)
    created: Optional[datetime] = None
    hosted_invoice_url: Optional[str] = Field(alias="hostedInvoiceUrl", default=None)
    invoice_pdf: Optional[str] = Field(alias="invoicePdf", default=None)
    description: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_invoice(cls, invoice: InvoiceSummary) -> "InvoiceOut":
        return cls(**invoice.model_dump(exclude={"customer_id"}))


class InvoiceListResponse(BaseModel):
    invoices: List[InvoiceOut]


class PaymentUrlResponse(BaseModel):
    url: str
