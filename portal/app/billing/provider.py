"""Payment processor integration backed by the Stripe API."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

import stripe

from .models import BillingAddress, InvoiceStatus, InvoiceSummary

logger = logging.getLogger("billing")


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _address_params(address: BillingAddress) -> Dict[str, Any]:
    return {
        "line1": address.line1,
        "line2": address.line2 or "",
        "city": address.city,
        "state": address.state,
        "postal_code": address.zip,
        "country": address.country,
    }


def invoice_from_stripe(invoice: Any) -> InvoiceSummary:
    status = invoice.get("status") or InvoiceStatus.DRAFT.value
    return InvoiceSummary(
        id=invoice["id"],
        customer_id=invoice.get("customer"),
        number=invoice.get("number"),
        amount_due=int(invoice.get("amount_due") or 0),
        amount_paid=int(invoice.get("amount_paid") or 0),
        currency=invoice.get("currency") or "usd",
        status=InvoiceStatus(status),
        due_date=_timestamp(invoice.get("due_date")),
        created=_timestamp(invoice.get("created")),
        hosted_invoice_url=invoice.get("hosted_invoice_url"),
        invoice_pdf=invoice.get("invoice_pdf"),
        description=invoice.get("description"),
    )


class StripeBillingProvider:
    """Creates customers and reads invoices through the Stripe SDK.

    Stripe errors propagate; the billing service turns them into generic
    user facing failures.
    """

    name = "stripe"

    def __init__(self, secret_key: str) -> None:
        if not secret_key:
            raise ValueError("STRIPE_SECRET_KEY must be configured for the stripe provider")
        stripe.api_key = secret_key

    def create_customer(
        self,
        *,
        email: str,
        name: Optional[str],
        address: BillingAddress,
        metadata: Dict[str, str],
    ) -> str:
        customer = stripe.Customer.create(
            email=email,
            name=name or None,
            address=_address_params(address),
            metadata=metadata,
        )
        logger.info("Created Stripe customer %s", customer["id"])
        return customer["id"]

    def update_customer(
        self,
        customer_id: str,
        *,
        email: str,
        name: Optional[str],
        address: BillingAddress,
    ) -> None:
        stripe.Customer.modify(
            customer_id,
            email=email,
            name=name or None,
            address=_address_params(address),
        )

    def update_customer_email(self, customer_id: str, email: str) -> None:
        stripe.Customer.modify(customer_id, email=email)
        logger.info("Updated email on Stripe customer %s", customer_id)

    def list_invoices(self, customer_id: str, *, limit: int = 50) -> Sequence[InvoiceSummary]:
        invoices = stripe.Invoice.list(customer=customer_id, limit=limit)
        return [invoice_from_stripe(invoice) for invoice in invoices.data]

    def retrieve_invoice(self, invoice_id: str) -> Optional[InvoiceSummary]:
        try:
            invoice = stripe.Invoice.retrieve(invoice_id)
        except stripe.InvalidRequestError as exc:
            if getattr(exc, "code", None) == "resource_missing":
                return None
            raise
        return invoice_from_stripe(invoice)
