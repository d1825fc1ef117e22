"""Application wiring for the billing service."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Dict, List, Optional, Sequence
from uuid import uuid4

from ...config import get_config
from ..billing import BillingAddress, BillingProvider, BillingService, InvoiceStatus, InvoiceSummary
from ..billing.provider import StripeBillingProvider
from ..billing.repository import PostgresBillingRepository

logger = logging.getLogger("billing")


class LocalSandboxBillingProvider:
    """Minimal provider implementation for local development and tests."""

    name = "sandbox"

    def __init__(self) -> None:
        self.customers: Dict[str, Dict[str, object]] = {}
        self.invoices: Dict[str, InvoiceSummary] = {}

    def create_customer(
        self,
        *,
        email: str,
        name: Optional[str],
        address: BillingAddress,
        metadata: Dict[str, str],
    ) -> str:
        customer_id = f"cus_{uuid4().hex[:14]}"
        self.customers[customer_id] = {"email": email, "name": name, "address": address, "metadata": metadata}
        logger.info("Sandbox customer %s created", customer_id)
        return customer_id

    def update_customer(
        self,
        customer_id: str,
        *,
        email: str,
        name: Optional[str],
        address: BillingAddress,
    ) -> None:
        if customer_id not in self.customers:
            raise LookupError(f"Unknown sandbox customer {customer_id}")
        self.customers[customer_id].update({"email": email, "name": name, "address": address})

    def update_customer_email(self, customer_id: str, email: str) -> None:
        if customer_id not in self.customers:
            raise LookupError(f"Unknown sandbox customer {customer_id}")
        self.customers[customer_id]["email"] = email

    def issue_invoice(
        self,
        customer_id: str,
        *,
        amount_due: int,
        status: InvoiceStatus = InvoiceStatus.OPEN,
        description: Optional[str] = None,
    ) -> InvoiceSummary:
        invoice_id = f"in_{uuid4().hex[:14]}"
        now = datetime.now(timezone.utc)
        invoice = InvoiceSummary(
            id=invoice_id,
            customer_id=customer_id,
            number=f"SBX-{len(self.invoices) + 1:04d}",
            amount_due=amount_due,
            amount_paid=amount_due if status == InvoiceStatus.PAID else 0,
            status=status,
            due_date=now + timedelta(days=30),
            created=now,
            hosted_invoice_url=f"https://billing.local/invoices/{invoice_id}",
            invoice_pdf=f"https://billing.local/invoices/{invoice_id}.pdf",
            description=description,
        )
        self.invoices[invoice_id] = invoice
        return invoice

    def list_invoices(self, customer_id: str, *, limit: int = 50) -> Sequence[InvoiceSummary]:
        matching: List[InvoiceSummary] = [
            invoice
            for invoice in sorted(self.invoices.values(), key=lambda inv: inv.created, reverse=True)
            if invoice.customer_id == customer_id
        ]
        return matching[:limit]

    def retrieve_invoice(self, invoice_id: str) -> Optional[InvoiceSummary]:
        return self.invoices.get(invoice_id)


def create_billing_provider() -> BillingProvider:
    config = get_config()
    if config.payment_provider == "stripe":
        return StripeBillingProvider(config.stripe_secret_key or "")
    return LocalSandboxBillingProvider()


@lru_cache(maxsize=1)
def get_billing_service() -> BillingService:
    return BillingService(PostgresBillingRepository(), create_billing_provider())
