"""Billing address, invoice listing and invoice payment links."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Protocol, Sequence

from ..accounts.validation import validate_zip
from ..errors import RemoteServiceError, ValidationFailed
from .models import BillingAddress, BillingCustomer, InvoiceStatus, InvoiceSummary

logger = logging.getLogger("billing")

INVOICE_LIMIT = 50
INVOICE_NOT_ACCESSIBLE_MESSAGE = "Invoice cannot be accessed"


class BillingRepository(Protocol):
    def get_customer(self, user_id: str) -> Optional[BillingCustomer]:
        ...

    def upsert_customer(self, customer: BillingCustomer) -> BillingCustomer:
        ...


class BillingProvider(Protocol):
    """Payment processor operations the portal relies on."""

    def create_customer(
        self,
        *,
        email: str,
        name: Optional[str],
        address: BillingAddress,
        metadata: Dict[str, str],
    ) -> str:
        ...

    def update_customer(
        self,
        customer_id: str,
        *,
        email: str,
        name: Optional[str],
        address: BillingAddress,
    ) -> None:
        ...

    def update_customer_email(self, customer_id: str, email: str) -> None:
        ...

    def list_invoices(self, customer_id: str, *, limit: int = INVOICE_LIMIT) -> Sequence[InvoiceSummary]:
        ...

    def retrieve_invoice(self, invoice_id: str) -> Optional[InvoiceSummary]:
        ...


def validate_address(address: BillingAddress) -> BillingAddress:
    required = {"addressLine1": address.line1, "city": address.city, "state": address.state}
    for field, value in required.items():
        if not (value or "").strip():
            raise ValidationFailed("Please fill in all required address fields", field=field)
    return address.model_copy(
        update={
            "line1": address.line1.strip(),
            "line2": (address.line2 or "").strip() or None,
            "city": address.city.strip(),
            "state": address.state.strip().upper(),
            "zip": validate_zip(address.zip),
        }
    )


class BillingService:
    def __init__(
        self,
        repository: BillingRepository,
        provider: BillingProvider,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._provider = provider
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def get_customer(self, user_id: str) -> Optional[BillingCustomer]:
        return self._repository.get_customer(user_id)

    def save_billing_address(
        self,
        *,
        user_id: str,
        email: str,
        name: Optional[str],
        address: BillingAddress,
    ) -> BillingCustomer:
        """Create the processor customer on first save, update it afterwards."""

        cleaned = validate_address(address)
        existing = self._repository.get_customer(user_id)
        try:
            if existing is None:
                customer_id = self._provider.create_customer(
                    email=email,
                    name=name,
                    address=cleaned,
                    metadata={"user_id": user_id},
                )
            else:
                customer_id = existing.provider_customer_id
                self._provider.update_customer(customer_id, email=email, name=name, address=cleaned)
        except Exception as exc:
            logger.exception("Failed to sync billing customer for user %s", user_id)
            raise RemoteServiceError("Failed to save billing address") from exc

        customer = BillingCustomer(
            user_id=user_id,
            provider_customer_id=customer_id,
            address=cleaned,
            billing_validated_at=self._clock(),
        )
        return self._repository.upsert_customer(customer)

    def sync_customer_email(self, user_id: str, email: str) -> bool:
        """Push a changed login email to the processor customer, if one exists."""

        customer = self._repository.get_customer(user_id)
        if customer is None:
            return False
        try:
            self._provider.update_customer_email(customer.provider_customer_id, email)
        except Exception as exc:
            logger.exception("Failed to update billing email for user %s", user_id)
            raise RemoteServiceError("Failed to update billing email") from exc
        return True

    def list_invoices(self, user_id: str) -> Sequence[InvoiceSummary]:
        customer = self._repository.get_customer(user_id)
        if customer is None:
            return []
        try:
            invoices = self._provider.list_invoices(customer.provider_customer_id, limit=INVOICE_LIMIT)
        except Exception as exc:
            logger.exception("Failed to load invoices for user %s", user_id)
            raise RemoteServiceError("Failed to load invoices") from exc
        return list(invoices)[:INVOICE_LIMIT]

    def get_invoice_payment_url(self, user_id: str, invoice_id: str) -> str:
        customer = self._repository.get_customer(user_id)
        if customer is None:
            raise LookupError(f"Invoice {invoice_id} not found")
        try:
            invoice = self._provider.retrieve_invoice(invoice_id)
        except Exception as exc:
            logger.exception("Failed to load invoice %s for user %s", invoice_id, user_id)
            raise RemoteServiceError("Failed to load invoice") from exc
        if invoice is None or invoice.customer_id != customer.provider_customer_id:
            raise LookupError(f"Invoice {invoice_id} not found")

        if invoice.status == InvoiceStatus.OPEN and invoice.hosted_invoice_url:
            return invoice.hosted_invoice_url
        if invoice.status == InvoiceStatus.PAID and invoice.invoice_pdf:
            return invoice.invoice_pdf
        raise ValidationFailed(INVOICE_NOT_ACCESSIBLE_MESSAGE, field="invoiceId")
