"""Billing domain: processor customers and invoices."""

from .models import BillingAddress, BillingCustomer, InvoiceStatus, InvoiceSummary
from .service import (
    INVOICE_LIMIT,
    INVOICE_NOT_ACCESSIBLE_MESSAGE,
    BillingProvider,
    BillingRepository,
    BillingService,
    validate_address,
)

__all__ = [
    "BillingAddress",
    "BillingCustomer",
    "BillingProvider",
    "BillingRepository",
    "BillingService",
    "INVOICE_LIMIT",
    "INVOICE_NOT_ACCESSIBLE_MESSAGE",
    "InvoiceStatus",
    "InvoiceSummary",
    "validate_address",
]
