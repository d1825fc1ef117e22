"""API routes exposing billing functionality."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from ..billing import BillingAddress
from ..schemas.billing import BillingProfileResponse, InvoiceListResponse, InvoiceOut, PaymentUrlResponse
from ..services.billing import get_billing_service
from .dependencies import DOMAIN_ERRORS, current_user, raise_http

router = APIRouter(prefix="/api/billing", tags=["billing"])


def _display_name(user) -> str:
    metadata = getattr(user, "metadata", None) or {}
    parts = [metadata.get("first_name"), metadata.get("last_name")]
    return " ".join(part for part in parts if part) or user.email


@router.get("/address", response_model=BillingProfileResponse)
def get_billing_address(*, user=Depends(current_user)) -> BillingProfileResponse:
    return BillingProfileResponse.from_customer(get_billing_service().get_customer(user.id))


@router.put("/address", response_model=BillingProfileResponse)
def save_billing_address(payload: BillingAddress, *, user=Depends(current_user)) -> BillingProfileResponse:
    try:
        customer = get_billing_service().save_billing_address(
            user_id=user.id,
            email=user.email,
            name=_display_name(user),
            address=payload,
        )
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return BillingProfileResponse.from_customer(customer)


@router.get("/invoices", response_model=InvoiceListResponse)
def list_invoices(*, user=Depends(current_user)) -> InvoiceListResponse:
    try:
        invoices = get_billing_service().list_invoices(user.id)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return InvoiceListResponse(invoices=[InvoiceOut.from_invoice(invoice) for invoice in invoices])


@router.get("/invoices/{invoice_id}/payment-url", response_model=PaymentUrlResponse)
def get_invoice_payment_url(invoice_id: str, *, user=Depends(current_user)) -> PaymentUrlResponse:
    try:
        url = get_billing_service().get_invoice_payment_url(user.id, invoice_id)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return PaymentUrlResponse(url=url)
