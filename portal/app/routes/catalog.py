"""Customer facing catalog routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..catalog import to_card
from ..schemas.catalog import CatalogCard, CatalogResponse, EntitlementOut, ServiceDetail
from ..services.catalog import get_catalog_service, get_entitlement_calculator
from .dependencies import DOMAIN_ERRORS, current_user, optional_current_user, raise_http

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get("", response_model=CatalogResponse)
def list_catalog(*, user=Depends(optional_current_user)) -> CatalogResponse:
    """Return enabled service cards, with the caller's standing when signed in."""

    services = get_catalog_service().list_enabled_services()
    entitlements = {}
    if user is not None:
        entitlements = get_entitlement_calculator().compute_for_services(user.id, services)
    return CatalogResponse(
        items=[CatalogCard.from_card(to_card(service), entitlements.get(service.name)) for service in services]
    )


@router.get("/{name}", response_model=ServiceDetail)
def get_service(name: str, *, user=Depends(optional_current_user)) -> ServiceDetail:
    try:
        service = get_catalog_service().get_service_by_name(name)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    if not service.enabled and not (user is not None and user.is_staff):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Service not found")
    return ServiceDetail.from_definition(service)


@router.get("/{name}/status", response_model=EntitlementOut)
def get_service_status(name: str, *, user=Depends(current_user)) -> EntitlementOut:
    try:
        result = get_entitlement_calculator().compute_status(user.id, name)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return EntitlementOut.from_result(result)
