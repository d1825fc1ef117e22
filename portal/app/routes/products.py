"""Admin product management routes."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..products import ProductInput, ProductQuery, ProductSort
from ..schemas.products import ProductDeleteRequest, ProductListResponse, ProductOut
from ..services.products import get_product_service
from .dependencies import DOMAIN_ERRORS, raise_http, require_admin, require_staff

router = APIRouter(prefix="/api/admin/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
def list_products(
    *,
    search: Optional[str] = Query(default=None),
    sort: ProductSort = Query(default=ProductSort.CREATED_AT),
    order: str = Query(default="desc", pattern="^(asc|desc)$"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100, alias="pageSize"),
    user=Depends(require_staff),
) -> ProductListResponse:
    query = ProductQuery(
        search=search,
        sort=sort,
        descending=order == "desc",
        page=page,
        page_size=page_size,
    )
    products, total = get_product_service().list_products(query)
    return ProductListResponse(
        items=[ProductOut.from_product(product) for product in products],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{product_id}", response_model=ProductOut)
def get_product(product_id: UUID, *, user=Depends(require_staff)) -> ProductOut:
    try:
        product = get_product_service().get_product(str(product_id))
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return ProductOut.from_product(product)


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductInput, *, user=Depends(require_admin)) -> ProductOut:
    try:
        product = get_product_service().create_product(payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return ProductOut.from_product(product)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(product_id: UUID, payload: ProductInput, *, user=Depends(require_admin)) -> ProductOut:
    try:
        product = get_product_service().update_product(str(product_id), payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return ProductOut.from_product(product)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: UUID,
    payload: ProductDeleteRequest,
    *,
    user=Depends(require_admin),
) -> Response:
    try:
        get_product_service().delete_product(str(product_id), confirm_sku=payload.confirm_sku)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
