"""API schemas for admin product endpoints."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..products import Product


class ProductOut(BaseModel):
    id: str
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal
    active: bool
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_product(cls, product: Product) -> "ProductOut":
        return cls(**product.model_dump())


class ProductListResponse(BaseModel):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int = Field(alias="pageSize")

    model_config = ConfigDict(populate_by_name=True)


class ProductDeleteRequest(BaseModel):
    confirm_sku: str = Field(alias="confirmSku")

    model_config = ConfigDict(populate_by_name=True)
