"""Domain models for the admin product catalog."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductSort(str, Enum):
    NAME = "name"
    PRICE = "price"
    CREATED_AT = "created_at"


class Product(BaseModel):
    id: str
    sku: str
    name: str
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ProductInput(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    active: bool = True

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("sku", "name")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class ProductQuery(BaseModel):
    search: Optional[str] = None
    sort: ProductSort = ProductSort.CREATED_AT
    descending: bool = True
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size
