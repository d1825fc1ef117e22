"""Application wiring for admin products."""
from __future__ import annotations

from functools import lru_cache

from ..products import ProductService
from ..products.repository import PostgresProductRepository


@lru_cache(maxsize=1)
def get_product_service() -> ProductService:
    return ProductService(PostgresProductRepository())
