"""Admin product maintenance."""
from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, Tuple

from ..errors import ValidationFailed
from .models import Product, ProductInput, ProductQuery

logger = logging.getLogger(__name__)

SKU_MISMATCH_MESSAGE = "SKU does not match"


class ProductRepository(Protocol):
    def list_products(self, query: ProductQuery) -> Tuple[Sequence[Product], int]:
        ...

    def get_product(self, product_id: str) -> Optional[Product]:
        ...

    def create_product(self, payload: ProductInput) -> Product:
        ...

    def update_product(self, product_id: str, payload: ProductInput) -> Optional[Product]:
        ...

    def delete_product(self, product_id: str) -> bool:
        ...


class ProductService:
    def __init__(self, repository: ProductRepository) -> None:
        self._repository = repository

    def list_products(self, query: ProductQuery) -> Tuple[Sequence[Product], int]:
        return self._repository.list_products(query)

    def get_product(self, product_id: str) -> Product:
        product = self._repository.get_product(product_id)
        if product is None:
            raise LookupError(f"Product {product_id} not found")
        return product

    def create_product(self, payload: ProductInput) -> Product:
        product = self._repository.create_product(payload)
        logger.info("Created product %s sku=%s", product.id, product.sku)
        return product

    def update_product(self, product_id: str, payload: ProductInput) -> Product:
        product = self._repository.update_product(product_id, payload)
        if product is None:
            raise LookupError(f"Product {product_id} not found")
        return product

    def delete_product(self, product_id: str, *, confirm_sku: str) -> None:
        """Irreversibly delete a product once the caller retypes its SKU."""

        product = self.get_product(product_id)
        if confirm_sku.strip() != product.sku:
            raise ValidationFailed(SKU_MISMATCH_MESSAGE, field="confirmSku")
        if not self._repository.delete_product(product_id):
            raise LookupError(f"Product {product_id} not found")
        logger.info("Deleted product %s sku=%s", product_id, product.sku)
