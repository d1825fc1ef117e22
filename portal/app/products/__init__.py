"""Admin product catalog."""

from .models import Product, ProductInput, ProductQuery, ProductSort
from .service import SKU_MISMATCH_MESSAGE, ProductRepository, ProductService

__all__ = [
    "Product",
    "ProductInput",
    "ProductQuery",
    "ProductRepository",
    "ProductService",
    "ProductSort",
    "SKU_MISMATCH_MESSAGE",
]
