"""Application wiring for catalog reads and entitlement calculation."""
from __future__ import annotations

from functools import lru_cache

from ..catalog import CatalogService
from ..catalog.repository import PostgresCatalogRepository
from ..enrollments.repository import PostgresEnrollmentRepository
from ..entitlements import EntitlementCalculator


@lru_cache(maxsize=1)
def get_catalog_service() -> CatalogService:
    return CatalogService(PostgresCatalogRepository())


@lru_cache(maxsize=1)
def get_entitlement_calculator() -> EntitlementCalculator:
    return EntitlementCalculator(PostgresEnrollmentRepository(), get_catalog_service())
