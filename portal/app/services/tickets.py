"""Application wiring for staff tickets."""
from __future__ import annotations

from functools import lru_cache

from ..tickets import TicketService
from ..tickets.repository import PostgresTicketRepository
from .audit import get_audit_repository


@lru_cache(maxsize=1)
def get_ticket_service() -> TicketService:
    return TicketService(PostgresTicketRepository(), get_audit_repository())
