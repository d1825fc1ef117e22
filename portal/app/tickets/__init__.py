"""Internal support tickets worked by staff."""

from .models import Ticket, TicketInput, TicketPriority, TicketQuery, TicketStatus, TicketUpdate
from .service import TITLE_MISMATCH_MESSAGE, TicketRepository, TicketService

__all__ = [
    "TITLE_MISMATCH_MESSAGE",
    "Ticket",
    "TicketInput",
    "TicketPriority",
    "TicketQuery",
    "TicketRepository",
    "TicketService",
    "TicketStatus",
    "TicketUpdate",
]
