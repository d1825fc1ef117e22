"""Staff ticket tracking."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Sequence

from ..audit import AuditAction, AuditActor, AuditEntry, AuditLogger
from ..errors import ValidationFailed
from .models import Ticket, TicketInput, TicketQuery, TicketStatus, TicketUpdate

logger = logging.getLogger(__name__)

TITLE_MISMATCH_MESSAGE = "Ticket title does not match"


class TicketRepository(Protocol):
    def list_tickets(self, query: TicketQuery) -> Sequence[Ticket]:
        ...

    def get_ticket(self, ticket_id: str) -> Optional[Ticket]:
        ...

    def create_ticket(self, payload: TicketInput, *, created_by: str, completed_at: Optional[datetime]) -> Ticket:
        ...

    def update_ticket(self, ticket_id: str, changes: Dict[str, Any]) -> Optional[Ticket]:
        ...

    def delete_ticket(self, ticket_id: str) -> bool:
        ...


class TicketService:
    def __init__(
        self,
        repository: TicketRepository,
        audit_logger: AuditLogger,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._audit_logger = audit_logger
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def list_tickets(self, query: TicketQuery) -> Sequence[Ticket]:
        """Tickets matching ``query``, newest first."""

        return self._repository.list_tickets(query)

    def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = self._repository.get_ticket(ticket_id)
        if ticket is None:
            raise LookupError(f"Ticket {ticket_id} not found")
        return ticket

    def create_ticket(self, actor: AuditActor, payload: TicketInput) -> Ticket:
        completed_at = self._clock() if payload.status == TicketStatus.COMPLETE else None
        ticket = self._repository.create_ticket(payload, created_by=actor.id, completed_at=completed_at)
        logger.info("Ticket %s created by %s", ticket.id, actor.id)
        return ticket

    def update_ticket(self, ticket_id: str, update: TicketUpdate) -> Ticket:
        changes = update.changes()
        if not changes:
            return self.get_ticket(ticket_id)
        if "status" in changes:
            changes["completed_at"] = self._completed_at(changes["status"])
        return self._write(ticket_id, changes)

    def update_status(self, ticket_id: str, status: TicketStatus) -> Ticket:
        return self._write(ticket_id, {"status": status, "completed_at": self._completed_at(status)})

    def mark_read(self, ticket_id: str, user_id: str) -> Ticket:
        return self._write(ticket_id, {"read_at": self._clock(), "read_by": user_id})

    def unread_for_user(self, user_id: str) -> Sequence[Ticket]:
        """Open tickets nobody has read yet where ``user_id`` is assignee or support."""

        tickets = self._repository.list_tickets(TicketQuery(involving=user_id, unread_only=True))
        return [ticket for ticket in tickets if ticket.status != TicketStatus.COMPLETE]

    def unread_count(self, user_id: str) -> int:
        return len(self.unread_for_user(user_id))

    def delete_ticket(self, actor: AuditActor, ticket_id: str, *, confirm_title: str) -> None:
        """Delete a ticket once the caller retypes its title."""

        ticket = self.get_ticket(ticket_id)
        if confirm_title.strip() != ticket.title:
            raise ValidationFailed(TITLE_MISMATCH_MESSAGE, field="confirmTitle")
        if not self._repository.delete_ticket(ticket_id):
            raise LookupError(f"Ticket {ticket_id} not found")
        self._audit_logger.record(
            AuditEntry.build(
                AuditAction.TICKET_DELETED,
                actor,
                target_id=ticket.id,
                target_description=ticket.title,
                details={"status": ticket.status.value, "assignee_id": ticket.assignee_id},
                timestamp=self._clock(),
            )
        )
        logger.info("Ticket %s deleted by %s", ticket_id, actor.id)

    def _completed_at(self, status: TicketStatus) -> Optional[datetime]:
        return self._clock() if status == TicketStatus.COMPLETE else None

    def _write(self, ticket_id: str, changes: Dict[str, Any]) -> Ticket:
        ticket = self._repository.update_ticket(ticket_id, changes)
        if ticket is None:
            raise LookupError(f"Ticket {ticket_id} not found")
        return ticket
