"""API schemas for staff ticket endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..tickets import Ticket, TicketPriority, TicketStatus


class TicketOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TicketStatus
    priority: TicketPriority
    due_date: date = Field(alias="dueDate")
    completed_at: Optional[datetime] = Field(alias="completedAt", default=None)
    assignee_id: str = Field(alias="assigneeId")
    support_assignees: List[str] = Field(alias="supportAssignees", default_factory=list)
    related_user_id: Optional[str] = Field(alias="relatedUserId", default=None)
    created_by: str = Field(alias="createdBy")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    read_at: Optional[datetime] = Field(alias="readAt", default=None)
    read_by: Optional[str] = Field(alias="readBy", default=None)
    overdue: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_ticket(cls, ticket: Ticket, *, today: date) -> "TicketOut":
        return cls(**ticket.model_dump(), overdue=ticket.is_overdue(today))


class TicketListResponse(BaseModel):
    items: List[TicketOut]
    total: int


class UnreadTicketsResponse(BaseModel):
    items: List[TicketOut]
    count: int


class TicketStatusRequest(BaseModel):
    status: TicketStatus


class TicketDeleteRequest(BaseModel):
    confirm_title: str = Field(alias="confirmTitle")

    model_config = ConfigDict(populate_by_name=True)
