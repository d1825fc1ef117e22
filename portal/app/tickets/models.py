"""Domain models for staff support tickets."""
from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TicketStatus(str, Enum):
    TODO = "todo"
    ACTIVE = "active"
    COMPLETE = "complete"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Ticket(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TicketStatus = TicketStatus.TODO
    priority: TicketPriority = TicketPriority.MEDIUM
    due_date: date
    completed_at: Optional[datetime] = None
    assignee_id: str
    support_assignees: List[str] = Field(default_factory=list)
    related_user_id: Optional[str] = None
    created_by: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    read_at: Optional[datetime] = None
    read_by: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def involves(self, user_id: str) -> bool:
        return self.assignee_id == user_id or user_id in self.support_assignees

    def is_overdue(self, today: date) -> bool:
        return self.status != TicketStatus.COMPLETE and self.due_date < today


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _unique(values: List[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


class TicketInput(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    status: TicketStatus = TicketStatus.TODO
    priority: TicketPriority = TicketPriority.MEDIUM
    due_date: date = Field(alias="dueDate")
    assignee_id: str = Field(alias="assigneeId", min_length=1)
    support_assignees: List[str] = Field(alias="supportAssignees", default_factory=list)
    related_user_id: Optional[str] = Field(alias="relatedUserId", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @field_validator("description", "related_user_id")
    @classmethod
    def _clear_blank(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("support_assignees")
    @classmethod
    def _dedupe_support(cls, value: List[str]) -> List[str]:
        return _unique(value)


class TicketUpdate(BaseModel):
    """Partial edit; only the fields the caller sent are written."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    due_date: Optional[date] = Field(alias="dueDate", default=None)
    assignee_id: Optional[str] = Field(alias="assigneeId", default=None, min_length=1)
    support_assignees: Optional[List[str]] = Field(alias="supportAssignees", default=None)
    related_user_id: Optional[str] = Field(alias="relatedUserId", default=None)

    model_config = ConfigDict(populate_by_name=True)

    def changes(self) -> Dict[str, Any]:
        values = self.model_dump(exclude_unset=True)
        for required in ("title", "status", "priority", "due_date", "assignee_id", "support_assignees"):
            if required in values and values[required] is None:
                raise ValueError(f"{required} cannot be cleared")
        if "title" in values:
            values["title"] = values["title"].strip()
            if not values["title"]:
                raise ValueError("title must not be blank")
        for optional in ("description", "related_user_id"):
            if optional in values:
                values[optional] = _blank_to_none(values[optional])
        if "support_assignees" in values:
            values["support_assignees"] = _unique(values["support_assignees"])
        return values


class TicketQuery(BaseModel):
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    involving: Optional[str] = None
    unread_only: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def matches(self, ticket: Ticket) -> bool:
        if self.status is not None and ticket.status != self.status:
            return False
        if self.priority is not None and ticket.priority != self.priority:
            return False
        if self.involving is not None and not ticket.involves(self.involving):
            return False
        if self.unread_only and ticket.read_at is not None:
            return False
        return True
