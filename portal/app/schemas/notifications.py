"""API schemas for staff notifications."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AdminNotification(BaseModel):
    id: int
    kind: str
    title: str
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(alias="createdAt")
    read_at: Optional[datetime] = Field(alias="readAt", default=None)

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class AdminNotificationListResponse(BaseModel):
    items: List[AdminNotification]
    unread_count: int = Field(alias="unreadCount")

    model_config = ConfigDict(populate_by_name=True)
