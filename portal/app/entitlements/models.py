"""Domain models describing a user's standing for each catalog service."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EntitlementStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    AVAILABLE = "available"


class ServiceAction(str, Enum):
    """Call to action rendered on a catalog card."""

    VIEW_DETAILS = "view_details"
    MANAGE_SERVICE = "manage_service"
    LIMIT_REACHED = "limit_reached"
    GET_STARTED = "get_started"

    @property
    def label(self) -> str:
        return _ACTION_LABELS[self]

    @property
    def enabled(self) -> bool:
        return self is not ServiceAction.LIMIT_REACHED


_ACTION_LABELS = {
    ServiceAction.VIEW_DETAILS: "View Details",
    ServiceAction.MANAGE_SERVICE: "Manage Service",
    ServiceAction.LIMIT_REACHED: "Limit Reached",
    ServiceAction.GET_STARTED: "Get Started",
}


class EntitlementResult(BaseModel):
    """Outcome of an entitlement computation for a single service."""

    service_name: str
    status: EntitlementStatus
    agreement_id: Optional[str] = None
    enrollment_count: int = Field(default=0, ge=0)
    max_instances: int = Field(default=1, ge=1)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def limit_reached(self) -> bool:
        return self.enrollment_count >= self.max_instances

    @property
    def action(self) -> ServiceAction:
        return decide_action(self.status, self.limit_reached)


def decide_action(status: EntitlementStatus, limit_reached: bool) -> ServiceAction:
    """Map an entitlement status to the card action shown to the user."""

    if status == EntitlementStatus.ACTIVE:
        return ServiceAction.VIEW_DETAILS
    if status == EntitlementStatus.PAUSED:
        return ServiceAction.MANAGE_SERVICE
    if limit_reached:
        return ServiceAction.LIMIT_REACHED
    return ServiceAction.GET_STARTED
