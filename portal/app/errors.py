"""Domain errors surfaced to API callers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import HTTPException, status

CONFLICT_MESSAGE = "This record changed, please reload."


@dataclass
class PortalError(Exception):
    """Represents an actionable failure with a stable machine readable code."""

    code: str
    message: str
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        return self._payload

    def to_http_exception(self) -> HTTPException:
        """Convert the domain error into a FastAPI HTTPException."""

        return HTTPException(status_code=self.status_code, detail=dict(self.payload))


class ValidationFailed(PortalError):
    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        detail = {"field": field} if field else None
        super().__init__(
            code="validation_failed",
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class ConflictError(PortalError):
    """Raised when a conditional update lost a race with another session."""

    def __init__(self, resource_id: str, *, message: str = CONFLICT_MESSAGE) -> None:
        super().__init__(
            code="conflict",
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            detail={"resourceId": resource_id},
        )


class LimitReachedError(PortalError):
    def __init__(self, service_name: str, max_instances: int) -> None:
        super().__init__(
            code="limit_reached",
            message=f"You have reached the maximum number of {service_name} enrollments",
            status_code=status.HTTP_409_CONFLICT,
            detail={"serviceName": service_name, "maxInstances": max_instances},
        )


class InvalidTransitionError(PortalError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            code="invalid_transition",
            message=f"Cannot change a {current} service to {target}",
            status_code=status.HTTP_409_CONFLICT,
            detail={"currentStatus": current, "targetStatus": target},
        )


class StepUpRequiredError(PortalError):
    """Raised when a sensitive value is requested without a live elevated grant."""

    def __init__(self, purpose: str, resource_id: str) -> None:
        super().__init__(
            code="step_up_required",
            message="Additional verification is required to view this information",
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"purpose": purpose, "resourceId": resource_id},
        )


class RemoteServiceError(PortalError):
    """Generic failure of an external collaborator; the cause is logged, not returned."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code="remote_failure",
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
        )
