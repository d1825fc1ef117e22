"""Shared dependencies for the modular routers."""
from __future__ import annotations

import logging
from typing import Any, NoReturn, Optional

from fastapi import Depends, HTTPException, Request, status

from ... import app_context
from ..errors import PortalError

logger = logging.getLogger(__name__)


def current_user(request: Request) -> Any:
    return app_context.get_current_user(request)


def optional_current_user(request: Request) -> Optional[Any]:
    return app_context.get_optional_current_user(request)


def require_staff(user=Depends(current_user)) -> Any:
    if not user.is_staff:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Staff access required")
    return user


def require_admin(user=Depends(current_user)) -> Any:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


def raise_http(exc: Exception) -> NoReturn:
    """Translate a domain failure into the matching HTTP error."""

    if isinstance(exc, PortalError):
        raise exc.to_http_exception() from exc
    if isinstance(exc, LookupError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc) or "Not found") from exc
    if isinstance(exc, PermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc) or "Forbidden") from exc
    if isinstance(exc, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    raise exc


DOMAIN_ERRORS = (PortalError, LookupError, PermissionError, ValueError)
