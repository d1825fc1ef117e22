"""Staff ticket routes."""
from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from ..schemas.tickets import (
    TicketDeleteRequest,
    TicketListResponse,
    TicketOut,
    TicketStatusRequest,
    UnreadTicketsResponse,
)
from ..services.tickets import get_ticket_service
from ..tickets import TicketInput, TicketPriority, TicketQuery, TicketStatus, TicketUpdate
from .dependencies import DOMAIN_ERRORS, raise_http, require_staff

router = APIRouter(prefix="/api/admin/tickets", tags=["tickets"])


def _out(ticket) -> TicketOut:
    return TicketOut.from_ticket(ticket, today=date.today())


@router.get("", response_model=TicketListResponse)
def list_tickets(
    *,
    status_filter: Optional[TicketStatus] = Query(default=None, alias="status"),
    priority: Optional[TicketPriority] = Query(default=None),
    mine: bool = Query(default=False),
    user=Depends(require_staff),
) -> TicketListResponse:
    query = TicketQuery(status=status_filter, priority=priority, involving=user.id if mine else None)
    tickets = get_ticket_service().list_tickets(query)
    return TicketListResponse(items=[_out(ticket) for ticket in tickets], total=len(tickets))


@router.get("/unread", response_model=UnreadTicketsResponse)
def list_unread_tickets(*, user=Depends(require_staff)) -> UnreadTicketsResponse:
    tickets = get_ticket_service().unread_for_user(user.id)
    return UnreadTicketsResponse(items=[_out(ticket) for ticket in tickets], count=len(tickets))


@router.get("/{ticket_id}", response_model=TicketOut)
def get_ticket(ticket_id: UUID, *, user=Depends(require_staff)) -> TicketOut:
    try:
        ticket = get_ticket_service().get_ticket(str(ticket_id))
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return _out(ticket)


@router.post("", response_model=TicketOut, status_code=status.HTTP_201_CREATED)
def create_ticket(payload: TicketInput, *, user=Depends(require_staff)) -> TicketOut:
    try:
        ticket = get_ticket_service().create_ticket(user.as_actor(), payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return _out(ticket)


@router.patch("/{ticket_id}", response_model=TicketOut)
def update_ticket(ticket_id: UUID, payload: TicketUpdate, *, user=Depends(require_staff)) -> TicketOut:
    try:
        ticket = get_ticket_service().update_ticket(str(ticket_id), payload)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return _out(ticket)


@router.put("/{ticket_id}/status", response_model=TicketOut)
def update_ticket_status(
    ticket_id: UUID,
    payload: TicketStatusRequest,
    *,
    user=Depends(require_staff),
) -> TicketOut:
    try:
        ticket = get_ticket_service().update_status(str(ticket_id), payload.status)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return _out(ticket)


@router.post("/{ticket_id}/read", response_model=TicketOut)
def mark_ticket_read(ticket_id: UUID, *, user=Depends(require_staff)) -> TicketOut:
    try:
        ticket = get_ticket_service().mark_read(str(ticket_id), user.id)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return _out(ticket)


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_ticket(
    ticket_id: UUID,
    payload: TicketDeleteRequest,
    *,
    user=Depends(require_staff),
) -> Response:
    try:
        get_ticket_service().delete_ticket(user.as_actor(), str(ticket_id), confirm_title=payload.confirm_title)
    except DOMAIN_ERRORS as exc:
        raise_http(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
