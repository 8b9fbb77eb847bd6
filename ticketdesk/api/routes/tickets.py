from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ticketdesk.core.errors import (
    ConstraintViolationError,
    InvalidReferenceError,
    InvalidTransitionError,
    MissingRequiredFieldError,
    NotFoundError,
    TicketServiceError,
)
from ticketdesk.dependencies.auth import CurrentActor
from ticketdesk.dependencies.tickets import get_reader, get_ticket_service
from ticketdesk.tickets.models import Ticket, TicketFilters, TicketHistoryEntry
from ticketdesk.tickets.service import TicketService
from ticketdesk.tickets.state import TicketPriority, TicketStatus
from ticketdesk.tickets.visibility import PermissionScopedReader

router = APIRouter(prefix="/tickets", tags=["tickets"])


class TicketCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    priority: TicketPriority = TicketPriority.MEDIUM
    customer_id: int
    assigned_to: int | None = None
    case_id: int | None = None
    scheduled_date: datetime | None = None


class TicketChangeRequest(BaseModel):
    change_reason: str | None = Field(default=None, max_length=500)


class TicketPendingRequest(TicketChangeRequest):
    pending_reason_id: int | None = None


class TicketCloseRequest(TicketChangeRequest):
    closing_reason_id: int | None = None


class TicketScheduleRequest(TicketChangeRequest):
    scheduled_date: datetime


class TicketAssignRequest(TicketChangeRequest):
    assigned_to: int | None = None


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_number: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    customer_id: int
    assigned_to: int | None
    created_by: int
    case_id: int | None
    pending_reason_id: int | None
    closing_reason_id: int | None
    scheduled_date: datetime | None
    sla_due_date: datetime
    resolved_at: datetime | None
    closed_at: datetime | None
    created_at: datetime
    updated_at: datetime


class TicketHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    ticket_id: int
    changed_by: int
    field_name: str
    old_value: str | None
    new_value: str | None
    change_reason: str | None
    created_at: datetime


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
ReaderDep = Annotated[PermissionScopedReader, Depends(get_reader)]

_ERROR_STATUS: list[tuple[type[TicketServiceError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (MissingRequiredFieldError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidReferenceError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConstraintViolationError, status.HTTP_409_CONFLICT),
]


def _http_error(exc: TicketServiceError) -> HTTPException:
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _to_response(ticket: Ticket) -> TicketResponse:
    return TicketResponse.model_validate(ticket)


def _to_history_response(entry: TicketHistoryEntry) -> TicketHistoryResponse:
    return TicketHistoryResponse.model_validate(entry)


@router.post("", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    payload: TicketCreateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    try:
        ticket = await service.create_ticket(actor_id=actor.id, **payload.model_dump())
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)


@router.get("", response_model=list[TicketResponse])
async def list_tickets(
    reader: ReaderDep,
    actor: CurrentActor,
    status_filter: TicketStatus | None = Query(default=None, alias="status"),
    priority: TicketPriority | None = None,
    customer_id: int | None = None,
    assigned_to: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[TicketResponse]:
    filters = TicketFilters(
        status=status_filter,
        priority=priority,
        customer_id=customer_id,
        assigned_to=assigned_to,
        date_from=date_from,
        date_to=date_to,
    )
    return [_to_response(ticket) async for ticket in reader.list_visible(actor, filters)]


@router.get("/mine", response_model=list[TicketResponse])
async def list_my_tickets(reader: ReaderDep, actor: CurrentActor) -> list[TicketResponse]:
    tickets = await reader.list_mine(actor).all()
    return [_to_response(ticket) for ticket in tickets]


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(ticket_id: int, reader: ReaderDep, actor: CurrentActor) -> TicketResponse:
    try:
        ticket = await reader.get_visible(actor, ticket_id)
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)


@router.get("/{ticket_id}/history", response_model=list[TicketHistoryResponse])
async def get_ticket_history(
    ticket_id: int, reader: ReaderDep, actor: CurrentActor
) -> list[TicketHistoryResponse]:
    try:
        entries = await reader.history_visible(actor, ticket_id)
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return [_to_history_response(entry) for entry in entries]


@router.post("/{ticket_id}/pending", response_model=TicketResponse)
async def set_ticket_pending(
    ticket_id: int,
    payload: TicketPendingRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    try:
        ticket = await service.set_pending(
            ticket_id,
            actor_id=actor.id,
            reason_id=payload.pending_reason_id,
            change_reason=payload.change_reason,
        )
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/resume", response_model=TicketResponse)
async def resume_ticket(
    ticket_id: int,
    payload: TicketChangeRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    try:
        ticket = await service.resume(ticket_id, actor_id=actor.id, change_reason=payload.change_reason)
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/resolve", response_model=TicketResponse)
async def resolve_ticket(
    ticket_id: int,
    payload: TicketChangeRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    try:
        ticket = await service.resolve(ticket_id, actor_id=actor.id, change_reason=payload.change_reason)
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/close", response_model=TicketResponse)
async def close_ticket(
    ticket_id: int,
    payload: TicketCloseRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    try:
        ticket = await service.close(
            ticket_id,
            actor_id=actor.id,
            reason_id=payload.closing_reason_id,
            change_reason=payload.change_reason,
        )
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/schedule", response_model=TicketResponse)
async def schedule_ticket(
    ticket_id: int,
    payload: TicketScheduleRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    try:
        ticket = await service.schedule(
            ticket_id,
            actor_id=actor.id,
            scheduled_date=payload.scheduled_date,
            change_reason=payload.change_reason,
        )
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)


@router.post("/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: int,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketResponse:
    try:
        ticket = await service.assign(
            ticket_id,
            actor_id=actor.id,
            assigned_to=payload.assigned_to,
            change_reason=payload.change_reason,
        )
    except TicketServiceError as exc:
        raise _http_error(exc) from exc
    return _to_response(ticket)
