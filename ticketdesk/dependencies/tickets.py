from __future__ import annotations

from fastapi import HTTPException, Request

from ticketdesk.directory.repository import DirectoryRepository
from ticketdesk.tickets.reporting import TicketReports
from ticketdesk.tickets.service import TicketService
from ticketdesk.tickets.visibility import PermissionScopedReader


def _from_state(request: Request, name: str, label: str):
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return component


async def get_ticket_service(request: Request) -> TicketService:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_directory(request: Request) -> DirectoryRepository:
    return _from_state(request, "directory", "Directory")


async def get_reader(request: Request) -> PermissionScopedReader:
    return _from_state(request, "ticket_reader", "Ticket reader")


async def get_reports(request: Request) -> TicketReports:
    return _from_state(request, "ticket_reports", "Ticket reports")
