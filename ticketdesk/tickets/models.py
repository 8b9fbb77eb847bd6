from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .state import TicketPriority, TicketStatus


@dataclass(slots=True)
class Ticket:
    """Aggregate representing a trouble ticket."""

    id: int | None
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


@dataclass(slots=True)
class TicketHistoryEntry:
    """Immutable record of one field's change on one ticket."""

    id: int | None
    ticket_id: int
    changed_by: int
    field_name: str
    old_value: str | None
    new_value: str | None
    change_reason: str | None
    created_at: datetime


@dataclass(slots=True)
class TicketFilters:
    """Optional criteria combined with AND when listing tickets."""

    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    customer_id: int | None = None
    assigned_to: int | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
