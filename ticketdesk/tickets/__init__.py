"""Ticket domain models, lifecycle rules and services."""

from .audit import AuditField, AuditRecorder, FieldChange
from .lifecycle import TicketMutation, TicketStateMachine
from .models import Ticket, TicketFilters, TicketHistoryEntry
from .reporting import TicketReports
from .repository import TicketRepository
from .service import TicketService
from .state import TicketPriority, TicketStatus
from .visibility import PermissionScopedReader

__all__ = [
    "AuditField",
    "AuditRecorder",
    "FieldChange",
    "PermissionScopedReader",
    "Ticket",
    "TicketFilters",
    "TicketHistoryEntry",
    "TicketMutation",
    "TicketPriority",
    "TicketReports",
    "TicketRepository",
    "TicketService",
    "TicketStateMachine",
    "TicketStatus",
]
