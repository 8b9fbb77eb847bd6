"""Database models and utilities."""

from .models import (
    ClosingReasonTable,
    CustomerTable,
    PendingReasonTable,
    TicketCaseTable,
    TicketHistoryTable,
    TicketTable,
    UserGroupTable,
    UserTable,
)

__all__ = [
    "ClosingReasonTable",
    "CustomerTable",
    "PendingReasonTable",
    "TicketCaseTable",
    "TicketHistoryTable",
    "TicketTable",
    "UserGroupTable",
    "UserTable",
]
