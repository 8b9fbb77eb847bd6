"""SLA due-date arithmetic and the predicates reports rely on."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from .state import TERMINAL_STATUSES

if TYPE_CHECKING:
    from .models import Ticket


def compute_due_date(reference_time: datetime, sla_hours: int) -> datetime:
    """Return ``reference_time`` shifted by a fixed ``sla_hours`` duration.

    The addition is not calendar aware: weekends, holidays and DST shifts are
    ignored. ``sla_hours`` is trusted to come from validated customer data.
    """

    return reference_time + timedelta(hours=sla_hours)


def is_overdue(ticket: Ticket, now: datetime) -> bool:
    """A ticket is overdue when its deadline passed while work is still open."""

    return ticket.sla_due_date < now and ticket.status not in TERMINAL_STATUSES


def resolved_within_sla(ticket: Ticket) -> bool:
    return ticket.resolved_at is not None and ticket.resolved_at <= ticket.sla_due_date


def breached_sla(ticket: Ticket, now: datetime) -> bool:
    """Resolved after the deadline, or still unresolved past it."""

    if ticket.resolved_at is not None:
        return ticket.resolved_at > ticket.sla_due_date
    return ticket.sla_due_date < now
