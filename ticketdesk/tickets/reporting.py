"""Aggregate views over tickets for dashboards and SLA compliance."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from ticketdesk.directory.models import Actor
from ticketdesk.directory.repository import DirectoryRepository

from .audit import Clock, utcnow
from .models import Ticket
from .repository import TicketRepository
from .sla import breached_sla, is_overdue, resolved_within_sla
from .state import TERMINAL_STATUSES, TicketStatus
from .visibility import PermissionScopedReader


@dataclass(slots=True)
class DashboardStats:
    total_tickets: int = 0
    open_tickets: int = 0
    pending_tickets: int = 0
    in_progress_tickets: int = 0
    resolved_tickets: int = 0
    closed_tickets: int = 0
    overdue_tickets: int = 0
    tickets_due_today: int = 0
    my_assigned_tickets: int = 0
    average_resolution_time: float = 0.0


@dataclass(slots=True)
class CustomerSlaReport:
    customer_id: int
    customer_name: str
    total_tickets: int
    tickets_within_sla: int
    tickets_breached_sla: int
    average_resolution_time: float
    sla_compliance_percentage: float


_STATUS_COUNTERS = {
    TicketStatus.OPEN: "open_tickets",
    TicketStatus.PENDING: "pending_tickets",
    TicketStatus.IN_PROGRESS: "in_progress_tickets",
    TicketStatus.RESOLVED: "resolved_tickets",
    TicketStatus.CLOSED: "closed_tickets",
}


def _resolution_hours(ticket: Ticket) -> float | None:
    if ticket.resolved_at is None:
        return None
    return (ticket.resolved_at - ticket.created_at).total_seconds() / 3600


def _average(values: list[float]) -> float:
    if not values:
        return 0.0
    return round(sum(values) / len(values), 2)


class TicketReports:
    """Read-only statistics computed with the SLA predicates."""

    def __init__(
        self,
        repository: TicketRepository,
        directory: DirectoryRepository,
        reader: PermissionScopedReader,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._repository = repository
        self._directory = directory
        self._reader = reader
        self._clock = clock or utcnow

    async def dashboard_stats(self, actor: Actor) -> DashboardStats:
        now = self._clock()
        today_start = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
        today_end = today_start + timedelta(days=1)

        stats = DashboardStats()
        resolution_times: list[float] = []
        async for ticket in self._reader.list_visible(actor):
            stats.total_tickets += 1
            counter = _STATUS_COUNTERS[ticket.status]
            setattr(stats, counter, getattr(stats, counter) + 1)
            if ticket.assigned_to == actor.id:
                stats.my_assigned_tickets += 1
            if is_overdue(ticket, now):
                stats.overdue_tickets += 1
            if today_start <= ticket.sla_due_date < today_end and ticket.status not in TERMINAL_STATUSES:
                stats.tickets_due_today += 1
            hours = _resolution_hours(ticket)
            if hours is not None:
                resolution_times.append(hours)

        stats.average_resolution_time = _average(resolution_times)
        return stats

    async def sla_report(self) -> list[CustomerSlaReport]:
        now = self._clock()
        by_customer: dict[int, list[Ticket]] = defaultdict(list)
        for ticket in await self._repository.list_tickets():
            by_customer[ticket.customer_id].append(ticket)

        report: list[CustomerSlaReport] = []
        for customer in await self._directory.list_customers():
            tickets = by_customer.get(customer.id, [])
            within = sum(1 for ticket in tickets if resolved_within_sla(ticket))
            breached = sum(1 for ticket in tickets if breached_sla(ticket, now))
            resolution_times = [hours for hours in map(_resolution_hours, tickets) if hours is not None]
            compliance = round(within / len(tickets) * 100, 2) if tickets else 0.0
            report.append(
                CustomerSlaReport(
                    customer_id=customer.id,
                    customer_name=customer.name,
                    total_tickets=len(tickets),
                    tickets_within_sla=within,
                    tickets_breached_sla=breached,
                    average_resolution_time=_average(resolution_times),
                    sla_compliance_percentage=compliance,
                )
            )
        return report
