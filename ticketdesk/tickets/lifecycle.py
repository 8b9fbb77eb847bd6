"""Ticket lifecycle rules.

The state machine never touches storage. Each transition takes the current
ticket and returns a :class:`TicketMutation`: the ticket as it should look
afterwards plus the field changes the audit trail must record. The repository
commits both together.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable

from ticketdesk.core.errors import InvalidTransitionError, MissingRequiredFieldError

from .audit import AuditField, FieldChange
from .models import Ticket
from .sla import compute_due_date
from .state import TicketPriority, TicketStatus


@dataclass(frozen=True, slots=True)
class TicketMutation:
    """Intended new ticket state and the audited changes that produce it."""

    ticket: Ticket
    changes: tuple[FieldChange, ...] = ()


class TicketStateMachine:
    """Validate and apply ticket status transitions."""

    _PENDING_SOURCES: frozenset[TicketStatus] = frozenset(
        {TicketStatus.OPEN, TicketStatus.IN_PROGRESS, TicketStatus.PENDING}
    )
    _RESUME_SOURCES: frozenset[TicketStatus] = frozenset({TicketStatus.PENDING})
    _RESOLVE_SOURCES: frozenset[TicketStatus] = frozenset(
        {TicketStatus.OPEN, TicketStatus.PENDING, TicketStatus.IN_PROGRESS}
    )

    @classmethod
    def initial_state(cls) -> TicketStatus:
        return TicketStatus.OPEN

    def open(
        self,
        *,
        ticket_number: str,
        title: str,
        description: str,
        priority: TicketPriority,
        customer_id: int,
        sla_hours: int,
        created_by: int,
        assigned_to: int | None,
        case_id: int | None,
        scheduled_date: datetime | None,
        now: datetime,
    ) -> Ticket:
        """Build a brand new ticket; creation carries no history rows."""

        return Ticket(
            id=None,
            ticket_number=ticket_number,
            title=title,
            description=description,
            status=self.initial_state(),
            priority=priority,
            customer_id=customer_id,
            assigned_to=assigned_to,
            created_by=created_by,
            case_id=case_id,
            pending_reason_id=None,
            closing_reason_id=None,
            scheduled_date=scheduled_date,
            sla_due_date=compute_due_date(now, sla_hours),
            resolved_at=None,
            closed_at=None,
            created_at=now,
            updated_at=now,
        )

    def set_pending(self, ticket: Ticket, *, reason_id: int | None, now: datetime) -> TicketMutation:
        if reason_id is None:
            raise MissingRequiredFieldError("Pending reason is required to set a ticket to pending")
        if ticket.status not in self._PENDING_SOURCES:
            raise InvalidTransitionError(f"Cannot set ticket to pending from status {ticket.status.value}")

        return self._mutate(
            ticket,
            now,
            [
                FieldChange(AuditField.STATUS, ticket.status, TicketStatus.PENDING),
                FieldChange(AuditField.PENDING_REASON_ID, ticket.pending_reason_id, reason_id),
            ],
        )

    def resume(self, ticket: Ticket, *, sla_hours: int, now: datetime) -> TicketMutation:
        if ticket.status not in self._RESUME_SOURCES:
            raise InvalidTransitionError(
                f"Ticket {ticket.ticket_number} is not in pending status (current: {ticket.status.value})"
            )

        return self._mutate(
            ticket,
            now,
            [
                FieldChange(AuditField.STATUS, ticket.status, TicketStatus.IN_PROGRESS),
                FieldChange(AuditField.SLA_DUE_DATE, ticket.sla_due_date, compute_due_date(now, sla_hours)),
                FieldChange(AuditField.PENDING_REASON_ID, ticket.pending_reason_id, None),
            ],
        )

    def resolve(self, ticket: Ticket, *, now: datetime) -> TicketMutation:
        if ticket.status not in self._RESOLVE_SOURCES:
            raise InvalidTransitionError(f"Cannot resolve ticket from status {ticket.status.value}")

        return self._mutate(
            ticket,
            now,
            [
                FieldChange(AuditField.STATUS, ticket.status, TicketStatus.RESOLVED),
                FieldChange(AuditField.RESOLVED_AT, ticket.resolved_at, now),
                FieldChange(AuditField.PENDING_REASON_ID, ticket.pending_reason_id, None),
            ],
        )

    def close(self, ticket: Ticket, *, reason_id: int | None, now: datetime) -> TicketMutation:
        # re-closing is permitted and appends history every time
        changes = [
            FieldChange(AuditField.STATUS, ticket.status, TicketStatus.CLOSED, always_record=True),
            FieldChange(AuditField.CLOSED_AT, ticket.closed_at, now, always_record=True),
            FieldChange(AuditField.PENDING_REASON_ID, ticket.pending_reason_id, None),
        ]
        if reason_id is not None:
            changes.insert(1, FieldChange(AuditField.CLOSING_REASON_ID, ticket.closing_reason_id, reason_id))
        return self._mutate(ticket, now, changes)

    def schedule(self, ticket: Ticket, *, scheduled_date: datetime, now: datetime) -> TicketMutation:
        return self._mutate(
            ticket,
            now,
            [FieldChange(AuditField.SCHEDULED_DATE, ticket.scheduled_date, scheduled_date)],
        )

    def assign(self, ticket: Ticket, *, assigned_to: int | None, now: datetime) -> TicketMutation:
        return self._mutate(
            ticket,
            now,
            [FieldChange(AuditField.ASSIGNED_TO, ticket.assigned_to, assigned_to)],
        )

    @staticmethod
    def _mutate(ticket: Ticket, now: datetime, changes: Iterable[FieldChange]) -> TicketMutation:
        staged = tuple(changes)
        updates = {change.field.value: change.new_value for change in staged}
        return TicketMutation(ticket=replace(ticket, updated_at=now, **updates), changes=staged)
