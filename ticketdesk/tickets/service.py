from __future__ import annotations

import logging
from datetime import datetime
from functools import partial
from typing import Callable

from opentelemetry import trace

from ticketdesk.core.database import ensure_datetime, ensure_optional_datetime
from ticketdesk.core.errors import ConstraintViolationError, NotFoundError
from ticketdesk.directory.models import Customer
from ticketdesk.directory.repository import DirectoryRepository

from .audit import Clock, utcnow
from .lifecycle import TicketMutation, TicketStateMachine
from .models import Ticket, TicketHistoryEntry
from .numbering import generate_ticket_number
from .repository import DuplicateTicketNumberError, TicketRepository
from .state import TicketPriority

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

RESUME_DEFAULT_REASON = "Ticket resumed from pending status"
ASSIGN_DEFAULT_REASON = "Ticket assignment updated"


class TicketService:
    """High level orchestration for ticket lifecycle operations.

    Each operation takes the id of the acting user explicitly; the service
    never falls back to an implicit or system identity.
    """

    def __init__(
        self,
        repository: TicketRepository,
        directory: DirectoryRepository,
        *,
        state_machine: TicketStateMachine | None = None,
        clock: Clock | None = None,
        number_generator: Callable[[datetime], str] | None = None,
        max_number_attempts: int = 5,
        ticket_number_prefix: str = "TKT",
    ) -> None:
        if max_number_attempts < 1:
            raise ValueError("max_number_attempts must be at least 1")
        self._repository = repository
        self._directory = directory
        self._state_machine = state_machine or TicketStateMachine()
        self._clock = clock or utcnow
        self._number_generator = number_generator or partial(generate_ticket_number, prefix=ticket_number_prefix)
        self._max_number_attempts = max_number_attempts

    async def create_ticket(
        self,
        *,
        actor_id: int,
        customer_id: int,
        title: str,
        description: str,
        priority: TicketPriority = TicketPriority.MEDIUM,
        assigned_to: int | None = None,
        case_id: int | None = None,
        scheduled_date: datetime | None = None,
    ) -> Ticket:
        with tracer.start_as_current_span("tickets.create") as span:
            span.set_attribute("ticket.customer_id", customer_id)
            customer = await self._directory.get_customer(customer_id)
            if customer is None:
                raise NotFoundError(f"Customer with ID {customer_id} not found")

            for attempt in range(1, self._max_number_attempts + 1):
                now = self._clock()
                ticket = self._state_machine.open(
                    ticket_number=self._number_generator(now),
                    title=title,
                    description=description,
                    priority=TicketPriority(priority),
                    customer_id=customer.id,
                    sla_hours=customer.sla_hours,
                    created_by=actor_id,
                    assigned_to=assigned_to,
                    case_id=case_id,
                    scheduled_date=ensure_optional_datetime(scheduled_date),
                    now=now,
                )
                try:
                    created = await self._repository.add(ticket)
                except DuplicateTicketNumberError:
                    logger.warning(
                        "Ticket number %s already taken (attempt %d of %d)",
                        ticket.ticket_number,
                        attempt,
                        self._max_number_attempts,
                    )
                    continue
                span.set_attribute("ticket.id", created.id)
                logger.info("Created ticket %s for customer %s", created.ticket_number, customer_id)
                return created

        raise ConstraintViolationError(
            f"Could not generate a unique ticket number after {self._max_number_attempts} attempts"
        )

    async def get_ticket(self, ticket_id: int) -> Ticket:
        ticket = await self._repository.get(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket with ID {ticket_id} not found")
        return ticket

    async def get_history(self, ticket_id: int) -> list[TicketHistoryEntry]:
        await self.get_ticket(ticket_id)
        return await self._repository.history(ticket_id)

    async def set_pending(
        self,
        ticket_id: int,
        *,
        actor_id: int,
        reason_id: int | None,
        change_reason: str | None = None,
    ) -> Ticket:
        def mutate(ticket: Ticket, _: Customer) -> TicketMutation:
            return self._state_machine.set_pending(ticket, reason_id=reason_id, now=self._clock())

        return await self._transition("set_pending", ticket_id, mutate, actor_id, change_reason)

    async def resume(self, ticket_id: int, *, actor_id: int, change_reason: str | None = None) -> Ticket:
        def mutate(ticket: Ticket, customer: Customer) -> TicketMutation:
            return self._state_machine.resume(ticket, sla_hours=customer.sla_hours, now=self._clock())

        return await self._transition("resume", ticket_id, mutate, actor_id, change_reason or RESUME_DEFAULT_REASON)

    async def resolve(self, ticket_id: int, *, actor_id: int, change_reason: str | None = None) -> Ticket:
        def mutate(ticket: Ticket, _: Customer) -> TicketMutation:
            return self._state_machine.resolve(ticket, now=self._clock())

        return await self._transition("resolve", ticket_id, mutate, actor_id, change_reason)

    async def close(
        self,
        ticket_id: int,
        *,
        actor_id: int,
        reason_id: int | None = None,
        change_reason: str | None = None,
    ) -> Ticket:
        def mutate(ticket: Ticket, _: Customer) -> TicketMutation:
            return self._state_machine.close(ticket, reason_id=reason_id, now=self._clock())

        return await self._transition("close", ticket_id, mutate, actor_id, change_reason)

    async def schedule(
        self,
        ticket_id: int,
        *,
        actor_id: int,
        scheduled_date: datetime,
        change_reason: str | None = None,
    ) -> Ticket:
        scheduled = ensure_datetime(scheduled_date)

        def mutate(ticket: Ticket, _: Customer) -> TicketMutation:
            return self._state_machine.schedule(ticket, scheduled_date=scheduled, now=self._clock())

        return await self._transition("schedule", ticket_id, mutate, actor_id, change_reason)

    async def assign(
        self,
        ticket_id: int,
        *,
        actor_id: int,
        assigned_to: int | None,
        change_reason: str | None = None,
    ) -> Ticket:
        # the repository checks the assignee is active inside the update transaction
        def mutate(ticket: Ticket, _: Customer) -> TicketMutation:
            return self._state_machine.assign(ticket, assigned_to=assigned_to, now=self._clock())

        return await self._transition("assign", ticket_id, mutate, actor_id, change_reason or ASSIGN_DEFAULT_REASON)

    async def _transition(
        self,
        operation: str,
        ticket_id: int,
        mutate: Callable[[Ticket, Customer], TicketMutation],
        actor_id: int,
        change_reason: str | None,
    ) -> Ticket:
        with tracer.start_as_current_span(f"tickets.{operation}") as span:
            span.set_attribute("ticket.id", ticket_id)
            span.set_attribute("ticket.actor_id", actor_id)
            updated = await self._repository.apply(
                ticket_id,
                mutate,
                actor_id=actor_id,
                change_reason=change_reason,
            )
            logger.info("Ticket %s: %s by user %s, status now %s", ticket_id, operation, actor_id, updated.status.value)
            return updated
