from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import select

from packages.db.models import CustomerTable, TicketHistoryTable, TicketTable, UserTable
from ticketdesk.core.database import ensure_datetime, ensure_optional_datetime, ensure_schema
from ticketdesk.core.errors import ConstraintViolationError, InvalidReferenceError, NotFoundError
from ticketdesk.directory.models import Customer
from ticketdesk.directory.repository import customer_from_row

from .audit import AuditRecorder
from .lifecycle import TicketMutation
from .models import Ticket, TicketFilters, TicketHistoryEntry
from .state import TicketPriority, TicketStatus

logger = logging.getLogger(__name__)

MutationFn = Callable[[Ticket, Customer], TicketMutation]


class DuplicateTicketNumberError(ConstraintViolationError):
    """Raised when a generated ticket number collides with a stored one."""


class TicketRepository:
    """Persistence for tickets and their append-only history.

    This is the only component that writes ticket rows. Every update goes
    through :meth:`apply`, which commits the ticket and its history rows in a
    single transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
        recorder: AuditRecorder | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine
        self._recorder = recorder or AuditRecorder()

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        await ensure_schema(self._engine)

    async def add(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket and return it with its generated id.

        An assignee must be an active user at the moment of the insert.
        """

        row = TicketTable(
            ticket_number=ticket.ticket_number,
            title=ticket.title,
            description=ticket.description,
            status=ticket.status.value,
            priority=ticket.priority.value,
            customer_id=ticket.customer_id,
            assigned_to=ticket.assigned_to,
            created_by=ticket.created_by,
            case_id=ticket.case_id,
            pending_reason_id=ticket.pending_reason_id,
            closing_reason_id=ticket.closing_reason_id,
            scheduled_date=ticket.scheduled_date,
            sla_due_date=ticket.sla_due_date,
            resolved_at=ticket.resolved_at,
            closed_at=ticket.closed_at,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    if ticket.assigned_to is not None:
                        await _require_active_user(session, ticket.assigned_to)
                    session.add(row)
        except IntegrityError as exc:
            raise _constraint_error(exc) from exc
        return self._table_to_ticket(row)

    async def get(self, ticket_id: int) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
        return self._table_to_ticket(row) if row is not None else None

    async def apply(
        self,
        ticket_id: int,
        mutation_fn: MutationFn,
        *,
        actor_id: int,
        change_reason: str | None = None,
    ) -> Ticket:
        """Read, mutate and audit one ticket atomically.

        The ticket row is locked for the duration of the transaction so the old
        values written to history match what concurrent writers observe. If
        ``mutation_fn`` raises, or any write fails, nothing is committed. A new
        assignee is checked for being an active user inside the same
        transaction.
        """

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        select(TicketTable).where(TicketTable.id == ticket_id).with_for_update()
                    )
                    row = result.scalars().one_or_none()
                    if row is None:
                        raise NotFoundError(f"Ticket with ID {ticket_id} not found")
                    customer_row = await session.get(CustomerTable, row.customer_id)
                    if customer_row is None:
                        raise NotFoundError(f"Customer with ID {row.customer_id} not found")

                    mutation = mutation_fn(self._table_to_ticket(row), customer_from_row(customer_row))
                    new_assignee = mutation.ticket.assigned_to
                    if new_assignee is not None and new_assignee != row.assigned_to:
                        await _require_active_user(session, new_assignee)
                    self._copy_onto(row, mutation.ticket)
                    entries = await self._recorder.record_changes(
                        session,
                        ticket_id=ticket_id,
                        actor_id=actor_id,
                        reason=change_reason,
                        changes=mutation.changes,
                        recorded_at=mutation.ticket.updated_at,
                    )
        except IntegrityError as exc:
            raise _constraint_error(exc) from exc

        logger.debug("Ticket %s updated with %d history entries", ticket_id, len(entries))
        return self._table_to_ticket(row)

    async def history(self, ticket_id: int) -> list[TicketHistoryEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketHistoryTable)
                .where(TicketHistoryTable.ticket_id == ticket_id)
                .order_by(TicketHistoryTable.created_at.asc(), TicketHistoryTable.id.asc())
            )
            return [self._table_to_history(row) for row in result.scalars().all()]

    async def list_tickets(
        self,
        filters: TicketFilters | None = None,
        *,
        restrict_to_assignee: int | None = None,
        involving_user: int | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Ticket]:
        """Return tickets matching ``filters``, newest first.

        ``restrict_to_assignee`` narrows the result to tickets assigned to that
        user on top of any filter. ``involving_user`` keeps tickets that user is
        either assigned to or created.
        """

        filters = filters or TicketFilters()
        statement = select(TicketTable)
        if filters.status is not None:
            statement = statement.where(TicketTable.status == TicketStatus(filters.status).value)
        if filters.priority is not None:
            statement = statement.where(TicketTable.priority == TicketPriority(filters.priority).value)
        if filters.customer_id is not None:
            statement = statement.where(TicketTable.customer_id == filters.customer_id)
        if filters.assigned_to is not None:
            statement = statement.where(TicketTable.assigned_to == filters.assigned_to)
        if filters.date_from is not None:
            statement = statement.where(TicketTable.created_at >= ensure_datetime(filters.date_from))
        if filters.date_to is not None:
            statement = statement.where(TicketTable.created_at <= ensure_datetime(filters.date_to))
        if restrict_to_assignee is not None:
            statement = statement.where(TicketTable.assigned_to == restrict_to_assignee)
        if involving_user is not None:
            statement = statement.where(
                or_(TicketTable.assigned_to == involving_user, TicketTable.created_by == involving_user)
            )

        statement = statement.order_by(TicketTable.created_at.desc(), TicketTable.id.desc()).offset(offset)
        if limit is not None:
            statement = statement.limit(limit)

        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self._table_to_ticket(row) for row in result.scalars().all()]

    @staticmethod
    def _copy_onto(row: TicketTable, ticket: Ticket) -> None:
        # id, ticket_number, created_by and created_at never change after creation
        row.title = ticket.title
        row.description = ticket.description
        row.status = ticket.status.value
        row.priority = ticket.priority.value
        row.assigned_to = ticket.assigned_to
        row.case_id = ticket.case_id
        row.pending_reason_id = ticket.pending_reason_id
        row.closing_reason_id = ticket.closing_reason_id
        row.scheduled_date = ticket.scheduled_date
        row.sla_due_date = ticket.sla_due_date
        row.resolved_at = ticket.resolved_at
        row.closed_at = ticket.closed_at
        row.updated_at = ticket.updated_at

    @staticmethod
    def _table_to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=row.id,
            ticket_number=row.ticket_number,
            title=row.title,
            description=row.description,
            status=TicketStatus(row.status),
            priority=TicketPriority(row.priority),
            customer_id=row.customer_id,
            assigned_to=row.assigned_to,
            created_by=row.created_by,
            case_id=row.case_id,
            pending_reason_id=row.pending_reason_id,
            closing_reason_id=row.closing_reason_id,
            scheduled_date=ensure_optional_datetime(row.scheduled_date),
            sla_due_date=ensure_datetime(row.sla_due_date),
            resolved_at=ensure_optional_datetime(row.resolved_at),
            closed_at=ensure_optional_datetime(row.closed_at),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )

    @staticmethod
    def _table_to_history(row: TicketHistoryTable) -> TicketHistoryEntry:
        return TicketHistoryEntry(
            id=row.id,
            ticket_id=row.ticket_id,
            changed_by=row.changed_by,
            field_name=row.field_name,
            old_value=row.old_value,
            new_value=row.new_value,
            change_reason=row.change_reason,
            created_at=ensure_datetime(row.created_at),
        )


def _constraint_error(exc: IntegrityError) -> ConstraintViolationError:
    detail = str(exc.orig) if exc.orig is not None else str(exc)
    if "ticket_number" in detail:
        return DuplicateTicketNumberError(f"Ticket number already in use: {detail}")
    return ConstraintViolationError(detail)


async def _require_active_user(session: AsyncSession, user_id: int) -> None:
    # shared row lock: a concurrent deactivation waits for this transaction
    result = await session.execute(select(UserTable).where(UserTable.id == user_id).with_for_update(read=True))
    user_row = result.scalars().one_or_none()
    if user_row is None:
        raise InvalidReferenceError(f"User with ID {user_id} not found")
    if not user_row.is_active:
        raise InvalidReferenceError(f"User with ID {user_id} is not active")
