from __future__ import annotations

from collections.abc import AsyncIterator

from ticketdesk.core.errors import NotFoundError
from ticketdesk.directory.models import Actor

from .models import Ticket, TicketFilters, TicketHistoryEntry
from .repository import TicketRepository


class VisibleTickets:
    """Lazy view over the tickets an actor may see.

    Nothing is fetched until iteration starts. Rows are pulled one page at a
    time and each new ``async for`` starts again from the first page.
    """

    def __init__(
        self,
        repository: TicketRepository,
        filters: TicketFilters,
        *,
        restrict_to_assignee: int | None = None,
        involving_user: int | None = None,
        page_size: int,
    ) -> None:
        self._repository = repository
        self._filters = filters
        self._restrict_to_assignee = restrict_to_assignee
        self._involving_user = involving_user
        self._page_size = page_size

    async def __aiter__(self) -> AsyncIterator[Ticket]:
        offset = 0
        while True:
            page = await self._repository.list_tickets(
                self._filters,
                restrict_to_assignee=self._restrict_to_assignee,
                involving_user=self._involving_user,
                limit=self._page_size,
                offset=offset,
            )
            for ticket in page:
                yield ticket
            if len(page) < self._page_size:
                return
            offset += self._page_size

    async def all(self) -> list[Ticket]:
        return [ticket async for ticket in self]


class PermissionScopedReader:
    """Ticket reads narrowed to what the calling actor is allowed to see.

    Listings show a restricted actor only the tickets assigned to them. A single
    ticket can also be opened by the user who created it, so everything in
    :meth:`list_mine` can be opened. Tickets outside that scope answer
    :class:`NotFoundError`, the same as missing ones.
    """

    def __init__(self, repository: TicketRepository, *, page_size: int = 100) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._repository = repository
        self._page_size = page_size

    def list_visible(self, actor: Actor, filters: TicketFilters | None = None) -> VisibleTickets:
        # admins, managers and groups with the view-all grant see every ticket
        restrict_to = None if actor.sees_all_tickets else actor.id
        return VisibleTickets(
            self._repository,
            filters or TicketFilters(),
            restrict_to_assignee=restrict_to,
            page_size=self._page_size,
        )

    def list_mine(self, actor: Actor) -> VisibleTickets:
        """Tickets the actor is assigned to or created, newest first."""

        return VisibleTickets(
            self._repository,
            TicketFilters(),
            involving_user=actor.id,
            page_size=self._page_size,
        )

    async def get_visible(self, actor: Actor, ticket_id: int) -> Ticket:
        ticket = await self._repository.get(ticket_id)
        if ticket is None or not can_open(actor, ticket):
            raise NotFoundError(f"Ticket with ID {ticket_id} not found")
        return ticket

    async def history_visible(self, actor: Actor, ticket_id: int) -> list[TicketHistoryEntry]:
        await self.get_visible(actor, ticket_id)
        return await self._repository.history(ticket_id)


def can_open(actor: Actor, ticket: Ticket) -> bool:
    return actor.sees_all_tickets or actor.id in (ticket.assigned_to, ticket.created_by)
