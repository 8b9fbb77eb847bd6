from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from packages.db.models import (
    ClosingReasonTable,
    CustomerTable,
    PendingReasonTable,
    TicketCaseTable,
    UserGroupTable,
    UserTable,
)
from ticketdesk.core.database import ensure_datetime
from ticketdesk.core.errors import ConstraintViolationError, NotFoundError

from .models import Actor, Customer, MasterDataEntry, User, UserGroup, UserRole


class DirectoryRepository:
    """Create/list access to customers, users and ticket master data."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, default_sla_hours: int = 24) -> None:
        self._session_factory = session_factory
        self._default_sla_hours = default_sla_hours

    async def create_customer(
        self,
        *,
        name: str,
        email: str,
        sla_hours: int | None = None,
        phone: str | None = None,
        address: str | None = None,
        company: str | None = None,
        is_active: bool = True,
    ) -> Customer:
        if sla_hours is None:
            sla_hours = self._default_sla_hours
        if sla_hours <= 0:
            raise ValueError("sla_hours must be a positive number of hours")
        row = CustomerTable(
            name=name,
            email=email,
            phone=phone,
            address=address,
            company=company,
            sla_hours=sla_hours,
            is_active=is_active,
        )
        await self._insert(row, f"Customer with email {email} already exists")
        return customer_from_row(row)

    async def get_customer(self, customer_id: int) -> Customer | None:
        async with self._session_factory() as session:
            row = await session.get(CustomerTable, customer_id)
        return customer_from_row(row) if row is not None else None

    async def list_customers(self, *, include_inactive: bool = False) -> list[Customer]:
        statement = select(CustomerTable).order_by(CustomerTable.name.asc())
        if not include_inactive:
            statement = statement.where(CustomerTable.is_active.is_(True))
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [customer_from_row(row) for row in result.scalars().all()]

    async def create_user_group(
        self,
        *,
        name: str,
        description: str | None = None,
        can_view_all_tickets: bool = False,
        can_edit_all_tickets: bool = False,
        can_delete_tickets: bool = False,
        can_manage_users: bool = False,
    ) -> UserGroup:
        row = UserGroupTable(
            name=name,
            description=description,
            can_view_all_tickets=can_view_all_tickets,
            can_edit_all_tickets=can_edit_all_tickets,
            can_delete_tickets=can_delete_tickets,
            can_manage_users=can_manage_users,
        )
        await self._insert(row, f"User group {name} already exists")
        return _group_from_row(row)

    async def list_user_groups(self) -> list[UserGroup]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserGroupTable).order_by(UserGroupTable.name.asc()))
            return [_group_from_row(row) for row in result.scalars().all()]

    async def create_user(
        self,
        *,
        email: str,
        name: str,
        role: UserRole,
        group_id: int | None = None,
        is_active: bool = True,
    ) -> User:
        row = UserTable(email=email, name=name, role=UserRole(role).value, group_id=group_id, is_active=is_active)
        await self._insert(row, f"User with email {email} already exists")
        return _user_from_row(row)

    async def get_user(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
        return _user_from_row(row) if row is not None else None

    async def list_users(self) -> list[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable).order_by(UserTable.name.asc()))
            return [_user_from_row(row) for row in result.scalars().all()]

    async def resolve_actor(self, user_id: int) -> Actor:
        """Load a user together with the "view all tickets" grant of its group."""

        async with self._session_factory() as session:
            user = await session.get(UserTable, user_id)
            if user is None:
                raise NotFoundError(f"User with ID {user_id} not found")
            group = await session.get(UserGroupTable, user.group_id) if user.group_id is not None else None
        return Actor(
            id=user_id,
            role=UserRole(user.role),
            can_view_all_tickets=bool(group is not None and group.can_view_all_tickets),
        )

    async def create_ticket_case(
        self, *, name: str, description: str | None = None, is_active: bool = True
    ) -> MasterDataEntry:
        row = TicketCaseTable(name=name, description=description, is_active=is_active)
        await self._insert(row, f"Ticket case {name} could not be stored")
        return _case_from_row(row)

    async def list_ticket_cases(self) -> list[MasterDataEntry]:
        async with self._session_factory() as session:
            result = await session.execute(select(TicketCaseTable).order_by(TicketCaseTable.id.asc()))
            return [_case_from_row(row) for row in result.scalars().all()]

    async def create_pending_reason(
        self, *, reason: str, description: str | None = None, is_active: bool = True
    ) -> MasterDataEntry:
        row = PendingReasonTable(reason=reason, description=description, is_active=is_active)
        await self._insert(row, f"Pending reason {reason} could not be stored")
        return _reason_from_row(row)

    async def list_pending_reasons(self) -> list[MasterDataEntry]:
        return await self._list_reasons(PendingReasonTable)

    async def create_closing_reason(
        self, *, reason: str, description: str | None = None, is_active: bool = True
    ) -> MasterDataEntry:
        row = ClosingReasonTable(reason=reason, description=description, is_active=is_active)
        await self._insert(row, f"Closing reason {reason} could not be stored")
        return _reason_from_row(row)

    async def list_closing_reasons(self) -> list[MasterDataEntry]:
        return await self._list_reasons(ClosingReasonTable)

    async def _list_reasons(self, table: Any) -> list[MasterDataEntry]:
        async with self._session_factory() as session:
            result = await session.execute(select(table).order_by(table.id.asc()))
            return [_reason_from_row(row) for row in result.scalars().all()]

    async def _insert(self, row: Any, conflict_message: str) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(row)
        except IntegrityError as exc:
            raise ConstraintViolationError(conflict_message) from exc


def customer_from_row(row: CustomerTable) -> Customer:
    return Customer(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        address=row.address,
        company=row.company,
        sla_hours=row.sla_hours,
        is_active=row.is_active,
        created_at=ensure_datetime(row.created_at),
        updated_at=ensure_datetime(row.updated_at),
    )


def _user_from_row(row: UserTable) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        role=UserRole(row.role),
        group_id=row.group_id,
        is_active=row.is_active,
        created_at=ensure_datetime(row.created_at),
        updated_at=ensure_datetime(row.updated_at),
    )


def _group_from_row(row: UserGroupTable) -> UserGroup:
    return UserGroup(
        id=row.id,
        name=row.name,
        description=row.description,
        can_view_all_tickets=row.can_view_all_tickets,
        can_edit_all_tickets=row.can_edit_all_tickets,
        can_delete_tickets=row.can_delete_tickets,
        can_manage_users=row.can_manage_users,
        created_at=ensure_datetime(row.created_at),
    )


def _reason_from_row(row: PendingReasonTable | ClosingReasonTable) -> MasterDataEntry:
    return MasterDataEntry(
        id=row.id,
        name=row.reason,
        description=row.description,
        is_active=row.is_active,
        created_at=ensure_datetime(row.created_at),
    )


def _case_from_row(row: TicketCaseTable) -> MasterDataEntry:
    return MasterDataEntry(
        id=row.id,
        name=row.name,
        description=row.description,
        is_active=row.is_active,
        created_at=ensure_datetime(row.created_at),
    )
