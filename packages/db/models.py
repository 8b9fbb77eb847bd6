"""SQLModel table definitions for the ticket desk data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class UserGroupTable(SQLModel, table=True):
    """Permission groups users can belong to."""

    __tablename__ = "user_groups"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(100), nullable=False, unique=True))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    can_view_all_tickets: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    can_edit_all_tickets: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    can_delete_tickets: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    can_manage_users: bool = Field(default=False, sa_column=Column(Boolean, nullable=False, default=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class UserTable(SQLModel, table=True):
    """Staff and customer accounts that act on tickets."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    name: str = Field(sa_column=Column(String(255), nullable=False))
    role: str = Field(sa_column=Column(String(50), nullable=False))
    group_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("user_groups.id"), nullable=True)
    )
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class CustomerTable(SQLModel, table=True):
    """Customers owning tickets and their SLA window."""

    __tablename__ = "customers"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    phone: str | None = Field(default=None, sa_column=Column(String(50), nullable=True))
    address: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    company: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    sla_hours: int = Field(default=24, sa_column=Column(Integer, nullable=False, default=24))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketCaseTable(SQLModel, table=True):
    """Master data classifying what a ticket is about."""

    __tablename__ = "ticket_cases"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class PendingReasonTable(SQLModel, table=True):
    """Master data explaining why work on a ticket is paused."""

    __tablename__ = "pending_reasons"

    id: int | None = Field(default=None, primary_key=True)
    reason: str = Field(sa_column=Column(String(255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class ClosingReasonTable(SQLModel, table=True):
    """Master data explaining why a ticket was closed."""

    __tablename__ = "closing_reasons"

    id: int | None = Field(default=None, primary_key=True)
    reason: str = Field(sa_column=Column(String(255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Trouble tickets tracked from creation to closure."""

    __tablename__ = "tickets"

    id: int | None = Field(default=None, primary_key=True)
    ticket_number: str = Field(sa_column=Column(String(50), nullable=False, unique=True))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    status: str = Field(sa_column=Column(String(50), nullable=False, index=True))
    priority: str = Field(sa_column=Column(String(50), nullable=False))
    customer_id: int = Field(sa_column=Column(Integer, ForeignKey("customers.id"), nullable=False, index=True))
    assigned_to: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    )
    created_by: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    case_id: int | None = Field(default=None, sa_column=Column(Integer, ForeignKey("ticket_cases.id"), nullable=True))
    pending_reason_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("pending_reasons.id"), nullable=True)
    )
    closing_reason_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("closing_reasons.id"), nullable=True)
    )
    scheduled_date: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    sla_due_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    resolved_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    closed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketHistoryTable(SQLModel, table=True):
    """Append-only field level audit trail for tickets."""

    __tablename__ = "ticket_history"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(sa_column=Column(Integer, ForeignKey("tickets.id"), nullable=False, index=True))
    changed_by: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    field_name: str = Field(sa_column=Column(String(100), nullable=False))
    old_value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    new_value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    change_reason: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
