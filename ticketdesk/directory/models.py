from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    """Roles a user account can hold."""

    ADMIN = "admin"
    MANAGER = "manager"
    TECHNICIAN = "technician"
    CUSTOMER = "customer"


@dataclass(slots=True)
class Customer:
    """Customer owning tickets and the SLA window applied to them."""

    id: int
    name: str
    email: str
    phone: str | None
    address: str | None
    company: str | None
    sla_hours: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class UserGroup:
    id: int
    name: str
    description: str | None
    can_view_all_tickets: bool
    can_edit_all_tickets: bool
    can_delete_tickets: bool
    can_manage_users: bool
    created_at: datetime


@dataclass(slots=True)
class User:
    id: int
    email: str
    name: str
    role: UserRole
    group_id: int | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class MasterDataEntry:
    """Row of a ticket case, pending reason or closing reason table."""

    id: int
    name: str
    description: str | None
    is_active: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Actor:
    """Identity on whose behalf an operation runs, already resolved by the caller."""

    id: int
    role: UserRole
    can_view_all_tickets: bool = False

    @property
    def sees_all_tickets(self) -> bool:
        return self.role in (UserRole.ADMIN, UserRole.MANAGER) or self.can_view_all_tickets
