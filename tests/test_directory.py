from __future__ import annotations

import pytest

from ticketdesk.core.errors import ConstraintViolationError, NotFoundError
from ticketdesk.directory.models import UserRole
from ticketdesk.directory.repository import DirectoryRepository


@pytest.mark.asyncio
async def test_customers_default_sla_and_active_listing(session_factory):
    directory = DirectoryRepository(session_factory, default_sla_hours=12)
    default = await directory.create_customer(name="Beta", email="beta@corp.test")
    await directory.create_customer(name="Alpha", email="alpha@corp.test", sla_hours=72, company="Alpha Ltd")
    await directory.create_customer(name="Zed", email="zed@corp.test", is_active=False)

    assert default.sla_hours == 12
    assert [customer.name for customer in await directory.list_customers()] == ["Alpha", "Beta"]
    everyone = await directory.list_customers(include_inactive=True)
    assert len(everyone) == 3
    assert (await directory.get_customer(default.id)).email == "beta@corp.test"
    assert await directory.get_customer(999) is None


@pytest.mark.asyncio
async def test_customer_sla_must_be_positive(directory):
    with pytest.raises(ValueError):
        await directory.create_customer(name="Bad", email="bad@corp.test", sla_hours=0)


@pytest.mark.asyncio
async def test_duplicate_emails_are_rejected(directory):
    await directory.create_customer(name="One", email="same@corp.test")
    with pytest.raises(ConstraintViolationError):
        await directory.create_customer(name="Two", email="same@corp.test")

    await directory.create_user(email="user@corp.test", name="User", role=UserRole.TECHNICIAN)
    with pytest.raises(ConstraintViolationError):
        await directory.create_user(email="user@corp.test", name="Again", role=UserRole.MANAGER)


@pytest.mark.asyncio
async def test_resolve_actor_reads_group_grant(directory):
    group = await directory.create_user_group(name="Supervisors", can_view_all_tickets=True)
    plain = await directory.create_user(email="plain@corp.test", name="Plain", role=UserRole.TECHNICIAN)
    grouped = await directory.create_user(
        email="grouped@corp.test", name="Grouped", role=UserRole.TECHNICIAN, group_id=group.id
    )
    manager = await directory.create_user(email="boss@corp.test", name="Boss", role=UserRole.MANAGER)

    assert not (await directory.resolve_actor(plain.id)).sees_all_tickets
    assert (await directory.resolve_actor(grouped.id)).can_view_all_tickets
    assert (await directory.resolve_actor(manager.id)).sees_all_tickets
    with pytest.raises(NotFoundError):
        await directory.resolve_actor(404)


@pytest.mark.asyncio
async def test_master_data_round_trip(directory):
    case = await directory.create_ticket_case(name="Hardware", description="Physical devices")
    await directory.create_pending_reason(reason="Waiting for vendor")
    await directory.create_closing_reason(reason="Not reproducible", is_active=False)

    assert [entry.name for entry in await directory.list_ticket_cases()] == ["Hardware"]
    assert case.description == "Physical devices"
    assert [entry.name for entry in await directory.list_pending_reasons()] == ["Waiting for vendor"]
    closing = await directory.list_closing_reasons()
    assert closing[0].name == "Not reproducible"
    assert closing[0].is_active is False
    assert [group.name for group in await directory.list_user_groups()] == []
    assert await directory.list_users() == []
