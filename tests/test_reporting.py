from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ticketdesk.tickets.reporting import TicketReports
from ticketdesk.tickets.visibility import PermissionScopedReader

MORNING = datetime(2024, 5, 6, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def reports(repository, directory, clock) -> TicketReports:
    return TicketReports(repository, directory, PermissionScopedReader(repository), clock=clock)


async def _create(service, seed, customer_id, assigned_to=None):
    return await service.create_ticket(
        actor_id=seed.admin_id,
        customer_id=customer_id,
        title="Network flapping",
        description="Switch port 12",
        assigned_to=assigned_to,
    )


@pytest.mark.asyncio
async def test_dashboard_stats_for_admin(service, reports, directory, seed, clock):
    clock.now = MORNING
    urgent = await directory.create_customer(name="Urgent", email="urgent@corp.test", sla_hours=4)

    resolved_fast = await _create(service, seed, seed.customer_id, assigned_to=seed.admin_id)
    due_today = await _create(service, seed, urgent.id)
    overdue = await _create(service, seed, urgent.id)
    clock.advance(hours=1)
    await service.resolve(resolved_fast.id, actor_id=seed.admin_id)
    await service.set_pending(due_today.id, actor_id=seed.admin_id, reason_id=seed.pending_reason_id)
    clock.advance(hours=4)

    stats = await reports.dashboard_stats(await directory.resolve_actor(seed.admin_id))

    assert stats.total_tickets == 3
    assert stats.open_tickets == 1
    assert stats.pending_tickets == 1
    assert stats.resolved_tickets == 1
    assert stats.overdue_tickets == 2
    assert stats.tickets_due_today == 2
    assert stats.my_assigned_tickets == 1
    assert stats.average_resolution_time == 1.0
    assert overdue.sla_due_date == MORNING + timedelta(hours=4)


@pytest.mark.asyncio
async def test_dashboard_stats_respect_visibility(service, reports, directory, seed, clock):
    await _create(service, seed, seed.customer_id, assigned_to=seed.technician_id)
    await _create(service, seed, seed.customer_id, assigned_to=seed.other_technician_id)

    stats = await reports.dashboard_stats(await directory.resolve_actor(seed.technician_id))

    assert stats.total_tickets == 1
    assert stats.my_assigned_tickets == 1
    assert stats.average_resolution_time == 0.0


@pytest.mark.asyncio
async def test_sla_report_per_active_customer(service, reports, directory, seed, clock):
    clock.now = MORNING
    on_time = await _create(service, seed, seed.customer_id)
    late = await _create(service, seed, seed.customer_id)
    await _create(service, seed, seed.customer_id)
    await _create(service, seed, seed.customer_id)
    await _create(service, seed, seed.inactive_customer_id)

    clock.advance(hours=2)
    await service.resolve(on_time.id, actor_id=seed.admin_id)
    clock.advance(hours=28)
    await service.resolve(late.id, actor_id=seed.admin_id)

    report = await reports.sla_report()

    assert [row.customer_name for row in report] == ["Acme"]
    row = report[0]
    assert row.total_tickets == 4
    assert row.tickets_within_sla == 1
    assert row.tickets_breached_sla == 3
    assert row.average_resolution_time == 16.0
    assert row.sla_compliance_percentage == 25.0


@pytest.mark.asyncio
async def test_sla_report_customer_without_tickets(reports, seed):
    report = await reports.sla_report()

    assert len(report) == 1
    assert report[0].total_tickets == 0
    assert report[0].sla_compliance_percentage == 0.0
