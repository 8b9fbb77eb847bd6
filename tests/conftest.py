from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from ticketdesk.core.database import create_session_factory, ensure_schema
from ticketdesk.directory.models import UserRole
from ticketdesk.directory.repository import DirectoryRepository
from ticketdesk.tickets.audit import AuditRecorder
from ticketdesk.tickets.repository import TicketRepository
from ticketdesk.tickets.service import TicketService

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock shared by the service and the audit recorder."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class Seed:
    customer_id: int
    inactive_customer_id: int
    admin_id: int
    technician_id: int
    other_technician_id: int
    inactive_user_id: int
    viewer_id: int
    pending_reason_id: int
    other_pending_reason_id: int
    closing_reason_id: int


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await ensure_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def directory(session_factory) -> DirectoryRepository:
    return DirectoryRepository(session_factory)


@pytest.fixture
def repository(session_factory, engine, clock) -> TicketRepository:
    return TicketRepository(session_factory, engine=engine, recorder=AuditRecorder(clock))


@pytest.fixture
def service(repository, directory, clock) -> TicketService:
    return TicketService(repository, directory, clock=clock)


@pytest_asyncio.fixture
async def seed(directory: DirectoryRepository) -> Seed:
    customer = await directory.create_customer(name="Acme", email="ops@acme.test", sla_hours=24)
    inactive_customer = await directory.create_customer(
        name="Dormant", email="hello@dormant.test", sla_hours=8, is_active=False
    )
    viewers = await directory.create_user_group(name="Dispatch", can_view_all_tickets=True)
    admin = await directory.create_user(email="admin@desk.test", name="Ada Admin", role=UserRole.ADMIN)
    technician = await directory.create_user(email="tech@desk.test", name="Tom Tech", role=UserRole.TECHNICIAN)
    other_technician = await directory.create_user(
        email="tess@desk.test", name="Tess Tech", role=UserRole.TECHNICIAN
    )
    inactive_user = await directory.create_user(
        email="gone@desk.test", name="Gone User", role=UserRole.TECHNICIAN, is_active=False
    )
    viewer = await directory.create_user(
        email="dispatch@desk.test", name="Dee Dispatch", role=UserRole.TECHNICIAN, group_id=viewers.id
    )
    waiting = await directory.create_pending_reason(reason="Waiting for customer")
    parts = await directory.create_pending_reason(reason="Waiting for parts")
    fixed = await directory.create_closing_reason(reason="Fixed")
    return Seed(
        customer_id=customer.id,
        inactive_customer_id=inactive_customer.id,
        admin_id=admin.id,
        technician_id=technician.id,
        other_technician_id=other_technician.id,
        inactive_user_id=inactive_user.id,
        viewer_id=viewer.id,
        pending_reason_id=waiting.id,
        other_pending_reason_id=parts.id,
        closing_reason_id=fixed.id,
    )
