from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient
import pytest

from ticketdesk.core.errors import (
    ConstraintViolationError,
    InvalidReferenceError,
    InvalidTransitionError,
    MissingRequiredFieldError,
    NotFoundError,
)
from ticketdesk.dependencies import auth as auth_deps
from ticketdesk.dependencies import tickets as ticket_deps
from ticketdesk.directory.models import Actor, UserRole
from ticketdesk.main import create_app
from ticketdesk.tickets.models import Ticket, TicketHistoryEntry
from ticketdesk.tickets.state import TicketPriority, TicketStatus

ACTOR = Actor(id=7, role=UserRole.TECHNICIAN)


def _make_ticket(*, status: TicketStatus = TicketStatus.OPEN, ticket_id: int = 1) -> Ticket:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return Ticket(
        id=ticket_id,
        ticket_number=f"TKT-0000000{ticket_id}-ABC",
        title="Subject",
        description="Body",
        status=status,
        priority=TicketPriority.MEDIUM,
        customer_id=1,
        assigned_to=ACTOR.id,
        created_by=1,
        case_id=None,
        pending_reason_id=None,
        closing_reason_id=None,
        scheduled_date=None,
        sla_due_date=now + timedelta(hours=24),
        resolved_at=None,
        closed_at=None,
        created_at=now,
        updated_at=now,
    )


class StubListing:
    def __init__(self, tickets):
        self._tickets = tickets

    async def __aiter__(self):
        for ticket in self._tickets:
            yield ticket

    async def all(self):
        return list(self._tickets)


@pytest.fixture
def ticket_client():
    app = create_app()
    service = AsyncMock()
    reader = AsyncMock()

    async def override_service():
        return service

    async def override_reader():
        return reader

    app.dependency_overrides[ticket_deps.get_ticket_service] = override_service
    app.dependency_overrides[ticket_deps.get_reader] = override_reader
    app.dependency_overrides[auth_deps.get_current_actor] = lambda: ACTOR
    client = TestClient(app)
    try:
        yield client, service, reader
    finally:
        app.dependency_overrides.clear()


def test_create_ticket_endpoint_returns_created(ticket_client):
    client, service, _ = ticket_client
    service.create_ticket = AsyncMock(return_value=_make_ticket())

    response = client.post("/tickets", json={"title": "Subject", "description": "Body", "customer_id": 1})

    assert response.status_code == 201
    assert response.json()["ticket_number"] == "TKT-00000001-ABC"
    kwargs = service.create_ticket.await_args.kwargs
    assert kwargs["actor_id"] == ACTOR.id
    assert kwargs["customer_id"] == 1
    assert kwargs["priority"] == TicketPriority.MEDIUM


def test_create_ticket_with_inactive_assignee_is_unprocessable(ticket_client):
    client, service, _ = ticket_client
    service.create_ticket = AsyncMock(side_effect=InvalidReferenceError("User with ID 3 is not active"))

    response = client.post(
        "/tickets", json={"title": "Subject", "description": "Body", "customer_id": 1, "assigned_to": 3}
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "User with ID 3 is not active"


def test_list_tickets_passes_filters_to_reader(ticket_client):
    client, _, reader = ticket_client
    seen = {}

    def list_visible(actor, filters):
        seen["actor"], seen["filters"] = actor, filters
        return StubListing([_make_ticket(status=TicketStatus.PENDING)])

    reader.list_visible = list_visible

    response = client.get("/tickets", params={"status": "pending", "priority": "medium"})

    assert response.status_code == 200
    assert [item["status"] for item in response.json()] == ["pending"]
    assert seen["actor"] == ACTOR
    assert seen["filters"].status == TicketStatus.PENDING
    assert seen["filters"].priority == TicketPriority.MEDIUM


def test_my_tickets_include_tickets_created_by_actor(ticket_client):
    client, _, reader = ticket_client
    seen = {}
    created_not_assigned = replace(_make_ticket(ticket_id=2), assigned_to=None, created_by=ACTOR.id)

    def list_mine(actor):
        seen["actor"] = actor
        return StubListing([created_not_assigned, _make_ticket()])

    reader.list_mine = list_mine

    response = client.get("/tickets/mine")

    assert response.status_code == 200
    assert [item["id"] for item in response.json()] == [2, 1]
    assert response.json()[0]["assigned_to"] is None
    assert seen["actor"] == ACTOR


@pytest.mark.parametrize(
    ("error", "status_code"),
    [
        (NotFoundError("Ticket with ID 9 not found"), 404),
        (InvalidTransitionError("not pending"), 409),
        (ConstraintViolationError("conflict"), 409),
    ],
)
def test_resume_maps_errors_to_status_codes(ticket_client, error, status_code):
    client, service, _ = ticket_client
    service.resume = AsyncMock(side_effect=error)

    response = client.post("/tickets/9/resume", json={})

    assert response.status_code == status_code
    assert response.json()["detail"] == str(error)


def test_pending_without_reason_is_unprocessable(ticket_client):
    client, service, _ = ticket_client
    service.set_pending = AsyncMock(side_effect=MissingRequiredFieldError("Pending reason is required"))

    response = client.post("/tickets/1/pending", json={"change_reason": "waiting"})

    assert response.status_code == 422
    service.set_pending.assert_awaited_with(1, actor_id=ACTOR.id, reason_id=None, change_reason="waiting")


def test_close_assign_schedule_forward_payload(ticket_client):
    client, service, _ = ticket_client
    service.close = AsyncMock(return_value=_make_ticket(status=TicketStatus.CLOSED))
    service.assign = AsyncMock(return_value=_make_ticket())
    service.schedule = AsyncMock(return_value=_make_ticket())
    service.resolve = AsyncMock(return_value=_make_ticket(status=TicketStatus.RESOLVED))

    closed = client.post("/tickets/1/close", json={"closing_reason_id": 2})
    assigned = client.post("/tickets/1/assign", json={"assigned_to": None, "change_reason": "handover"})
    scheduled = client.post("/tickets/1/schedule", json={"scheduled_date": "2024-02-01T08:30:00Z"})
    resolved = client.post("/tickets/1/resolve", json={})

    assert closed.json()["status"] == "closed"
    service.close.assert_awaited_with(1, actor_id=ACTOR.id, reason_id=2, change_reason=None)
    assert assigned.status_code == 200
    service.assign.assert_awaited_with(1, actor_id=ACTOR.id, assigned_to=None, change_reason="handover")
    assert scheduled.status_code == 200
    assert service.schedule.await_args.kwargs["scheduled_date"] == datetime(2024, 2, 1, 8, 30, tzinfo=timezone.utc)
    assert resolved.json()["status"] == "resolved"


def test_history_endpoint_returns_entries(ticket_client):
    client, _, reader = ticket_client
    entry = TicketHistoryEntry(
        id=1,
        ticket_id=1,
        changed_by=ACTOR.id,
        field_name="status",
        old_value="open",
        new_value="pending",
        change_reason=None,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    reader.history_visible = AsyncMock(return_value=[entry])

    response = client.get("/tickets/1/history")

    assert response.status_code == 200
    assert response.json()[0]["new_value"] == "pending"
    reader.history_visible.assert_awaited_with(ACTOR, 1)


def test_get_ticket_reads_through_actor_scope(ticket_client):
    client, service, reader = ticket_client
    reader.get_visible = AsyncMock(return_value=_make_ticket())

    response = client.get("/tickets/1")

    assert response.status_code == 200
    reader.get_visible.assert_awaited_with(ACTOR, 1)
    service.get_ticket.assert_not_called()


def test_ticket_outside_actor_scope_is_not_found(ticket_client):
    client, _, reader = ticket_client
    hidden = NotFoundError("Ticket with ID 3 not found")
    reader.get_visible = AsyncMock(side_effect=hidden)
    reader.history_visible = AsyncMock(side_effect=hidden)

    assert client.get("/tickets/3").status_code == 404
    response = client.get("/tickets/3/history")
    assert response.status_code == 404
    assert response.json()["detail"] == "Ticket with ID 3 not found"


def test_missing_user_header_is_unauthorized():
    app = create_app()
    directory = AsyncMock()
    directory.resolve_actor = AsyncMock(return_value=ACTOR)

    async def override_directory():
        return directory

    app.dependency_overrides[ticket_deps.get_directory] = override_directory
    client = TestClient(app)

    assert client.get("/ping/whoami").status_code == 401
    response = client.get("/ping/whoami", headers={"X-User-Id": "7"})
    assert response.status_code == 200
    assert response.json()["user_id"] == 7
    directory.resolve_actor.assert_awaited_with(7)


def test_unknown_user_header_is_unauthorized():
    app = create_app()
    directory = AsyncMock()
    directory.resolve_actor = AsyncMock(side_effect=NotFoundError("User with ID 5 not found"))

    async def override_directory():
        return directory

    app.dependency_overrides[ticket_deps.get_directory] = override_directory
    client = TestClient(app)

    assert client.get("/ping/whoami", headers={"X-User-Id": "5"}).status_code == 401


def test_services_unavailable_without_lifespan():
    client = TestClient(create_app())
    assert client.get("/ping").json() == {"status": "ok"}
    assert client.get("/tickets/1", headers={"X-User-Id": "1"}).status_code == 503
