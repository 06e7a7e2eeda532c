from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from siteservices.core.errors import AccountDisabled, InvalidInput, Unauthorized
from siteservices.dependencies import auth as auth_deps
from siteservices.dependencies import services as service_deps
from siteservices.identity.models import Role
from siteservices.main import create_app
from siteservices.tickets.models import Ticket
from siteservices.tickets.service import TicketChange
from siteservices.tickets.state import TicketPriority, TicketStatus

from conftest import make_user

USERS = {
    "resident-token": make_user(1, Role.RESIDENT),
    "admin-token": make_user(2, Role.ADMIN),
    "disabled-token": make_user(3, Role.STAFF, is_active=False),
}


def _make_ticket(*, status: TicketStatus = TicketStatus.OPEN) -> Ticket:
    now = datetime.now(timezone.utc)
    return Ticket(
        id=11,
        ticket_no="SSY-20240101-000011",
        created_by=1,
        category="Plumbing",
        title="Leak",
        description="Kitchen leak",
        priority=TicketPriority.NORMAL,
        status=status,
        assigned_to=None,
        created_at=now,
        updated_at=now,
    )


async def _resolve(token):
    user = USERS.get(token)
    if user is None:
        raise Unauthorized()
    if not user.is_active:
        raise AccountDisabled()
    return user


@pytest.fixture
def route_client():
    app = create_app(use_lifespan=False)
    resolver = AsyncMock()
    resolver.resolve = AsyncMock(side_effect=_resolve)
    service = AsyncMock()
    accounts = AsyncMock()

    async def override_service():
        return service

    async def override_accounts():
        return accounts

    app.dependency_overrides[auth_deps.get_session_resolver] = lambda: resolver
    app.dependency_overrides[service_deps.get_ticket_service] = override_service
    app.dependency_overrides[service_deps.get_account_service] = override_accounts

    client = TestClient(app, raise_server_exceptions=False)
    try:
        yield client, service
    finally:
        app.dependency_overrides.clear()


def _login(client: TestClient, token: str) -> None:
    client.cookies.set("sid", token)


def test_missing_session_is_unauthorized(route_client):
    client, service = route_client

    response = client.get("/api/tickets")

    assert response.status_code == 401
    assert response.json() == {"error": "UNAUTHORIZED"}
    service.list_tickets.assert_not_awaited()


def test_disabled_account_is_rejected(route_client):
    client, _ = route_client
    _login(client, "disabled-token")

    response = client.get("/api/me")

    assert response.status_code == 403
    assert response.json() == {"error": "ACCOUNT_DISABLED"}


def test_list_tickets_uses_camel_case_envelope(route_client):
    client, service = route_client
    _login(client, "resident-token")
    service.list_tickets = AsyncMock(return_value=[_make_ticket()])

    response = client.get("/api/tickets")

    assert response.status_code == 200
    payload = response.json()["tickets"][0]
    assert payload["ticketNo"] == "SSY-20240101-000011"
    assert payload["status"] == "OPEN"
    assert payload["assignedTo"] is None


def test_patch_passes_only_supplied_fields(route_client):
    client, service = route_client
    _login(client, "admin-token")
    service.update_ticket = AsyncMock(return_value=TicketChange(ticket=_make_ticket(status=TicketStatus.CLOSED)))

    response = client.patch("/api/tickets/11", json={"status": "CLOSED"})

    assert response.status_code == 200
    assert response.json()["ticket"]["status"] == "CLOSED"
    _, ticket_id, patch = service.update_ticket.await_args.args
    assert ticket_id == 11
    assert patch.provided == frozenset({"status"})
    assert patch.status == "CLOSED"


def test_patch_can_clear_assignee_with_explicit_null(route_client):
    client, service = route_client
    _login(client, "admin-token")
    service.update_ticket = AsyncMock(return_value=TicketChange(ticket=_make_ticket()))

    client.patch("/api/tickets/11", json={"assignedTo": None})

    patch = service.update_ticket.await_args.args[2]
    assert patch.provided == frozenset({"assigned_to"})
    assert patch.assigned_to is None


def test_domain_errors_render_code(route_client):
    client, service = route_client
    _login(client, "admin-token")
    service.update_ticket = AsyncMock(side_effect=InvalidInput("INVALID_STATUS"))

    response = client.patch("/api/tickets/11", json={"status": "bogus"})

    assert response.status_code == 400
    assert response.json() == {"error": "INVALID_STATUS"}


def test_validation_errors_render_code(route_client):
    client, _ = route_client
    _login(client, "admin-token")

    response = client.patch("/api/tickets/not-a-number", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "INVALID_INPUT"}


def test_unexpected_errors_hide_details(route_client):
    client, service = route_client
    _login(client, "resident-token")
    service.list_tickets = AsyncMock(side_effect=RuntimeError("connection reset"))

    response = client.get("/api/tickets")

    assert response.status_code == 500
    assert response.json() == {"error": "SERVER_ERROR"}


def test_admin_routes_reject_residents(route_client):
    client, _ = route_client
    _login(client, "resident-token")

    response = client.get("/api/users")

    assert response.status_code == 403
    assert response.json() == {"error": "FORBIDDEN"}


def test_delete_returns_ok(route_client):
    client, service = route_client
    _login(client, "resident-token")
    service.delete_ticket = AsyncMock(return_value=None)

    response = client.delete("/api/tickets/11")

    assert response.json() == {"ok": True}
    service.delete_ticket.assert_awaited_once()


def test_health_needs_no_session(route_client):
    client, _ = route_client

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_unknown_route_uses_error_envelope(route_client):
    client, _ = route_client

    response = client.get("/api/no-such-thing")

    assert response.status_code == 404
    assert response.json() == {"error": "NOT_FOUND"}


def test_wrong_method_uses_error_envelope(route_client):
    client, _ = route_client

    response = client.put("/api/health")

    assert response.status_code == 405
    assert response.json() == {"error": "METHOD_NOT_ALLOWED"}
    assert "allow" in response.headers


def test_unwired_service_uses_error_envelope(route_client):
    client, _ = route_client
    _login(client, "resident-token")

    response = client.get("/api/ratings")

    assert response.status_code == 503
    assert response.json() == {"error": "SERVICE_UNAVAILABLE"}
