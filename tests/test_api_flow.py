from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI


@pytest_asyncio.fixture
async def api(wired_app: FastAPI) -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=wired_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


async def _register(api: httpx.AsyncClient, name: str, role: str) -> dict[str, str]:
    response = await api.post(
        "/api/auth/register",
        json={"fullName": name, "email": f"{name.lower()}@example.com", "password": "secret123", "role": role},
    )
    assert response.status_code == 200, response.text
    set_cookie = response.headers["set-cookie"]
    assert "httponly" in set_cookie.lower()
    token = set_cookie.split(";", 1)[0].split("=", 1)[1]
    api.cookies.clear()
    return {"Cookie": f"sid={token}"}


@pytest.mark.asyncio
async def test_complaint_lifecycle_over_http(api: httpx.AsyncClient):
    resident = await _register(api, "Rita", "RESIDENT")
    staff = await _register(api, "Sam", "STAFF")
    admin = await _register(api, "Ada", "ADMIN")

    staff_id = (await api.get("/api/me", headers=staff)).json()["user"]["id"]

    created = await api.post(
        "/api/tickets",
        headers=resident,
        json={"category": "Plumbing", "title": "Leak", "description": "Kitchen leak", "priority": "NORMAL"},
    )
    ticket = created.json()["ticket"]
    assert ticket["status"] == "OPEN"

    assigned = await api.patch(f"/api/tickets/{ticket['id']}", headers=admin, json={"assignedTo": staff_id})
    assert assigned.json()["ticket"]["status"] == "ASSIGNED"

    resolved = await api.patch(
        f"/api/tickets/{ticket['id']}",
        headers=staff,
        json={"status": "RESOLVED", "resolvedNote": "Fixed valve"},
    )
    assert resolved.json()["ticket"]["resolvedAt"] is not None

    closed = await api.patch(f"/api/tickets/{ticket['id']}", headers=staff, json={"status": "CLOSED"})
    assert closed.status_code == 400
    assert closed.json() == {"error": "INVALID_STATUS"}

    events = await api.get("/api/events", headers=resident, params={"ticketId": ticket["id"]})
    assert [event["type"] for event in events.json()["events"]] == [
        "STATUS",
        "ASSIGN",
        "STATUS",
        "STATUS",
        "COMMENT",
    ]

    rating = await api.post("/api/ratings", headers=resident, json={"ticketId": ticket["id"], "stars": 5})
    assert rating.json()["rating"]["stars"] == 5

    deleted = await api.delete(f"/api/tickets/{ticket['id']}", headers=resident)
    assert deleted.status_code == 400
    assert deleted.json() == {"error": "CANNOT_DELETE"}

    summary = await api.get("/api/reports/summary", headers=admin)
    assert summary.json()["done"] == 1
    top = await api.get("/api/reports/top-staff", headers=admin)
    assert top.json()["staff"][0]["id"] == staff_id

    audit = await api.get("/api/audit", headers=admin, params={"limit": 500})
    actions = [entry["action"] for entry in audit.json()["entries"]]
    assert actions[0] == "RATING_SAVE"
    assert actions.count("TICKET_UPDATE") == 2


@pytest.mark.asyncio
async def test_logout_invalidates_session(api: httpx.AsyncClient):
    resident = await _register(api, "Lee", "RESIDENT")

    logout = await api.post("/api/auth/logout", headers=resident)
    assert logout.json() == {"ok": True}

    response = await api.get("/api/me", headers=resident)
    assert response.status_code == 401
    assert response.json() == {"error": "UNAUTHORIZED"}


@pytest.mark.asyncio
async def test_disabled_account_is_locked_out(api: httpx.AsyncClient):
    admin = await _register(api, "Root", "ADMIN")
    resident = await _register(api, "Dan", "RESIDENT")
    resident_id = (await api.get("/api/me", headers=resident)).json()["user"]["id"]

    updated = await api.patch(f"/api/users/{resident_id}", headers=admin, json={"isActive": False})
    assert updated.json()["user"]["isActive"] is False

    response = await api.get("/api/tickets", headers=resident)
    assert response.status_code == 403
    assert response.json() == {"error": "ACCOUNT_DISABLED"}


@pytest.mark.asyncio
async def test_public_announcements_and_upload(api: httpx.AsyncClient):
    admin = await _register(api, "Mia", "ADMIN")
    resident = await _register(api, "Ron", "RESIDENT")

    created = await api.post(
        "/api/announcements",
        headers=admin,
        data={"title": "Pool closed", "body": "Maintenance", "expiresHours": "2"},
    )
    assert created.status_code == 200, created.text

    public = await api.get("/api/public/announcements")
    assert [item["title"] for item in public.json()["announcements"]] == ["Pool closed"]

    ticket = (
        await api.post(
            "/api/tickets",
            headers=resident,
            json={"category": "Pool", "title": "Dirty", "description": "Leaves", "priority": "LOW"},
        )
    ).json()["ticket"]
    uploaded = await api.post(
        f"/api/tickets/{ticket['id']}/attachments",
        headers=resident,
        files={"file": ("photo.jpg", b"jpeg-bytes", "image/jpeg")},
    )
    attachment = uploaded.json()["attachment"]
    assert attachment["originalName"] == "photo.jpg"
    assert attachment["url"] == f"/uploads/{attachment['fileName']}"

    too_big = await api.post(
        f"/api/tickets/{ticket['id']}/attachments",
        headers=resident,
        files={"file": ("big.bin", b"x" * 2048, "application/octet-stream")},
    )
    assert too_big.status_code == 413
    assert too_big.json() == {"error": "FILE_TOO_LARGE"}
