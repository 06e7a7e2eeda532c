from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from sqlalchemy import update

from siteservices.db import TicketTable
from siteservices.tickets.state import TicketPatch


async def _ticket(app: FastAPI, resident, title: str):
    change = await app.state.ticket_service.create_ticket(
        resident, category="General", title=title, description="...", priority="NORMAL"
    )
    return change.ticket


async def _backdate(app: FastAPI, ticket_id: int, hours: int) -> None:
    async with app.state.database.session_factory() as session:
        async with session.begin():
            await session.execute(
                update(TicketTable)
                .where(TicketTable.id == ticket_id)
                .values(created_at=datetime.now(timezone.utc) - timedelta(hours=hours))
            )


@pytest.mark.asyncio
async def test_summary_counts_and_sla(wired_app: FastAPI, accounts):
    tickets = wired_app.state.ticket_service
    admin = accounts["admin"]
    resident = accounts["resident"]

    fresh = await _ticket(wired_app, resident, "fresh")
    overdue = await _ticket(wired_app, resident, "overdue")
    quick = await _ticket(wired_app, resident, "quick")
    slow = await _ticket(wired_app, resident, "slow")
    await _backdate(wired_app, overdue.id, 72)
    await _backdate(wired_app, slow.id, 100)
    await tickets.update_ticket(admin, fresh.id, TicketPatch.build({"assigned_to": accounts["staff"].id}))
    await tickets.update_ticket(admin, quick.id, TicketPatch.build({"status": "RESOLVED"}))
    await tickets.update_ticket(admin, slow.id, TicketPatch.build({"status": "CLOSED"}))

    summary = await wired_app.state.reporting_service.summary()

    assert summary.total == 4
    assert summary.open == 1
    assert summary.assigned == 1
    assert summary.done == 2
    assert summary.sla_total == 2
    assert summary.sla_ok == 1
    assert summary.overdue == 1
    assert summary.avg_resolution_hours == pytest.approx(50, abs=0.5)


@pytest.mark.asyncio
async def test_summary_without_resolutions(wired_app: FastAPI, accounts):
    summary = await wired_app.state.reporting_service.summary()

    assert summary.total == 0
    assert summary.avg_resolution_hours is None


@pytest.mark.asyncio
async def test_top_staff_ranks_by_average_then_count(wired_app: FastAPI, accounts):
    tickets = wired_app.state.ticket_service
    ratings = wired_app.state.rating_service
    admin = accounts["admin"]

    async def rated(staff, resident, stars):
        ticket = await _ticket(wired_app, resident, f"rated by {resident.id}")
        await tickets.update_ticket(admin, ticket.id, TicketPatch.build({"assigned_to": staff.id}))
        await tickets.update_ticket(staff, ticket.id, TicketPatch.build({"status": "RESOLVED"}))
        await ratings.save_rating(resident, ticket_id=ticket.id, stars=stars)

    await rated(accounts["staff"], accounts["resident"], 5)
    await rated(accounts["other_staff"], accounts["resident"], 5)
    await rated(accounts["other_staff"], accounts["other_resident"], 5)

    scores = await wired_app.state.reporting_service.top_staff()

    assert [score.id for score in scores] == [accounts["other_staff"].id, accounts["staff"].id]
    assert scores[0].ratings_count == 2
    assert scores[0].avg_stars == 5.0


@pytest.mark.asyncio
async def test_reopened_ticket_leaves_resolution_figures(wired_app: FastAPI, accounts):
    tickets = wired_app.state.ticket_service
    admin = accounts["admin"]
    ticket = await _ticket(wired_app, accounts["resident"], "reopened")
    await tickets.update_ticket(admin, ticket.id, TicketPatch.build({"status": "CLOSED"}))
    reopened = await tickets.update_ticket(admin, ticket.id, TicketPatch.build({"status": "IN_REVIEW"}))
    assert reopened.ticket.resolved_at is not None

    summary = await wired_app.state.reporting_service.summary()

    assert summary.open == 1
    assert summary.done == 0
    assert summary.sla_total == 0
    assert summary.sla_ok == 0
    assert summary.avg_resolution_hours is None
