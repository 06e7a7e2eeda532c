from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest
from sqlmodel import select

from siteservices.audit import AuditEntry
from siteservices.db import AuditLogTable, TicketEventTable
from siteservices.tickets import NewTicket, TicketRepository, TimelineRecorder
from siteservices.tickets.state import EventType, PendingEvent, TicketPriority, TicketStatus


def _new_ticket(created_at: datetime) -> NewTicket:
    return NewTicket(
        created_by=1,
        category="Elevator",
        title="Stuck",
        description="Between floors",
        priority=TicketPriority.URGENT,
        status=TicketStatus.OPEN,
        created_at=created_at,
    )


@pytest.mark.asyncio
async def test_create_assigns_number_once_and_stages_audit(database):
    repository = TicketRepository(database.session_factory, number_prefix="BLK")
    created_at = datetime(2024, 5, 17, 23, 59, tzinfo=timezone.utc)

    ticket, events = await repository.create_ticket(
        _new_ticket(created_at),
        events=[PendingEvent(EventType.STATUS, "Status: OPEN")],
        audit=AuditEntry("TICKET_CREATE", 1),
    )

    assert ticket.ticket_no == f"BLK-20240517-{ticket.id:06d}"
    assert [event.ticket_id for event in events] == [ticket.id]
    async with database.session_factory() as session:
        audit_rows = (await session.execute(select(AuditLogTable))).scalars().all()
    assert [row.meta for row in audit_rows] == [{"ticketId": ticket.id}]


@pytest.mark.asyncio
async def test_same_instant_events_keep_append_order(database):
    timeline = TimelineRecorder(database.session_factory)
    repository = TicketRepository(database.session_factory, timeline=timeline)
    ticket, _ = await repository.create_ticket(_new_ticket(datetime.now(timezone.utc)), events=[])

    pending = [
        PendingEvent(EventType.ASSIGN, "Staff assigned (ID: 4)"),
        PendingEvent(EventType.STATUS, "Status: ASSIGNED"),
        PendingEvent(EventType.COMMENT, "Resolution note: on it"),
    ]
    next_ticket = replace(ticket, assigned_to=4, status=TicketStatus.ASSIGNED, updated_at=datetime.now(timezone.utc))
    result = await repository.apply_transition(next_ticket, events=pending, actor_id=2)

    assert result is not None
    stored = await timeline.timeline(ticket.id)
    assert [event.type for event in stored] == [EventType.ASSIGN, EventType.STATUS, EventType.COMMENT]
    assert len({event.created_at for event in stored}) == 1


@pytest.mark.asyncio
async def test_transition_on_missing_ticket_writes_nothing(database):
    repository = TicketRepository(database.session_factory)
    ticket, _ = await repository.create_ticket(_new_ticket(datetime.now(timezone.utc)), events=[])
    await repository.delete_ticket(ticket.id)

    result = await repository.apply_transition(
        replace(ticket, status=TicketStatus.CLOSED),
        events=[PendingEvent(EventType.STATUS, "Status: CLOSED")],
        actor_id=2,
    )

    assert result is None
    async with database.session_factory() as session:
        rows = (await session.execute(select(TicketEventTable))).scalars().all()
    assert rows == []
