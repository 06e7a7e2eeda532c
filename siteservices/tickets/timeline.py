from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from siteservices.db import TicketEventTable, ensure_datetime

from .models import TicketEvent
from .state import EventType, PendingEvent


class TimelineRecorder:
    """Append-only writer and reader for ticket events.

    Events are staged on the session that carries the ticket mutation, so they
    commit or roll back together with it. Reads order by timestamp and then by
    id, which keeps same-instant events in insertion order.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append(
        self,
        session: AsyncSession,
        *,
        ticket_id: int,
        actor_id: int | None,
        events: Iterable[PendingEvent],
        created_at: datetime,
    ) -> list[TicketEvent]:
        rows = [
            TicketEventTable(
                ticket_id=ticket_id,
                actor_id=actor_id,
                type=event.type.value,
                message=event.message,
                created_at=created_at,
            )
            for event in events
        ]
        for row in rows:
            session.add(row)
            # One flush per row pins the id order to the append order.
            await session.flush()
        return [self.to_event(row) for row in rows]

    async def timeline(self, ticket_id: int) -> list[TicketEvent]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketEventTable)
                .where(TicketEventTable.ticket_id == ticket_id)
                .order_by(TicketEventTable.created_at.asc(), TicketEventTable.id.asc())
            )
            return [self.to_event(row) for row in result.scalars().all()]

    @staticmethod
    def to_event(row: TicketEventTable) -> TicketEvent:
        return TicketEvent(
            id=int(row.id),
            ticket_id=row.ticket_id,
            actor_id=row.actor_id,
            type=EventType(row.type),
            message=row.message,
            created_at=ensure_datetime(row.created_at),
        )
