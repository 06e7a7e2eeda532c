"""Resident ratings for resolved tickets."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from siteservices.access import AccessGate, TicketAction
from siteservices.audit import AuditAction, AuditEntry, AuditLogRepository
from siteservices.core.errors import InvalidInput, NotFound, NotResolved
from siteservices.db import RatingTable, ensure_datetime
from siteservices.identity.models import User
from siteservices.tickets.repository import TicketRepository
from siteservices.tickets.state import RESOLVED_STATES


@dataclass(slots=True)
class Rating:
    id: int
    ticket_id: int
    user_id: int
    stars: int
    note: str
    created_at: datetime


class RatingService:
    """Upsert keyed by (ticket, resident): resubmitting revises the rating."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tickets: TicketRepository,
        *,
        gate: AccessGate | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._tickets = tickets
        self._gate = gate or AccessGate()

    async def save_rating(
        self,
        actor: User,
        *,
        ticket_id: int | None,
        stars: int | None,
        note: str | None = None,
    ) -> Rating:
        self._gate.capability(actor, TicketAction.RATE)
        if not ticket_id or not stars:
            raise InvalidInput("MISSING_FIELDS")
        if not 1 <= int(stars) <= 5:
            raise InvalidInput("INVALID_STARS")

        ticket = await self._tickets.get_ticket(ticket_id)
        if ticket is None:
            raise NotFound()
        self._gate.authorize(actor, TicketAction.RATE, ticket)
        if ticket.status not in RESOLVED_STATES:
            raise NotResolved()

        now = datetime.now(timezone.utc)
        values = {
            "ticket_id": ticket_id,
            "user_id": actor.id,
            "stars": int(stars),
            "note": str(note or ""),
            "created_at": now,
        }
        async with self._session_factory() as session:
            async with session.begin():
                statement = _insert_for(session).values(**values)
                statement = statement.on_conflict_do_update(
                    index_elements=[RatingTable.ticket_id, RatingTable.user_id],
                    set_={
                        "stars": statement.excluded.stars,
                        "note": statement.excluded.note,
                        "created_at": statement.excluded.created_at,
                    },
                )
                await session.execute(statement)
                result = await session.execute(
                    select(RatingTable).where(
                        RatingTable.ticket_id == ticket_id, RatingTable.user_id == actor.id
                    )
                )
                row = result.scalars().one()
                AuditLogRepository.stage(
                    session,
                    AuditEntry(AuditAction.RATING_SAVE, actor.id, {"ticketId": ticket_id, "stars": int(stars)}),
                )
        return self._to_rating(row)

    async def list_ratings(self, actor: User) -> list[Rating]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(RatingTable)
                .where(RatingTable.user_id == actor.id)
                .order_by(RatingTable.created_at.desc(), RatingTable.id.desc())
            )
            return [self._to_rating(row) for row in result.scalars().all()]

    @staticmethod
    def _to_rating(row: RatingTable) -> Rating:
        return Rating(
            id=int(row.id),
            ticket_id=row.ticket_id,
            user_id=row.user_id,
            stars=row.stars,
            note=row.note,
            created_at=ensure_datetime(row.created_at),
        )


def _insert_for(session: AsyncSession):
    """Dialect insert with ON CONFLICT support for the bound engine."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql_insert(RatingTable)
    return sqlite_insert(RatingTable)
