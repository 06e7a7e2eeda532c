"""Append-only administrative audit trail."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from siteservices.db import AuditLogTable, ensure_datetime, utcnow


class AuditAction:
    USER_REGISTER = "USER_REGISTER"
    USER_LOGIN = "USER_LOGIN"
    USER_LOGOUT = "USER_LOGOUT"
    USER_UPDATE = "USER_UPDATE"
    TICKET_CREATE = "TICKET_CREATE"
    TICKET_UPDATE = "TICKET_UPDATE"
    TICKET_DELETE = "TICKET_DELETE"
    ATTACHMENT_UPLOAD = "ATTACHMENT_UPLOAD"
    ANNOUNCEMENT_CREATE = "ANNOUNCEMENT_CREATE"
    ANNOUNCEMENT_DELETE = "ANNOUNCEMENT_DELETE"
    RATING_SAVE = "RATING_SAVE"


@dataclass(slots=True)
class AuditEntry:
    action: str
    actor_id: int | None
    meta: Mapping[str, Any] | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None


class AuditLogRepository:
    """Writes audit rows, either standalone or inside a caller's transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def stage(session: AsyncSession, entry: AuditEntry) -> None:
        """Add ``entry`` to an open unit of work; it commits with the caller."""

        session.add(
            AuditLogTable(
                action=entry.action,
                actor_id=entry.actor_id,
                meta=dict(entry.meta) if entry.meta is not None else None,
                created_at=entry.created_at,
            )
        )

    async def record(self, entry: AuditEntry) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                self.stage(session, entry)

    async def list_entries(self, *, limit: int) -> list[AuditEntry]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AuditLogTable)
                .order_by(AuditLogTable.created_at.desc(), AuditLogTable.id.desc())
                .limit(limit)
            )
            return [
                AuditEntry(
                    id=row.id,
                    action=row.action,
                    actor_id=row.actor_id,
                    meta=dict(row.meta) if row.meta is not None else None,
                    created_at=ensure_datetime(row.created_at),
                )
                for row in result.scalars().all()
            ]
