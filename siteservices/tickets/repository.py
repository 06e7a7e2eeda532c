from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from siteservices.audit import AuditEntry, AuditLogRepository
from siteservices.db import AttachmentTable, TicketTable, ensure_datetime

from .models import Attachment, Ticket, TicketEvent
from .state import PendingEvent, TicketPriority, TicketStatus, format_ticket_number
from .timeline import TimelineRecorder


@dataclass(slots=True)
class NewTicket:
    created_by: int
    category: str
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    created_at: datetime


class TicketRepository:
    """Data access layer for tickets and their attachments.

    Every mutating method is one transaction: the ticket row, the derived
    timeline events and the audit entry commit together or not at all.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        timeline: TimelineRecorder | None = None,
        number_prefix: str = "SSY",
    ) -> None:
        self._session_factory = session_factory
        self._timeline = timeline or TimelineRecorder(session_factory)
        self._number_prefix = number_prefix

    @property
    def timeline(self) -> TimelineRecorder:
        return self._timeline

    async def create_ticket(
        self,
        new: NewTicket,
        *,
        events: list[PendingEvent],
        audit: AuditEntry | None = None,
    ) -> tuple[Ticket, list[TicketEvent]]:
        async with self._session_factory() as session:
            async with session.begin():
                row = TicketTable(
                    created_by=new.created_by,
                    category=new.category,
                    title=new.title,
                    description=new.description,
                    priority=new.priority.value,
                    status=new.status.value,
                    created_at=new.created_at,
                    updated_at=new.created_at,
                )
                session.add(row)
                await session.flush()
                row.ticket_no = format_ticket_number(self._number_prefix, new.created_at, int(row.id))
                appended = await self._timeline.append(
                    session,
                    ticket_id=int(row.id),
                    actor_id=new.created_by,
                    events=events,
                    created_at=new.created_at,
                )
                if audit is not None:
                    audit.meta = {**(audit.meta or {}), "ticketId": int(row.id)}
                    AuditLogRepository.stage(session, audit)
            return self.to_ticket(row), appended

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        async with self._session_factory() as session:
            row = await session.get(TicketTable, ticket_id)
            return None if row is None else self.to_ticket(row)

    async def list_tickets(
        self,
        *,
        created_by: int | None = None,
        assigned_to: int | None = None,
        query: str | None = None,
    ) -> list[Ticket]:
        statement = select(TicketTable)
        if created_by is not None:
            statement = statement.where(TicketTable.created_by == created_by)
        if assigned_to is not None:
            statement = statement.where(TicketTable.assigned_to == assigned_to)
        if query:
            like = f"%{query.lower()}%"
            statement = statement.where(
                or_(
                    func.lower(TicketTable.ticket_no).like(like),
                    func.lower(TicketTable.title).like(like),
                    func.lower(TicketTable.description).like(like),
                    func.lower(TicketTable.category).like(like),
                )
            )
        statement = statement.order_by(TicketTable.created_at.desc(), TicketTable.id.desc())
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [self.to_ticket(row) for row in result.scalars().all()]

    async def apply_transition(
        self,
        ticket: Ticket,
        *,
        events: list[PendingEvent],
        actor_id: int,
        audit: AuditEntry | None = None,
    ) -> tuple[Ticket, list[TicketEvent]] | None:
        """Persist the next snapshot ``ticket`` and append ``events`` atomically.

        Concurrent patches to the same ticket are last-write-wins per column.
        """

        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(TicketTable, ticket.id)
                if row is None:
                    return None
                row.assigned_to = ticket.assigned_to
                row.status = ticket.status.value
                row.resolved_at = ticket.resolved_at
                row.resolved_note = ticket.resolved_note
                row.updated_at = ticket.updated_at
                appended = await self._timeline.append(
                    session,
                    ticket_id=ticket.id,
                    actor_id=actor_id,
                    events=events,
                    created_at=ticket.updated_at,
                )
                if audit is not None:
                    AuditLogRepository.stage(session, audit)
            return self.to_ticket(row), appended

    async def delete_ticket(self, ticket_id: int, *, audit: AuditEntry | None = None) -> bool:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(TicketTable, ticket_id)
                if row is None:
                    return False
                await session.delete(row)
                if audit is not None:
                    AuditLogRepository.stage(session, audit)
            return True

    async def add_attachment(self, attachment: Attachment, *, audit: AuditEntry | None = None) -> Attachment:
        async with self._session_factory() as session:
            async with session.begin():
                row = AttachmentTable(
                    ticket_id=attachment.ticket_id,
                    uploaded_by=attachment.uploaded_by,
                    original_name=attachment.original_name,
                    file_name=attachment.file_name,
                    mime=attachment.mime,
                    size=attachment.size,
                    created_at=attachment.created_at,
                )
                session.add(row)
                await session.flush()
                if audit is not None:
                    audit.meta = {**(audit.meta or {}), "attachmentId": int(row.id)}
                    AuditLogRepository.stage(session, audit)
            return self.to_attachment(row)

    async def list_attachments(self, ticket_id: int) -> list[Attachment]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AttachmentTable)
                .where(AttachmentTable.ticket_id == ticket_id)
                .order_by(AttachmentTable.created_at.asc(), AttachmentTable.id.asc())
            )
            return [self.to_attachment(row) for row in result.scalars().all()]

    @staticmethod
    def to_ticket(row: TicketTable) -> Ticket:
        return Ticket(
            id=int(row.id),
            ticket_no=row.ticket_no,
            created_by=row.created_by,
            category=row.category,
            title=row.title,
            description=row.description,
            priority=TicketPriority(row.priority),
            status=TicketStatus(row.status),
            assigned_to=row.assigned_to,
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
            resolved_at=ensure_datetime(row.resolved_at),
            resolved_note=row.resolved_note,
        )

    @staticmethod
    def to_attachment(row: AttachmentTable) -> Attachment:
        return Attachment(
            id=int(row.id),
            ticket_id=row.ticket_id,
            uploaded_by=row.uploaded_by,
            original_name=row.original_name,
            file_name=row.file_name,
            mime=row.mime,
            size=row.size,
            created_at=ensure_datetime(row.created_at),
        )
