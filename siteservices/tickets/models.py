from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .state import EventType, TicketPriority, TicketStatus


@dataclass(slots=True)
class Ticket:
    """Resident complaint as read from the store."""

    id: int
    ticket_no: str | None
    created_by: int
    category: str
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    assigned_to: int | None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None
    resolved_note: str | None = None


@dataclass(slots=True)
class TicketEvent:
    """Immutable timeline entry recording one change on a ticket."""

    id: int
    ticket_id: int
    actor_id: int | None
    type: EventType
    message: str
    created_at: datetime


@dataclass(slots=True)
class Attachment:
    id: int
    ticket_id: int
    uploaded_by: int
    original_name: str
    file_name: str
    mime: str
    size: int
    created_at: datetime
