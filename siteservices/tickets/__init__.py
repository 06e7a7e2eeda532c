"""Ticket lifecycle: state machine, timeline and persistence."""

from .models import Attachment, Ticket, TicketEvent
from .repository import NewTicket, TicketRepository
from .state import EventType, TicketPatch, TicketPriority, TicketStateMachine, TicketStatus
from .timeline import TimelineRecorder

__all__ = [
    "Attachment",
    "EventType",
    "NewTicket",
    "Ticket",
    "TicketEvent",
    "TicketPatch",
    "TicketPriority",
    "TicketRepository",
    "TicketStateMachine",
    "TicketStatus",
    "TimelineRecorder",
]
