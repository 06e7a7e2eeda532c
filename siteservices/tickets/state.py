from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from siteservices.core.errors import Forbidden, InvalidInput

if TYPE_CHECKING:
    from siteservices.identity.models import User

    from .models import Ticket


class TicketStatus(str, Enum):
    """Supported states for a ticket's lifecycle."""

    OPEN = "OPEN"
    IN_REVIEW = "IN_REVIEW"
    ASSIGNED = "ASSIGNED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: str | None) -> "TicketStatus | None":
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return None


class TicketPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @classmethod
    def parse(cls, value: str | None) -> "TicketPriority | None":
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return None


class EventType(str, Enum):
    STATUS = "STATUS"
    ASSIGN = "ASSIGN"
    COMMENT = "COMMENT"


# Entering one of these stamps ``resolved_at``; it also blocks deletion.
RESOLVED_STATES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})
CANCELLABLE_STATES = frozenset({TicketStatus.OPEN, TicketStatus.ASSIGNED, TicketStatus.IN_REVIEW})

# Patchable fields, by attribute name on :class:`Ticket`.
ASSIGNED_TO = "assigned_to"
STATUS = "status"
RESOLVED_NOTE = "resolved_note"


def format_ticket_number(prefix: str, created_at: datetime, ticket_id: int) -> str:
    return f"{prefix}-{created_at:%Y%m%d}-{ticket_id:06d}"


@dataclass(frozen=True, slots=True)
class TicketPatch:
    """Partial update; ``provided`` names the fields present in the request."""

    provided: frozenset[str]
    assigned_to: int | None = None
    status: str | None = None
    resolved_note: str | None = None

    @classmethod
    def build(cls, values: dict[str, object]) -> "TicketPatch":
        return cls(provided=frozenset(values), **values)  # type: ignore[arg-type]


@dataclass(frozen=True, slots=True)
class PendingEvent:
    type: EventType
    message: str


@dataclass(slots=True)
class TicketTransition:
    """Next snapshot of a ticket plus the timeline entries it implies."""

    ticket: "Ticket"
    events: list[PendingEvent] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.events)


class TicketStateMachine:
    """Compute the next ticket snapshot for a role-restricted patch.

    The machine never writes anything. It applies only the fields the actor's
    capability allows, validates status targets, and derives the ASSIGN, STATUS
    and COMMENT events in that order. An invalid patch raises before any
    snapshot is produced, so callers have nothing partial to persist.
    """

    @staticmethod
    def initial_state() -> TicketStatus:
        return TicketStatus.OPEN

    @staticmethod
    def can_set_status(
        current: TicketStatus,
        target: TicketStatus,
        status_targets: Iterable[TicketStatus],
    ) -> bool:
        if target not in frozenset(status_targets):
            return False
        if target is TicketStatus.CANCELLED and current is not TicketStatus.CANCELLED:
            return current in CANCELLABLE_STATES
        return True

    def plan(
        self,
        ticket: "Ticket",
        patch: TicketPatch,
        *,
        fields: frozenset[str],
        status_targets: frozenset[TicketStatus],
        now: datetime,
        assignee: "User | None" = None,
    ) -> TicketTransition:
        if not fields:
            raise Forbidden()

        next_assigned = ticket.assigned_to
        next_status = ticket.status
        next_note = ticket.resolved_note
        status_supplied = False

        if ASSIGNED_TO in patch.provided and ASSIGNED_TO in fields:
            next_assigned = patch.assigned_to or None

        if STATUS in patch.provided and STATUS in fields and patch.status:
            target = TicketStatus.parse(patch.status)
            if target is None or not self.can_set_status(ticket.status, target, status_targets):
                raise InvalidInput("INVALID_STATUS")
            next_status = target
            status_supplied = True

        if RESOLVED_NOTE in patch.provided and RESOLVED_NOTE in fields:
            next_note = str(patch.resolved_note or "")

        assignment_changed = next_assigned != ticket.assigned_to
        if assignment_changed and next_assigned is not None and not status_supplied:
            next_status = TicketStatus.ASSIGNED

        events: list[PendingEvent] = []
        if assignment_changed:
            events.append(PendingEvent(EventType.ASSIGN, self._assign_message(next_assigned, assignee)))
        if next_status != ticket.status:
            events.append(PendingEvent(EventType.STATUS, status_message(next_status)))
        if next_note and next_note != ticket.resolved_note:
            events.append(PendingEvent(EventType.COMMENT, f"Resolution note: {next_note}"))

        resolved_at = now if next_status in RESOLVED_STATES else ticket.resolved_at
        next_ticket = replace(
            ticket,
            assigned_to=next_assigned,
            status=next_status,
            resolved_note=next_note,
            resolved_at=resolved_at,
            updated_at=now,
        )
        return TicketTransition(ticket=next_ticket, events=events)

    @staticmethod
    def _assign_message(assigned_to: int | None, assignee: "User | None") -> str:
        if assigned_to is None:
            return "Assignment removed"
        if assignee is not None and assignee.id == assigned_to:
            return f"Staff assigned: {assignee.full_name} (ID: {assigned_to})"
        return f"Staff assigned (ID: {assigned_to})"


def status_message(status: TicketStatus) -> str:
    return f"Status: {status.value}"
