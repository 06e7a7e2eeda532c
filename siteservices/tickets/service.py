from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from opentelemetry import trace

from siteservices.access import AccessGate, TicketAction
from siteservices.audit import AuditAction, AuditEntry
from siteservices.core.errors import CannotDelete, InvalidInput, NotFound
from siteservices.identity.models import Role, User
from siteservices.identity.repository import UserRepository
from siteservices.notifications import NotificationHub, NotificationName
from siteservices.schemas import TicketEventModel, TicketModel, attachment_model
from siteservices.storage import BlobStore

from .models import Attachment, Ticket, TicketEvent
from .repository import NewTicket, TicketRepository
from .state import (
    ASSIGNED_TO,
    RESOLVED_STATES,
    EventType,
    PendingEvent,
    TicketPatch,
    TicketPriority,
    TicketStateMachine,
    status_message,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(slots=True)
class TicketChange:
    """Outcome of a committed ticket mutation."""

    ticket: Ticket
    events: list[TicketEvent] = field(default_factory=list)


class TicketService:
    """High level orchestration for the ticket lifecycle.

    Each operation runs gate, state machine, one repository transaction and
    then the broadcast, in that order. Nothing is published for a rejected or
    failed request.
    """

    def __init__(
        self,
        repository: TicketRepository,
        users: UserRepository,
        *,
        gate: AccessGate | None = None,
        state_machine: TicketStateMachine | None = None,
        hub: NotificationHub | None = None,
        blobs: BlobStore | None = None,
    ) -> None:
        self._repository = repository
        self._users = users
        self._gate = gate or AccessGate()
        self._state_machine = state_machine or TicketStateMachine()
        self._hub = hub
        self._blobs = blobs

    async def create_ticket(
        self,
        actor: User,
        *,
        category: str | None,
        title: str | None,
        description: str | None,
        priority: str | None,
    ) -> TicketChange:
        self._gate.authorize(actor, TicketAction.CREATE)
        if not category or not title or not description or not priority:
            raise InvalidInput("MISSING_FIELDS")
        parsed_priority = TicketPriority.parse(priority)
        if parsed_priority is None:
            raise InvalidInput("INVALID_PRIORITY")

        status = self._state_machine.initial_state()
        new = NewTicket(
            created_by=actor.id,
            category=category.strip(),
            title=title.strip(),
            description=description,
            priority=parsed_priority,
            status=status,
            created_at=datetime.now(timezone.utc),
        )
        with tracer.start_as_current_span("tickets.create"):
            ticket, events = await self._repository.create_ticket(
                new,
                events=[PendingEvent(EventType.STATUS, status_message(status))],
                audit=AuditEntry(AuditAction.TICKET_CREATE, actor.id),
            )
        logger.info("Ticket %s created by user %s", ticket.ticket_no, actor.id)

        self._publish_events(events)
        self._publish(NotificationName.TICKET_CREATED, TicketModel.model_validate(ticket))
        return TicketChange(ticket=ticket, events=events)

    async def list_tickets(self, actor: User, *, query: str | None = None) -> list[Ticket]:
        scope = self._gate.list_scope(actor)
        return await self._repository.list_tickets(
            created_by=scope.created_by,
            assigned_to=scope.assigned_to,
            query=query,
        )

    async def search_tickets(self, actor: User, query: str | None) -> list[Ticket]:
        term = (query or "").strip()
        if not term:
            return []
        return await self.list_tickets(actor, query=term)

    async def get_ticket(self, actor: User, ticket_id: int, action: TicketAction = TicketAction.VIEW) -> Ticket:
        ticket = await self._load(ticket_id)
        self._gate.authorize(actor, action, ticket)
        return ticket

    async def update_ticket(self, actor: User, ticket_id: int, patch: TicketPatch) -> TicketChange:
        current = await self._load(ticket_id)
        capability = self._gate.authorize(actor, TicketAction.UPDATE, current)

        assignee: User | None = None
        if ASSIGNED_TO in capability.fields and ASSIGNED_TO in patch.provided and patch.assigned_to:
            assignee = await self._users.get_user(patch.assigned_to)
            if assignee is None or assignee.role is not Role.STAFF:
                raise InvalidInput("INVALID_ASSIGNEE")

        try:
            transition = self._state_machine.plan(
                current,
                patch,
                fields=capability.fields,
                status_targets=capability.status_targets,
                now=datetime.now(timezone.utc),
                assignee=assignee,
            )
        except InvalidInput:
            logger.info(
                "Rejected %s patch on ticket %s in %s: %s",
                actor.role.value,
                ticket_id,
                current.status.value,
                patch.status,
            )
            raise

        with tracer.start_as_current_span("tickets.update") as span:
            span.set_attribute("ticket.id", ticket_id)
            span.set_attribute("ticket.events", len(transition.events))
            result = await self._repository.apply_transition(
                transition.ticket,
                events=transition.events,
                actor_id=actor.id,
                audit=AuditEntry(AuditAction.TICKET_UPDATE, actor.id, {"ticketId": ticket_id}),
            )
        if result is None:
            raise NotFound()
        ticket, events = result
        logger.info(
            "Ticket %s updated by %s %s: %s",
            ticket.ticket_no,
            actor.role.value,
            actor.id,
            ", ".join(event.type.value for event in events) or "no tracked change",
        )

        self._publish_events(events)
        self._publish(NotificationName.TICKET_UPDATED, TicketModel.model_validate(ticket))
        return TicketChange(ticket=ticket, events=events)

    async def delete_ticket(self, actor: User, ticket_id: int) -> None:
        ticket = await self._load(ticket_id)
        self._gate.authorize(actor, TicketAction.DELETE, ticket)
        if ticket.status in RESOLVED_STATES:
            raise CannotDelete()

        deleted = await self._repository.delete_ticket(
            ticket_id,
            audit=AuditEntry(AuditAction.TICKET_DELETE, actor.id, {"ticketId": ticket_id}),
        )
        if not deleted:
            raise NotFound()
        logger.info("Ticket %s deleted by user %s", ticket.ticket_no, actor.id)
        self._publish(NotificationName.TICKET_DELETED, {"id": ticket_id})

    async def get_timeline(self, actor: User, ticket_id: int) -> list[TicketEvent]:
        await self.get_ticket(actor, ticket_id)
        return await self._repository.timeline.timeline(ticket_id)

    async def list_attachments(self, actor: User, ticket_id: int) -> list[Attachment]:
        await self.get_ticket(actor, ticket_id, TicketAction.ATTACH)
        return await self._repository.list_attachments(ticket_id)

    async def add_attachment(self, actor: User, ticket_id: int, upload) -> Attachment:
        if self._blobs is None:
            raise RuntimeError("Blob store is not configured")
        if upload is None:
            raise InvalidInput("NO_FILE")
        await self.get_ticket(actor, ticket_id, TicketAction.ATTACH)

        blob = await self._blobs.save(upload)
        try:
            attachment = await self._repository.add_attachment(
                Attachment(
                    id=0,
                    ticket_id=ticket_id,
                    uploaded_by=actor.id,
                    original_name=blob.original_name,
                    file_name=blob.file_name,
                    mime=blob.mime,
                    size=blob.size,
                    created_at=datetime.now(timezone.utc),
                ),
                audit=AuditEntry(AuditAction.ATTACHMENT_UPLOAD, actor.id, {"ticketId": ticket_id}),
            )
        except Exception:
            await self._blobs.remove(blob.file_name)
            raise

        self._publish(
            NotificationName.ATTACHMENT_CREATED,
            {"ticketId": ticket_id, "attachment": attachment_model(attachment)},
        )
        return attachment

    async def _load(self, ticket_id: int) -> Ticket:
        ticket = await self._repository.get_ticket(ticket_id)
        if ticket is None:
            raise NotFound()
        return ticket

    def _publish_events(self, events: list[TicketEvent]) -> None:
        for event in events:
            self._publish(NotificationName.EVENT_CREATED, TicketEventModel.model_validate(event))

    def _publish(self, name: str, payload) -> None:
        if self._hub is not None:
            self._hub.publish(name, payload)
