"""Per-request authorization for ticket-scoped operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from siteservices.core.errors import Forbidden
from siteservices.identity.models import Role, User
from siteservices.tickets.models import Ticket
from siteservices.tickets.state import ASSIGNED_TO, RESOLVED_NOTE, STATUS, TicketStatus


class TicketAction(str, Enum):
    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ATTACH = "attach"
    RATE = "rate"


class Scope(str, Enum):
    """Which tickets a capability reaches."""

    ANY = "any"
    CREATOR = "creator"
    ASSIGNEE = "assignee"


@dataclass(frozen=True, slots=True)
class Capability:
    scope: Scope
    fields: frozenset[str] = frozenset()
    status_targets: frozenset[TicketStatus] = frozenset()


_ADMIN_UPDATE = Capability(
    Scope.ANY,
    fields=frozenset({ASSIGNED_TO, STATUS, RESOLVED_NOTE}),
    status_targets=frozenset(TicketStatus),
)
_STAFF_UPDATE = Capability(
    Scope.ASSIGNEE,
    fields=frozenset({STATUS, RESOLVED_NOTE}),
    status_targets=frozenset({TicketStatus.IN_REVIEW, TicketStatus.RESOLVED}),
)

# Role x action. A missing pair means the action is never allowed.
CAPABILITY_MATRIX: Mapping[tuple[Role, TicketAction], Capability] = {
    (Role.ADMIN, TicketAction.VIEW): Capability(Scope.ANY),
    (Role.ADMIN, TicketAction.UPDATE): _ADMIN_UPDATE,
    (Role.ADMIN, TicketAction.ATTACH): Capability(Scope.ANY),
    (Role.STAFF, TicketAction.VIEW): Capability(Scope.ASSIGNEE),
    (Role.STAFF, TicketAction.UPDATE): _STAFF_UPDATE,
    (Role.STAFF, TicketAction.ATTACH): Capability(Scope.ASSIGNEE),
    (Role.RESIDENT, TicketAction.VIEW): Capability(Scope.CREATOR),
    (Role.RESIDENT, TicketAction.CREATE): Capability(Scope.CREATOR),
    (Role.RESIDENT, TicketAction.DELETE): Capability(Scope.CREATOR),
    (Role.RESIDENT, TicketAction.ATTACH): Capability(Scope.CREATOR),
    (Role.RESIDENT, TicketAction.RATE): Capability(Scope.CREATOR),
}


@dataclass(frozen=True, slots=True)
class TicketScope:
    """Row filter for list and search queries."""

    created_by: int | None = None
    assigned_to: int | None = None


class AccessGate:
    """Single lookup into :data:`CAPABILITY_MATRIX` per request.

    Callers load the ticket first, so a missing ticket surfaces as
    ``NOT_FOUND`` before ownership is considered; an existing ticket outside
    the actor's scope is ``FORBIDDEN``.
    """

    def __init__(self, matrix: Mapping[tuple[Role, TicketAction], Capability] | None = None) -> None:
        self._matrix = matrix or CAPABILITY_MATRIX

    def capability(self, user: User, action: TicketAction) -> Capability:
        capability = self._matrix.get((user.role, action))
        if capability is None:
            raise Forbidden()
        return capability

    def authorize(self, user: User, action: TicketAction, ticket: Ticket | None = None) -> Capability:
        capability = self.capability(user, action)
        if ticket is not None and not self._in_scope(user, capability.scope, ticket):
            raise Forbidden()
        return capability

    def can_access(self, user: User, ticket: Ticket) -> bool:
        capability = self._matrix.get((user.role, TicketAction.VIEW))
        return capability is not None and self._in_scope(user, capability.scope, ticket)

    def list_scope(self, user: User) -> TicketScope:
        scope = self.capability(user, TicketAction.VIEW).scope
        if scope is Scope.CREATOR:
            return TicketScope(created_by=user.id)
        if scope is Scope.ASSIGNEE:
            return TicketScope(assigned_to=user.id)
        return TicketScope()

    @staticmethod
    def _in_scope(user: User, scope: Scope, ticket: Ticket) -> bool:
        if scope is Scope.CREATOR:
            return ticket.created_by == user.id
        if scope is Scope.ASSIGNEE:
            return ticket.assigned_to is not None and ticket.assigned_to == user.id
        return True
