from __future__ import annotations

from fastapi import APIRouter, Query

from siteservices.dependencies.auth import CurrentUser
from siteservices.dependencies.services import TicketServiceDep
from siteservices.schemas import (
    CamelModel,
    TicketCreateRequest,
    TicketEventModel,
    TicketModel,
    TicketUpdateRequest,
)
from siteservices.tickets.state import TicketPatch

router = APIRouter(prefix="/api/tickets", tags=["tickets"])


class TicketEnvelope(CamelModel):
    ticket: TicketModel


class TicketListEnvelope(CamelModel):
    tickets: list[TicketModel]


class EventListEnvelope(CamelModel):
    events: list[TicketEventModel]


@router.get("", response_model=TicketListEnvelope, summary="Tickets visible to the caller")
async def list_tickets(
    user: CurrentUser,
    service: TicketServiceDep,
    q: str | None = Query(None, description="Optional case-insensitive filter"),
) -> TicketListEnvelope:
    tickets = await service.list_tickets(user, query=q)
    return TicketListEnvelope(tickets=[TicketModel.model_validate(item) for item in tickets])


@router.post("", response_model=TicketEnvelope, summary="File a new complaint")
async def create_ticket(
    payload: TicketCreateRequest,
    user: CurrentUser,
    service: TicketServiceDep,
) -> TicketEnvelope:
    change = await service.create_ticket(
        user,
        category=payload.category,
        title=payload.title,
        description=payload.description,
        priority=payload.priority,
    )
    return TicketEnvelope(ticket=TicketModel.model_validate(change.ticket))


@router.get("/{ticket_id}", response_model=TicketEnvelope)
async def get_ticket(ticket_id: int, user: CurrentUser, service: TicketServiceDep) -> TicketEnvelope:
    ticket = await service.get_ticket(user, ticket_id)
    return TicketEnvelope(ticket=TicketModel.model_validate(ticket))


@router.patch("/{ticket_id}", response_model=TicketEnvelope, summary="Assign, transition or annotate")
async def update_ticket(
    ticket_id: int,
    payload: TicketUpdateRequest,
    user: CurrentUser,
    service: TicketServiceDep,
) -> TicketEnvelope:
    supplied = {name: getattr(payload, name) for name in payload.model_fields_set}
    change = await service.update_ticket(user, ticket_id, TicketPatch.build(supplied))
    return TicketEnvelope(ticket=TicketModel.model_validate(change.ticket))


@router.delete("/{ticket_id}")
async def delete_ticket(ticket_id: int, user: CurrentUser, service: TicketServiceDep) -> dict[str, bool]:
    await service.delete_ticket(user, ticket_id)
    return {"ok": True}


@router.get("/{ticket_id}/events", response_model=EventListEnvelope, summary="Ticket timeline")
async def ticket_events(ticket_id: int, user: CurrentUser, service: TicketServiceDep) -> EventListEnvelope:
    events = await service.get_timeline(user, ticket_id)
    return EventListEnvelope(events=[TicketEventModel.model_validate(item) for item in events])
