from __future__ import annotations

from fastapi import APIRouter, Query

from siteservices.dependencies.auth import CurrentUser
from siteservices.dependencies.services import TicketServiceDep
from siteservices.schemas import CamelModel, TicketEventModel

router = APIRouter(prefix="/api/events", tags=["events"])


class EventListEnvelope(CamelModel):
    events: list[TicketEventModel]


@router.get("", response_model=EventListEnvelope, summary="Timeline of one ticket, oldest first")
async def list_events(
    user: CurrentUser,
    service: TicketServiceDep,
    ticket_id: int = Query(..., alias="ticketId"),
) -> EventListEnvelope:
    events = await service.get_timeline(user, ticket_id)
    return EventListEnvelope(events=[TicketEventModel.model_validate(item) for item in events])
