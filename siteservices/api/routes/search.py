from __future__ import annotations

from fastapi import APIRouter, Query

from siteservices.dependencies.auth import CurrentUser
from siteservices.dependencies.services import TicketServiceDep
from siteservices.schemas import CamelModel, TicketModel

router = APIRouter(prefix="/api/search", tags=["search"])


class TicketListEnvelope(CamelModel):
    tickets: list[TicketModel]


@router.get("/tickets", response_model=TicketListEnvelope, summary="Search tickets in the caller's scope")
async def search_tickets(
    user: CurrentUser,
    service: TicketServiceDep,
    q: str = Query("", description="Matched against number, title, description and category"),
) -> TicketListEnvelope:
    tickets = await service.search_tickets(user, q)
    return TicketListEnvelope(tickets=[TicketModel.model_validate(item) for item in tickets])
