from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from siteservices.announcements import AnnouncementService
from siteservices.audit import AuditLogRepository
from siteservices.identity.service import AccountService
from siteservices.notifications import NotificationHub
from siteservices.ratings import RatingService
from siteservices.reporting import ReportingService
from siteservices.tickets.service import TicketService


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"{label} is not configured")
    return service


async def get_account_service(request: Request) -> AccountService:
    return _from_state(request, "account_service", "Account service")


async def get_ticket_service(request: Request) -> TicketService:
    return _from_state(request, "ticket_service", "Ticket service")


async def get_announcement_service(request: Request) -> AnnouncementService:
    return _from_state(request, "announcement_service", "Announcement service")


async def get_rating_service(request: Request) -> RatingService:
    return _from_state(request, "rating_service", "Rating service")


async def get_reporting_service(request: Request) -> ReportingService:
    return _from_state(request, "reporting_service", "Reporting service")


async def get_audit_repository(request: Request) -> AuditLogRepository:
    return _from_state(request, "audit_repository", "Audit log")


async def get_notification_hub(request: Request) -> NotificationHub:
    return _from_state(request, "notification_hub", "Notification hub")


AccountServiceDep = Annotated[AccountService, Depends(get_account_service)]
TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
AnnouncementServiceDep = Annotated[AnnouncementService, Depends(get_announcement_service)]
RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]
ReportingServiceDep = Annotated[ReportingService, Depends(get_reporting_service)]
AuditRepositoryDep = Annotated[AuditLogRepository, Depends(get_audit_repository)]
NotificationHubDep = Annotated[NotificationHub, Depends(get_notification_hub)]
