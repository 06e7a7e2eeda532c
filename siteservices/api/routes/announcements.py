from __future__ import annotations

from fastapi import APIRouter, File, Form, UploadFile

from siteservices.dependencies.auth import AdminUser, CurrentUser
from siteservices.dependencies.services import AnnouncementServiceDep
from siteservices.schemas import AnnouncementModel, CamelModel

router = APIRouter(prefix="/api", tags=["announcements"])


class AnnouncementEnvelope(CamelModel):
    announcement: AnnouncementModel


class AnnouncementListEnvelope(CamelModel):
    announcements: list[AnnouncementModel]


def _envelope(items) -> AnnouncementListEnvelope:
    return AnnouncementListEnvelope(announcements=[AnnouncementModel.model_validate(item) for item in items])


@router.get("/announcements", response_model=AnnouncementListEnvelope)
async def list_announcements(user: CurrentUser, service: AnnouncementServiceDep) -> AnnouncementListEnvelope:
    return _envelope(await service.list_announcements(user))


@router.get(
    "/public/announcements",
    response_model=AnnouncementListEnvelope,
    summary="Live announcements, no session required",
)
async def public_announcements(service: AnnouncementServiceDep) -> AnnouncementListEnvelope:
    return _envelope(await service.list_announcements(None))


@router.post("/announcements", response_model=AnnouncementEnvelope)
async def create_announcement(
    admin: AdminUser,
    service: AnnouncementServiceDep,
    title: str | None = Form(None),
    body: str | None = Form(None),
    expires_hours: int | None = Form(None, alias="expiresHours"),
    image: UploadFile | None = File(None),
) -> AnnouncementEnvelope:
    announcement = await service.create_announcement(
        admin,
        title=title,
        body=body,
        expires_hours=expires_hours,
        image=image,
    )
    return AnnouncementEnvelope(announcement=AnnouncementModel.model_validate(announcement))


@router.delete("/announcements/{announcement_id}")
async def delete_announcement(
    announcement_id: int,
    admin: AdminUser,
    service: AnnouncementServiceDep,
) -> dict[str, bool]:
    await service.delete_announcement(admin, announcement_id)
    return {"ok": True}
