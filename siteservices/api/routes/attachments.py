from __future__ import annotations

from fastapi import APIRouter, File, UploadFile

from siteservices.dependencies.auth import CurrentUser
from siteservices.dependencies.services import TicketServiceDep
from siteservices.schemas import AttachmentModel, CamelModel, attachment_model

router = APIRouter(prefix="/api/tickets", tags=["attachments"])


class AttachmentEnvelope(CamelModel):
    attachment: AttachmentModel


class AttachmentListEnvelope(CamelModel):
    attachments: list[AttachmentModel]


@router.get("/{ticket_id}/attachments", response_model=AttachmentListEnvelope)
async def list_attachments(ticket_id: int, user: CurrentUser, service: TicketServiceDep) -> AttachmentListEnvelope:
    attachments = await service.list_attachments(user, ticket_id)
    return AttachmentListEnvelope(attachments=[attachment_model(item) for item in attachments])


@router.post("/{ticket_id}/attachments", response_model=AttachmentEnvelope, summary="Upload a file")
async def upload_attachment(
    ticket_id: int,
    user: CurrentUser,
    service: TicketServiceDep,
    file: UploadFile | None = File(None),
) -> AttachmentEnvelope:
    attachment = await service.add_attachment(user, ticket_id, file)
    return AttachmentEnvelope(attachment=attachment_model(attachment))
