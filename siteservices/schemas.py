"""Wire representations shared by the HTTP API and the real-time channel."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from siteservices.identity.models import Role
from siteservices.tickets.state import EventType, TicketPriority, TicketStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserModel(CamelModel):
    id: int
    full_name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime


class TicketModel(CamelModel):
    id: int
    ticket_no: str | None
    created_by: int
    category: str
    title: str
    description: str
    priority: TicketPriority
    status: TicketStatus
    assigned_to: int | None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None = None
    resolved_note: str | None = None


class TicketEventModel(CamelModel):
    id: int
    ticket_id: int
    actor_id: int | None
    type: EventType
    message: str
    created_at: datetime


class AttachmentModel(CamelModel):
    id: int
    ticket_id: int
    uploaded_by: int
    original_name: str
    file_name: str
    mime: str
    size: int
    created_at: datetime
    url: str | None = None


class AnnouncementModel(CamelModel):
    id: int
    title: str
    body: str
    created_by: int
    created_at: datetime
    expires_at: datetime
    is_published: bool
    image_path: str | None = None


class RatingModel(CamelModel):
    id: int
    ticket_id: int
    user_id: int
    stars: int
    note: str
    created_at: datetime


class AuditEntryModel(CamelModel):
    id: int | None
    action: str
    actor_id: int | None
    meta: dict[str, Any] | None = None
    created_at: datetime


class RegisterRequest(CamelModel):
    full_name: str | None = Field(default=None, validation_alias=AliasChoices("fullName", "full_name"))
    email: str | None = None
    password: str | None = None
    role: str | None = None


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class UserUpdateRequest(CamelModel):
    is_active: bool | None = Field(default=None, validation_alias=AliasChoices("isActive", "is_active"))


class TicketCreateRequest(CamelModel):
    category: str | None = None
    title: str | None = None
    description: str | None = None
    priority: str | None = None


class TicketUpdateRequest(CamelModel):
    """Partial update; only the fields present in the body are considered."""

    assigned_to: int | None = None
    status: str | None = None
    resolved_note: str | None = None


class RatingRequest(CamelModel):
    ticket_id: int | None = None
    stars: int | None = None
    note: str | None = None


def attachment_model(attachment: Any, *, url_prefix: str = "/uploads") -> AttachmentModel:
    model = AttachmentModel.model_validate(attachment)
    model.url = f"{url_prefix}/{model.file_name}"
    return model
