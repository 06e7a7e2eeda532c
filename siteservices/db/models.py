"""SQLModel table definitions for the site services data layer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class UserTable(SQLModel, table=True):
    """Accounts for residents, staff and administrators."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    full_name: str = Field(sa_column=Column(String(255), nullable=False))
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    password_hash: str = Field(sa_column=Column(String(255), nullable=False))
    role: str = Field(sa_column=Column(String(20), nullable=False))
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class SessionTable(SQLModel, table=True):
    """Opaque session tokens with a fixed absolute expiry."""

    __tablename__ = "sessions"

    id: int | None = Field(default=None, primary_key=True)
    token: str = Field(sa_column=Column(String(64), nullable=False, unique=True, index=True))
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Resident complaints tracked through the status lifecycle."""

    __tablename__ = "tickets"

    id: int | None = Field(default=None, primary_key=True)
    ticket_no: str | None = Field(default=None, sa_column=Column(String(32), nullable=True, unique=True))
    created_by: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False, index=True))
    category: str = Field(sa_column=Column(String(100), nullable=False))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    priority: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False))
    assigned_to: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    resolved_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    resolved_note: str | None = Field(default=None, sa_column=Column(Text, nullable=True))


# Child rows of a ticket reference it by plain indexed id: a hard ticket
# delete leaves them in place.


class TicketEventTable(SQLModel, table=True):
    """Append-only timeline entries for a ticket."""

    __tablename__ = "ticket_events"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    actor_id: int | None = Field(default=None, sa_column=Column(Integer, ForeignKey("users.id"), nullable=True))
    type: str = Field(sa_column=Column(String(20), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class AttachmentTable(SQLModel, table=True):
    """Files uploaded against a ticket."""

    __tablename__ = "attachments"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    uploaded_by: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    original_name: str = Field(sa_column=Column(String(255), nullable=False))
    file_name: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    mime: str = Field(sa_column=Column(String(255), nullable=False))
    size: int = Field(sa_column=Column(Integer, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class AnnouncementTable(SQLModel, table=True):
    """Community announcements published by administrators."""

    __tablename__ = "announcements"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    body: str = Field(sa_column=Column(Text, nullable=False))
    created_by: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    is_published: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    image_path: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))


class RatingTable(SQLModel, table=True):
    """Resident satisfaction score for a resolved ticket."""

    __tablename__ = "ratings"
    __table_args__ = (UniqueConstraint("ticket_id", "user_id", name="uq_ratings_ticket_user"),)

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(sa_column=Column(Integer, nullable=False, index=True))
    user_id: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    stars: int = Field(sa_column=Column(Integer, nullable=False))
    note: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class AuditLogTable(SQLModel, table=True):
    """Administrative audit trail of user and content actions."""

    __tablename__ = "audit_log"

    id: int | None = Field(default=None, primary_key=True)
    action: str = Field(sa_column=Column(String(50), nullable=False))
    actor_id: int | None = Field(default=None, sa_column=Column(Integer, ForeignKey("users.id"), nullable=True))
    meta: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
