"""Community announcements with expiry-based visibility."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import UploadFile
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from siteservices.audit import AuditAction, AuditEntry, AuditLogRepository
from siteservices.core.errors import InvalidInput
from siteservices.db import AnnouncementTable, ensure_datetime
from siteservices.identity.models import Role, User
from siteservices.notifications import NotificationHub, NotificationName
from siteservices.schemas import AnnouncementModel
from siteservices.storage import BlobStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Announcement:
    id: int
    title: str
    body: str
    created_by: int
    created_at: datetime
    expires_at: datetime
    is_published: bool
    image_path: str | None = None

    def is_visible(self, now: datetime) -> bool:
        return self.is_published and self.expires_at > now


class AnnouncementService:
    """Administrators publish; everyone else only sees live announcements."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        default_hours: int = 48,
        hub: NotificationHub | None = None,
        blobs: BlobStore | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._default_hours = default_hours
        self._hub = hub
        self._blobs = blobs

    async def list_announcements(self, viewer: User | None) -> list[Announcement]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(AnnouncementTable).order_by(
                    AnnouncementTable.created_at.desc(), AnnouncementTable.id.desc()
                )
            )
            announcements = [self._to_announcement(row) for row in result.scalars().all()]

        if viewer is not None and viewer.role is Role.ADMIN:
            return announcements
        now = datetime.now(timezone.utc)
        return [item for item in announcements if item.is_visible(now)]

    async def create_announcement(
        self,
        actor: User,
        *,
        title: str | None,
        body: str | None,
        expires_hours: int | None = None,
        image: UploadFile | None = None,
    ) -> Announcement:
        if not title or not body:
            raise InvalidInput("MISSING_FIELDS")
        hours = max(1, int(expires_hours or self._default_hours))
        now = datetime.now(timezone.utc)

        image_path: str | None = None
        if image is not None and image.filename and self._blobs is not None:
            image_path = (await self._blobs.save(image)).file_name

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = AnnouncementTable(
                        title=title,
                        body=body,
                        created_by=actor.id,
                        created_at=now,
                        expires_at=now + timedelta(hours=hours),
                        is_published=True,
                        image_path=image_path,
                    )
                    session.add(row)
                    await session.flush()
                    AuditLogRepository.stage(
                        session,
                        AuditEntry(AuditAction.ANNOUNCEMENT_CREATE, actor.id, {"announcementId": int(row.id)}),
                    )
        except Exception:
            if image_path is not None:
                await self._blobs.remove(image_path)
            raise
        announcement = self._to_announcement(row)
        logger.info("Announcement %s published until %s", announcement.id, announcement.expires_at)
        self._publish(NotificationName.ANNOUNCEMENT_CREATED, AnnouncementModel.model_validate(announcement))
        return announcement

    async def delete_announcement(self, actor: User, announcement_id: int) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(AnnouncementTable, announcement_id)
                if row is not None:
                    await session.delete(row)
                AuditLogRepository.stage(
                    session,
                    AuditEntry(AuditAction.ANNOUNCEMENT_DELETE, actor.id, {"announcementId": announcement_id}),
                )
        self._publish(NotificationName.ANNOUNCEMENT_DELETED, {"id": announcement_id})

    def _publish(self, name: str, payload) -> None:
        if self._hub is not None:
            self._hub.publish(name, payload)

    @staticmethod
    def _to_announcement(row: AnnouncementTable) -> Announcement:
        return Announcement(
            id=int(row.id),
            title=row.title,
            body=row.body,
            created_by=row.created_by,
            created_at=ensure_datetime(row.created_at),
            expires_at=ensure_datetime(row.expires_at),
            is_published=bool(row.is_published),
            image_path=row.image_path,
        )
