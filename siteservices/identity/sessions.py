from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from siteservices.core.errors import AccountDisabled, Unauthorized

from .models import Session, User
from .repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionResolver:
    """Issue session tokens and resolve them back to active users.

    Expiry is absolute and checked lazily: an expired token is deleted the
    first time it is presented, there is no background sweep. A session that
    belongs to a deactivated account still exists, but resolving it raises
    :class:`AccountDisabled` instead of :class:`Unauthorized`.
    """

    def __init__(self, repository: SessionRepository, *, ttl: timedelta) -> None:
        self._repository = repository
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def create_session(self, user_id: int) -> Session:
        now = datetime.now(timezone.utc)
        record = Session(
            token=secrets.token_hex(24),
            user_id=user_id,
            created_at=now,
            expires_at=now + self._ttl,
        )
        await self._repository.create_session(record)
        return record

    async def resolve(self, token: str | None) -> User:
        if not token:
            raise Unauthorized()

        found = await self._repository.get_session_with_user(token)
        if found is None:
            raise Unauthorized()

        record, user = found
        if record.expires_at < datetime.now(timezone.utc):
            logger.debug("Session for user %s expired at %s", record.user_id, record.expires_at)
            await self._repository.delete_session(token)
            raise Unauthorized()

        if not user.is_active:
            raise AccountDisabled()
        return user

    async def end_session(self, token: str | None) -> None:
        if token:
            await self._repository.delete_session(token)
