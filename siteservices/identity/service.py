from __future__ import annotations

import logging
from contextlib import suppress
from datetime import datetime, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from siteservices.audit import AuditAction, AuditEntry, AuditLogRepository
from siteservices.core.errors import (
    AccountDisabled,
    Conflict,
    InvalidCredentials,
    InvalidInput,
    NotFound,
    Unauthorized,
)

from .models import Role, Session, User
from .repository import UserRepository
from .sessions import SessionResolver

logger = logging.getLogger(__name__)


def normalize_email(email: str | None) -> str:
    return str(email or "").strip().lower()


class AccountService:
    """Registration, login/logout and administrative account toggling."""

    def __init__(
        self,
        users: UserRepository,
        sessions: SessionResolver,
        audit: AuditLogRepository,
        *,
        min_password_length: int = 6,
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._audit = audit
        self._min_password_length = min_password_length

    async def register(
        self,
        *,
        full_name: str | None,
        email: str | None,
        password: str | None,
        role: str | None = None,
    ) -> tuple[User, Session]:
        normalized_email = normalize_email(email)
        if not full_name or not normalized_email or not password:
            raise InvalidInput("MISSING_FIELDS")
        if len(password) < self._min_password_length:
            raise InvalidInput("WEAK_PASSWORD")
        parsed_role = Role.parse(role or Role.RESIDENT.value)
        if parsed_role is None:
            raise InvalidInput("INVALID_ROLE")
        if await self._users.email_exists(normalized_email):
            raise Conflict("EMAIL_EXISTS")

        user = await self._users.create_user(
            full_name=full_name.strip(),
            email=normalized_email,
            password_hash=generate_password_hash(password),
            role=parsed_role,
            created_at=datetime.now(timezone.utc),
        )
        session = await self._sessions.create_session(user.id)
        await self._audit.record(
            AuditEntry(AuditAction.USER_REGISTER, user.id, {"email": user.email, "role": user.role.value})
        )
        logger.info("Registered %s account %s", user.role.value, user.id)
        return user, session

    async def login(self, *, email: str | None, password: str | None) -> tuple[User, Session]:
        normalized_email = normalize_email(email)
        if not normalized_email or not password:
            raise InvalidInput("MISSING_FIELDS")

        found = await self._users.get_credentials(normalized_email)
        if found is None:
            raise InvalidCredentials()
        user, password_hash = found
        if not user.is_active:
            raise AccountDisabled()
        if not check_password_hash(password_hash, password):
            raise InvalidCredentials()

        session = await self._sessions.create_session(user.id)
        await self._audit.record(AuditEntry(AuditAction.USER_LOGIN, user.id, {"email": user.email}))
        return user, session

    async def logout(self, token: str | None) -> None:
        user: User | None = None
        with suppress(Unauthorized, AccountDisabled):
            user = await self._sessions.resolve(token)
        await self._sessions.end_session(token)
        if user is not None:
            await self._audit.record(AuditEntry(AuditAction.USER_LOGOUT, user.id, {"email": user.email}))

    async def list_users(self) -> list[User]:
        return await self._users.list_users()

    async def get_user(self, user_id: int) -> User:
        user = await self._users.get_user(user_id)
        if user is None:
            raise NotFound()
        return user

    async def set_active(self, *, actor: User, user_id: int, is_active: bool | None) -> User:
        if user_id == actor.id:
            raise InvalidInput("CANNOT_EDIT_SELF")
        current = await self.get_user(user_id)
        next_active = current.is_active if is_active is None else bool(is_active)

        updated = await self._users.set_active(user_id, next_active)
        if updated is None:
            raise NotFound()
        await self._audit.record(
            AuditEntry(AuditAction.USER_UPDATE, actor.id, {"targetId": user_id, "isActive": next_active})
        )
        logger.info("User %s set account %s active=%s", actor.id, user_id, next_active)
        return updated
