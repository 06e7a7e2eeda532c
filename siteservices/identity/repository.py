from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from siteservices.core.errors import Conflict
from siteservices.db import SessionTable, UserTable, ensure_datetime

from .models import Role, Session, User


class UserRepository:
    """Persistence for user accounts."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_user(
        self,
        *,
        full_name: str,
        email: str,
        password_hash: str,
        role: Role,
        created_at: datetime,
    ) -> User:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    row = UserTable(
                        full_name=full_name,
                        email=email,
                        password_hash=password_hash,
                        role=role.value,
                        is_active=True,
                        created_at=created_at,
                    )
                    session.add(row)
                    await session.flush()
        except IntegrityError as exc:
            raise Conflict("EMAIL_EXISTS") from exc
        return self.to_user(row)

    async def get_user(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            row = await session.get(UserTable, user_id)
            return None if row is None else self.to_user(row)

    async def get_credentials(self, email: str) -> tuple[User, str] | None:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable).where(UserTable.email == email))
            row = result.scalars().first()
            if row is None:
                return None
            return self.to_user(row), row.password_hash

    async def email_exists(self, email: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable.id).where(UserTable.email == email))
            return result.first() is not None

    async def list_users(self) -> list[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserTable).order_by(UserTable.id.desc()))
            return [self.to_user(row) for row in result.scalars().all()]

    async def set_active(self, user_id: int, is_active: bool) -> User | None:
        async with self._session_factory() as session:
            async with session.begin():
                row = await session.get(UserTable, user_id)
                if row is None:
                    return None
                row.is_active = is_active
            return self.to_user(row)

    @staticmethod
    def to_user(row: UserTable) -> User:
        return User(
            id=int(row.id),
            full_name=row.full_name,
            email=row.email,
            role=Role(row.role),
            is_active=bool(row.is_active),
            created_at=ensure_datetime(row.created_at),
        )


class SessionRepository:
    """Persistence for opaque session tokens."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_session(self, session_record: Session) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                session.add(
                    SessionTable(
                        token=session_record.token,
                        user_id=session_record.user_id,
                        created_at=session_record.created_at,
                        expires_at=session_record.expires_at,
                    )
                )

    async def get_session_with_user(self, token: str) -> tuple[Session, User] | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(SessionTable, UserTable)
                .join(UserTable, UserTable.id == SessionTable.user_id)
                .where(SessionTable.token == token)
            )
            row = result.first()
            if row is None:
                return None
            session_row, user_row = row
            record = Session(
                token=session_row.token,
                user_id=session_row.user_id,
                created_at=ensure_datetime(session_row.created_at),
                expires_at=ensure_datetime(session_row.expires_at),
            )
            return record, UserRepository.to_user(user_row)

    async def delete_session(self, token: str) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(SessionTable).where(SessionTable.token == token))
