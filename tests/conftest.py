from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI

from siteservices.core.config import Settings
from siteservices.db import Database
from siteservices.identity.models import Role, User
from siteservices.main import create_app, wire_services


def make_user(user_id: int = 1, role: Role = Role.RESIDENT, *, is_active: bool = True) -> User:
    return User(
        id=user_id,
        full_name=f"User {user_id}",
        email=f"user{user_id}@example.com",
        role=role,
        is_active=is_active,
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_dsn=f"sqlite+aiosqlite:///{tmp_path / 'siteservices.db'}",
        upload_dir=str(tmp_path / "uploads"),
        upload_max_bytes=1024,
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> Database:
    database = Database.from_dsn(settings.database_dsn)
    await database.ensure_schema()
    try:
        yield database
    finally:
        await database.dispose()


@pytest_asyncio.fixture
async def wired_app(database: Database, settings: Settings) -> FastAPI:
    app = create_app(use_lifespan=False)
    wire_services(app, database, settings)
    return app


@pytest_asyncio.fixture
async def accounts(wired_app: FastAPI) -> dict[str, User]:
    """One active account per role plus a second resident and a second staff member."""

    service = wired_app.state.account_service
    created: dict[str, User] = {}
    for key, role in (
        ("admin", "ADMIN"),
        ("staff", "STAFF"),
        ("other_staff", "STAFF"),
        ("resident", "RESIDENT"),
        ("other_resident", "RESIDENT"),
    ):
        user, _ = await service.register(
            full_name=key.replace("_", " ").title(),
            email=f"{key}@example.com",
            password="secret123",
            role=role,
        )
        created[key] = user
    return created
