from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of account roles."""

    RESIDENT = "RESIDENT"
    STAFF = "STAFF"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: str | None) -> "Role | None":
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return None


@dataclass(slots=True)
class User:
    """Authenticated account as seen by the rest of the application."""

    id: int
    full_name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles


@dataclass(slots=True)
class Session:
    token: str
    user_id: int
    created_at: datetime
    expires_at: datetime
