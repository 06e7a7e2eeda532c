"""Accounts, roles and session resolution."""

from .models import Role, Session, User
from .repository import SessionRepository, UserRepository
from .service import AccountService
from .sessions import SessionResolver

__all__ = [
    "AccountService",
    "Role",
    "Session",
    "SessionRepository",
    "SessionResolver",
    "User",
    "UserRepository",
]
