"""Database models and utilities."""

from .engine import Database, ensure_datetime, to_async_dsn
from .models import (
    AnnouncementTable,
    AttachmentTable,
    AuditLogTable,
    RatingTable,
    SessionTable,
    TicketEventTable,
    TicketTable,
    UserTable,
    utcnow,
)

__all__ = [
    "AnnouncementTable",
    "AttachmentTable",
    "AuditLogTable",
    "Database",
    "RatingTable",
    "SessionTable",
    "TicketEventTable",
    "TicketTable",
    "UserTable",
    "ensure_datetime",
    "to_async_dsn",
    "utcnow",
]
