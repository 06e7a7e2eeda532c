from . import (
    announcements,
    attachments,
    audit,
    auth,
    events,
    health,
    ratings,
    realtime,
    reports,
    search,
    tickets,
    users,
)

__all__ = [
    "announcements",
    "attachments",
    "audit",
    "auth",
    "events",
    "health",
    "ratings",
    "realtime",
    "reports",
    "search",
    "tickets",
    "users",
]
