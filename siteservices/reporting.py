"""Read-only aggregate views for administrators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from siteservices.db import RatingTable, TicketTable, UserTable, ensure_datetime
from siteservices.identity.models import Role
from siteservices.tickets.state import RESOLVED_STATES, TicketStatus

_PENDING_STATES = frozenset({TicketStatus.OPEN, TicketStatus.IN_REVIEW})
_FINISHED_STATES = RESOLVED_STATES | {TicketStatus.CANCELLED}


@dataclass(slots=True)
class TicketSummary:
    total: int = 0
    open: int = 0
    assigned: int = 0
    done: int = 0
    avg_resolution_hours: float | None = None
    sla_ok: int = 0
    sla_total: int = 0
    overdue: int = 0


@dataclass(slots=True)
class StaffScore:
    id: int
    full_name: str
    email: str
    ratings_count: int
    avg_stars: float


class ReportingService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        sla_hours: int = 48,
        top_staff_limit: int = 5,
    ) -> None:
        self._session_factory = session_factory
        self._sla = timedelta(hours=sla_hours)
        self._top_staff_limit = top_staff_limit

    async def summary(self, now: datetime | None = None) -> TicketSummary:
        """Counts by status plus resolution time against the SLA threshold."""

        now = now or datetime.now(timezone.utc)
        async with self._session_factory() as session:
            result = await session.execute(
                select(TicketTable.status, TicketTable.created_at, TicketTable.resolved_at)
            )
            rows = result.all()

        summary = TicketSummary(total=len(rows))
        durations: list[timedelta] = []
        for status_value, created_at, resolved_at in rows:
            status = TicketStatus(status_value)
            created_at = ensure_datetime(created_at)
            resolved_at = ensure_datetime(resolved_at)
            if status in _PENDING_STATES:
                summary.open += 1
            elif status is TicketStatus.ASSIGNED:
                summary.assigned += 1
            elif status in RESOLVED_STATES:
                summary.done += 1
                # Reopened tickets keep a stale resolved_at; only finished ones count.
                if resolved_at is not None and resolved_at >= created_at:
                    durations.append(resolved_at - created_at)
            if status not in _FINISHED_STATES and now - created_at > self._sla:
                summary.overdue += 1

        if durations:
            hours = [item.total_seconds() / 3600 for item in durations]
            summary.avg_resolution_hours = round(sum(hours) / len(hours), 2)
            summary.sla_total = len(durations)
            summary.sla_ok = sum(1 for item in durations if item <= self._sla)
        return summary

    async def top_staff(self) -> list[StaffScore]:
        avg_stars = func.avg(RatingTable.stars).label("avg_stars")
        ratings_count = func.count(RatingTable.id).label("ratings_count")
        statement = (
            select(UserTable.id, UserTable.full_name, UserTable.email, ratings_count, avg_stars)
            .select_from(RatingTable)
            .join(TicketTable, TicketTable.id == RatingTable.ticket_id)
            .join(UserTable, UserTable.id == TicketTable.assigned_to)
            .where(UserTable.role == Role.STAFF.value)
            .group_by(UserTable.id, UserTable.full_name, UserTable.email)
            .order_by(avg_stars.desc(), ratings_count.desc())
            .limit(self._top_staff_limit)
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            return [
                StaffScore(
                    id=row.id,
                    full_name=row.full_name,
                    email=row.email,
                    ratings_count=int(row.ratings_count),
                    avg_stars=round(float(row.avg_stars), 2),
                )
                for row in result.all()
            ]
