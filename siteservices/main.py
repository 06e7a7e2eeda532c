from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from siteservices.announcements import AnnouncementService
from siteservices.api.routes import (
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
from siteservices.audit import AuditLogRepository
from siteservices.core.config import Settings, get_settings
from siteservices.core.errors import install_error_handlers
from siteservices.core.logging import configure_logging, init_tracer, shutdown_tracer
from siteservices.db import Database
from siteservices.identity import AccountService, SessionRepository, SessionResolver, UserRepository
from siteservices.notifications import NotificationHub
from siteservices.ratings import RatingService
from siteservices.reporting import ReportingService
from siteservices.storage import BlobStore
from siteservices.tickets import TicketRepository, TimelineRecorder
from siteservices.tickets.service import TicketService


def wire_services(app: FastAPI, database: Database, settings: Settings) -> None:
    """Build repositories and services over ``database`` and expose them on ``app.state``."""

    session_factory = database.session_factory
    hub = NotificationHub(queue_size=settings.listener_queue_size)
    blobs = BlobStore(settings.upload_dir, max_bytes=settings.upload_max_bytes)
    blobs.ensure_root()

    audit_repository = AuditLogRepository(session_factory)
    users = UserRepository(session_factory)
    resolver = SessionResolver(
        SessionRepository(session_factory),
        ttl=timedelta(hours=settings.session_ttl_hours),
    )
    ticket_repository = TicketRepository(
        session_factory,
        timeline=TimelineRecorder(session_factory),
        number_prefix=settings.ticket_number_prefix,
    )

    app.state.database = database
    app.state.notification_hub = hub
    app.state.blob_store = blobs
    app.state.audit_repository = audit_repository
    app.state.session_resolver = resolver
    app.state.account_service = AccountService(
        users,
        resolver,
        audit_repository,
        min_password_length=settings.min_password_length,
    )
    app.state.ticket_service = TicketService(ticket_repository, users, hub=hub, blobs=blobs)
    app.state.announcement_service = AnnouncementService(
        session_factory,
        default_hours=settings.announcement_default_hours,
        hub=hub,
        blobs=blobs,
    )
    app.state.rating_service = RatingService(session_factory, ticket_repository)
    app.state.reporting_service = ReportingService(
        session_factory,
        sla_hours=settings.sla_hours,
        top_staff_limit=settings.top_staff_limit,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider

    database = Database.from_dsn(settings.database_dsn)
    try:
        await database.test_connection()
        await database.ensure_schema()
    except Exception:
        logger.exception("Database initialisation failed")
        await database.dispose()
        shutdown_tracer(tracer_provider)
        raise

    wire_services(app, database, settings)
    logger.info("%s started (%s)", settings.app_name, settings.environment)
    try:
        yield
    finally:
        await database.dispose()
        shutdown_tracer(tracer_provider)
        logger.info("%s stopped", settings.app_name)


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan if use_lifespan else None)
    install_error_handlers(app)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(tickets.router)
    app.include_router(events.router)
    app.include_router(attachments.router)
    app.include_router(announcements.router)
    app.include_router(ratings.router)
    app.include_router(reports.router)
    app.include_router(audit.router)
    app.include_router(search.router)
    app.include_router(realtime.router)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")
    return app


app = create_app()
