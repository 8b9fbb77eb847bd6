from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncEngine

from ticketdesk.api.routes import directory, ping, reports, tickets
from ticketdesk.core.config import Settings, get_settings
from ticketdesk.core.database import create_engine, create_session_factory
from ticketdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from ticketdesk.directory.repository import DirectoryRepository
from ticketdesk.tickets.audit import AuditRecorder, Clock, utcnow
from ticketdesk.tickets.reporting import TicketReports
from ticketdesk.tickets.repository import TicketRepository
from ticketdesk.tickets.service import TicketService
from ticketdesk.tickets.visibility import PermissionScopedReader


async def wire_components(app: FastAPI, settings: Settings, db_engine: AsyncEngine, clock: Clock = utcnow) -> None:
    """Build repositories and services on ``app.state`` around a single clock."""

    session_factory = create_session_factory(db_engine)
    ticket_repository = TicketRepository(session_factory, engine=db_engine, recorder=AuditRecorder(clock))
    await ticket_repository.ensure_schema()
    directory_repository = DirectoryRepository(session_factory, default_sla_hours=settings.default_sla_hours)
    reader = PermissionScopedReader(ticket_repository, page_size=settings.page_size)

    app.state.directory = directory_repository
    app.state.ticket_reader = reader
    app.state.ticket_service = TicketService(
        ticket_repository,
        directory_repository,
        clock=clock,
        max_number_attempts=settings.ticket_number_max_attempts,
        ticket_number_prefix=settings.ticket_number_prefix,
    )
    app.state.ticket_reports = TicketReports(ticket_repository, directory_repository, reader, clock=clock)
    app.state.db_engine = db_engine
    app.state.db_session_factory = session_factory


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)

    app.state.logger = logger
    app.state.tracer_provider = tracer_provider
    app.state.ticket_service = None
    app.state.directory = None
    app.state.ticket_reader = None
    app.state.ticket_reports = None

    db_engine = create_engine(settings)
    try:
        await wire_components(app, settings, db_engine)
    except Exception:
        logger.exception("Ticket storage initialisation failed; ticket endpoints will answer 503")
    try:
        yield
    finally:
        await db_engine.dispose()
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(tickets.router)
    app.include_router(directory.router)
    app.include_router(reports.router)
    return app


app = create_app()
