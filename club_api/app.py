"""
Application factory.

``create_app()`` with no arguments builds everything from the active
configuration: engine and session factory from ``database.url``, the
Resend notifier when its API key is present, the system clock.  Tests pass
their own collaborators instead.
"""

from __future__ import annotations

from uuid import uuid4

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session, sessionmaker

from club_api.errors import install_error_handlers
from club_api.routes.automation import router as automation_router
from club_api.routes.dues import router as dues_router
from club_api.routes.finance import router as finance_router
from club_config import get_active_config
from club_config.schema import ClubConfig
from club_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from club_kernel.domain.clock import Clock, SystemClock
from club_kernel.logging_config import LogContext, configure_logging, get_logger
from club_modules.payments.tickets import RecordingTicketGrantor, TicketGrantor
from club_services.notifications import Notifier, build_notifier

logger = get_logger("api.app")


def create_app(
    config: ClubConfig | None = None,
    session_factory: sessionmaker[Session] | None = None,
    notifier: Notifier | None = None,
    clock: Clock | None = None,
    ticket_grantor: TicketGrantor | None = None,
) -> FastAPI:
    configure_logging()
    config = config or get_active_config()
    if session_factory is None:
        engine = init_engine_from_url(config.database.url, echo=config.database.echo)
        create_tables(engine)
        session_factory = get_session_factory()

    app = FastAPI(
        title=f"{config.club_name} Finance",
        description="Activity budgets, expenses, payment confirmations and dues automation",
    )
    app.state.config = config
    app.state.session_factory = session_factory
    app.state.notifier = notifier or build_notifier(config.notifications)
    app.state.clock = clock or SystemClock()
    app.state.ticket_grantor = ticket_grantor or RecordingTicketGrantor()

    install_error_handlers(app)

    @app.middleware("http")
    async def bind_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("X-Request-Id") or str(uuid4())
        with LogContext.bind(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers["X-Request-Id"] = correlation_id
        return response

    app.include_router(automation_router)
    app.include_router(dues_router)
    app.include_router(finance_router)

    logger.info("api_app_created", extra={"club_name": config.club_name})
    return app
