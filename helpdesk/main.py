"""
Helpdesk Automation - Main Application
======================================

Automation rule engine and SLA deadline tracking for a helpdesk ticket
service.

Modules:
- Automation: declarative rules evaluated on ticket events
- SLA: response/resolution deadlines, at-risk and breach detection
- Dispatch: event entry point, ticket-service adapters, periodic jobs

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, HTTP clients, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Configuration
from helpdesk.config import settings

# Infrastructure
from helpdesk.infrastructure.database import (
    close_database, create_tables, get_session_context, init_database,
)
from helpdesk.shared.concurrency import TicketSerializer
from helpdesk.shared.infrastructure.audit import SQLAlchemyAuditLog

# Automation Module
from helpdesk.automation.application import ActionExecutor, AutomationRuleService, RuleEngine
from helpdesk.automation.infrastructure import SQLAlchemyAutomationRuleRepository
from helpdesk.automation.interfaces import automation_router

# SLA Module
from helpdesk.sla.application import SLAMonitor, SLAReportingService, SLATrackingService
from helpdesk.sla.infrastructure import (
    SLAConfigManager, SQLAlchemySLAPolicyRepository, SQLAlchemySLATrackingRepository,
)
from helpdesk.sla.interfaces import sla_router

# Dispatch Module
from helpdesk.dispatch.application import TriggerDispatcher
from helpdesk.dispatch.infrastructure import (
    HttpNotificationSender, HttpTicketGateway, NotificationOutbox, PeriodicJobs, build_client,
)
from helpdesk.dispatch.interfaces import HOURLY_CHECK_JOB, SLA_SWEEP_JOB, internal_router

# Shared API
from helpdesk.shared.api import CorrelationIDMiddleware, LoggingMiddleware, install_error_handlers
from helpdesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)

# Seconds shutdown waits for in-flight ticket work
DRAIN_TIMEOUT_SECONDS = 30.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load SLA configuration and start watching it
    4. Wire ticket gateway, notification outbox, repositories and services
    5. Start periodic jobs

    SHUTDOWN:
    1. Stop periodic jobs
    2. Drain in-flight per-ticket work
    3. Flush the notification outbox
    4. Close HTTP client, config watcher and database
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting helpdesk automation", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()
    try:
        await create_tables()
    except Exception as e:
        logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    config_manager = SLAConfigManager(settings)
    config_manager.load(settings.sla_config_path)
    config_manager.start_watching()

    http_client = build_client(settings)
    gateway = HttpTicketGateway(http_client)
    outbox = NotificationOutbox(HttpNotificationSender(http_client), maxsize=settings.notification_queue_size)
    outbox.start()

    audit_log = SQLAlchemyAuditLog()
    rule_repository = SQLAlchemyAutomationRuleRepository()
    policy_repository = SQLAlchemySLAPolicyRepository()
    tracking_repository = SQLAlchemySLATrackingRepository()
    serializer = TicketSerializer(settings.max_concurrent_tickets)

    engine = RuleEngine(ActionExecutor(gateway, outbox, audit_log))
    tracking_service = SLATrackingService(policy_repository, tracking_repository, audit_log)
    dispatcher = TriggerDispatcher(rule_repository, engine, tracking_service, gateway, serializer)
    monitor = SLAMonitor(tracking_repository, gateway, outbox, config_manager, audit_log, serializer)

    jobs = PeriodicJobs()
    jobs.register(HOURLY_CHECK_JOB, dispatcher.hourly_check, settings.hourly_check_interval_seconds)
    jobs.register(SLA_SWEEP_JOB, monitor.sweep, settings.sla_sweep_interval_seconds)
    if settings.scheduler_enabled:
        await jobs.start()

    # Store services in app state for dependency injection
    app.state.settings = settings
    app.state.sla_config_manager = config_manager
    app.state.rule_service = AutomationRuleService(rule_repository, audit_log)
    app.state.sla_reporting_service = SLAReportingService(
        policy_repository, tracking_repository, gateway, config_manager
    )
    app.state.dispatcher = dispatcher
    app.state.jobs = jobs
    app.state.outbox = outbox
    app.state.serializer = serializer

    logger.info("Helpdesk automation started")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down helpdesk automation")

    await jobs.stop()
    if not await dispatcher.drain(timeout=DRAIN_TIMEOUT_SECONDS):
        logger.warning("Shutdown continued with ticket work still in flight")
    await outbox.stop()
    config_manager.stop_watching()
    await http_client.aclose()
    await close_database()

    logger.info("Helpdesk automation shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    app = FastAPI(
        title="Helpdesk Automation API",
        description="""
        ## Automation rules and SLA tracking for the helpdesk

        ### Automation
        - `GET/POST /automation/rules`, `GET/PUT/DELETE /automation/rules/{id}`
        - `PATCH /automation/rules/{id}/active` - enable/disable
        - `POST /automation/rules/preview` - dry run against a snapshot

        ### SLA
        - `GET /sla/policies`, `GET /sla/tracking`, `GET /sla/tracking/{ticketId}`
        - `GET /sla/stats`, `GET /sla/settings`

        ### Internal (ticket service only)
        - `POST /internal/events` - TICKET_CREATED / TICKET_UPDATED
        - `POST /internal/jobs/hourly-check`, `POST /internal/jobs/sla-sweep`

        **Default SLA matrix (minutes, first response / resolution):**

        | Priority | First response | Resolution |
        |----------|----------------|------------|
        | URGENT   | 60             | 240        |
        | HIGH     | 240            | 480        |
        | NORMAL   | 480            | 1440       |
        | LOW      | 1440           | 4320       |
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Added last runs first: correlation id is set before logging reads it
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    install_error_handlers(app)

    # === Include Module Routers ===
    app.include_router(automation_router)
    app.include_router(sla_router)
    app.include_router(internal_router)

    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    return app


async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports database connectivity, SLA config, scheduler, outbox and
    in-flight ticket work.
    """
    state = request.app.state
    checks = {}

    try:
        async with get_session_context() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "connected"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    config_manager = getattr(state, "sla_config_manager", None)
    checks["sla_config"] = "loaded" if config_manager and config_manager.is_loaded else "not_loaded"
    jobs = getattr(state, "jobs", None)
    checks["scheduler"] = "running" if jobs and jobs.scheduler_running else "stopped"
    outbox = getattr(state, "outbox", None)
    if outbox is not None:
        checks["notification_outbox"] = {
            "running": outbox.is_running,
            "pending": outbox.pending,
            "dropped": outbox.dropped,
        }
    serializer = getattr(state, "serializer", None)
    if serializer is not None:
        checks["tickets_in_flight"] = serializer.inflight

    healthy = checks["database"] == "connected"
    return {
        "status": "healthy" if healthy else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
