"""Application entry point serving the personal context HTTP API.

Configures:
- **structlog** with JSON rendering (production) or colored console (development)
- **Sentry** error reporting through the structlog processor chain, when a DSN is set
- **Prometheus** HTTP metrics on ``/metrics``
- **Request IDs** bound into structlog contextvars for every request
- The **learning pipeline**: Gmail thread source, Anthropic-backed extractor,
  batch orchestrator, aggregator, and SQLite profile store
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, TextIO

import structlog
import uvicorn
from fastapi import FastAPI

from personal_context.analysis.aggregator import InsightAggregator
from personal_context.api import router as personal_context_router
from personal_context.config import Settings, get_settings, validate_credentials
from personal_context.email.source import GmailThreadSource
from personal_context.health import register_health_routes
from personal_context.learning.coordinator import LearningCoordinator
from personal_context.llm.batch import BatchOrchestrator
from personal_context.llm.client import AnthropicCompleter, get_anthropic_client
from personal_context.llm.extractor import ThreadInsightExtractor
from personal_context.observability.events import PipelineEvents
from personal_context.observability.metrics import setup_metrics
from personal_context.observability.middleware import RequestIdMiddleware
from personal_context.observability.sentry import get_sentry_processor, init_sentry
from personal_context.observability.server_logs import ServerLogBuffer
from personal_context.store.schema import close_profile_db, init_profile_db
from personal_context.store.sqlite import SQLiteProfileStore

logger = structlog.get_logger()


def configure_logging(
    production: bool = False,
    sentry_enabled: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Configure structlog for production (JSON) or development (console).

    Production mode (*production=True*): JSON rendering at INFO level.
    Development mode: colored console rendering at DEBUG level.

    Args:
        production: Enable production mode if ``True``.
        sentry_enabled: Forward ERROR events to Sentry if ``True``.
        stream: Where log lines are written.  Defaults to stdout.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if sentry_enabled:
        shared_processors.append(get_sentry_processor())

    if production:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        log_level = logging.INFO
    else:
        renderer = structlog.dev.ConsoleRenderer()
        log_level = logging.DEBUG

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stdout),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(service="personal-context")


def initialize_services(settings: Settings | None = None) -> dict[str, Any]:
    """Set up all shared services for the application.

    Creates the profile database and store, the Anthropic completer (if an
    API key is set), the progress message buffer, and the learning coordinator
    wired to the Gmail thread source.

    Args:
        settings: Application settings.  If ``None``, ``get_settings()`` is used.

    Returns:
        A dict of initialized service instances keyed by name.
    """
    if settings is None:
        settings = get_settings()

    services: dict[str, Any] = {"_settings": settings}

    # a. SQLite profile database
    db_path = settings.profile_db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    profile_conn = init_profile_db(db_path)
    services["profile_conn"] = profile_conn
    store = SQLiteProfileStore(profile_conn)
    services["profile_store"] = store

    # b. Anthropic completer (if anthropic_api_key is set)
    completer = None
    if settings.anthropic_api_key.get_secret_value():
        try:
            completer = AnthropicCompleter(
                get_anthropic_client(),
                model=settings.analysis_model,
                max_tokens=settings.llm_max_tokens,
            )
            logger.info("Anthropic client initialized", model=settings.analysis_model)
        except Exception:
            logger.warning("Failed to initialize Anthropic client", exc_info=True)
    else:
        logger.info("ANTHROPIC_API_KEY not set, learning disabled")
    services["completer"] = completer

    # c. Progress message buffer served at /personal-context/server-logs
    server_logs = ServerLogBuffer()
    services["server_logs"] = server_logs

    # d. Learning pipeline
    coordinator = None
    if completer is not None:
        events = PipelineEvents(on_log=server_logs.append, source="service")
        extractor = ThreadInsightExtractor(
            completer,
            timeout_seconds=settings.llm_timeout_seconds,
            events=events.for_source("analysis"),
        )
        orchestrator = BatchOrchestrator(
            extractor,
            batch_size=settings.batch_size,
            batch_delay_seconds=settings.batch_delay_seconds,
            events=events.for_source("analysis"),
        )
        coordinator = LearningCoordinator(
            GmailThreadSource(events=events.for_source("gmail")),
            orchestrator,
            InsightAggregator(),
            store,
            events=events,
        )
        logger.info("Learning coordinator initialized", batch_size=settings.batch_size)
    services["coordinator"] = coordinator

    return services


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Lifespan context manager: closes the profile database on shutdown."""
    logger.info("FastAPI application starting")
    yield
    profile_conn = app.state.services.get("profile_conn")
    if profile_conn is not None:
        close_profile_db(profile_conn)
        logger.info("Profile database connection closed")


def create_app(services: dict[str, Any]) -> FastAPI:
    """Create the FastAPI app with lifespan, API routes, health, and metrics.

    Args:
        services: The initialized services dict from ``initialize_services``.

    Returns:
        The configured FastAPI application.
    """
    fastapi_app = FastAPI(title="Personal Context Engine", lifespan=lifespan)
    fastapi_app.state.services = services
    fastapi_app.add_middleware(RequestIdMiddleware)
    fastapi_app.include_router(personal_context_router)
    register_health_routes(fastapi_app)
    setup_metrics(fastapi_app)
    return fastapi_app


async def main() -> None:
    """Main entry point.

    1. Configure logging and Sentry
    2. Validate credentials
    3. Initialize services and create the FastAPI app
    4. Serve with uvicorn until shutdown
    """
    settings = get_settings()
    sentry_enabled = init_sentry(settings.sentry_dsn)
    configure_logging(production=settings.production, sentry_enabled=sentry_enabled)
    logger.info("Application starting", sentry=sentry_enabled)

    validate_credentials(settings)

    services = initialize_services(settings)
    fastapi_app = create_app(services)

    config = uvicorn.Config(
        fastapi_app,
        host="0.0.0.0",
        port=settings.api_port,
        log_level="info",
    )
    server = uvicorn.Server(config)
    await server.serve()


def run() -> None:
    """Console-script wrapper around ``main``."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
