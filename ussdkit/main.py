"""ussdkit FastAPI application entry point.

Creates the FastAPI app, includes routers, and manages the lifecycle of
the USSD services (session store, transfer flow, account menu,
telemetry).
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator

import structlog
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from config.settings import settings
from ussdkit.api.router import api_router

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Structured logging configuration
# ---------------------------------------------------------------------------


def _configure_logging() -> None:
    """Set up structlog with JSON or console rendering based on settings."""
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            settings.log_level,
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Application lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup and shutdown of the USSD services.

    On startup:
      1. Build the session store (Redis when ``REDIS_URL`` is set)
         and, for the in-memory store, start its expiry sweep
      2. Build the money-transfer flow and its controller
      3. Build the account self-service menu
      4. Create the session telemetry collector
      5. Store everything on ``app.state``

    On shutdown:
      - Stop the expiry sweep.
      - Close the session store.
    """
    _configure_logging()
    logger.info(
        "app.startup",
        env=settings.env,
        session_backend="redis" if settings.uses_redis else "memory",
        session_ttl_seconds=settings.session_ttl_seconds,
    )

    app.state.start_time = time.time()

    # -- 1. Session store ----------------------------------------------------
    from ussdkit.services.session_store import InMemorySessionStore, build_session_store, purge_periodically

    store = build_session_store(settings)
    app.state.session_store = store
    purge_task: asyncio.Task | None = None
    if isinstance(store, InMemorySessionStore):
        purge_task = asyncio.create_task(
            purge_periodically(store, settings.session_purge_interval_seconds)
        )
    app.state.session_purge_task = purge_task
    logger.info("app.session_store_initialised")

    # -- 2. Money-transfer flow ----------------------------------------------
    from ussdkit.services.flow import SessionFlowController
    from ussdkit.services.transfer import LoggingTransferGateway, build_transfer_flow

    gateway = LoggingTransferGateway()
    transfer_flow = build_transfer_flow(
        gateway,
        currency=settings.transfer_currency,
        max_amount=settings.transfer_max_amount,
        service_name=settings.service_name,
    )
    app.state.transfer_gateway = gateway
    app.state.flow_controller = SessionFlowController(transfer_flow, store)
    logger.info("app.transfer_flow_initialised", fields=list(transfer_flow.field_names))

    # -- 3. Account menu -----------------------------------------------------
    from ussdkit.services.account_menu import InMemoryAccountDirectory, build_account_router

    app.state.account_directory = InMemoryAccountDirectory()
    app.state.account_menu = build_account_router(
        app.state.account_directory,
        support_line=settings.support_line,
    )
    logger.info("app.account_menu_initialised")

    # -- 4. Telemetry --------------------------------------------------------
    from ussdkit.services.telemetry import SessionTelemetry

    app.state.telemetry = SessionTelemetry()

    logger.info("app.startup_complete")

    yield

    # -- Shutdown -----------------------------------------------------------
    logger.info("app.shutdown_start")
    if purge_task is not None:
        purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await purge_task
    await store.close()
    logger.info("app.shutdown_complete")


# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="ussdkit API",
    description=(
        "USSD gateway callbacks: accumulated-input navigation, CON/END "
        "responses, per-session data-collection flows and carrier lookup."
    ),
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
)

# -- Prometheus metrics -----------------------------------------------------
Instrumentator(
    should_group_status_codes=True,
    should_ignore_untemplated=True,
    excluded_handlers=["/metrics", "/api/v1/health"],
).instrument(app).expose(
    app,
    endpoint="/metrics",
    include_in_schema=not settings.is_production,
)

# -- Include routers -------------------------------------------------------
app.include_router(api_router)


@app.get("/api", response_class=ORJSONResponse)
async def api_info() -> dict:
    """API information endpoint."""
    return {
        "name": "ussdkit API",
        "version": app.version,
        "docs": "/docs",
        "health": "/api/v1/health",
        "endpoints": {
            "ussd": "/api/v1/ussd",
            "ussd_menu": "/api/v1/ussd/menu",
            "ussd_notify": "/api/v1/ussd/notify",
            "ussd_stats": "/api/v1/ussd/stats",
            "networks": "/api/v1/networks",
            "health": "/api/v1/health",
            "metrics": "/metrics",
        },
    }


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "ussdkit.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
