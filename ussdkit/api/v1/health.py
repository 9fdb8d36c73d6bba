"""Health check endpoints for ussdkit API v1.

Provides liveness and readiness probes for Kubernetes / Cloud Run
deployments.  The readiness check verifies that the session store is
reachable, since no stateful hop can be answered without it.
"""

from __future__ import annotations

import time

import structlog
from fastapi import APIRouter, Request
from pydantic import BaseModel

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str
    uptime_seconds: float


class ReadinessResponse(BaseModel):
    """Readiness check response with individual component statuses."""

    status: str
    checks: dict[str, str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe.

    Returns 200 if the application process is running and able to
    handle requests.  Does *not* check downstream dependencies.
    """
    start_time: float = getattr(request.app.state, "start_time", time.time())
    uptime = time.time() - start_time

    return HealthResponse(
        status="healthy",
        version=request.app.version,
        uptime_seconds=round(uptime, 2),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request) -> ReadinessResponse:
    """Readiness probe: session store reachable and flows wired up."""
    checks: dict[str, str] = {}
    all_ok = True

    # -- Session store -----------------------------------------------------
    store = getattr(request.app.state, "session_store", None)
    if store is not None:
        try:
            if await store.ping():
                checks["session_store"] = "ok"
            else:
                checks["session_store"] = "unreachable"
                all_ok = False
        except Exception as exc:
            checks["session_store"] = f"error: {exc!s}"
            all_ok = False
    else:
        checks["session_store"] = "not_configured"
        all_ok = False

    # -- Flows -------------------------------------------------------------
    for name in ("flow_controller", "account_menu"):
        if getattr(request.app.state, name, None) is not None:
            checks[name] = "ok"
        else:
            checks[name] = "not_initialised"
            all_ok = False

    status = "ready" if all_ok else "degraded"

    logger.info("health.readiness_check", status=status, checks=checks)

    return ReadinessResponse(status=status, checks=checks)
