"""USSD gateway callback endpoints for ussdkit API v1.

The gateway POSTs one hop per request (form-encoded, or JSON from test
harnesses) and reads the plain-text ``CON``/``END`` body we return.

Endpoints:
    * ``POST /ussd``         -- stateful money-transfer flow
    * ``POST /ussd/menu``    -- stateless account self-service menu
    * ``POST /ussd/notify``  -- end-of-session notification
    * ``GET  /ussd/stats``   -- counters folded from notifications
"""

from __future__ import annotations

from typing import Any

import orjson
import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, ValidationError

from ussdkit.models.notification import SessionNotification
from ussdkit.models.request import NavigationRequest

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/ussd", tags=["ussd"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class NotificationAck(BaseModel):
    status: str = "received"


class SessionStatsResponse(BaseModel):
    """Aggregated end-of-session counters."""

    total_sessions: int
    by_status: dict[str, int]
    by_network: dict[str, int]
    average_hops: float
    average_duration_ms: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _read_payload(request: Request) -> dict[str, Any]:
    """Decode a form-encoded or JSON body into a plain dict."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = orjson.loads(await request.body())
        except orjson.JSONDecodeError:
            raise HTTPException(status_code=422, detail="Malformed JSON body.") from None
        if not isinstance(payload, dict):
            raise HTTPException(status_code=422, detail="JSON body must be an object.")
        return payload
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _validation_detail(exc: ValidationError) -> list[dict[str, Any]]:
    return [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in exc.errors()]


async def _navigation_request(request: Request) -> NavigationRequest:
    payload = await _read_payload(request)
    try:
        return NavigationRequest.from_payload(payload)
    except ValidationError as exc:
        logger.info("api.ussd_invalid_payload", errors=exc.error_count())
        raise HTTPException(status_code=422, detail=_validation_detail(exc)) from None


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("", response_class=PlainTextResponse)
async def ussd_callback(request: Request) -> PlainTextResponse:
    """Advance the money-transfer flow by one hop."""
    ussd_request = await _navigation_request(request)
    controller = request.app.state.flow_controller

    directive = await controller.handle(ussd_request)
    logger.info(
        "api.ussd_hop",
        session_id=ussd_request.session_id,
        depth=ussd_request.depth(),
        network=ussd_request.network.name,
        terminate=directive.is_terminate,
    )
    return PlainTextResponse(directive.render())


@router.post("/menu", response_class=PlainTextResponse)
async def ussd_menu(request: Request) -> PlainTextResponse:
    """Answer a hop of the stateless account menu."""
    ussd_request = await _navigation_request(request)
    menu_router = request.app.state.account_menu

    directive = await menu_router.dispatch(ussd_request)
    return PlainTextResponse(directive.render())


@router.post("/notify", response_model=NotificationAck)
async def ussd_notify(request: Request) -> NotificationAck:
    """Record an end-of-session notification.  Always 200 for a well-formed body."""
    payload = await _read_payload(request)
    try:
        notification = SessionNotification.from_payload(payload)
    except ValidationError as exc:
        logger.info("api.notify_invalid_payload", errors=exc.error_count())
        raise HTTPException(status_code=422, detail=_validation_detail(exc)) from None

    telemetry = request.app.state.telemetry
    await telemetry.record(notification)
    return NotificationAck()


@router.get("/stats", response_model=SessionStatsResponse)
async def ussd_stats(request: Request) -> SessionStatsResponse:
    """Counters folded from the notifications received so far."""
    telemetry = request.app.state.telemetry
    return SessionStatsResponse(**telemetry.snapshot())
