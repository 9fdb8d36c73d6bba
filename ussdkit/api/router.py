"""Main API router combining all v1 route modules.

Aggregates all routers under the ``/api/v1`` prefix so the
FastAPI application only needs to include a single router.

Includes:
    * USSD: gateway callbacks (transfer flow, account menu, notifications)
    * Networks: carrier code directory
    * Health: liveness and readiness probes
"""

from __future__ import annotations

from fastapi import APIRouter

from ussdkit.api.v1 import health, networks, ussd

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(ussd.router)
api_router.include_router(networks.router)
api_router.include_router(health.router)
