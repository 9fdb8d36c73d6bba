"""Carrier directory endpoints for ussdkit API v1.

Exposes the MCC+MNC carrier codes the gateway may send in
``networkCode``, with operator name and country.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from config.networks import get_networks, lookup_network

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

router = APIRouter(prefix="/networks", tags=["networks"])


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class NetworkInfoResponse(BaseModel):
    """Public representation of a single carrier."""

    code: str
    name: str
    country: str
    is_known: bool


class NetworkListResponse(BaseModel):
    """List of registered carriers."""

    networks: list[NetworkInfoResponse]
    total: int


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=NetworkListResponse)
async def list_networks(
    country: str | None = Query(default=None, description="Filter by country name (case-insensitive)"),
) -> NetworkListResponse:
    """List registered carriers, sorted by country and then name."""
    operators = get_networks()
    if country:
        wanted = country.strip().lower()
        operators = [op for op in operators if op.country.lower() == wanted]

    networks = [
        NetworkInfoResponse(code=op.code, name=op.name, country=op.country, is_known=True)
        for op in operators
    ]
    return NetworkListResponse(networks=networks, total=len(networks))


@router.get("/{code}", response_model=NetworkInfoResponse)
async def get_network_detail(code: str) -> NetworkInfoResponse:
    """Resolve a single carrier code.

    Unknown codes are a 404 here, unlike inbound traffic where they
    resolve to "Unknown Network".
    """
    network = lookup_network(code)
    if not network.is_known:
        raise HTTPException(
            status_code=404,
            detail=f"Network code '{code}' not found. Use GET /api/v1/networks to see all registered codes.",
        )
    return NetworkInfoResponse(
        code=network.code,
        name=network.name,
        country=network.country,
        is_known=True,
    )
