"""Session notification telemetry.

The gateway posts a :class:`~ussdkit.models.notification.SessionNotification`
when a session ends.  Nothing in the flow depends on it; it is logged
and folded into a few counters that ops can read back.
"""

from __future__ import annotations

import asyncio
from collections import Counter

import structlog

from config.networks import lookup_network
from ussdkit.models.enums import SessionStatus
from ussdkit.models.notification import SessionNotification

logger = structlog.get_logger(__name__)


class SessionTelemetry:
    """Counts finished sessions by status, carrier and hop count."""

    __slots__ = ("_by_network", "_by_status", "_lock", "_total_duration_ms", "_total_hops")

    def __init__(self) -> None:
        self._by_status: Counter[str] = Counter()
        self._by_network: Counter[str] = Counter()
        self._total_hops = 0
        self._total_duration_ms = 0
        self._lock = asyncio.Lock()

    async def record(self, notification: SessionNotification) -> None:
        network = lookup_network(notification.network_code)
        async with self._lock:
            self._by_status[notification.status.value] += 1
            self._by_network[network.name] += 1
            self._total_hops += notification.hops_count
            self._total_duration_ms += notification.duration_in_millis

        log = logger.bind(
            session_id=notification.session_id,
            status=notification.status.value,
            network=network.name,
            hops=notification.hops_count,
            duration_ms=notification.duration_in_millis,
        )
        if notification.status is SessionStatus.FAILED:
            log.warning("telemetry.session_failed", error_message=notification.error_message)
        elif notification.status is SessionStatus.INCOMPLETE:
            log.info("telemetry.session_incomplete", last_input=notification.input)
        else:
            log.info("telemetry.session_succeeded", cost=notification.cost)

    def snapshot(self) -> dict[str, object]:
        total = sum(self._by_status.values())
        return {
            "total_sessions": total,
            "by_status": {status.value: self._by_status.get(status.value, 0) for status in SessionStatus},
            "by_network": dict(self._by_network),
            "average_hops": round(self._total_hops / total, 2) if total else 0.0,
            "average_duration_ms": round(self._total_duration_ms / total, 2) if total else 0.0,
        }
