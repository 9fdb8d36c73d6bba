"""Key-value stores for USSD session flow state.

The flow controller only depends on :class:`SessionStore` (``get`` /
``put`` / ``delete`` keyed by session ID, last write wins).  Two
implementations are provided:

* :class:`InMemorySessionStore` -- process-local LRU with TTL, for
  development and single-instance deployments.
* :class:`RedisSessionStore` -- ``redis.asyncio`` with a per-entry TTL,
  for anything that runs more than one worker.

Both expire entries after ``ttl_seconds``.  The gateway never tells us
when a user abandons a session, so time-based eviction is the only way
such entries are reclaimed.  Redis expires keys itself; the in-memory
store is swept by :func:`purge_periodically`, which the application
starts as a background task.

Unlike a cache, a session store must not silently lose state: when the
backend is unreachable or returns unreadable data, operations raise
:class:`SessionStoreError` and the caller decides how to answer the user.
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import orjson
import structlog
from pydantic import ValidationError
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ussdkit.models.session import SessionFlowState, decode_state, encode_state

if TYPE_CHECKING:
    import redis.asyncio as aioredis

    from config.settings import Settings

logger = structlog.get_logger(__name__)


class SessionStoreError(Exception):
    """The session store is unavailable or holds an unreadable entry."""


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SessionStore(Protocol):
    """Async session store interface consumed by the flow controller."""

    async def get(self, session_id: str) -> SessionFlowState | None: ...

    async def put(self, session_id: str, state: SessionFlowState) -> None: ...

    async def delete(self, session_id: str) -> None: ...


def _decode(session_id: str, raw: bytes | str) -> SessionFlowState:
    try:
        return decode_state(raw)
    except (orjson.JSONDecodeError, ValidationError) as exc:
        logger.error("session_store.corrupt_entry", session_id=session_id)
        raise SessionStoreError(f"unreadable state for session {session_id!r}") from exc


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class _StoreEntry:
    """Serialised state with an absolute expiry."""

    __slots__ = ("expires_at", "value")

    def __init__(self, value: bytes, ttl_seconds: int | None) -> None:
        self.value = value
        self.expires_at: float | None = (time.monotonic() + ttl_seconds) if ttl_seconds is not None else None

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() > self.expires_at


class InMemorySessionStore:
    """OrderedDict-based LRU store with per-entry TTL.

    States are kept serialised so callers never share a mutable object
    with the store.  A single :class:`asyncio.Lock` guards the map; every
    operation is O(1) and never awaits while holding it, so distinct
    sessions do not wait on each other in any meaningful way.
    """

    __slots__ = ("_data", "_lock", "_max_size", "_ttl_seconds")

    def __init__(self, *, ttl_seconds: int | None = 300, max_size: int = 10_000) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_size = max_size
        self._data: OrderedDict[str, _StoreEntry] = OrderedDict()
        self._lock = asyncio.Lock()

    async def get(self, session_id: str) -> SessionFlowState | None:
        async with self._lock:
            entry = self._data.get(session_id)
            if entry is None:
                return None
            if entry.expired:
                del self._data[session_id]
                return None
            self._data.move_to_end(session_id)
            raw = entry.value
        return _decode(session_id, raw)

    async def put(self, session_id: str, state: SessionFlowState) -> None:
        raw = encode_state(state)
        async with self._lock:
            if session_id in self._data:
                del self._data[session_id]
            while len(self._data) >= self._max_size:
                evicted, _ = self._data.popitem(last=False)
                logger.warning("session_store.evicted_lru", session_id=evicted)
            self._data[session_id] = _StoreEntry(raw, self._ttl_seconds)

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self._data.pop(session_id, None)

    async def purge_expired(self) -> int:
        """Drop every expired entry; returns how many were removed."""
        async with self._lock:
            stale = [key for key, entry in self._data.items() if entry.expired]
            for key in stale:
                del self._data[key]
        if stale:
            logger.info("session_store.purged", count=len(stale))
        return len(stale)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        async with self._lock:
            self._data.clear()

    @property
    def size(self) -> int:
        """Current number of (possibly expired) entries."""
        return len(self._data)


# ---------------------------------------------------------------------------
# Redis store
# ---------------------------------------------------------------------------

_transient_retry = retry(
    retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
    reraise=True,
)


class RedisSessionStore:
    """Redis-backed store using ``redis.asyncio`` with connection pooling.

    Parameters
    ----------
    url:
        Redis connection string.
    namespace:
        Prefix prepended to every session ID to form the Redis key.
    ttl_seconds:
        Expiry set on every write.  Each hop refreshes it.
    client:
        Pre-built client, mainly for tests.  When given, *url* is ignored.
    """

    __slots__ = ("_namespace", "_pool", "_redis", "_ttl_seconds")

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        namespace: str = "ussd:session:",
        ttl_seconds: int | None = 300,
        max_connections: int = 20,
        client: aioredis.Redis | None = None,
    ) -> None:
        self._namespace = namespace
        self._ttl_seconds = ttl_seconds
        if client is not None:
            self._pool = None
            self._redis = client
        else:
            import redis.asyncio as aioredis

            self._pool = aioredis.ConnectionPool.from_url(
                url,
                max_connections=max_connections,
                decode_responses=False,
            )
            self._redis = aioredis.Redis(connection_pool=self._pool)

    def _key(self, session_id: str) -> str:
        return f"{self._namespace}{session_id}"

    # -- Raw operations (retried on transient faults) --------------------------

    @_transient_retry
    async def _get_raw(self, key: str) -> bytes | None:
        return await self._redis.get(key)

    @_transient_retry
    async def _set_raw(self, key: str, value: bytes) -> None:
        if self._ttl_seconds is not None:
            await self._redis.set(key, value, ex=self._ttl_seconds)
        else:
            await self._redis.set(key, value)

    @_transient_retry
    async def _delete_raw(self, key: str) -> None:
        await self._redis.delete(key)

    # -- SessionStore interface ------------------------------------------------

    async def get(self, session_id: str) -> SessionFlowState | None:
        try:
            raw = await self._get_raw(self._key(session_id))
        except RedisError as exc:
            logger.warning("session_store.redis_op_failed", method="get", session_id=session_id)
            raise SessionStoreError("session store unavailable") from exc
        if raw is None:
            return None
        return _decode(session_id, raw)

    async def put(self, session_id: str, state: SessionFlowState) -> None:
        raw = encode_state(state)
        try:
            await self._set_raw(self._key(session_id), raw)
        except RedisError as exc:
            logger.warning("session_store.redis_op_failed", method="put", session_id=session_id)
            raise SessionStoreError("session store unavailable") from exc

    async def delete(self, session_id: str) -> None:
        try:
            await self._delete_raw(self._key(session_id))
        except RedisError as exc:
            logger.warning("session_store.redis_op_failed", method="delete", session_id=session_id)
            raise SessionStoreError("session store unavailable") from exc

    # -- Lifecycle -------------------------------------------------------------

    async def ping(self) -> bool:
        """Return *True* if the Redis server is reachable."""
        try:
            return bool(await self._redis.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self._redis.aclose()
        if self._pool is not None:
            await self._pool.aclose()


def build_session_store(settings: Settings) -> InMemorySessionStore | RedisSessionStore:
    """Pick the store backend from configuration (Redis when ``REDIS_URL`` is set)."""
    if settings.uses_redis:
        logger.info("session_store.backend", backend="redis")
        return RedisSessionStore(
            settings.redis_url,
            namespace=settings.session_namespace,
            ttl_seconds=settings.session_ttl_seconds,
        )
    logger.info("session_store.backend", backend="memory")
    return InMemorySessionStore(
        ttl_seconds=settings.session_ttl_seconds,
        max_size=settings.session_store_max_size,
    )


async def purge_periodically(store: InMemorySessionStore, interval_seconds: float) -> None:
    """Call ``store.purge_expired()`` every *interval_seconds* until cancelled.

    Expired entries are otherwise only dropped when their own session is
    read again, which an abandoned session never is.
    """
    logger.info("session_store.purge_task_started", interval_seconds=interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        await store.purge_expired()
