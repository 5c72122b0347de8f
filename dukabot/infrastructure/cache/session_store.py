# dukabot/infrastructure/cache/session_store.py
"""
Keyed session storage with exclusive per-customer access.

Callers that read, change and write a session hold ``lock(customer_id)``
for the whole sequence; two customers never block each other.

* :class:`InMemorySessionStore` - process-local, one ``asyncio.Lock`` per
  customer (dropped once nobody holds or waits on it).
* :class:`RedisSessionStore` - JSON under ``wa:session:{id}`` with a TTL and
  a Redis lock per customer, so several workers can share traffic.
"""

from __future__ import annotations

import asyncio
import json
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Protocol, TypeVar, Union

import redis.asyncio as redis
from loguru import logger

from dukabot.domain.models.session import Session

T = TypeVar("T")

SESSION_TTL_SECONDS = 4 * 60 * 60
LOCK_TIMEOUT_SECONDS = 30
LOCK_WAIT_SECONDS = 10


class SessionStore(Protocol):
    async def get(self, customer_id: str) -> Session: ...

    async def put(self, customer_id: str, session: Session) -> None: ...

    def lock(self, customer_id: str): ...

    async def update(
        self, customer_id: str, mutate: Callable[[Session], Union[T, Awaitable[T]]]
    ) -> T: ...


class _AtomicUpdateMixin:
    async def update(self, customer_id, mutate):
        """Atomic read-modify-write: ``mutate`` may change the session in place."""
        async with self.lock(customer_id):
            session = await self.get(customer_id)
            result = mutate(session)
            if asyncio.iscoroutine(result):
                result = await result
            await self.put(customer_id, session)
            return result


class InMemorySessionStore(_AtomicUpdateMixin):
    def __init__(self):
        self._data: Dict[str, dict] = {}
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    async def get(self, customer_id: str) -> Session:
        raw = self._data.get(customer_id)
        if raw is None:
            return Session(customer_id=customer_id)
        return Session.from_dict(raw)

    async def put(self, customer_id: str, session: Session) -> None:
        self._data[customer_id] = session.to_dict()

    @asynccontextmanager
    async def lock(self, customer_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(customer_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[customer_id] = lock
        async with lock:
            yield


class RedisSessionStore(_AtomicUpdateMixin):
    def __init__(self, redis_url: str = "", *, client: redis.Redis | None = None, ttl_seconds: int = SESSION_TTL_SECONDS):
        if client is None:
            if not redis_url:
                raise RuntimeError("REDIS_URL is not set")
            client = redis.from_url(redis_url, decode_responses=True)
        self._r = client
        self._ttl = ttl_seconds

    def _key(self, customer_id: str) -> str:
        return f"wa:session:{customer_id}"

    def _lock_key(self, customer_id: str) -> str:
        return f"wa:session-lock:{customer_id}"

    async def get(self, customer_id: str) -> Session:
        raw = await self._r.get(self._key(customer_id))
        if not raw:
            return Session(customer_id=customer_id)
        try:
            return Session.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable session for {}: {}", customer_id, exc)
            return Session(customer_id=customer_id)

    async def put(self, customer_id: str, session: Session) -> None:
        await self._r.set(self._key(customer_id), json.dumps(session.to_dict()), ex=self._ttl)

    @asynccontextmanager
    async def lock(self, customer_id: str) -> AsyncIterator[None]:
        async with self._r.lock(
            self._lock_key(customer_id),
            timeout=LOCK_TIMEOUT_SECONDS,
            blocking_timeout=LOCK_WAIT_SECONDS,
        ):
            yield


_store_singleton: SessionStore | None = None


def get_session_store() -> SessionStore:
    global _store_singleton
    if _store_singleton is None:
        from dukabot.core.config import settings

        if settings.SESSION_BACKEND.lower() == "redis":
            from dukabot.infrastructure.cache.redis_client import get_redis_client

            _store_singleton = RedisSessionStore(client=get_redis_client(), ttl_seconds=settings.SESSION_TTL_SECONDS)
        else:
            _store_singleton = InMemorySessionStore()
        logger.info("Session store: {}", type(_store_singleton).__name__)
    return _store_singleton
