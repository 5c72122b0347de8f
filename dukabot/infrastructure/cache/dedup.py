# dukabot/infrastructure/cache/dedup.py
"""First-sighting checks on WhatsApp message ids (provider redeliveries)."""

from __future__ import annotations

from collections import OrderedDict
from typing import Protocol

import redis.asyncio as redis

DEFAULT_DEDUP_TTL_SECONDS = 24 * 60 * 60


class MessageDeduplicator(Protocol):
    async def first_seen(self, message_id: str) -> bool: ...


class InMemoryDeduplicator:
    """Remembers the most recent ``capacity`` ids."""

    def __init__(self, capacity: int = 10_000):
        self._seen: "OrderedDict[str, None]" = OrderedDict()
        self._capacity = capacity

    async def first_seen(self, message_id: str) -> bool:
        if message_id in self._seen:
            self._seen.move_to_end(message_id)
            return False
        self._seen[message_id] = None
        if len(self._seen) > self._capacity:
            self._seen.popitem(last=False)
        return True


class RedisDeduplicator:
    def __init__(self, client: redis.Redis, ttl_seconds: int = DEFAULT_DEDUP_TTL_SECONDS):
        self._r = client
        self._ttl = ttl_seconds

    async def first_seen(self, message_id: str) -> bool:
        created = await self._r.set(f"wa:seen:{message_id}", "1", nx=True, ex=self._ttl)
        return bool(created)


_dedup_singleton: MessageDeduplicator | None = None


def get_deduplicator() -> MessageDeduplicator:
    """Redis-backed when sessions live in Redis, so replicas share what they've seen."""
    global _dedup_singleton
    if _dedup_singleton is None:
        from dukabot.core.config import settings

        if settings.SESSION_BACKEND.lower() == "redis":
            from dukabot.infrastructure.cache.redis_client import get_redis_client

            _dedup_singleton = RedisDeduplicator(get_redis_client(), settings.DEDUP_TTL_SECONDS)
        else:
            _dedup_singleton = InMemoryDeduplicator()
    return _dedup_singleton
