# dukabot/infrastructure/queue/whatsapp_queue.py

from typing import Any

from arq.connections import ArqRedis, RedisSettings, create_pool
from loguru import logger

from dukabot.core.config import settings

SEND_JOB_NAME = "send_whatsapp_job"

_redis_pool: ArqRedis | None = None


async def get_redis_pool() -> ArqRedis:
    """
    Creates (once) and returns an Arq Redis pool.
    """
    global _redis_pool
    if _redis_pool is None:
        logger.info("Creating ARQ Redis pool: {}", settings.REDIS_URL)
        _redis_pool = await create_pool(RedisSettings.from_dsn(settings.REDIS_URL))
        logger.success("ARQ Redis pool ready")

    return _redis_pool


async def enqueue_whatsapp_message(payload: dict[str, Any], attempt: int = 1) -> None:
    """
    Enqueue a background job to send a WhatsApp payload.
    Runs quickly inside FastAPI; the HTTP call happens in the worker.
    """
    redis = await get_redis_pool()
    await redis.enqueue_job(SEND_JOB_NAME, payload, attempt)
    logger.info("ARQ → Enqueued WA message to {} (attempt {})", payload.get("to"), attempt)


class QueuedWhatsAppGateway:
    """Sends through the arq worker; read receipts still go straight over HTTP."""

    def __init__(self, direct):
        self._direct = direct

    async def send_message(self, payload: dict[str, Any]) -> None:
        await enqueue_whatsapp_message(payload)

    async def mark_as_read(self, message_id: str) -> None:
        await self._direct.mark_as_read(message_id)
