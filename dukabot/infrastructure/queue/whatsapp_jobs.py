# dukabot/infrastructure/queue/whatsapp_jobs.py

from typing import Any

from arq.connections import ArqRedis
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from dukabot.infrastructure.db.models import WhatsAppDeadLetter
from dukabot.infrastructure.queue.whatsapp_queue import SEND_JOB_NAME

MAX_WHATSAPP_RETRIES = 3


async def send_whatsapp_job(ctx: dict, payload: dict[str, Any], attempt: int = 1) -> None:
    """
    Arq job: send one composed WhatsApp payload with retries + dead-letter logging.
    This is executed by the Arq worker, NOT by FastAPI directly.
    """
    to_number = payload.get("to")
    logger.info("Arq job send_whatsapp_job: to={} attempt={} type={}", to_number, attempt, payload.get("type"))

    gateway = ctx.get("gateway")
    if gateway is None:
        from dukabot.infrastructure.external.whatsapp_api import WhatsAppCloudGateway

        gateway = WhatsAppCloudGateway()

    try:
        await gateway.send_message(payload)
        return
    except Exception as e:
        logger.warning("WhatsApp send failed to {} on attempt {}: {}", to_number, attempt, e)
        error_message = str(e)

    if attempt < MAX_WHATSAPP_RETRIES:
        redis: ArqRedis = ctx["redis"]
        await redis.enqueue_job(SEND_JOB_NAME, payload, attempt + 1)
        logger.info("Re-enqueued WhatsApp message for {} attempt {}", to_number, attempt + 1)
        return

    session_factory = ctx.get("session_factory")
    if session_factory is None:
        from dukabot.core.db import AsyncSessionLocal

        session_factory = AsyncSessionLocal

    async with session_factory() as db:
        await _write_dead_letter(
            db,
            payload=payload,
            failure_reason="max_retries_exceeded",
            last_error=error_message,
            retry_count=attempt,
        )
        await db.commit()
    logger.error("Message moved to dead-letter after {} attempts for {}", attempt, to_number)


async def _write_dead_letter(
    db: AsyncSession,
    payload: dict[str, Any],
    failure_reason: str,
    last_error: str | None,
    retry_count: int,
) -> None:
    dl = WhatsAppDeadLetter(
        to_number=payload.get("to"),
        payload=payload,
        failure_reason=failure_reason,
        last_error=last_error,
        retry_count=retry_count,
    )
    db.add(dl)
