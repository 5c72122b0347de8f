# dukabot/infrastructure/db/message_log.py
"""
Store-and-notify for every inbound and outbound WhatsApp message.

Rows go to Postgres (duplicate provider ids are ignored), then a
``message.created`` and a ``conversation.updated`` event are published on
the Redis inbox channel.  Publishing is skipped when nothing was inserted.
"""

from datetime import datetime, timezone
from typing import Optional, Protocol

from loguru import logger

from dukabot.infrastructure.cache.realtime import InboxNotifier
from dukabot.infrastructure.db.repositories import (
    ConversationRepository,
    CustomerRepository,
    MessageRepository,
)

INBOUND = "inbound"
OUTBOUND = "outbound"


class MessageLog(Protocol):
    async def record(
        self,
        customer_id: str,
        *,
        direction: str,
        type: str,
        body: str,
        wa_message_id: Optional[str] = None,
        profile_name: Optional[str] = None,
    ) -> Optional[int]: ...


class PostgresMessageLog:
    def __init__(self, session_factory=None, notifier: Optional[InboxNotifier] = None):
        if session_factory is None:
            from dukabot.core.db import AsyncSessionLocal

            session_factory = AsyncSessionLocal
        self._session_factory = session_factory
        self._notifier = notifier

    async def record(
        self,
        customer_id: str,
        *,
        direction: str,
        type: str,
        body: str,
        wa_message_id: Optional[str] = None,
        profile_name: Optional[str] = None,
    ) -> Optional[int]:
        now = datetime.now(timezone.utc)
        async with self._session_factory() as db:
            customer = await CustomerRepository(db).get_or_create(customer_id, profile_name)
            conversations = ConversationRepository(db)
            conversation = await conversations.get_or_create(customer.id)
            if direction == INBOUND:
                await conversations.touch_inbound(conversation, now)
            message_id = await MessageRepository(db).insert_if_new(
                conversation_id=conversation.id,
                direction=direction,
                type=type,
                body=body,
                wa_message_id=wa_message_id,
                status="received" if direction == INBOUND else "sent",
            )
            await db.commit()
            conversation_id = conversation.id

        if message_id is None:
            logger.info("Message {} already stored; skipping notify", wa_message_id)
            return None

        if self._notifier is not None:
            await self._notifier.message_created(
                conversation_id,
                {
                    "id": message_id,
                    "direction": direction,
                    "type": type,
                    "body": body,
                    "wa_message_id": wa_message_id,
                    "created_at": now.isoformat(),
                },
            )
            await self._notifier.conversation_updated(conversation_id, last_message_at=now.isoformat())
        return message_id


_log_singleton: MessageLog | None = None


def get_message_log() -> MessageLog:
    global _log_singleton
    if _log_singleton is None:
        from dukabot.infrastructure.cache.redis_client import get_redis_client

        _log_singleton = PostgresMessageLog(notifier=InboxNotifier(get_redis_client()))
    return _log_singleton
