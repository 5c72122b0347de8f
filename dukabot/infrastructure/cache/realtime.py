# dukabot/infrastructure/cache/realtime.py
"""Publish inbox events so the staff dashboard can refresh live."""

import json
from datetime import datetime, timezone
from typing import Any

import redis.asyncio as redis
from loguru import logger

INBOX_CHANNEL = "inbox:events"


class InboxNotifier:
    def __init__(self, client: redis.Redis, channel: str = INBOX_CHANNEL):
        self._r = client
        self.channel = channel

    async def publish(self, event: str, data: dict[str, Any]) -> None:
        message = json.dumps(
            {"event": event, "data": data, "at": datetime.now(timezone.utc).isoformat()},
            default=str,
        )
        receivers = await self._r.publish(self.channel, message)
        logger.debug("Inbox event {} published to {} subscriber(s)", event, receivers)

    async def message_created(self, conversation_id: int, message: dict[str, Any]) -> None:
        await self.publish("message.created", {"conversation_id": conversation_id, "message": message})

    async def conversation_updated(self, conversation_id: int, **changes: Any) -> None:
        await self.publish("conversation.updated", {"id": conversation_id, **changes})
