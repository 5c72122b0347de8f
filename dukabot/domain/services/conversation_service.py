# dukabot/domain/services/conversation_service.py
"""
Webhook ingress: everything that happens to one delivery after the HTTP
layer has checked its signature.

Per message, in order:
    1. drop provider redeliveries (first sighting of the message id only)
    2. mark as read (best effort)
    3. store-and-notify the inbound message (best effort)
    4. under the customer's lock: load session → flow engine → save session
       → run effects (a stored order adds its code to the replies)
       → compose + send replies → store-and-notify each reply

The session is saved before anything is sent, so a failed send never rolls
back a transition.  One broken message never aborts the rest of the batch.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from dukabot.domain.i18n import t
from dukabot.domain.models.order import OrderBook, OrderPlaced
from dukabot.domain.models.outbound import TextReply, reply_preview
from dukabot.domain.services.flow_engine import FlowEngine, FlowResult
from dukabot.domain.services.inbound_parser import ParsedMessage, parse_webhook
from dukabot.domain.services.message_composer import compose

logger = logging.getLogger("conversation_service")


class ConversationService:
    def __init__(
        self,
        *,
        store,
        engine: FlowEngine,
        gateway,
        deduplicator,
        message_log=None,
        order_book: Optional[OrderBook] = None,
    ):
        self.store = store
        self.engine = engine
        self.gateway = gateway
        self.deduplicator = deduplicator
        self.message_log = message_log
        self.order_book = order_book

    async def handle_webhook(self, body: Any) -> int:
        """Process every message of a webhook body; returns how many were dispatched."""
        dispatched = 0
        for parsed in parse_webhook(body):
            try:
                if await self.handle_message(parsed):
                    dispatched += 1
            except Exception:
                logger.exception("Failed to process message %s from %s", parsed.message_id, parsed.customer_id)
        return dispatched

    async def handle_message(self, parsed: ParsedMessage) -> bool:
        if parsed.message_id and not await self._first_seen(parsed.message_id):
            logger.info("Duplicate delivery of %s; skipping", parsed.message_id)
            return False

        if parsed.message_id:
            await self._mark_read(parsed.message_id)

        await self._log(
            parsed.customer_id,
            direction="inbound",
            type=parsed.message_type,
            body=parsed.log_body,
            wa_message_id=parsed.message_id,
            profile_name=parsed.profile_name,
        )

        if parsed.event is None:
            logger.info("Not dispatching %s from %s: %s", parsed.message_type, parsed.customer_id, parsed.log_body)
            return False

        customer_id = parsed.customer_id
        async with self.store.lock(customer_id):
            session = await self.store.get(customer_id)
            result = await self.engine.handle(session, parsed.event.payload)
            await self.store.put(customer_id, result.session)
            await self._run_effects(result)
            await self._send_replies(customer_id, result)
        return True

    # ── best-effort steps ───────────────────────────────────

    async def _first_seen(self, message_id: str) -> bool:
        try:
            return await self.deduplicator.first_seen(message_id)
        except Exception:
            logger.exception("Dedup check failed for %s; processing anyway", message_id)
            return True

    async def _mark_read(self, message_id: str) -> None:
        try:
            await self.gateway.mark_as_read(message_id)
        except Exception:
            logger.warning("Could not mark %s as read", message_id, exc_info=True)

    async def _log(self, customer_id: str, **fields: Any) -> None:
        if self.message_log is None:
            return
        try:
            await self.message_log.record(customer_id, **fields)
        except Exception:
            logger.exception("Store-and-notify failed for %s (%s)", customer_id, fields.get("direction"))

    async def _run_effects(self, result: FlowResult) -> None:
        for effect in result.effects:
            if isinstance(effect, OrderPlaced) and self.order_book is not None:
                try:
                    order_id = await self.order_book.place_order(effect)
                except Exception:
                    logger.exception("Could not store order for %s", effect.customer_id)
                    continue
                logger.info("Order %s placed for %s, total %s", order_id, effect.customer_id, effect.total)
                if order_id is not None:
                    code = self.engine.order_code(order_id)
                    result.say(TextReply(t("ORDER_CODE", result.session.language, code=code)))

    async def _send_replies(self, customer_id: str, result: FlowResult) -> None:
        for reply in result.replies:
            payload = compose(customer_id, reply)
            try:
                await self.gateway.send_message(payload)
            except Exception:
                logger.exception("Send to %s failed", customer_id)
                continue
            await self._log(
                customer_id,
                direction="outbound",
                type=payload["type"],
                body=reply_preview(reply),
            )


_service_singleton: ConversationService | None = None


def get_conversation_service() -> ConversationService:
    global _service_singleton
    if _service_singleton is None:
        from dukabot.domain.services.flow_engine import get_flow_engine
        from dukabot.infrastructure.cache.dedup import get_deduplicator
        from dukabot.infrastructure.cache.session_store import get_session_store
        from dukabot.infrastructure.db.message_log import get_message_log
        from dukabot.infrastructure.db.repositories import SqlOrderBook
        from dukabot.infrastructure.external.whatsapp_api import get_whatsapp_gateway

        order_book = SqlOrderBook()
        _service_singleton = ConversationService(
            store=get_session_store(),
            engine=get_flow_engine(order_book),
            gateway=get_whatsapp_gateway(),
            deduplicator=get_deduplicator(),
            message_log=get_message_log(),
            order_book=order_book,
        )
    return _service_singleton
