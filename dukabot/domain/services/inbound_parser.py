# dukabot/domain/services/inbound_parser.py
"""
Turn a WhatsApp Cloud API webhook envelope into ``ParsedMessage`` records.

Envelope shape::

    {"entry": [{"changes": [{"value": {"contacts": [...], "messages": [...]}}]}]}

Each entry is parsed on its own: a malformed entry is logged and skipped
without affecting the rest of the delivery.  Media messages produce a
record with no ``event`` (they are logged, never dispatched to the flow).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from dukabot.domain.models.events import (
    EventPayload,
    InboundEvent,
    InteractiveReply,
    LocationPin,
    TextMessage,
)

logger = logging.getLogger("inbound_parser")

MEDIA_KINDS = ("image", "video", "audio", "document", "sticker", "voice")


@dataclass(frozen=True)
class ParsedMessage:
    customer_id: str
    message_id: Optional[str]
    message_type: str
    log_body: str
    profile_name: Optional[str] = None
    event: Optional[InboundEvent] = None


def _payload(message: dict[str, Any]) -> Optional[EventPayload]:
    msg_type = message.get("type")
    if msg_type == "text":
        return TextMessage(body=(message.get("text") or {}).get("body") or "")
    if msg_type == "interactive":
        interactive = message.get("interactive") or {}
        reply = interactive.get("button_reply") or interactive.get("list_reply")
        if not reply or not reply.get("id"):
            return None
        return InteractiveReply(reply_id=str(reply["id"]), title=str(reply.get("title") or ""))
    if msg_type == "button":
        # Template quick-reply buttons carry a payload instead of an id.
        button = message.get("button") or {}
        if not button.get("payload"):
            return None
        return InteractiveReply(reply_id=str(button["payload"]), title=str(button.get("text") or ""))
    if msg_type == "location":
        loc = message.get("location") or {}
        try:
            return LocationPin(latitude=float(loc["latitude"]), longitude=float(loc["longitude"]))
        except (KeyError, TypeError, ValueError):
            return None
    return None


def _log_body(message: dict[str, Any], payload: Optional[EventPayload]) -> str:
    if isinstance(payload, TextMessage):
        return payload.body
    if isinstance(payload, InteractiveReply):
        return payload.title or payload.reply_id
    if isinstance(payload, LocationPin):
        return f"LOCATION {payload.latitude},{payload.longitude}"
    msg_type = message.get("type") or "unknown"
    if msg_type in MEDIA_KINDS:
        media_id = (message.get(msg_type) or {}).get("id") or ""
        return f"MEDIA:{msg_type}:{media_id}"
    return f"[{msg_type}]"


def _parse_message(message: dict[str, Any], profiles: dict[str, str]) -> Optional[ParsedMessage]:
    customer_id = str(message.get("from") or "").strip()
    if not customer_id:
        logger.warning("Skipping message without sender: %s", message.get("id"))
        return None

    message_id = message.get("id")
    payload = _payload(message)
    event = InboundEvent(customer_id=customer_id, payload=payload, message_id=message_id) if payload else None
    return ParsedMessage(
        customer_id=customer_id,
        message_id=message_id,
        message_type=str(message.get("type") or "unknown"),
        log_body=_log_body(message, payload),
        profile_name=profiles.get(customer_id),
        event=event,
    )


def _parse_entry(entry: dict[str, Any]) -> list[ParsedMessage]:
    parsed: list[ParsedMessage] = []
    for change in entry.get("changes") or []:
        value = (change or {}).get("value") or {}
        profiles = {
            str(c.get("wa_id")): ((c.get("profile") or {}).get("name") or "")
            for c in value.get("contacts") or []
            if c.get("wa_id")
        }
        for message in value.get("messages") or []:
            item = _parse_message(message, profiles)
            if item is not None:
                parsed.append(item)
    return parsed


def parse_webhook(body: Any) -> Iterator[ParsedMessage]:
    """Yield every message of the envelope, skipping entries that fail to parse."""
    if not isinstance(body, dict):
        logger.warning("Webhook body is not a JSON object; ignoring")
        return
    for entry in body.get("entry") or []:
        try:
            messages = _parse_entry(entry)
        except (AttributeError, TypeError, ValueError, KeyError) as exc:
            logger.warning("Skipping malformed webhook entry: %s", exc)
            continue
        yield from messages
