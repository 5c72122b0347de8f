# dukabot/infrastructure/external/whatsapp_api.py

from typing import Any, Protocol

import httpx
from loguru import logger

from dukabot.core.config import settings


class WhatsAppGateway(Protocol):
    async def send_message(self, payload: dict[str, Any]) -> None: ...

    async def mark_as_read(self, message_id: str) -> None: ...


class WhatsAppCloudGateway:
    """
    Low-level WhatsApp Cloud API sender.
    Payloads come ready-made from the message composer.
    """

    def __init__(
        self,
        *,
        api_base: str | None = None,
        phone_number_id: str | None = None,
        access_token: str | None = None,
        timeout: float = 10,
    ):
        self.api_base = (api_base or settings.WHATSAPP_API_BASE).rstrip("/")
        self.phone_number_id = phone_number_id or settings.WHATSAPP_PHONE_NUMBER_ID
        self.access_token = access_token or settings.WHATSAPP_ACCESS_TOKEN
        self.timeout = timeout

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/{self.phone_number_id}/messages"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        if not self.access_token or not self.phone_number_id:
            raise RuntimeError("WHATSAPP_ACCESS_TOKEN and WHATSAPP_PHONE_NUMBER_ID must be set")
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.messages_url, json=payload, headers=self._headers())

    async def send_message(self, payload: dict[str, Any]) -> None:
        to_number = payload.get("to")
        logger.info("WA HTTP → Sending {} message to {}", payload.get("type"), to_number)

        resp = await self._post(payload)
        if resp.status_code >= 400:
            logger.error("WA HTTP error {}: {}", resp.status_code, resp.text)
            # raise so the caller (or the arq job) can retry
            resp.raise_for_status()

        logger.success("WA HTTP → Message sent successfully to {}", to_number)

    async def mark_as_read(self, message_id: str) -> None:
        resp = await self._post(
            {"messaging_product": "whatsapp", "status": "read", "message_id": message_id}
        )
        if resp.status_code >= 400:
            logger.warning("WA HTTP mark-as-read failed {}: {}", resp.status_code, resp.text)
            resp.raise_for_status()


_gateway_singleton: WhatsAppGateway | None = None


def get_whatsapp_gateway() -> WhatsAppGateway:
    """HTTP gateway, or the arq-backed one when WHATSAPP_SEND_VIA_QUEUE is on."""
    global _gateway_singleton
    if _gateway_singleton is None:
        if settings.WHATSAPP_SEND_VIA_QUEUE:
            from dukabot.infrastructure.queue.whatsapp_queue import QueuedWhatsAppGateway

            _gateway_singleton = QueuedWhatsAppGateway(WhatsAppCloudGateway())
        else:
            _gateway_singleton = WhatsAppCloudGateway()
    return _gateway_singleton
