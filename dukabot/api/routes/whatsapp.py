import json
import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from dukabot.api.deps import conversation_service, verify_whatsapp_signature
from dukabot.core.config import settings
from dukabot.domain.services.conversation_service import ConversationService

logger = logging.getLogger("api.whatsapp")

router = APIRouter()


@router.get("/webhook", response_class=PlainTextResponse)
async def verify(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
):
    if hub_mode == "subscribe" and settings.WHATSAPP_VERIFY_TOKEN and hub_verify_token == settings.WHATSAPP_VERIFY_TOKEN:
        logger.info("Webhook verified")
        return PlainTextResponse(hub_challenge or "")
    logger.warning("Webhook verification failed (mode=%s)", hub_mode)
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("/webhook")
async def webhook(
    raw_body: bytes = Depends(verify_whatsapp_signature),
    service: ConversationService = Depends(conversation_service),
):
    # Meta retries anything but a 200, so failures are logged and swallowed here.
    try:
        body = json.loads(raw_body or b"{}")
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return {"status": "ok"}

    try:
        dispatched = await service.handle_webhook(body)
        logger.debug("Webhook dispatched %s message(s)", dispatched)
    except Exception:
        logger.exception("Webhook processing failed")
    return {"status": "ok"}
