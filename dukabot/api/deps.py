# dukabot/api/deps.py
"""
Shared FastAPI dependencies.

Meta signs every webhook POST with ``X-Hub-Signature-256: sha256=<hex>``,
an HMAC-SHA256 of the raw body keyed by the app secret.  Without a
configured secret the check is skipped (with a warning) so local tunnels
keep working.
"""

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request, status

from dukabot.core.config import settings
from dukabot.domain.services.conversation_service import ConversationService, get_conversation_service

logger = logging.getLogger("api.deps")

SIGNATURE_HEADER = "X-Hub-Signature-256"


def signature_is_valid(raw_body: bytes, header_value: Optional[str], app_secret: str) -> bool:
    if not header_value:
        return False
    received = header_value.strip()
    if received.startswith("sha256="):
        received = received[len("sha256="):]
    expected = hmac.new(app_secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, received.strip().lower())


async def verify_whatsapp_signature(request: Request) -> bytes:
    """Dependency: returns the raw body once its signature checks out."""
    raw_body = await request.body()
    secret = settings.WHATSAPP_APP_SECRET
    if not secret:
        logger.warning("WHATSAPP_APP_SECRET not set; accepting unsigned webhook")
        return raw_body
    if not signature_is_valid(raw_body, request.headers.get(SIGNATURE_HEADER), secret):
        logger.warning("Rejected webhook with bad %s", SIGNATURE_HEADER)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    return raw_body


def conversation_service() -> ConversationService:
    return get_conversation_service()
