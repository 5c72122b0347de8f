# scripts/check_whatsapp_token.py

import asyncio
import os
import sys

# ensure dukabot is importable
sys.path.append(os.path.dirname(os.path.dirname(__file__)))

import httpx
from loguru import logger

from dukabot.core.config import settings
from dukabot.core.logging_config import setup_logging

TOKEN_EXPIRED_CODE = 190


async def main() -> int:
    setup_logging()
    if not settings.WHATSAPP_ACCESS_TOKEN:
        logger.error("No WHATSAPP_ACCESS_TOKEN configured")
        return 1
    if not settings.WHATSAPP_PHONE_NUMBER_ID:
        logger.error("No WHATSAPP_PHONE_NUMBER_ID configured")
        return 1

    # Reading the sender number proves both the token and the phone number id.
    url = f"{settings.WHATSAPP_API_BASE.rstrip('/')}/{settings.WHATSAPP_PHONE_NUMBER_ID}"
    params = {"fields": "display_phone_number,verified_name,quality_rating"}
    headers = {"Authorization": f"Bearer {settings.WHATSAPP_ACCESS_TOKEN}"}

    async with httpx.AsyncClient(timeout=20) as client:
        resp = await client.get(url, params=params, headers=headers)

    if resp.status_code == 200:
        info = resp.json()
        logger.success(
            "WhatsApp sender OK: {} ({}), quality {}",
            info.get("display_phone_number"),
            info.get("verified_name"),
            info.get("quality_rating", "unknown"),
        )
        return 0

    try:
        err = resp.json().get("error", {})
    except ValueError:
        err = {}
    if err.get("code") == TOKEN_EXPIRED_CODE:
        logger.critical("WhatsApp token EXPIRED (code=190). Generate a new token and update .env")
    else:
        logger.error("Sender check failed: {} - {}", resp.status_code, err or resp.text)
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
