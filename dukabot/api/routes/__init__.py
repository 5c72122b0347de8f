from fastapi import APIRouter

from dukabot.api.routes.health import router as health_router
from dukabot.api.routes.whatsapp import router as whatsapp_router

api_router = APIRouter()

# Public / health
api_router.include_router(health_router, tags=["health"])
api_router.include_router(whatsapp_router, tags=["whatsapp"])
