from fastapi import FastAPI
from loguru import logger

from dukabot.api.routes import api_router
from dukabot.core.config import settings
from dukabot.core.logging_config import setup_logging

setup_logging()

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)


@app.on_event("startup")
async def startup():
    from dukabot.domain.services.location_index import get_location_index

    if settings.DB_CREATE_ALL:
        from dukabot.core.db import engine
        from dukabot.infrastructure.db import models  # noqa: F401
        from dukabot.infrastructure.db.base import Base

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured")

    index = get_location_index()
    if index.is_empty:
        logger.warning("Location index is empty; customers will be asked for GPS")
    else:
        logger.success("Location index ready: {} districts", len(index.districts()))


app.include_router(api_router)
