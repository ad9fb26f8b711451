"""Entry point for the realtime middle tier service."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from api.realtime_routes import router as realtime_router
from api.routes import router as api_router
from config.settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Realtime Middle Tier",
    description="Relays caller audio to Azure OpenAI realtime and runs its tool calls.",
)
app.include_router(api_router, prefix="/api")
app.include_router(realtime_router)
