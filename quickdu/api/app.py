from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from quickdu.api.routes.health import router as health_router
from quickdu.api.routes.usage import router as usage_router
from quickdu.core.config import get_settings
from quickdu.core.logging import configure_logging
from quickdu.db.init_db import initialize_database
from quickdu.usage.service import get_usage_service, reset_usage_service


@asynccontextmanager
async def lifespan(_app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    initialize_database()
    get_usage_service()
    yield
    reset_usage_service()


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(usage_router, prefix="/api/v1")
    return app
