"""FastAPI application factory."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from api.errors import register_exception_handlers
from api.v1 import auth_router, users_router
from core import settings

API_PREFIX = "/api/v1"


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app() -> FastAPI:
    configure_logging()
    application = FastAPI(title="Accounts API")
    register_exception_handlers(application)
    application.include_router(auth_router, prefix=API_PREFIX)
    application.include_router(users_router, prefix=API_PREFIX)

    @application.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return application


app = create_app()
