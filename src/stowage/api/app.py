"""FastAPI application factory for Stowage."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from stowage import __version__
from stowage.api.deps import init_model_store, reset_model_store
from stowage.api.middleware import RequestBodyLimitMiddleware, RequestTimingMiddleware
from stowage.api.routers import models
from stowage.api.schemas import HealthResponse
from stowage.service.model_store import ModelStore
from stowage.settings import Settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Create the ModelStore for the lifetime of the application."""
    settings: Settings = app.state.settings
    init_model_store(ModelStore(settings))
    try:
        yield
    finally:
        reset_model_store()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Stowage",
        description="Packaging-element graphs: artifact layouts, build order and validation.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestBodyLimitMiddleware)

    app.include_router(models.router)

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    return app


def main() -> None:
    """Run the REST API server using settings from environment / .env file."""
    settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())
    logger = logging.getLogger("stowage.api")
    logger.info(
        "Stowage API server v%s starting (host=%s, port=%d)",
        __version__,
        settings.api_server_host,
        settings.effective_port,
    )

    uvicorn.run(
        "stowage.api.app:create_app",
        factory=True,
        host=settings.api_server_host,
        port=settings.effective_port,
        log_level=settings.log_level.lower(),
    )
