"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tierwatch.api.routes import engine, health
from tierwatch.core.config import AppSettings
from tierwatch.core.exceptions import TierWatchError
from tierwatch.core.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Initialize and tear down application resources."""
    configure_logging(app.state.settings)
    yield


async def tierwatch_error_handler(request: Request, exc: TierWatchError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or AppSettings()
    app = FastAPI(
        title=settings.api.title,
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.add_exception_handler(TierWatchError, tierwatch_error_handler)
    app.include_router(health.router)
    app.include_router(engine.router, prefix=settings.api.engine_prefix)
    return app
