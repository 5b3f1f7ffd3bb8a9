"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request) -> dict[str, str]:
    settings = request.app.state.settings
    # Building the tier table validates the configured thresholds.
    settings.engine.tiers()
    return {"status": "ready", "environment": settings.environment}
