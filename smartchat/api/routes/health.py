"""Health check endpoint for the smartchat bridge."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from smartchat.config import APP_ENV, APP_VERSION
from smartchat.threads.platforms import fence_tags

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status, version, and the number of loaded platforms."""
    return {
        "status": "healthy",
        "service": "smartchat",
        "version": APP_VERSION,
        "env": APP_ENV,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "platforms": len(fence_tags()),
    }
