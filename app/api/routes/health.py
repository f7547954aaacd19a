"""Health check endpoints."""

from typing import Any, Dict

from fastapi import APIRouter

from app.config import settings
from app.middleware.rate_limit import limiter

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
@limiter.exempt
async def health_check() -> Dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/ready")
@limiter.exempt
async def readiness_check() -> Dict[str, Any]:
    """
    Readiness probe.

    The service stays ready without an API key, but photo endpoints answer 503
    until one is configured.
    """
    return {
        "status": "ready",
        "dependencies": {
            "gemini": "configured" if settings.photo_import_config().is_configured else "not_configured",
        },
    }
