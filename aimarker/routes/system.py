"""
System Routes
Health probes, moderation status and model request limits
"""

from datetime import datetime, timezone
from fastapi import APIRouter, HTTPException, status
import logging

from aimarker.config import settings
from aimarker.utils.ai_clients import gemini_client, github_client, openrouter_client
from aimarker.utils.database import get_database_connection
from aimarker.utils.moderation import llama_guard
from aimarker.utils.rate_limit import model_quota

logger = logging.getLogger(__name__)

router = APIRouter()

# Models whose remaining daily requests are reported to the client
REPORTED_MODELS = ("o3", "o4-mini", "xai/grok-3")

DEFAULT_REQUEST_LIMITS = {
    "o3": 1,
    "o4-mini": 2,
    "xai/grok-3": 1,
    "general": "Unlimited"
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def api_health():
    """API health with moderation status"""
    try:
        stats = llama_guard.get_moderation_stats()
        return {
            "status": "ok",
            "version": settings.version,
            "openai_client": True,
            "api_key_configured": (
                github_client.is_configured()
                or gemini_client.is_configured()
                or bool(openrouter_client.api_key)
            ),
            "moderation": {
                "enabled": stats["configured"],
                "service": stats["service"],
                "model": stats["model"],
                "daily_limit": stats["daily_limit"]
            },
            "timestamp": _timestamp()
        }
    except Exception as e:
        logger.error(f"Health check error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Health check failed"
        )


@router.get("/health/database")
async def database_health():
    """Database connectivity check"""
    try:
        async with get_database_connection() as conn:
            await conn.fetchval("SELECT 1")
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database unhealthy: {str(e)}"
        )


@router.get("/moderation/health")
async def moderation_health():
    stats = llama_guard.get_moderation_stats()
    return {
        "status": "configured" if stats["configured"] else "not_configured",
        "service": stats["service"],
        "model": stats["model"],
        "daily_limit": stats["daily_limit"],
        "cost_per_request": stats["cost_per_request"],
        "timestamp": _timestamp()
    }


@router.get("/request-limits")
async def request_limits():
    """Remaining daily requests for the rate-capped models"""
    try:
        limits = dict(DEFAULT_REQUEST_LIMITS)
        for model in REPORTED_MODELS:
            limits[model] = model_quota.remaining(model)
        return limits
    except Exception as e:
        logger.error(f"Error fetching request limits: {e}")
        return dict(DEFAULT_REQUEST_LIMITS)
