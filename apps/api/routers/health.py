"""
Health check endpoints.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
import redis.asyncio as redis

from config import settings
from database import engine

router = APIRouter()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        return f"down: {str(e)}"


async def _redis_status() -> str:
    client = redis.from_url(settings.REDIS_URL)
    try:
        await client.ping()
        return "up"
    except Exception as e:
        return f"down: {str(e)}"
    finally:
        await client.aclose()


@router.get("/health")
async def health_check():
    """
    Dependency status for the analysis pipeline.

    Redis is only probed when it backs progress tracking. Missing scrape or
    OpenAI credentials are reported but do not degrade the service, since
    analyses fall back to synthetic data and a fixed result.
    """
    checks = {"database": await _database_status()}
    if settings.PROGRESS_BACKEND == "redis":
        checks["redis"] = await _redis_status()

    degraded = any(value != "up" for value in checks.values())
    return {
        "status": "degraded" if degraded else "healthy",
        "api": "up",
        **checks,
        "progress_backend": settings.PROGRESS_BACKEND,
        "scrape_provider": "configured" if settings.APIFY_TOKEN else "fallback_only",
        "openai": "configured" if settings.OPENAI_API_KEY else "fallback_only",
    }


@router.get("/health/ready")
async def readiness_check():
    """Not ready when analyses could never produce posts."""
    missing = []
    if not (settings.JWT_SECRET or "").strip():
        missing.append("JWT_SECRET")
    if not settings.FALLBACK_DATA_ENABLED and not settings.APIFY_TOKEN:
        missing.append("APIFY_TOKEN")

    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
