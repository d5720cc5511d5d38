from fastapi import APIRouter
from structlog import get_logger

from marketplace.config import settings
from marketplace.core.cache import get_redis, invalidate_properties_cache
from marketplace.core.errors import internal_error
from marketplace.db.supabase import supabase

logger = get_logger()
router = APIRouter(prefix="/api", tags=["health"])

@router.get("/health")
async def health():
    return {"status": "ok"}

@router.get("/health/ready")
async def readiness():
    details = {"status": "ok", "checks": {}}

    # Redis check
    try:
        pong = await get_redis().ping()
        details["checks"]["redis"] = "ok" if pong else "fail"
    except Exception as e:
        logger.warning("health redis fail", error=str(e))
        details["checks"]["redis"] = f"fail: {str(e)}"
        details["status"] = "degraded"

    # Supabase check
    try:
        await supabase.ping(settings.PROPERTIES_TABLE)
        details["checks"]["supabase"] = "ok"
    except Exception as e:
        logger.warning("health supabase fail", error=str(e))
        details["checks"]["supabase"] = f"fail: {str(e)}"
        details["status"] = "degraded"

    return details

@router.post("/cache/clear")
async def clear_cache():
    """
    Drop the cached property list so the next read goes to Supabase.
    """
    try:
        deleted = await invalidate_properties_cache()
        return {"status": "ok", "cleared_keys": deleted}
    except Exception as e:
        logger.error("Failed to clear cache", error=str(e))
        raise internal_error()
