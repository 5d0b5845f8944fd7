"""Health checks: /health (load balancer), /api/healthz (liveness), /api/readyz (DB + Redis)."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from publication_service.config import get_settings
from publication_service.db import get_db
from publication_service.logging_config import get_logger

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/healthz")
def healthz() -> dict[str, str]:
    """Liveness: the process is up. Always 200."""
    return {"status": "ok"}


@router.get("/api/readyz")
async def readyz(db: AsyncSession = Depends(get_db)):
    """Readiness: database reachable and Redis (when configured) answers PING. 503 otherwise."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("readyz.db_fail", error=str(e))
        return JSONResponse(status_code=503, content={"status": "unhealthy", "db": "fail"})

    settings = get_settings()
    redis_state = "disabled"
    if settings.redis_url:
        from redis.asyncio import Redis

        try:
            client = Redis.from_url(settings.redis_url, decode_responses=True)
            try:
                await client.ping()
            finally:
                await client.aclose()
        except Exception as e:
            logger.warning("readyz.redis_fail", error=str(e))
            return JSONResponse(status_code=503, content={"status": "unhealthy", "db": "ok", "redis": "fail"})
        redis_state = "ok"

    return {"status": "ok", "db": "ok", "redis": redis_state}
