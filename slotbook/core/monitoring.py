"""Health checks"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from slotbook.config.database import get_db
from slotbook.config.redis import get_redis
from slotbook.config.settings import get_settings

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("")
async def health_check():
    """Liveness only, touches no dependency"""
    return {"status": "healthy", "service": get_settings().APP_NAME}


@health_router.get("/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """Readiness: database and Redis (Celery broker)"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "unknown",
    }

    try:
        db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {e}"

    try:
        redis_client = await get_redis()
        await redis_client.ping()
        checks["redis"] = "healthy"
        await redis_client.aclose()
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        checks["redis"] = f"unhealthy: {e}"

    healthy = all(value == "healthy" for value in checks.values())
    checks["overall"] = "healthy" if healthy else "degraded"
    return checks
