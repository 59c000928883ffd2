"""Health check endpoints for liveness and readiness probes."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from autochat import __version__
from autochat.api.dependencies import get_db, get_redis_manager
from autochat.api.schemas.common import HealthResponse, ServiceStatus
from autochat.cache.client import RedisManager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check; returns 200 without touching dependencies."""
    logger.debug("health_check: status=ok")
    return HealthResponse(status="ok", version=__version__)


@router.get("/ready", response_model=HealthResponse)
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    redis_manager: Optional[RedisManager] = Depends(get_redis_manager),
) -> HealthResponse:
    """
    Readiness check with dependency status.

    The database is required. Redis only enables resumable streams, so its
    absence reports "degraded" instead of failing readiness.

    Args:
        db: Async database session.
        redis_manager: Optional Redis manager.

    Returns:
        HealthResponse with per-service status.

    Raises:
        HTTPException: 503 if the database is unavailable.
    """
    services: dict[str, ServiceStatus] = {}

    try:
        await db.execute(text("SELECT 1"))
        services["database"] = ServiceStatus(status="connected")
    except Exception as e:
        logger.error(f"readiness_check: database=error, error={str(e)}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service unavailable",
        ) from e

    overall = "ok"
    if redis_manager is None:
        services["redis"] = ServiceStatus(status="not_configured")
    else:
        health = await redis_manager.health_check()
        if health["status"] == "ok":
            services["redis"] = ServiceStatus(status="connected", latency_ms=health["latency_ms"])
        else:
            overall = "degraded"
            services["redis"] = ServiceStatus(status=health["status"], error="Redis not reachable")

    logger.info(f"readiness_check: status={overall}")
    return HealthResponse(status=overall, version=__version__, services=services)
