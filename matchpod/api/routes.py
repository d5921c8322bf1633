"""
================================================================================
FILE: matchpod/api/routes.py
================================================================================

PURPOSE:
    Service-level endpoints:

    GET /api               → service info and endpoint map
    GET /api/health        → overall health; 503 while shutting down
    GET /api/health/redis  → Redis health check with response time

HEALTH RULES:
    - Shutdown in progress → 503 {"status": "shutting_down"} so the load
      balancer stops routing new traffic to this instance
    - Critical services: api, database. Redis is optional.
    - Redis check: healthy < 250ms, degraded >= 250ms, down on timeout/error
"""

# ================================================================================
# IMPORTS
# ================================================================================

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from matchpod.api.dependencies import (
    get_coordinator,
    get_mongo_handler,
    get_redis_handler,
    get_settings,
)
from matchpod.config.constants import (
    API_PREFIX,
    API_TITLE,
    API_VERSION,
    REDIS_DEGRADED_THRESHOLD_MS,
    REDIS_PING_TIMEOUT_SECONDS,
)
from matchpod.config.settings import Settings
from matchpod.core.mongo_handler import MongoHandler
from matchpod.core.redis_handler import RedisHandler
from matchpod.core.shutdown import ShutdownCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX)

CRITICAL_SERVICES = ("api", "database")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()

# ================================================================================
# SERVICE INFO
# ================================================================================

@router.get("", tags=["Root"])
async def api_info() -> Dict[str, Any]:
    return {
        "message": f"{API_TITLE} is running",
        "version": API_VERSION,
        "endpoints": {
            "health": f"{API_PREFIX}/health",
            "health_redis": f"{API_PREFIX}/health/redis",
        },
    }

# ================================================================================
# HEALTH
# ================================================================================

@router.get("/health", tags=["Health"])
async def health(
    settings: Settings = Depends(get_settings),
    coordinator: ShutdownCoordinator = Depends(get_coordinator),
    redis_handler: RedisHandler = Depends(get_redis_handler),
    mongo_handler: MongoHandler = Depends(get_mongo_handler),
):
    """Health check endpoint."""
    if coordinator.is_shutting_down:
        return JSONResponse(
            status_code=503,
            content={
                "status": "shutting_down",
                "timestamp": _timestamp(),
                "message": "Server is shutting down gracefully",
            },
        )

    body: Dict[str, Any] = {
        "status": "healthy",
        "timestamp": _timestamp(),
        "services": {"api": "healthy", "database": "unknown", "redis": "unknown"},
    }
    services = body["services"]

    services["database"] = "healthy" if mongo_handler.is_connected else "unhealthy"

    if not settings.enable_redis:
        services["redis"] = "disabled"
        body["redis"] = {
            "available": False,
            "connected": False,
            "enabled": False,
            "reason": "Redis disabled via ENABLE_REDIS=false",
        }
    else:
        try:
            available = await redis_handler.is_available()
            services["redis"] = "healthy" if available else "unhealthy"
            body["redis"] = {"available": available, "enabled": True, **redis_handler.status()}
        except Exception as e:
            logger.error(f"Redis health check error: {str(e)}")
            services["redis"] = "error"

    is_healthy = all(services[name] == "healthy" for name in CRITICAL_SERVICES)
    if not is_healthy:
        body["status"] = "unhealthy"
    return JSONResponse(status_code=200 if is_healthy else 503, content=body)


@router.get("/health/redis", tags=["Health"])
async def redis_health(redis_handler: RedisHandler = Depends(get_redis_handler)):
    """Redis health check."""
    if not redis_handler.is_ready:
        return JSONResponse(
            status_code=503,
            content={"status": "down", "reason": "not_ready", "timestamp": _timestamp()},
        )

    start = time.perf_counter()
    try:
        ok = await redis_handler.ping(timeout=REDIS_PING_TIMEOUT_SECONDS)
    except Exception as e:
        logger.error(f"Redis health check error: {str(e)}")
        return JSONResponse(
            status_code=503,
            content={"status": "down", "reason": "error", "timestamp": _timestamp()},
        )
    response_time = round((time.perf_counter() - start) * 1000)

    if not ok:
        return JSONResponse(
            status_code=503,
            content={"status": "down", "reason": "ping_failed", "timestamp": _timestamp()},
        )

    status = "healthy" if response_time < REDIS_DEGRADED_THRESHOLD_MS else "degraded"
    return JSONResponse(
        status_code=200,
        content={"status": status, "response_time": response_time, "timestamp": _timestamp()},
    )
