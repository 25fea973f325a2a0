"""
MODULE_DESCRIPTION: Health Check Endpoints - Service Status and Diagnostics

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Health check endpoints for the Yurie answer-engine API:

1. /api/health             - Overall status for deployment checks
2. /api/health/memory      - Process memory against GC_MEMORY_THRESHOLD
3. /api/health/rate-limits - Rate limiter state

Health Check Philosophy:
    - No authentication (monitoring tools need access)
    - Never cached (Cache-Control: no-store)
    - Gemini is the only required service: without it the API cannot answer
      and /api/health returns 503 "unhealthy"
    - Redis, Supabase and Postgres are optional; their state is reported for
      debugging but does not change the overall status

===================================================================================
RESPONSE FORMAT (/api/health)
===================================================================================

    {
        "status": "healthy" | "unhealthy",
        "timestamp": "2025-01-15T10:30:00.000000",
        "version": "1.0.0",
        "uptimeSeconds": 3600.5,
        "services": {
            "gemini": {"available": true},
            "redis": {"configured": true, "connected": true},
            "supabase": {"configured": true},
            "database": {"configured": true}
        }
    }

===================================================================================
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from dotenv import load_dotenv

load_dotenv()

try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

# Standard imports
import time
from datetime import datetime

import psutil
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.config.settings import (
    APP_VERSION,
    RATE_LIMIT_BURST,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    is_redis_configured,
    is_supabase_configured,
    rate_limit_storage,
    start_time,
)
from api.helpers import traceback_json_response
from api.models.responses import HealthResponse
from api.utils.debug import print__health_debug
from api.utils.memory import GC_MEMORY_THRESHOLD
from gemini.client import is_gemini_available
from storage.chat_history import get_redis_client
from storage.database import is_database_configured

NO_STORE_HEADERS = {"Cache-Control": "no-store, no-cache, must-revalidate"}

router = APIRouter()


async def check_redis_connection() -> bool:
    if not is_redis_configured():
        return False
    try:
        return bool(await get_redis_client().ping())
    except Exception as e:
        print__health_debug(f"⚠️ Redis ping failed: {type(e).__name__}: {e}")
        return False


@router.get("/api/health")
async def health_check():
    """Overall status; 503 when Gemini is unavailable."""
    gemini_available = is_gemini_available()
    redis_configured = is_redis_configured()
    redis_connected = await check_redis_connection() if redis_configured else False

    health = HealthResponse(
        status="healthy" if gemini_available else "unhealthy",
        timestamp=datetime.now().isoformat(),
        version=APP_VERSION,
        uptimeSeconds=round(time.time() - start_time, 1),
        services={
            "gemini": {"available": gemini_available},
            "redis": {"configured": redis_configured, "connected": redis_connected},
            "supabase": {"configured": is_supabase_configured()},
            "database": {"configured": is_database_configured()},
        },
    )
    print__health_debug(f"📊 Health: {health.status}")

    return JSONResponse(
        status_code=200 if gemini_available else 503,
        content=health.model_dump(),
        headers=NO_STORE_HEADERS,
    )


@router.get("/api/health/memory")
async def memory_health_check():
    try:
        rss_mb = psutil.Process().memory_info().rss / 1024 / 1024

        status = "healthy"
        if rss_mb > GC_MEMORY_THRESHOLD:
            status = "high_memory"
        elif rss_mb > (GC_MEMORY_THRESHOLD * 0.8):
            status = "warning"

        return JSONResponse(
            content={
                "status": status,
                "memory_rss_mb": round(rss_mb, 1),
                "memory_threshold_mb": GC_MEMORY_THRESHOLD,
                "memory_usage_percent": round((rss_mb / GC_MEMORY_THRESHOLD) * 100, 1),
                "over_threshold": rss_mb > GC_MEMORY_THRESHOLD,
                "timestamp": datetime.now().isoformat(),
            },
            headers=NO_STORE_HEADERS,
        )
    except Exception as e:
        resp = traceback_json_response(e)
        if resp:
            return resp
        return {"status": "error", "error": str(e), "timestamp": datetime.now().isoformat()}


@router.get("/api/health/rate-limits")
async def rate_limit_health_check():
    total_clients = len(rate_limit_storage)
    active_clients = sum(1 for requests in rate_limit_storage.values() if requests)

    return JSONResponse(
        content={
            "status": "healthy",
            "total_tracked_clients": total_clients,
            "active_clients": active_clients,
            "rate_limit_window": RATE_LIMIT_WINDOW,
            "rate_limit_requests": RATE_LIMIT_REQUESTS,
            "rate_limit_burst": RATE_LIMIT_BURST,
            "timestamp": datetime.now().isoformat(),
        },
        headers=NO_STORE_HEADERS,
    )
