"""
MODULE_DESCRIPTION: Rate Limiting Middleware - Per-IP Request Throttling

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Protects the Yurie answer-engine API (and the Gemini quota behind it) from
bursts of requests coming from a single client.

Instead of immediately rejecting requests that exceed rate limits, this middleware
waits for capacity first (see api.utils.rate_limiting.wait_for_rate_limit). Only
when the client is still over the limit after the final attempt is the request
rejected with 429.

Key Features:
    - Per-IP sliding window (100 requests / 60 s) plus burst limit (20 / 10 s)
    - Semaphore-based concurrency control (max 8 concurrent per IP)
    - Wait-and-retry strategy (3 attempts, each wait capped at 5 seconds)
    - Exempt endpoints: /api/health, /docs, /openapi.json, /redoc

===================================================================================
RATE LIMIT RESPONSE (429)
===================================================================================

    {
        "detail": "Rate limit exceeded. Please wait Xs before retrying.",
        "retry_after": X,
        "burst_usage": "Y/Z",
        "window_usage": "A/B"
    }

    Header: Retry-After: <seconds, at least 1>

===================================================================================
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Constants
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

# Standard imports
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.config.settings import throttle_semaphores
from api.utils.memory import log_comprehensive_error, print__memory_monitoring
from api.utils.rate_limiting import (
    check_rate_limit_with_throttling,
    wait_for_rate_limit,
)

RATE_LIMIT_EXEMPT_PATHS = ["/api/health", "/docs", "/openapi.json", "/redoc"]


# ==============================================================================
# RATE LIMITING MIDDLEWARE
# ==============================================================================
async def throttling_middleware(request: Request, call_next):
    """Throttling middleware that makes requests wait instead of rejecting them.

    Args:
        request: The FastAPI Request object
        call_next: The next middleware/route handler in the chain

    Returns:
        The response from the next handler, or a 429 JSONResponse when the
        client is still over the limit after waiting
    """
    if request.url.path in RATE_LIMIT_EXEMPT_PATHS or request.method == "OPTIONS":
        return await call_next(request)

    client_ip = request.client.host if request.client else "unknown"

    semaphore = throttle_semaphores[client_ip]

    async with semaphore:
        if not await wait_for_rate_limit(client_ip):
            rate_info = check_rate_limit_with_throttling(client_ip)
            error_msg = (
                f"Rate limit exceeded for IP: {client_ip} after waiting. "
                f"Burst: {rate_info['burst_count']}/{rate_info['burst_limit']}, "
                f"Window: {rate_info['window_count']}/{rate_info['window_limit']}"
            )
            log_comprehensive_error(
                "rate_limit_exceeded_after_wait",
                Exception(error_msg),
                request,
            )

            response_content = {
                "detail": (
                    f"Rate limit exceeded. Please wait "
                    f"{rate_info['suggested_wait']:.1f}s before retrying."
                ),
                "retry_after": max(rate_info["suggested_wait"], 1),
                "burst_usage": f"{rate_info['burst_count']}/{rate_info['burst_limit']}",
                "window_usage": f"{rate_info['window_count']}/{rate_info['window_limit']}",
            }

            return JSONResponse(
                status_code=429,
                content=response_content,
                headers={"Retry-After": str(max(int(rate_info["suggested_wait"]), 1))},
            )

        return await call_next(request)


def setup_throttling_middleware(app: FastAPI):
    """Register the per-IP throttling middleware on the application."""
    print__memory_monitoring("📋 Registering rate limiting middleware...")
    app.middleware("http")(throttling_middleware)
    print__memory_monitoring("✅ Rate limiting middleware registered successfully")
