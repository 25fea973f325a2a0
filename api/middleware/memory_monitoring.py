"""
MODULE_DESCRIPTION: Memory Monitoring Middleware - Request-Level Memory Tracking

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Counts every request and logs process memory around the endpoints that hold
large payloads in memory: model streams (chat, image and video generation),
base64 media uploads (saved images, videos, attachments) and chat history
pages. Lightweight endpoints skip the psutil calls.

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

# Import globals from config
from api.config import settings

# Import memory functions from utils
from api.utils.memory import log_memory_usage, print__memory_monitoring

HEAVY_OPERATION_PATHS = [
    "/api/chat",
    "/api/imagine",
    "/api/video",
    "/api/stuff/",
    "/api/attachments",
]


# ==============================================================================
# MEMORY MONITORING MIDDLEWARE
# ==============================================================================
async def simplified_memory_monitoring_middleware(request: Request, call_next):
    """Count requests and log RSS before/after memory-heavy endpoints."""
    # =======================================================================
    # STEP 1: INCREMENT REQUEST COUNTER
    # =======================================================================
    settings._REQUEST_COUNT += 1

    # =======================================================================
    # STEP 2: CHECK IF ENDPOINT REQUIRES MEMORY MONITORING
    # =======================================================================
    request_path = request.url.path
    is_heavy_operation = request.method != "GET" and any(
        request_path.startswith(path) for path in HEAVY_OPERATION_PATHS
    )

    if is_heavy_operation:
        # Label format: "before_/api/chat" -> "before__api_chat"
        log_memory_usage(f"before_{request_path.replace('/', '_')}")

    response = await call_next(request)

    # Streaming responses are still running here; this logs the state at the
    # moment the response headers are sent
    if is_heavy_operation:
        log_memory_usage(f"after_{request_path.replace('/', '_')}")

    return response


def setup_memory_monitoring_middleware(app: FastAPI):
    print__memory_monitoring("📋 Registering memory monitoring middleware...")
    app.middleware("http")(simplified_memory_monitoring_middleware)
