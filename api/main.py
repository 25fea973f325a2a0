MODULE_DESCRIPTION = r"""Yurie Answer-Engine API - Main Application Entry Point

This module assembles the FastAPI application behind the Yurie web client: a
Gemini-backed answer engine with streamed chat, image and video generation,
deep research, a notes workspace and a personal media library.

Key Features:
-------------
1. Application Lifecycle Management:
   - Startup: PostgreSQL pool (when DATABASE_URL is set), memory baseline,
     graceful shutdown handlers
   - Shutdown: pool and Redis client closed, final memory statistics logged

2. Middleware Stack (registration order):
   - CORS: origins from CORS_ALLOWED_ORIGINS
   - Brotli compression: JSON responses only, the SSE routes are excluded
   - Throttling: per-client rate limiting that waits before rejecting
   - Memory monitoring: RSS tracking around heavy routes

3. Exception Handling:
   - 422 for request validation errors
   - HTTPException bodies are always {"detail": ...}
   - ValueError -> 400
   - Anything else -> 500 "Internal server error" (traceback only with
     DEBUG_TRACEBACK=1)

4. Route Registration:
   - /api/chat                       Streamed chat (SSE)
   - /api/chats                      Chat history (Redis)
   - /api/notes                      Notes workspace (Postgres)
   - /api/stuff/images, /videos      Media library (Supabase storage)
   - /api/attachments                Chat attachments
   - /api/imagine                    Image generation (SSE)
   - /api/video                      Video generation (SSE)
   - /api/research/*                 Deep research reconnect / follow-up
   - /api/config/models              Enabled chat models
   - /api/health*                    Health and diagnostics

Services:
---------
Gemini is required (GEMINI_API_KEY). Redis, Supabase and Postgres are
optional; the routes depending on them answer with 503 or a "disabled" body
when they are not configured.

Usage:
------
    uvicorn api.main:app --host 0.0.0.0 --port 8000
    python uvicorn_start.py
"""

# ==============================================================================
# CRITICAL WINDOWS COMPATIBILITY CONFIGURATION
# ==============================================================================
# Must be set before any async operations: psycopg's async driver does not
# work with the default Proactor event loop on Windows
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# ==============================================================================
# ENVIRONMENT VARIABLES LOADING
# ==============================================================================
from dotenv import load_dotenv

load_dotenv()

# ==============================================================================
# PROJECT ROOT DIRECTORY CONFIGURATION
# ==============================================================================
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[1]  # Go up one level from api/main.py
except NameError:
    # Fallback for interactive environments (Jupyter, REPL)
    BASE_DIR = Path(os.getcwd())

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# ==============================================================================
# STANDARD LIBRARY AND THIRD-PARTY IMPORTS
# ==============================================================================
from contextlib import asynccontextmanager
from datetime import datetime

import psutil
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import settings
from api.config.settings import APP_VERSION
from api.exceptions.handlers import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    value_error_handler,
)
from api.middleware.cors import setup_brotli_middleware, setup_cors_middleware
from api.middleware.memory_monitoring import setup_memory_monitoring_middleware
from api.middleware.rate_limiting import setup_throttling_middleware
from api.routes import (
    attachments_router,
    chat_router,
    chats_router,
    health_router,
    imagine_router,
    models_config_router,
    notes_router,
    research_router,
    stuff_router,
    video_router,
)
from api.utils.debug import print__startup_debug
from api.utils.memory import (
    GC_MEMORY_THRESHOLD,
    log_memory_usage,
    print__memory_monitoring,
    setup_graceful_shutdown,
)
from gemini.client import is_gemini_available
from storage.chat_history import close_redis_client
from storage.database import close_pool, initialize_pool


# ==============================================================================
# APPLICATION LIFESPAN MANAGEMENT
# ==============================================================================
@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Startup and shutdown of the shared resources.

    Startup:
    1. Record startup timestamp
    2. Register graceful shutdown handlers (SIGTERM, SIGUSR1)
    3. Open the PostgreSQL pool when DATABASE_URL is configured
    4. Establish the memory baseline used for leak detection

    Shutdown:
    1. Close the PostgreSQL pool and the Redis client
    2. Log final memory statistics against the baseline
    """
    settings._APP_STARTUP_TIME = datetime.now()
    print__startup_debug("🚀 FastAPI application starting up...")
    print__memory_monitoring(
        f"Application startup initiated at {settings._APP_STARTUP_TIME.isoformat()}"
    )
    log_memory_usage("app_startup")

    setup_graceful_shutdown()

    if not is_gemini_available():
        print__startup_debug(
            "⚠️ GEMINI_API_KEY is not set - generation endpoints will answer 503"
        )

    # Notes and the media library need Postgres; a failed pool leaves them 503
    try:
        await initialize_pool()
    except Exception as e:  # pylint: disable=broad-except
        print__startup_debug(f"⚠️ Database pool initialization failed: {e}")

    if settings._MEMORY_BASELINE is None:
        try:
            settings._MEMORY_BASELINE = psutil.Process().memory_info().rss / 1024 / 1024
            print__memory_monitoring(
                f"Memory baseline established: {settings._MEMORY_BASELINE:.1f}MB RSS"
            )
        except Exception:  # pylint: disable=broad-except
            pass

    log_memory_usage("app_ready")
    print__startup_debug("✅ FastAPI application ready to serve requests")

    yield

    print__startup_debug("🛑 FastAPI application shutting down...")
    print__memory_monitoring(
        f"Application ran for {datetime.now() - settings._APP_STARTUP_TIME}"
    )

    await close_pool()
    await close_redis_client()

    if settings._MEMORY_BASELINE:
        try:
            final_memory = psutil.Process().memory_info().rss / 1024 / 1024
            total_growth = final_memory - settings._MEMORY_BASELINE
            print__memory_monitoring(
                f"Final memory stats: Started={settings._MEMORY_BASELINE:.1f}MB, "
                f"Final={final_memory:.1f}MB, Growth={total_growth:.1f}MB"
            )
            if total_growth > GC_MEMORY_THRESHOLD:
                print__memory_monitoring(
                    "🚨 SIGNIFICANT MEMORY GROWTH DETECTED - investigate for leaks!"
                )
        except Exception:  # pylint: disable=broad-except
            pass


# ==============================================================================
# FASTAPI APPLICATION INITIALIZATION
# ==============================================================================
app = FastAPI(
    title="Yurie Answer-Engine API",
    description="""Gemini-backed answer engine with streamed chat, media generation and a notes workspace.

## Features
- 💬 Streamed chat with web search grounding, citations and follow-up questions
- 🔬 Deep research with resumable progress streams
- 🎨 Image generation and editing
- 🎬 Video generation (text, image, interpolation, reference and extend modes)
- 📝 Notes with block documents and file uploads
- 🗂️ Personal image and video library

## Authentication
Supabase access tokens as `Authorization: Bearer <token>`. Chat, generation
and research accept anonymous requests; history, notes, library and
attachments require a signed-in user.
    """,
    version=APP_VERSION,
    lifespan=lifespan,
    responses={
        401: {
            "description": "Unauthorized - Invalid or missing authentication token",
            "content": {
                "application/json": {"example": {"detail": "Missing Authorization header"}}
            },
        },
        422: {
            "description": "Validation Error - Invalid request body",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Validation error",
                        "errors": [
                            {
                                "loc": ["body", "prompt"],
                                "msg": "Field required",
                                "type": "missing",
                            }
                        ],
                    }
                }
            },
        },
        429: {
            "description": "Rate Limit Exceeded - Too many requests",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Rate limit exceeded. Please wait 5.0s before retrying.",
                        "retry_after": 5,
                    }
                }
            },
        },
        500: {
            "description": "Internal Server Error",
            "content": {
                "application/json": {"example": {"detail": "Internal server error"}}
            },
        },
    },
)

# ==============================================================================
# MIDDLEWARE REGISTRATION
# ==============================================================================
setup_cors_middleware(app)
setup_brotli_middleware(app)
setup_throttling_middleware(app)
setup_memory_monitoring_middleware(app)

# ==============================================================================
# EXCEPTION HANDLERS
# ==============================================================================
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(ValueError, value_error_handler)
app.add_exception_handler(Exception, general_exception_handler)

# ==============================================================================
# ROUTE REGISTRATION
# ==============================================================================
print__memory_monitoring("[ROUTES] Registering route routers...")

app.include_router(health_router, tags=["Health & Monitoring"])  # GET /api/health*
app.include_router(models_config_router, tags=["Configuration"])  # GET /api/config/models
app.include_router(chat_router, tags=["Chat"])  # POST /api/chat (SSE)
app.include_router(chats_router, tags=["Chat History"])  # /api/chats
app.include_router(attachments_router, tags=["Attachments"])  # /api/attachments
app.include_router(notes_router, tags=["Notes"])  # /api/notes
app.include_router(stuff_router, tags=["Library"])  # /api/stuff/images, /api/stuff/videos
app.include_router(imagine_router, tags=["Image Generation"])  # POST /api/imagine (SSE)
app.include_router(video_router, tags=["Video Generation"])  # POST /api/video (SSE)
app.include_router(research_router, tags=["Deep Research"])  # /api/research/*

print__memory_monitoring("[SUCCESS] All route routers registered successfully")
