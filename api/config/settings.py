"""
MODULE_DESCRIPTION: API Configuration Settings - Global State and Application Constants

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

This module is the central configuration hub for the Yurie answer-engine API.
It defines global constants, shared state variables and service settings that
are read throughout the application.

The module manages:
    - Application startup tracking (uptime, baseline metrics)
    - External service settings (Gemini, Supabase, Redis)
    - Concurrency controls (semaphore bounding concurrent Gemini streams)
    - Rate limiting configuration and storage
    - JWT authentication settings for Supabase-issued tokens
    - Windows compatibility settings

===================================================================================
GLOBAL VARIABLES
===================================================================================

Application Lifecycle:
    start_time (float)
        - Unix timestamp when the application module was imported
        - Used for uptime reporting

    _APP_STARTUP_TIME, _MEMORY_BASELINE, _REQUEST_COUNT
        - Filled in by the lifespan handler and the memory helpers

External Services:
    GEMINI_API_KEY
        - GEMINI_API_KEY or GOOGLE_API_KEY, whichever is set first
    SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_JWT_SECRET
        - Storage REST API access and HS256 token verification
    REDIS_URL
        - REDIS_URL or UPSTASH_REDIS_URL (rediss:// for Upstash)
    ENABLE_SAVE_CHAT_HISTORY
        - "true" enables chat history persistence

Concurrency Control:
    MAX_CONCURRENT_GENERATIONS (int)
        - Maximum concurrent model streams (chat, imagine, video, research)
        - Default: 3 (configurable via env)

    generation_semaphore (asyncio.Semaphore)
        - Semaphore enforcing MAX_CONCURRENT_GENERATIONS

    throttle_semaphores (defaultdict[str, asyncio.Semaphore])
        - Per-IP semaphores, 8 concurrent requests per IP

Rate Limiting:
    rate_limit_storage, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW,
    RATE_LIMIT_BURST, RATE_LIMIT_MAX_WAIT
        - Sliding window (100 requests / 60 s) plus burst (20 / 10 s)

JWT Authentication:
    SUPABASE_JWKS_PATH (str)
        - Path appended to SUPABASE_URL for asymmetric signing keys
    SUPABASE_JWT_AUDIENCE (str)
        - Expected audience claim, "authenticated" by default
    _JWT_KID_MISSING_COUNT (int)
        - Counter used to throttle repeated log lines

===================================================================================
CONFIGURATION PATTERNS
===================================================================================

Environment Variable Loading:
    - Load .env file early (before other imports)
    - Use os.environ.get() with defaults
    - Type casting for numeric values

Service availability helpers (is_gemini_configured, is_supabase_configured,
is_redis_configured) read the environment at call time so tests and
long-running processes observe changes without re-importing this module.

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

import asyncio

# Standard imports
import time
from collections import defaultdict

# ============================================================
# CONFIGURATION AND CONSTANTS
# ============================================================

# Application startup time for uptime tracking
start_time = time.time()

APP_VERSION = os.environ.get("APP_VERSION", "1.0.0")

# MEMORY LEAK PREVENTION: Simplified global tracking
_APP_STARTUP_TIME = None
_MEMORY_BASELINE = None  # RSS memory at startup
_REQUEST_COUNT = 0  # Track total requests processed

# ============================================================
# EXTERNAL SERVICES
# ============================================================

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")

SUPABASE_URL = os.environ.get("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
SUPABASE_JWT_SECRET = os.environ.get("SUPABASE_JWT_SECRET", "")

REDIS_URL = os.environ.get("REDIS_URL") or os.environ.get("UPSTASH_REDIS_URL")

ENABLE_SAVE_CHAT_HISTORY = os.environ.get("ENABLE_SAVE_CHAT_HISTORY", "false")

# Add a semaphore to limit concurrent model streams
MAX_CONCURRENT_GENERATIONS = int(
    os.environ.get("MAX_CONCURRENT_GENERATIONS", "3")
)  # Read from .env with fallback to 3
generation_semaphore = asyncio.Semaphore(MAX_CONCURRENT_GENERATIONS)

# RATE LIMITING: Global rate limiting storage
rate_limit_storage = defaultdict(list)
RATE_LIMIT_REQUESTS = 100  # requests per window
RATE_LIMIT_WINDOW = 60  # 60 seconds window
RATE_LIMIT_BURST = 20  # burst limit for rapid requests
RATE_LIMIT_MAX_WAIT = 5  # maximum seconds to wait before giving up

# Throttling semaphores per IP to limit concurrent requests
throttle_semaphores = defaultdict(
    lambda: asyncio.Semaphore(8)
)  # Max 8 concurrent requests per IP

SUPABASE_JWKS_PATH = "/auth/v1/.well-known/jwks.json"
SUPABASE_JWT_AUDIENCE = os.environ.get("SUPABASE_JWT_AUDIENCE", "authenticated")

# Global counter for tracking JWT 'kid' missing events to reduce log spam
_JWT_KID_MISSING_COUNT = 0


# ============================================================
# SERVICE AVAILABILITY
# ============================================================
def is_gemini_configured() -> bool:
    """Return True when a Gemini API key is present in the environment."""
    return bool(os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY"))


def is_supabase_configured() -> bool:
    """Return True when both the Supabase URL and service key are present."""
    return bool(
        os.environ.get("SUPABASE_URL") and os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
    )


def is_redis_configured() -> bool:
    return bool(os.environ.get("REDIS_URL") or os.environ.get("UPSTASH_REDIS_URL"))


def is_chat_history_enabled() -> bool:
    return os.environ.get("ENABLE_SAVE_CHAT_HISTORY", "false") == "true"
