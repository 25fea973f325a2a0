"""
Configuration package for the API server.

This package contains settings, constants, and configuration management
for the Yurie answer-engine application.
"""

# Import key configuration items for easier access
from .settings import (  # Application constants; External services; Concurrency settings; Rate limiting; JWT settings
    APP_VERSION,
    BASE_DIR,
    ENABLE_SAVE_CHAT_HISTORY,
    GEMINI_API_KEY,
    MAX_CONCURRENT_GENERATIONS,
    RATE_LIMIT_BURST,
    RATE_LIMIT_MAX_WAIT,
    RATE_LIMIT_REQUESTS,
    RATE_LIMIT_WINDOW,
    REDIS_URL,
    SUPABASE_JWKS_PATH,
    SUPABASE_JWT_AUDIENCE,
    SUPABASE_URL,
    _APP_STARTUP_TIME,
    _JWT_KID_MISSING_COUNT,
    _MEMORY_BASELINE,
    _REQUEST_COUNT,
    generation_semaphore,
    is_chat_history_enabled,
    is_gemini_configured,
    is_redis_configured,
    is_supabase_configured,
    rate_limit_storage,
    start_time,
    throttle_semaphores,
)

__all__ = [
    "APP_VERSION",
    "BASE_DIR",
    "start_time",
    "_APP_STARTUP_TIME",
    "_MEMORY_BASELINE",
    "_REQUEST_COUNT",
    "GEMINI_API_KEY",
    "SUPABASE_URL",
    "REDIS_URL",
    "ENABLE_SAVE_CHAT_HISTORY",
    "MAX_CONCURRENT_GENERATIONS",
    "generation_semaphore",
    "rate_limit_storage",
    "RATE_LIMIT_REQUESTS",
    "RATE_LIMIT_WINDOW",
    "RATE_LIMIT_BURST",
    "RATE_LIMIT_MAX_WAIT",
    "throttle_semaphores",
    "SUPABASE_JWKS_PATH",
    "SUPABASE_JWT_AUDIENCE",
    "_JWT_KID_MISSING_COUNT",
    "is_gemini_configured",
    "is_supabase_configured",
    "is_redis_configured",
    "is_chat_history_enabled",
]
