"""
MODULE_DESCRIPTION: CORS and Compression Middleware - Cross-Origin and Performance Setup

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

This module configures two middleware components for the Yurie answer-engine API:

1. CORS (Cross-Origin Resource Sharing) Middleware:
   - Lets the web frontend (different port or domain) call the API
   - Allows credentials so the Supabase bearer token reaches the routes
   - PATCH is allowed for partial note updates

2. Brotli Compression Middleware:
   - Compresses JSON responses (notes, chat history pages, gallery pages)
   - Server-sent event routes are excluded: compressing them would hold
     chunks back until the compressor flushes, breaking token streaming

===================================================================================
CORS MIDDLEWARE
===================================================================================

Function: setup_cors_middleware(app: FastAPI)

    CORS_ALLOWED_ORIGINS:
        Comma separated list of origins
        Default: "http://localhost:3000,http://localhost:8000"

    allow_credentials: True
    allow_methods: GET, POST, PUT, PATCH, DELETE, OPTIONS
    allow_headers: ["*"]

===================================================================================
COMPRESSION MIDDLEWARE (BROTLI)
===================================================================================

Function: setup_brotli_middleware(app: FastAPI)

    minimum_size: 1000
        - Only compress responses >= 1000 bytes

    excluded_handlers: STREAMING_ROUTE_PATTERNS
        - /api/chat, /api/imagine, /api/video and /api/research/*

Middleware Order:
    Middleware is executed in REVERSE order of registration.
    Registration: CORS -> Brotli
    Execution: Brotli -> CORS -> Route -> CORS -> Brotli

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
from brotli_asgi import BrotliMiddleware
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Import memory monitoring for logging
from api.utils.memory import print__memory_monitoring

# Routes answering with text/event-stream
STREAMING_ROUTE_PATTERNS = [
    r"^/api/chat$",
    r"^/api/imagine$",
    r"^/api/video$",
    r"^/api/research/.*",
]

DEFAULT_ALLOWED_ORIGINS = "http://localhost:3000,http://localhost:8000"


# ==============================================================================
# CORS MIDDLEWARE SETUP
# ==============================================================================
def get_allowed_origins() -> list:
    raw_origins = os.environ.get("CORS_ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw_origins.split(",") if origin.strip()]


def setup_cors_middleware(app: FastAPI):
    """Configure CORS middleware for the FastAPI application.

    Args:
        app: The FastAPI application instance to configure
    """
    print__memory_monitoring("📋 Registering CORS middleware...")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )


# ==============================================================================
# COMPRESSION MIDDLEWARE SETUP
# ==============================================================================
def setup_brotli_middleware(app: FastAPI):
    """Configure Brotli compression, leaving the streaming routes untouched.

    Args:
        app: The FastAPI application instance to configure
    """
    print__memory_monitoring("📋 Registering Brotli compression middleware...")

    app.add_middleware(
        BrotliMiddleware,
        minimum_size=1000,
        excluded_handlers=STREAMING_ROUTE_PATTERNS,
    )
