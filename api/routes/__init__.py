"""
Routes package for the API server.

This package contains FastAPI route handlers for chat streaming, chat
history, notes, the media library, attachments, image and video generation,
deep research, model configuration and health checks.
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import sys
import os

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Routes module initialization
from .health import router as health_router
from .chat import router as chat_router
from .chats import router as chats_router
from .notes import router as notes_router
from .stuff import router as stuff_router
from .attachments import router as attachments_router
from .imagine import router as imagine_router
from .video import router as video_router
from .research import router as research_router
from .models_config import router as models_config_router

# Export all routers for easy import
__all__ = [
    "health_router",
    "chat_router",
    "chats_router",
    "notes_router",
    "stuff_router",
    "attachments_router",
    "imagine_router",
    "video_router",
    "research_router",
    "models_config_router",
]
