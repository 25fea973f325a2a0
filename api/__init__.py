"""
API package for the Yurie answer engine.

FastAPI application, routes, middleware and authentication for the Gemini
backed chat, media generation and notes service.
"""

__version__ = "1.0.0"


__all__ = []
