"""
MODULE_DESCRIPTION: Exception Handlers - Centralized Error Processing for FastAPI

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Centralized exception handling for the Yurie answer-engine API. Routes raise
``fastapi.HTTPException`` with a user-facing ``detail``; the handlers below turn
those and every other escaped exception into JSON bodies of the form
``{"detail": ...}``.

===================================================================================
REGISTERED HANDLERS (see api/main.py)
===================================================================================

RequestValidationError -> validation_exception_handler
    422 {"detail": "Validation error", "errors": [...]}
    Pydantic v2 error entries can carry the raising ValueError in ``ctx``;
    they are passed through jsonable_encoder and, when that fails, replaced
    by a simplified list with a ``note`` explaining the fallback.

StarletteHTTPException -> http_exception_handler
    {"detail": exc.detail} with the original status code and headers.
    401s are traced with URL, method and client IP.

ValueError -> value_error_handler
    400 {"detail": str(exc)}

Exception -> general_exception_handler
    500 {"detail": "Internal server error"}, or the traceback response of
    api.helpers.traceback_json_response when DEBUG_TRACEBACK=1.

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
import traceback

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.helpers import traceback_json_response

# Import debug functions from utils
from api.utils.debug import (
    print__analysis_tracing_debug,
    print__debug,
    print__token_debug,
)
from api.utils.memory import log_comprehensive_error


# ==============================================================================
# EXCEPTION HANDLERS
# ==============================================================================
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors with a 422 status code.

    Response Format:
        {
            "detail": "Validation error",
            "errors": [
                {
                    "loc": ["body", "prompt"],
                    "msg": "Value error, Prompt is required",
                    "type": "value_error"
                }
            ]
        }
    """
    print__debug(f"Validation error: {exc.errors()}")

    try:
        errors = jsonable_encoder(exc.errors())
        return JSONResponse(
            status_code=422, content={"detail": "Validation error", "errors": errors}
        )
    except (TypeError, ValueError) as encode_error:
        print__debug(f"Could not encode validation errors: {encode_error}")
        simplified = [
            {
                "loc": [str(part) for part in error.get("loc", [])],
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={
                "detail": "Validation error",
                "errors": simplified,
                "note": "Error details were simplified for serialization",
            },
        )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions, tracing authentication failures in detail."""
    client_ip = request.client.host if request.client else "unknown"

    # =======================================================================
    # AUTHENTICATION ERROR DEBUGGING (401)
    # =======================================================================
    if exc.status_code == 401:
        print__token_debug(f"🚨 HTTP 401 UNAUTHORIZED: {exc.detail}")
        print__analysis_tracing_debug(f"🚨 HTTP 401 TRACE: Request URL: {request.url}")
        print__analysis_tracing_debug(
            f"🚨 HTTP 401 TRACE: Request method: {request.method}"
        )
        print__token_debug(f"🚨 HTTP 401 CLIENT: IP address: {client_ip}")

    # =======================================================================
    # OTHER HTTP ERROR DEBUGGING (4xx, 5xx)
    # =======================================================================
    elif exc.status_code >= 400:
        print__debug(f"🚨 HTTP {exc.status_code} ERROR: {exc.detail}")
        print__analysis_tracing_debug(
            f"🚨 HTTP {exc.status_code} TRACE: {request.method} {request.url} from {client_ip}"
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def value_error_handler(_request: Request, exc: ValueError):
    """Handle ValueError exceptions as 400 Bad Request."""
    print__debug(f"ValueError: {str(exc)}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler: 500 with a generic message.

    Exception details are only exposed when DEBUG_TRACEBACK=1.
    """
    print__debug(f"Unexpected error: {type(exc).__name__}: {str(exc)}")
    print__analysis_tracing_debug(f"Unexpected error traceback:\n{traceback.format_exc()}")
    log_comprehensive_error("unhandled_exception", exc, request)

    debug_response = traceback_json_response(exc, status_code=500)
    if debug_response:
        return debug_response

    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
