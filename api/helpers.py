"""
MODULE_DESCRIPTION: API Helper Functions - Error Responses and Server-Sent Events

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Shared response helpers for the Yurie answer-engine API:

1. traceback_json_response(e, status_code=500)
   Detailed error body (message plus traceback) when DEBUG_TRACEBACK=1,
   None otherwise so the caller falls back to a safe generic response.

2. send_event(data) / done_event()
   Server-sent event framing. Every model stream (chat, imagine, video,
   research) writes ``data: <json>\\n\\n`` lines and ends with
   ``data: [DONE]\\n\\n``.

3. sse_response(generator)
   StreamingResponse with the headers proxies need to pass chunks through
   unbuffered (no-cache, keep-alive, X-Accel-Buffering: no).

===================================================================================
"""

import json
import os
import traceback

from fastapi.responses import JSONResponse, StreamingResponse

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


# ==============================================================================
# ERROR RESPONSE HELPERS
# ==============================================================================
def traceback_json_response(e, status_code=500):
    """Create a JSON response with traceback information when in debug mode.

    Args:
        e: The exception that occurred
        status_code: HTTP status code for the response (default: 500)

    Returns:
        JSONResponse with detail and traceback if DEBUG_TRACEBACK=1, None otherwise
    """
    if os.environ.get("DEBUG_TRACEBACK") == "1":
        tb_str = "".join(traceback.format_exception(type(e), e, e.__traceback__))
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(e), "traceback": tb_str},
        )

    # Debug mode disabled - caller handles the production response
    return None


# ==============================================================================
# SERVER-SENT EVENTS
# ==============================================================================
def send_event(data: dict) -> str:
    """Frame one JSON payload as an SSE data line."""
    return f"data: {json.dumps(data, ensure_ascii=False)}\n\n"


def done_event() -> str:
    return "data: [DONE]\n\n"


def sse_response(generator, status_code: int = 200) -> StreamingResponse:
    """Wrap an async generator of framed events in a streaming response."""
    return StreamingResponse(
        generator,
        status_code=status_code,
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
