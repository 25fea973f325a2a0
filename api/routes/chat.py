"""Chat API Routes for the Yurie Answer Engine

Streams grounded Gemini answers (standard search or deep research) to the web
client as server-sent events.
"""

MODULE_DESCRIPTION = r"""Chat API Routes for the Yurie Answer Engine

This module exposes the single streaming chat endpoint. A request carries the
whole UI conversation; the answer for its last user message is generated by
Gemini and relayed chunk by chunk.

Key Features:
-------------
1. Model Selection:
   - Model read from the ``selectedModel`` cookie (JSON with id, providerId
     and an optional thinkingConfig)
   - Malformed or missing cookie falls back to Gemini 3 Flash with medium
     thinking

2. Modes:
   - standard: Google Search + URL context (+ code execution) grounded answer
   - deep-research: hosted Deep Research agent; a follow-up in the same chat
     continues the previous interaction

3. Streaming:
   - Events: start, message-metadata (annotations), text-start, text-delta,
     text-end, error, finish
   - Framed as ``data: <json>\n\n`` and terminated by ``data: [DONE]\n\n``
   - At most MAX_CONCURRENT_GENERATIONS streams run at once

4. Persistence:
   - Signed-in users get the finished conversation saved to chat history
     (when ENABLE_SAVE_CHAT_HISTORY=true); anonymous chats are not stored

API Endpoints:
-------------
1. POST /api/chat
   - Body: {id, messages[], mode}
   - Auth: optional (Bearer token)
   - Returns: text/event-stream
   - 503 when no Gemini API key is configured

Error Handling:
-------------
- 422: request body failed validation
- 401: Authorization header present but invalid
- 503: Gemini not configured
- Failures after the stream started are sent as an ``error`` event"""

# ==============================================================================
# ENVIRONMENT AND IMPORT INITIALIZATION
# ==============================================================================
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from dotenv import load_dotenv

load_dotenv()

try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

# Standard library imports
import traceback
from typing import Optional

from fastapi import APIRouter, Cookie, Depends
from fastapi.responses import JSONResponse

from api.config.models import parse_model_from_cookie
from api.config.settings import generation_semaphore
from api.dependencies.auth import get_optional_user, get_user_id
from api.helpers import done_event, send_event, sse_response
from api.models.requests import ChatRequest
from api.utils.debug import print__chat_debug
from api.utils.memory import log_memory_usage
from gemini.client import is_gemini_available
from gemini.errors import get_user_friendly_message, parse_gemini_error
from gemini.streaming import create_chat_stream

GEMINI_MISSING_DETAIL = "Gemini API key is required"
GEMINI_MISSING_HINT = "Set GEMINI_API_KEY or GOOGLE_API_KEY in your environment variables"

router = APIRouter()


def gemini_unavailable_response() -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": GEMINI_MISSING_DETAIL, "hint": GEMINI_MISSING_HINT},
    )


# ==============================================================================
# API ENDPOINT: STREAMING CHAT
# ==============================================================================
@router.post("/api/chat")
async def chat(
    request: ChatRequest,
    selectedModel: Optional[str] = Cookie(None),
    user=Depends(get_optional_user),
):
    """Stream the answer to the last user message as server-sent events."""
    user_id = get_user_id(user)
    model = parse_model_from_cookie(selectedModel)
    thinking_config = (
        model.thinkingConfig.model_dump(exclude_none=True) if model.thinkingConfig else None
    )

    print__chat_debug(
        f"📡 Chat request: chat={request.id}, mode={request.mode}, model={model.id}, "
        f"messages={len(request.messages)}, user={user_id or 'anonymous'}"
    )

    if not is_gemini_available():
        print__chat_debug("🚨 Gemini API key missing")
        return gemini_unavailable_response()

    messages = [message.model_dump(exclude_none=True) for message in request.messages]

    async def event_stream():
        async with generation_semaphore:
            try:
                async for event in create_chat_stream(
                    messages,
                    model=model.id,
                    chat_id=request.id,
                    user_id=user_id,
                    mode=request.mode,
                    thinking_config=thinking_config,
                ):
                    yield send_event(event)
            except Exception as e:
                print__chat_debug(f"❌ Chat stream failed: {type(e).__name__}: {e}")
                print__chat_debug(traceback.format_exc())
                message = get_user_friendly_message(parse_gemini_error(e))
                yield send_event({"type": "error", "errorText": message})
        log_memory_usage("chat_stream_complete")
        yield done_event()

    return sse_response(event_stream())
