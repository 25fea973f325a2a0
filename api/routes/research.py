"""Deep Research API Routes

Resume an interrupted deep-research stream and ask follow-up questions
against a finished research interaction.
"""

MODULE_DESCRIPTION = r"""Deep Research API Routes

Deep research runs as a background interaction on the Gemini side; the id
of that interaction (and the id of the last event the client received) are
carried in the assistant message metadata.

1. POST /api/research/reconnect
   - Body: {interactionId, lastEventId?}
   - Completed interaction: its final text and a complete chunk
   - Failed / cancelled: an error chunk
   - Still running: the stream resumes after lastEventId

2. POST /api/research/follow-up
   - Body: {question, previousInteractionId}
   - Non-streaming follow-up interaction, relayed as content + complete

Both answer with server-sent events of research chunks (phase, progress,
thought, content, complete, error) terminated by ``data: [DONE]``."""

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

from fastapi import APIRouter, Depends

from api.config.settings import generation_semaphore
from api.dependencies.auth import get_optional_user
from api.helpers import done_event, send_event, sse_response
from api.models.requests import ResearchFollowUpRequest, ResearchReconnectRequest
from api.routes.chat import gemini_unavailable_response
from api.utils.debug import print__research_debug
from gemini.client import is_gemini_available
from gemini.deep_research import ask_follow_up, reconnect_to_research
from gemini.errors import get_user_friendly_message, parse_gemini_error

router = APIRouter()


def research_stream(chunks):
    """Frame research chunks as SSE, bounded by the generation semaphore."""

    async def event_stream():
        async with generation_semaphore:
            try:
                async for chunk in chunks:
                    yield send_event(chunk)
            except Exception as e:
                print__research_debug(f"❌ Research stream failed: {type(e).__name__}: {e}")
                message = get_user_friendly_message(parse_gemini_error(e))
                yield send_event({"type": "error", "error": message})
        yield done_event()

    return sse_response(event_stream())


@router.post("/api/research/reconnect")
async def reconnect(request: ResearchReconnectRequest, _user=Depends(get_optional_user)):
    if not is_gemini_available():
        return gemini_unavailable_response()

    print__research_debug(
        f"🔍 Reconnect to {request.interactionId} after event {request.lastEventId}"
    )
    return research_stream(reconnect_to_research(request.interactionId, request.lastEventId))


@router.post("/api/research/follow-up")
async def follow_up(request: ResearchFollowUpRequest, _user=Depends(get_optional_user)):
    if not is_gemini_available():
        return gemini_unavailable_response()

    print__research_debug(f"🔍 Follow-up on {request.previousInteractionId}")
    return research_stream(ask_follow_up(request.question, request.previousInteractionId))
