"""Chat History API Routes

Paginated listing, retrieval and deletion of the chats stored in Redis.
"""

MODULE_DESCRIPTION = r"""Chat History API Routes

Endpoints:
---------
1. GET /api/chats?offset=0&limit=20
   - Newest-first page of the user's chats: {chats, nextOffset}
   - History disabled (ENABLE_SAVE_CHAT_HISTORY != "true"):
     {chats: [], nextOffset: null, errorType: "disabled"}
   - offset must be an integer in 0..10000, limit in 1..100, otherwise 400
     with errorType "validation"

2. GET /api/chats/{chat_id}
   - One chat owned by the user, 404 otherwise

3. DELETE /api/chats/{chat_id}
   - Removes the chat and the attachments uploaded in it

4. DELETE /api/chats
   - Clears the user's whole history

All endpoints require a valid Bearer token."""

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

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from api.config.settings import is_chat_history_enabled
from api.dependencies.auth import get_current_user, get_user_id
from api.helpers import traceback_json_response
from api.utils.debug import print__chats_debug
from storage import chat_history
from storage.attachments import delete_attachments_by_chat
from storage.database import is_database_configured
from storage.errors import ChatHistoryError

MAX_LIMIT = 100
MAX_OFFSET = 10000
DEFAULT_LIMIT = 20

router = APIRouter()


def _page_error(message: str, error_type: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"chats": [], "nextOffset": None, "detail": message, "errorType": error_type},
    )


def _parse_int(value: Optional[str], default: int) -> Optional[int]:
    try:
        return int(value) if value not in (None, "") else default
    except ValueError:
        return None


def _server_error_message(error: Exception) -> str:
    message = str(error)
    if "Redis" in message:
        return "Chat storage service is temporarily unavailable"
    if "timeout" in message.lower():
        return "Request timed out. Please try again"
    return "Failed to load chat history"


# ==============================================================================
# API ENDPOINT: LIST CHATS
# ==============================================================================
@router.get("/api/chats")
async def list_chats(
    offset: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    user=Depends(get_current_user),
):
    """Newest-first page of the user's chats."""
    if not is_chat_history_enabled():
        return {"chats": [], "nextOffset": None, "errorType": "disabled"}

    parsed_offset = _parse_int(offset, 0)
    if parsed_offset is None or parsed_offset < 0 or parsed_offset > MAX_OFFSET:
        return _page_error("Invalid offset parameter", "validation", 400)

    parsed_limit = _parse_int(limit, DEFAULT_LIMIT)
    if parsed_limit is None or parsed_limit < 1 or parsed_limit > MAX_LIMIT:
        return _page_error(f"Limit must be between 1 and {MAX_LIMIT}", "validation", 400)

    user_id = get_user_id(user)
    print__chats_debug(f"🔍 Chats page: user={user_id}, offset={parsed_offset}, limit={parsed_limit}")

    try:
        return await chat_history.get_chats_page(user_id, parsed_limit, parsed_offset)
    except Exception as e:
        print__chats_debug(f"❌ Failed to load chats: {type(e).__name__}: {e}")
        print__chats_debug(traceback.format_exc())
        return _page_error(_server_error_message(e), "server", 500)


# ==============================================================================
# API ENDPOINT: GET / DELETE ONE CHAT
# ==============================================================================
@router.get("/api/chats/{chat_id}")
async def get_chat(chat_id: str, user=Depends(get_current_user)):
    chat = await chat_history.get_chat(chat_id, get_user_id(user))
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat


@router.delete("/api/chats/{chat_id}")
async def delete_chat(chat_id: str, user=Depends(get_current_user)):
    """Delete one chat, then the attachments that were uploaded in it."""
    user_id = get_user_id(user)
    print__chats_debug(f"🧹 Deleting chat {chat_id} for user {user_id}")

    try:
        await chat_history.delete_chat(chat_id, user_id)
    except ChatHistoryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    deleted_attachments = 0
    if is_database_configured():
        try:
            result = await delete_attachments_by_chat(user_id, chat_id)
            deleted_attachments = result["deletedCount"]
        except Exception as e:
            # The chat itself is already gone; orphaned files are only logged
            print__chats_debug(f"⚠️ Attachment cleanup failed for chat {chat_id}: {e}")

    return {"success": True, "deletedAttachments": deleted_attachments}


@router.delete("/api/chats")
async def clear_chats(user=Depends(get_current_user)):
    try:
        deleted = await chat_history.clear_chats(get_user_id(user))
    except ChatHistoryError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e
    except Exception as e:
        resp = traceback_json_response(e)
        if resp:
            return resp
        raise HTTPException(status_code=500, detail="Failed to clear chats") from e

    return {"success": True, "deletedCount": len(deleted)}
