"""Chat history store (Redis).

Layout:
    user:v2:chat:{user_id}   sorted set of chat keys, score = save time (epoch ms)
    chat:{chat_id}           hash of chat fields, ``messages`` JSON encoded

Reads degrade to empty results when Redis is unavailable; writes and deletes
raise ChatHistoryError. Transient Redis errors are retried twice.
"""

from __future__ import annotations

import json
import os
import time
from typing import List, Optional

import redis.asyncio as redis
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from api.config.settings import is_chat_history_enabled, is_redis_configured
from api.utils.debug import print__redis_debug
from storage.errors import ChatHistoryError

TRANSIENT_ERROR_PATTERNS = [
    "network",
    "timeout",
    "econnreset",
    "econnrefused",
    "connection reset",
    "connection refused",
    "socket hang up",
    "rate limit",
    "429",
    "500",
    "502",
    "503",
    "504",
]

_client: Optional[redis.Redis] = None


def get_user_chat_key(user_id: str) -> str:
    return f"user:v2:chat:{user_id}"


def get_chat_key(chat_id: str) -> str:
    return f"chat:{chat_id}"


def is_transient_error(error: BaseException) -> bool:
    if isinstance(error, (redis.ConnectionError, redis.TimeoutError)):
        return True
    message = str(error).lower()
    return any(pattern in message for pattern in TRANSIENT_ERROR_PATTERNS)


async def with_redis_retry(fn):
    retrying = AsyncRetrying(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception(is_transient_error),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await fn()


async def execute_pipeline(client: redis.Redis, queue, transaction: bool = True):
    """Build the pipeline with ``queue(pipeline)`` and execute it, retrying transient errors.

    redis-py empties the command stack after every ``execute``, so each attempt
    queues the commands again on a fresh pipeline.
    """

    async def run():
        pipeline = client.pipeline(transaction=transaction)
        queue(pipeline)
        return await pipeline.execute()

    return await with_redis_retry(run)


# ==============================================================================
# CLIENT
# ==============================================================================
def get_redis_client() -> redis.Redis:
    """Shared client for REDIS_URL (or UPSTASH_REDIS_URL)."""
    global _client

    if _client is None:
        url = os.environ.get("REDIS_URL") or os.environ.get("UPSTASH_REDIS_URL")
        if not url:
            raise ChatHistoryError(
                "Redis configuration is missing. Please check your environment variables.",
                status_code=503,
            )
        print__redis_debug("🚀 Creating Redis client")
        _client = redis.from_url(url, decode_responses=True)

    return _client


async def close_redis_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def _safe_client() -> Optional[redis.Redis]:
    if not is_redis_configured():
        return None
    try:
        return get_redis_client()
    except ChatHistoryError:
        return None


# ==============================================================================
# SERIALIZATION
# ==============================================================================
def serialize_chat(chat: dict) -> dict:
    fields = {}
    for key, value in chat.items():
        if value is None:
            continue
        if key == "messages" or not isinstance(value, str):
            fields[key] = json.dumps(value, ensure_ascii=False)
        else:
            fields[key] = value
    return fields


def parse_chat(data: Optional[dict]) -> Optional[dict]:
    if not data:
        return None

    chat = dict(data)
    messages = chat.get("messages")
    if isinstance(messages, str):
        try:
            chat["messages"] = json.loads(messages)
        except ValueError:
            chat["messages"] = []
    if not isinstance(chat.get("messages"), list):
        chat["messages"] = []
    return chat


# ==============================================================================
# OPERATIONS
# ==============================================================================
async def get_chats_page(user_id: str, limit: int = 20, offset: int = 0) -> dict:
    """Newest-first page of a user's chats; ``nextOffset`` is None on the last page."""
    empty = {"chats": [], "nextOffset": None}

    client = _safe_client()
    if client is None:
        return empty

    try:
        chat_keys = await with_redis_retry(
            lambda: client.zrange(get_user_chat_key(user_id), offset, offset + limit - 1, desc=True)
        )
        if not chat_keys:
            return empty

        def queue_reads(pipeline):
            for key in chat_keys:
                pipeline.hgetall(key)

        results = await execute_pipeline(client, queue_reads, transaction=False)

        chats = [chat for chat in (parse_chat(result) for result in results) if chat]
        return {
            "chats": chats,
            "nextOffset": offset + limit if len(chat_keys) == limit else None,
        }
    except Exception as e:
        print__redis_debug(f"❌ Error fetching chat page: {type(e).__name__}: {e}")
        return empty


async def get_chat(chat_id: str, user_id: str) -> Optional[dict]:
    """A chat owned by ``user_id``, or None."""
    client = _safe_client()
    if client is None:
        return None

    try:
        data = await with_redis_retry(lambda: client.hgetall(get_chat_key(chat_id)))
    except Exception as e:
        print__redis_debug(f"❌ Error fetching chat {chat_id}: {type(e).__name__}: {e}")
        return None

    chat = parse_chat(data)
    if chat is None or chat.get("userId") != user_id:
        return None
    return chat


async def save_chat(chat: dict, user_id: str):
    """Store the chat hash and index it for the user; no-op when history is off."""
    if not (is_redis_configured() and is_chat_history_enabled()):
        return None

    client = _safe_client()
    if client is None:
        return None

    try:
        chat_key = get_chat_key(chat["id"])
        fields = serialize_chat(chat)
        score = int(time.time() * 1000)

        def queue_save(pipeline):
            pipeline.hset(chat_key, mapping=fields)
            pipeline.zadd(get_user_chat_key(user_id), {chat_key: score})

        result = await execute_pipeline(client, queue_save)
        print__redis_debug(f"✅ Chat {chat['id']} saved for user {user_id}")
        return result
    except Exception as e:
        print__redis_debug(f"❌ Error saving chat: {type(e).__name__}: {e}")
        return None


async def delete_chat(chat_id: str, user_id: str) -> None:
    if not is_redis_configured():
        raise ChatHistoryError("Chat history is not enabled", status_code=400)

    try:
        client = get_redis_client()
        chat_key = get_chat_key(chat_id)
        data = await with_redis_retry(lambda: client.hgetall(chat_key))
    except ChatHistoryError:
        raise
    except Exception as e:
        print__redis_debug(f"❌ Error deleting chat {chat_id}: {type(e).__name__}: {e}")
        raise ChatHistoryError("Failed to delete chat") from e

    chat = parse_chat(data)
    if chat is None or chat.get("userId") not in (None, user_id):
        raise ChatHistoryError("Chat not found", status_code=404)

    try:
        def queue_delete(pipeline):
            pipeline.delete(chat_key)
            pipeline.zrem(get_user_chat_key(user_id), chat_key)

        await execute_pipeline(client, queue_delete)
    except Exception as e:
        print__redis_debug(f"❌ Error deleting chat {chat_id}: {type(e).__name__}: {e}")
        raise ChatHistoryError("Failed to delete chat") from e

    print__redis_debug(f"🧹 Chat {chat_id} deleted")


async def clear_chats(user_id: str) -> List[str]:
    """Delete every chat of the user; returns the deleted chat ids."""
    if not is_redis_configured():
        raise ChatHistoryError("Chat history is not enabled", status_code=400)

    try:
        client = get_redis_client()
        user_key = get_user_chat_key(user_id)
        chat_keys = await with_redis_retry(lambda: client.zrange(user_key, 0, -1))
    except ChatHistoryError:
        raise
    except Exception as e:
        print__redis_debug(f"❌ Error clearing chats: {type(e).__name__}: {e}")
        raise ChatHistoryError("Failed to clear chats") from e

    if not chat_keys:
        raise ChatHistoryError("No chats to clear", status_code=404)

    try:
        def queue_clear(pipeline):
            for chat_key in chat_keys:
                pipeline.delete(chat_key)
                pipeline.zrem(user_key, chat_key)

        await execute_pipeline(client, queue_clear)
    except Exception as e:
        print__redis_debug(f"❌ Error clearing chats: {type(e).__name__}: {e}")
        raise ChatHistoryError("Failed to clear chats") from e

    print__redis_debug(f"🧹 Cleared {len(chat_keys)} chats for user {user_id}")
    return [key.split(":", 1)[1] for key in chat_keys]
