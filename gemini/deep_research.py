"""Gemini Deep Research Agent (Interactions API)

Deep research runs as a background interaction that can
last 5-20 minutes. This module streams its events as research chunks (see
gemini.agentic for the chunk shapes) and supports the three entry points the
API exposes:

1. execute_deep_research(query, ...)
   Creates a streaming background interaction. The interaction id (from the
   ``interaction.start`` event) and the last event id are tracked so a client
   that loses the connection can resume with reconnect_to_research().

2. reconnect_to_research(interaction_id, last_event_id)
   Completed tasks return their final text at once; failed or cancelled tasks
   end with an error; running tasks resume streaming after last_event_id.

3. ask_follow_up(question, previous_interaction_id)
   Non-streaming follow-up on a finished report.

While the agent is silent for DEEP_RESEARCH_HEARTBEAT_SECONDS a progress
chunk is emitted so proxies and browsers keep the connection open.

Interaction events are read with _field() so both SDK objects and plain dicts
(as returned by some SDK versions for unknown event types) are handled.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Optional

from api.utils.debug import print__research_debug
from gemini.client import get_gemini_client
from gemini.constants import DEEP_RESEARCH_HEARTBEAT_SECONDS, DEEP_RESEARCH_MODEL

_END_OF_STREAM = object()


# ==============================================================================
# HELPERS
# ==============================================================================
def _field(obj: Any, name: str, default=None):
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _without_none(metadata: dict) -> dict:
    return {key: value for key, value in metadata.items() if value is not None}


async def _next_item(iterator):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END_OF_STREAM


async def with_heartbeat(
    stream, interval_seconds: float = DEEP_RESEARCH_HEARTBEAT_SECONDS
) -> AsyncIterator[dict]:
    """Wrap a stream, yielding ``{"type": "heartbeat"}`` during long silences.

    Items arrive as ``{"type": "data", "data": item}``. A pending read is
    never cancelled by a heartbeat; it keeps running until the next item.
    """
    iterator = stream.__aiter__()
    pending = None
    try:
        while True:
            if pending is None:
                pending = asyncio.ensure_future(_next_item(iterator))

            done, _ = await asyncio.wait({pending}, timeout=interval_seconds)
            if not done:
                yield {"type": "heartbeat"}
                continue

            item = pending.result()
            pending = None
            if item is _END_OF_STREAM:
                break
            yield {"type": "data", "data": item}
    finally:
        if pending is not None:
            pending.cancel()


def map_content_delta(delta: Any) -> list:
    """Research chunks for one ``content.delta`` event."""
    delta_type = _field(delta, "type")

    if delta_type == "text":
        text = _field(delta, "text")
        return [{"type": "content", "content": text}] if text else []

    if delta_type == "thought":
        thought = _field(delta, "thought")
    elif delta_type == "thought_summary":
        thought = _field(_field(delta, "content"), "text")
    else:
        thought = None

    if not thought:
        return []

    return [
        {"type": "thought", "content": thought},
        {"type": "progress", "content": thought, "phase": "synthesizing"},
    ]


def _text_output(interaction: Any) -> Optional[str]:
    for output in _field(interaction, "outputs") or []:
        if _field(output, "type") == "text":
            return _field(output, "text")
    return None


# ==============================================================================
# EXECUTE
# ==============================================================================
async def execute_deep_research(
    query: str,
    format_instructions: Optional[str] = None,
    previous_interaction_id: Optional[str] = None,
    thinking_summaries: bool = True,
) -> AsyncIterator[dict]:
    interaction_id = None
    last_event_id = None

    research_input = f"{query}\n\n{format_instructions}" if format_instructions else query

    try:
        client = get_gemini_client()

        yield {"type": "phase", "phase": "understanding"}
        yield {
            "type": "progress",
            "content": "Starting deep research... This may take several minutes.",
            "phase": "understanding",
        }

        agent_config = {"type": "deep-research"}
        if thinking_summaries:
            agent_config["thinking_summaries"] = "auto"

        create_kwargs = {
            "input": research_input,
            "agent": DEEP_RESEARCH_MODEL,
            "background": True,
            "stream": True,
            "agent_config": agent_config,
        }
        if previous_interaction_id:
            create_kwargs["previous_interaction_id"] = previous_interaction_id

        print__research_debug("🚀 Creating deep research interaction")
        stream = await client.aio.interactions.create(**create_kwargs)

        yield {"type": "phase", "phase": "searching"}

        async for wrapped in with_heartbeat(stream):
            if wrapped["type"] == "heartbeat":
                progress = {
                    "type": "progress",
                    "content": "Research in progress...",
                    "phase": "synthesizing",
                }
                if interaction_id:
                    progress["metadata"] = {"interactionId": interaction_id}
                yield progress
                continue

            event = wrapped["data"]
            event_type = _field(event, "event_type")

            if event_type == "interaction.start":
                interaction_id = _field(_field(event, "interaction"), "id")
                if interaction_id:
                    print__research_debug(f"🔍 Interaction started: {interaction_id}")
                    yield {
                        "type": "progress",
                        "content": "Research task initiated. Planning search strategy...",
                        "phase": "searching",
                        "metadata": {"interactionId": interaction_id},
                    }

            event_id = _field(event, "event_id")
            if event_id:
                last_event_id = event_id

            if event_type == "content.delta":
                for chunk in map_content_delta(_field(event, "delta")):
                    yield chunk

            if event_type == "error":
                message = _field(_field(event, "error"), "message")
                yield {"type": "error", "error": message or "Research encountered an error"}
                return

            if event_type == "interaction.complete":
                yield {"type": "phase", "phase": "complete"}

        yield {
            "type": "complete",
            "metadata": _without_none(
                {"interactionId": interaction_id, "lastEventId": last_event_id}
            ),
        }

    except Exception as e:
        print__research_debug(f"❌ Deep research failed: {type(e).__name__}: {e}")
        error_chunk = {"type": "error", "error": str(e) or "Deep research failed"}
        if interaction_id:
            error_chunk["metadata"] = _without_none(
                {"interactionId": interaction_id, "lastEventId": last_event_id}
            )
        yield error_chunk


# ==============================================================================
# RECONNECT
# ==============================================================================
async def reconnect_to_research(
    interaction_id: str, last_event_id: Optional[str] = None
) -> AsyncIterator[dict]:
    try:
        client = get_gemini_client()

        yield {
            "type": "progress",
            "content": "Reconnecting to research task...",
            "phase": "searching",
            "metadata": _without_none(
                {"interactionId": interaction_id, "lastEventId": last_event_id}
            ),
        }

        interaction = await client.aio.interactions.get(interaction_id)
        status = _field(interaction, "status")
        print__research_debug(f"🔍 Interaction {interaction_id} status: {status}")

        if status == "completed":
            yield {
                "type": "progress",
                "content": "Research completed. Loading results...",
                "phase": "complete",
                "metadata": {"interactionId": interaction_id},
            }
            text = _text_output(interaction)
            if text:
                yield {"type": "content", "content": text}
            yield {"type": "complete", "metadata": {"interactionId": interaction_id}}
            return

        if status in ("failed", "cancelled"):
            yield {
                "type": "error",
                "error": f"Research task {status}. Please start a new research.",
                "metadata": {"interactionId": interaction_id},
            }
            return

        yield {
            "type": "progress",
            "content": "Research in progress. Resuming stream...",
            "phase": "synthesizing",
            "metadata": {"interactionId": interaction_id},
        }

        get_kwargs = {"stream": True}
        if last_event_id:
            get_kwargs["last_event_id"] = last_event_id
        stream = await client.aio.interactions.get(interaction_id, **get_kwargs)

        current_last_event_id = last_event_id

        async for wrapped in with_heartbeat(stream):
            if wrapped["type"] == "heartbeat":
                yield {
                    "type": "progress",
                    "content": "Research in progress...",
                    "phase": "synthesizing",
                    "metadata": _without_none(
                        {
                            "interactionId": interaction_id,
                            "lastEventId": current_last_event_id,
                        }
                    ),
                }
                continue

            event = wrapped["data"]
            event_type = _field(event, "event_type")

            event_id = _field(event, "event_id")
            if event_id:
                current_last_event_id = event_id

            if event_type == "content.delta":
                for chunk in map_content_delta(_field(event, "delta")):
                    yield chunk

            if event_type == "error":
                message = _field(_field(event, "error"), "message")
                yield {
                    "type": "error",
                    "error": message or "Research encountered an error",
                    "metadata": _without_none(
                        {
                            "interactionId": interaction_id,
                            "lastEventId": current_last_event_id,
                        }
                    ),
                }
                return

            if event_type == "interaction.complete":
                yield {"type": "phase", "phase": "complete"}

        yield {
            "type": "complete",
            "metadata": _without_none(
                {"interactionId": interaction_id, "lastEventId": current_last_event_id}
            ),
        }

    except Exception as e:
        print__research_debug(f"❌ Reconnection failed: {type(e).__name__}: {e}")
        yield {
            "type": "error",
            "error": str(e) or "Reconnection failed",
            "metadata": _without_none(
                {"interactionId": interaction_id, "lastEventId": last_event_id}
            ),
        }


# ==============================================================================
# FOLLOW-UP
# ==============================================================================
async def ask_follow_up(question: str, previous_interaction_id: str) -> AsyncIterator[dict]:
    try:
        client = get_gemini_client()

        yield {
            "type": "progress",
            "content": "Processing follow-up question...",
            "phase": "synthesizing",
        }

        interaction = await client.aio.interactions.create(
            input=question,
            agent=DEEP_RESEARCH_MODEL,
            previous_interaction_id=previous_interaction_id,
        )

        text = _text_output(interaction)
        if text:
            yield {"type": "content", "content": text}

        yield {
            "type": "complete",
            "metadata": _without_none(
                {
                    "interactionId": _field(interaction, "id"),
                    "previousInteractionId": previous_interaction_id,
                }
            ),
        }

    except Exception as e:
        print__research_debug(f"❌ Follow-up failed: {type(e).__name__}: {e}")
        yield {"type": "error", "error": str(e) or "Follow-up failed"}
