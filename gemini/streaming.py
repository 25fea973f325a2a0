"""Chat stream assembler.

Turns the research chunks of gemini.agentic into the UI message events the
chat client renders:

    start             {"messageId"}
    text-start        {"id"}
    text-delta        {"id", "delta"}
    text-end          {"id"}
    message-metadata  {"messageMetadata": {"annotations": [...]}}
    error             {"errorText"}
    finish            {}

Research progress (phases, sources, thoughts, related questions, URL context)
travels as annotations; every annotation change re-sends the full list. When
the answer has content and the request names a chat, the conversation is
persisted to the chat history store with the annotations, the raw model
parts (thought signatures included) and deep-research interaction ids.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional

from api.utils.debug import print__chat_debug
from gemini.agentic import ResearchConfig, research
from gemini.safety import blocked_message, process_input_safely
from storage.chat_history import save_chat

MEDIA_PART_TYPES = ("image", "video", "document", "audio")
DEFAULT_MEDIA_MIME_TYPES = {"document": "application/pdf", "audio": "audio/mp3"}

SOURCE_CONFIDENCE = 0.8
CHAT_TITLE_LENGTH = 100

_MARKDOWN_EMPHASIS = re.compile(r"[*_`]")


def _now_ms() -> int:
    return int(time.time() * 1000)


# ==============================================================================
# MESSAGE HELPERS
# ==============================================================================
def _last_user_message(messages: List[dict]) -> Optional[dict]:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message
    return None


def get_query_from_messages(messages: List[dict]) -> str:
    """Text of the first text part of the last user message."""
    message = _last_user_message(messages)
    for part in (message or {}).get("parts") or []:
        if part.get("type") == "text" and "text" in part:
            return part["text"]
    return ""


def get_media_from_messages(messages: List[dict], media_type: str) -> List[dict]:
    """Inline or file-URI media of one type attached to the last user message."""
    message = _last_user_message(messages)
    media = []
    for part in (message or {}).get("parts") or []:
        if part.get("type") != media_type:
            continue

        item = {"type": media_type}
        mime_type = part.get("mimeType") or DEFAULT_MEDIA_MIME_TYPES.get(media_type)
        if mime_type:
            item["mimeType"] = mime_type
        if isinstance(part.get("data"), str) and part["data"]:
            item["data"] = part["data"]
        if isinstance(part.get("fileUri"), str) and part["fileUri"]:
            item["fileUri"] = part["fileUri"]

        if media_type == "image":
            # Images are only sent inline
            if item.get("data") and item.get("mimeType"):
                media.append({"type": "image", "mimeType": item["mimeType"], "data": item["data"]})
        elif item.get("data") or item.get("fileUri"):
            media.append(item)
    return media


def convert_to_conversation_history(messages: List[dict]) -> List[dict]:
    """User / assistant turns for the model; stored model parts win over text."""
    history = []
    for message in messages:
        role = message.get("role")
        if role not in ("user", "assistant"):
            continue
        turn_role = "model" if role == "assistant" else "user"

        gemini_parts = (message.get("metadata") or {}).get("geminiParts")
        if gemini_parts:
            history.append({"role": turn_role, "parts": gemini_parts})
            continue

        content = "".join(
            part.get("text") or ""
            for part in message.get("parts") or []
            if part.get("type") == "text"
        )
        if content:
            history.append({"role": turn_role, "content": content})
    return history


def get_previous_interaction_id(messages: List[dict]) -> Optional[str]:
    """Interaction id of the most recent deep-research answer, if any."""
    for message in reversed(messages):
        if message.get("role") != "assistant":
            continue
        interaction = (message.get("metadata") or {}).get("interactionMetadata") or {}
        if interaction.get("interactionId"):
            return interaction["interactionId"]
    return None


def _storable_part(part: dict) -> Optional[dict]:
    part_type = part.get("type")

    if part_type == "text":
        text = part.get("text")
        return {"type": "text", "text": text} if isinstance(text, str) and text else None

    if part_type not in MEDIA_PART_TYPES:
        return None

    attachment_id = part.get("attachmentId") if isinstance(part.get("attachmentId"), str) else None
    has_payload = attachment_id or part.get("data") or part.get("fileUri")
    if not has_payload:
        return None
    if part_type != "video" and not isinstance(part.get("mimeType"), str):
        return None
    if part_type == "image" and not attachment_id and not isinstance(part.get("data"), str):
        return None

    stored = {"type": part_type}
    if isinstance(part.get("mimeType"), str):
        stored["mimeType"] = part["mimeType"]
    # Uploaded attachments are referenced by id; their bytes live in storage
    if attachment_id:
        stored["attachmentId"] = attachment_id
    elif isinstance(part.get("data"), str):
        stored["data"] = part["data"]
    if part_type != "image" and isinstance(part.get("fileUri"), str):
        stored["fileUri"] = part["fileUri"]
    if isinstance(part.get("filename"), str):
        stored["filename"] = part["filename"]
    return stored


def convert_messages_for_storage(messages: List[dict]) -> List[dict]:
    converted = []
    for message in messages:
        content = [
            stored
            for stored in (_storable_part(part) for part in message.get("parts") or [])
            if stored is not None
        ]
        entry = {"id": message.get("id"), "role": message.get("role"), "content": content or ""}
        if message.get("metadata"):
            entry["metadata"] = message["metadata"]
        converted.append(entry)
    return converted


# ==============================================================================
# ANNOTATIONS
# ==============================================================================
def _source_annotation(source: dict) -> dict:
    return {
        "type": "research-source",
        "data": {
            "id": source.get("id"),
            "title": source.get("title"),
            "url": source.get("url"),
            "domain": source.get("domain"),
            "confidence": SOURCE_CONFIDENCE,
            "excerpt": "",
        },
    }


def _known_source_urls(annotations: List[dict]) -> set:
    return {
        annotation["data"].get("url")
        for annotation in annotations
        if annotation["type"] == "research-source"
    }


def _clean_thought_line(text: str) -> str:
    return _MARKDOWN_EMPHASIS.sub("", text).strip()


def thought_annotation(content: str, timestamp: Optional[int] = None) -> dict:
    """Summary (first line) and up to three detail lines of a thought."""
    timestamp = timestamp or _now_ms()
    lines = [line for line in content.strip().split("\n") if line.strip()]
    summary = _clean_thought_line(lines[0][:100] if lines else "Analyzing...")
    details = [cleaned for cleaned in (_clean_thought_line(line) for line in lines[1:4]) if cleaned]

    data = {"id": f"thought-{timestamp}", "summary": summary, "timestamp": timestamp}
    if details:
        data["details"] = details
    return {"type": "thought-step", "data": data}


def _agentic_phase(phase: Optional[str]) -> str:
    if phase == "complete":
        return "complete"
    if phase == "synthesizing":
        return "answering"
    return "searching"


# ==============================================================================
# STREAM
# ==============================================================================
async def create_blocked_stream(violations: List[str]) -> AsyncIterator[dict]:
    message_id = f"msg-{_now_ms()}"
    yield {"type": "start", "messageId": message_id}
    yield {"type": "text-start", "id": message_id}
    yield {"type": "text-delta", "id": message_id, "delta": blocked_message(violations)}
    yield {"type": "text-end", "id": message_id}
    yield {"type": "finish"}


async def create_chat_stream(
    messages: List[dict],
    model: Optional[str] = None,
    chat_id: Optional[str] = None,
    user_id: Optional[str] = None,
    mode: str = "standard",
    thinking_config: Optional[dict] = None,
) -> AsyncIterator[dict]:
    """UI message events for one chat request (see module docstring)."""
    query = get_query_from_messages(messages)

    safety = process_input_safely(query)
    if safety.blocked:
        print__chat_debug(f"🛑 Input blocked: {safety.violations}")
        async for event in create_blocked_stream(safety.violations):
            yield event
        return

    sanitized_query = safety.sanitized_input
    history = convert_to_conversation_history(messages)
    thinking_config = thinking_config or {}

    config = ResearchConfig(
        mode=mode,
        model=model,
        thinking_level=thinking_config.get("thinkingLevel"),
        include_thoughts=thinking_config.get("includeThoughts", True) is not False,
        # The last turn is the current query
        conversation_history=history[:-1],
        previous_interaction_id=(
            get_previous_interaction_id(messages) if mode == "deep-research" else None
        ),
        images=get_media_from_messages(messages, "image"),
        videos=get_media_from_messages(messages, "video"),
        documents=get_media_from_messages(messages, "document"),
        audios=get_media_from_messages(messages, "audio"),
    )

    message_id = f"msg-{_now_ms()}"
    start_time = _now_ms()
    has_started_text = False
    source_count = 0
    annotations: List[dict] = []
    full_content = ""
    gemini_parts: List[dict] = []
    interaction_metadata: dict = {}

    def metadata_event() -> dict:
        return {"type": "message-metadata", "messageMetadata": {"annotations": list(annotations)}}

    def track_interaction(metadata: Optional[dict]) -> None:
        for key in ("interactionId", "lastEventId"):
            if (metadata or {}).get(key):
                interaction_metadata[key] = metadata[key]

    yield {"type": "start", "messageId": message_id}

    try:
        async for chunk in research(sanitized_query, config):
            chunk_type = chunk.get("type")

            if chunk_type == "phase":
                if mode == "standard":
                    annotations.append(
                        {
                            "type": "agentic-phase",
                            "data": {
                                "phase": _agentic_phase(chunk.get("phase")),
                                "sourceCount": source_count,
                                "startTime": start_time,
                            },
                        }
                    )
                else:
                    annotations.append(
                        {
                            "type": "research-phase",
                            "data": {
                                "phase": chunk.get("phase") or "searching",
                                "description": chunk.get("content"),
                            },
                        }
                    )
                yield metadata_event()

            elif chunk_type == "progress":
                if mode == "deep-research":
                    track_interaction(chunk.get("metadata"))
                    annotations.append(
                        {
                            "type": "research-progress",
                            "data": {
                                "message": chunk.get("content") or "",
                                "phase": chunk.get("phase"),
                                "interactionId": interaction_metadata.get("interactionId"),
                            },
                        }
                    )
                    yield metadata_event()

            elif chunk_type == "source":
                source = chunk.get("source")
                if source and source.get("url") not in _known_source_urls(annotations):
                    annotations.append(_source_annotation(source))
                    source_count += 1
                    yield metadata_event()

            elif chunk_type == "sources":
                if chunk.get("sources"):
                    known_urls = _known_source_urls(annotations)
                    for source in chunk["sources"]:
                        if source.get("url") in known_urls:
                            continue
                        known_urls.add(source.get("url"))
                        annotations.append(_source_annotation(source))
                        source_count += 1
                    yield metadata_event()

            elif chunk_type == "thought":
                if chunk.get("content"):
                    annotations.append(thought_annotation(chunk["content"]))
                    yield metadata_event()

            elif chunk_type == "content":
                if chunk.get("content"):
                    if not has_started_text:
                        yield {"type": "text-start", "id": message_id}
                        has_started_text = True
                    full_content += chunk["content"]
                    yield {"type": "text-delta", "id": message_id, "delta": chunk["content"]}

            elif chunk_type == "followup":
                if chunk.get("followUpQuestions"):
                    annotations.append(
                        {
                            "type": "related-questions",
                            "data": {
                                "items": [{"query": q} for q in chunk["followUpQuestions"]]
                            },
                        }
                    )
                    yield metadata_event()

            elif chunk_type == "model-parts":
                if chunk.get("modelParts"):
                    gemini_parts = chunk["modelParts"]

            elif chunk_type == "url-context":
                if chunk.get("urlContextMetadata"):
                    annotations.append(
                        {
                            "type": "url-context",
                            "data": {
                                "urls": [
                                    {
                                        "url": entry.get("retrievedUrl"),
                                        "status": entry.get("urlRetrievalStatus"),
                                        "success": entry.get("urlRetrievalStatus")
                                        == "URL_RETRIEVAL_STATUS_SUCCESS",
                                    }
                                    for entry in chunk["urlContextMetadata"]
                                ]
                            },
                        }
                    )
                    yield metadata_event()

            elif chunk_type == "complete":
                track_interaction(chunk.get("metadata"))
                if mode == "standard":
                    annotations.append(
                        {
                            "type": "agentic-phase",
                            "data": {
                                "phase": "complete",
                                "sourceCount": source_count,
                                "startTime": start_time,
                            },
                        }
                    )
                else:
                    annotations.append(
                        {
                            "type": "research-complete",
                            "data": {
                                "phase": "complete",
                                "success": True,
                                "metadata": chunk.get("metadata"),
                                "interactionId": interaction_metadata.get("interactionId"),
                            },
                        }
                    )
                yield metadata_event()

            elif chunk_type == "error":
                yield {"type": "error", "errorText": chunk.get("error") or "An error occurred"}

        if has_started_text:
            yield {"type": "text-end", "id": message_id}

        if chat_id and full_content and user_id:
            await save_chat_with_annotations(
                chat_id=chat_id,
                user_id=user_id,
                query=sanitized_query,
                message_id=message_id,
                full_content=full_content,
                original_messages=messages,
                annotations=annotations,
                gemini_parts=gemini_parts,
                interaction_metadata=interaction_metadata,
            )

    except Exception as e:
        print__chat_debug(f"❌ Chat stream failed: {type(e).__name__}: {e}")
        yield {"type": "error", "errorText": str(e) or "An error occurred"}

    yield {"type": "finish"}


async def save_chat_with_annotations(
    chat_id: str,
    user_id: str,
    query: str,
    message_id: str,
    full_content: str,
    original_messages: List[dict],
    annotations: List[dict],
    gemini_parts: Optional[List[dict]] = None,
    interaction_metadata: Optional[dict] = None,
):
    metadata = {}
    if annotations:
        metadata["annotations"] = annotations
    if gemini_parts:
        metadata["geminiParts"] = gemini_parts
    if (interaction_metadata or {}).get("interactionId"):
        metadata["interactionMetadata"] = interaction_metadata

    assistant_message = {"id": message_id, "role": "assistant", "content": full_content}
    if metadata:
        assistant_message["metadata"] = metadata

    chat = {
        "id": chat_id,
        "title": query[:CHAT_TITLE_LENGTH],
        "createdAt": datetime.now(timezone.utc).isoformat(),
        "userId": user_id,
        "path": f"/search/{chat_id}",
        "messages": convert_messages_for_storage(original_messages) + [assistant_message],
    }

    print__chat_debug(f"📋 Saving chat {chat_id} ({len(chat['messages'])} messages)")
    return await save_chat(chat, user_id)
