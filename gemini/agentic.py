"""Gemini Agentic Research Workflow

Two modes of operation:
- standard: Gemini 3 Flash / Pro with native tools (Google Search grounding,
  URL context and, when no video / document / audio is attached, code execution)
- deep-research: the hosted Deep Research Agent (see gemini.deep_research)

Both modes are async generators of research chunks, plain dicts with a
``type`` key:

    phase        {"phase": "understanding" | "searching" | "synthesizing" | "complete"}
    progress     {"content", "phase", "metadata"?}
    thought      {"content"}
    content      {"content"}
    sources      {"sources", "metadata": {"sourceCount", "searchQueries"}}
    source       {"source"}
    url-context  {"urlContextMetadata": [{"retrievedUrl", "urlRetrievalStatus"}]}
    model-parts  {"modelParts"}
    followup     {"followUpQuestions"}
    complete     {"metadata"}
    error        {"error", "metadata"?}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Union

from google.genai import types

from api.utils.debug import print__gemini_debug
from gemini.citations import (
    deduplicate_sources,
    parse_grounding_metadata,
    parse_url_context_metadata,
)
from gemini.client import get_gemini_client
from gemini.constants import (
    DEFAULT_THINKING_LEVEL,
    GEMINI_3_FLASH,
    GEMINI_3_NATIVE_TOOLS_TEMPERATURE,
    GEMINI_3_PRO,
    LEGACY_NATIVE_TOOLS_TEMPERATURE,
    THINKING_LEVELS,
)
from gemini.deep_research import execute_deep_research
from gemini.followups import generate_follow_ups
from gemini.instructions import (
    get_deep_research_format_instructions,
    get_standard_system_instruction,
)
from gemini.parts import media_part, part_to_dict, to_sdk_content

FINISH_REASON_ERRORS = {
    "SAFETY": "Content blocked by safety filters",
    "RECITATION": "Response blocked due to recitation",
    "OTHER": "Response generation stopped unexpectedly",
}


@dataclass
class ResearchConfig:
    mode: str = "standard"
    model: Optional[str] = None
    thinking_level: Optional[str] = None
    include_thoughts: bool = True
    # [{"role": "user" | "model", "parts": [...]} or {"role", "content"}]
    conversation_history: List[dict] = field(default_factory=list)
    previous_interaction_id: Optional[str] = None
    images: List[dict] = field(default_factory=list)
    videos: List[dict] = field(default_factory=list)
    documents: List[dict] = field(default_factory=list)
    audios: List[dict] = field(default_factory=list)


# ==============================================================================
# HELPERS
# ==============================================================================
def map_thinking_level(level: Optional[str]) -> str:
    """SDK thinking level for a configured level name (default HIGH)."""
    if level in THINKING_LEVELS:
        return level.upper()
    return DEFAULT_THINKING_LEVEL.upper()


def select_model(model: Optional[str]) -> str:
    return GEMINI_3_PRO if model and "pro" in model else GEMINI_3_FLASH


def select_temperature(model_id: str) -> float:
    if "gemini-3" in model_id:
        return GEMINI_3_NATIVE_TOOLS_TEMPERATURE
    return LEGACY_NATIVE_TOOLS_TEMPERATURE


def check_finish_reason(candidate) -> Optional[str]:
    """Error message for a terminal finish reason, None while the stream is fine."""
    reason = getattr(candidate, "finish_reason", None)
    reason = getattr(reason, "value", reason)
    return FINISH_REASON_ERRORS.get(reason)


def build_tools(config: ResearchConfig) -> List[types.Tool]:
    tools = [
        types.Tool(google_search=types.GoogleSearch()),
        types.Tool(url_context=types.UrlContext()),
    ]
    # Code execution only accepts image / text style inputs
    if not (config.videos or config.documents or config.audios):
        tools.append(types.Tool(code_execution=types.ToolCodeExecution()))
    return tools


def build_contents(
    query: str, config: ResearchConfig
) -> Union[str, List[types.Content]]:
    """Plain query when there is nothing else to send, else multi-turn contents.

    History turns keep their stored parts so thought signatures go back to
    the model unchanged. The current user turn lists media before the text.
    """
    media = config.images + config.videos + config.documents + config.audios
    if not config.conversation_history and not media:
        return query

    contents = []
    for turn in config.conversation_history:
        parts = turn.get("parts") or [{"text": turn.get("content") or ""}]
        contents.append(to_sdk_content(turn["role"], parts))

    user_parts = [part for part in (media_part(item) for item in media) if part]
    user_parts.append({"text": query})
    contents.append(to_sdk_content("user", user_parts))

    return contents


def deduplicate_model_parts(parts: List[dict]) -> List[dict]:
    """Collapse the incremental parts of a stream into unique final parts.

    Parts with a thought signature are keyed by the signature, other parts by
    their text; a signed part replaces an unsigned one with the same key.
    """
    seen = {}
    for part in parts:
        signature = part.get("thoughtSignature")
        key = f"sig:{signature}" if signature else f"text:{part.get('text') or ''}"
        existing = seen.get(key)
        if existing is None or (signature and not existing.get("thoughtSignature")):
            seen[key] = part
    return list(seen.values())


# ==============================================================================
# STANDARD MODE
# ==============================================================================
async def standard_research(query: str, config: ResearchConfig) -> AsyncIterator[dict]:
    try:
        client = get_gemini_client()
        model_id = select_model(config.model)

        yield {"type": "phase", "phase": "searching"}

        generation_config = types.GenerateContentConfig(
            tools=build_tools(config),
            system_instruction=get_standard_system_instruction(),
            thinking_config=types.ThinkingConfig(
                thinking_level=map_thinking_level(config.thinking_level),
                include_thoughts=config.include_thoughts,
            ),
            temperature=select_temperature(model_id),
        )

        print__gemini_debug(f"🚀 Standard research with {model_id}")
        response = await client.aio.models.generate_content_stream(
            model=model_id,
            contents=build_contents(query, config),
            config=generation_config,
        )

        full_text = ""
        last_candidate = None
        collected_parts = []

        yield {"type": "phase", "phase": "synthesizing"}

        async for chunk in response:
            candidates = getattr(chunk, "candidates", None) or []
            # Trailing usage-only chunks carry no candidates
            if not candidates:
                continue

            last_candidate = candidates[0]
            finish_error = check_finish_reason(last_candidate)
            if finish_error:
                yield {"type": "error", "error": finish_error}
                return

            content = getattr(last_candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                if part.text or getattr(part, "thought_signature", None):
                    collected_parts.append(part_to_dict(part))

                if not part.text:
                    continue

                if part.thought:
                    yield {"type": "thought", "content": part.text}
                else:
                    full_text += part.text
                    yield {"type": "content", "content": part.text}

        all_sources = []
        if last_candidate is not None:
            grounding = parse_grounding_metadata(last_candidate)
            all_sources = deduplicate_sources(grounding["sources"])

            if all_sources:
                yield {
                    "type": "sources",
                    "sources": all_sources,
                    "metadata": {
                        "sourceCount": len(all_sources),
                        "searchQueries": grounding["searchQueries"],
                    },
                }
                for source in all_sources:
                    yield {"type": "source", "source": source}

            url_context = parse_url_context_metadata(last_candidate)
            if url_context:
                yield {"type": "url-context", "urlContextMetadata": url_context}

        final_parts = deduplicate_model_parts(collected_parts)
        if final_parts:
            yield {"type": "model-parts", "modelParts": final_parts}

        follow_ups = await generate_follow_ups(query, full_text)
        if follow_ups:
            yield {"type": "followup", "followUpQuestions": follow_ups}

        yield {"type": "complete", "metadata": {"sourceCount": len(all_sources)}}

    except Exception as e:
        print__gemini_debug(f"❌ Standard research failed: {type(e).__name__}: {e}")
        yield {"type": "error", "error": str(e) or "Request failed"}


# ==============================================================================
# ROUTER
# ==============================================================================
async def research(query: str, config: Optional[ResearchConfig] = None) -> AsyncIterator[dict]:
    """Route a query to deep research or the standard agentic flow."""
    config = config or ResearchConfig()

    if config.mode == "deep-research":
        stream = execute_deep_research(
            query,
            format_instructions=get_deep_research_format_instructions(),
            previous_interaction_id=config.previous_interaction_id,
            thinking_summaries=True,
        )
    else:
        stream = standard_research(query, config)

    async for chunk in stream:
        yield chunk
