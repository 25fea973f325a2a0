"""Follow-up questions, image chunks, video polling and deep-research events
against a mocked google-genai client."""

import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gemini.deep_research import (
    ask_follow_up,
    execute_deep_research,
    map_content_delta,
    reconnect_to_research,
)
from gemini.followups import generate_follow_ups
from gemini.image_generation import (
    ImageGenerationConfig,
    generate_image_stream,
    validate_aspect_ratio,
    validate_image_size,
)
from gemini.video_generation import (
    VideoGenerationConfig,
    generate_video_for_mode,
    get_validated_video_config,
    poll_video_operation,
    validate_video_config,
)
from tests.helpers import async_iter, collect, print_test_status


def _image_part(data=b"png-bytes", thought=False):
    return SimpleNamespace(
        inline_data=SimpleNamespace(data=data, mime_type="image/png"),
        thought=thought,
        text=None,
        thought_signature=None,
    )


def _text_part(text):
    return SimpleNamespace(inline_data=None, thought=False, text=text, thought_signature=None)


def _chunk(parts, finish_reason=None):
    return SimpleNamespace(
        candidates=[
            SimpleNamespace(finish_reason=finish_reason, content=SimpleNamespace(parts=parts))
        ]
    )


# ==============================================================================
# FOLLOW-UPS
# ==============================================================================
async def test_follow_ups_parsed_from_json():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(
        return_value=SimpleNamespace(text='{"questions": ["a?", "b?", "c?", "d?"]}')
    )
    with patch("gemini.followups.get_gemini_client", return_value=client):
        questions = await generate_follow_ups("query", "x" * 1000)

    assert questions == ["a?", "b?", "c?"]
    # the answer is truncated before it goes into the prompt
    prompt = client.aio.models.generate_content.await_args.kwargs["contents"]
    assert "x" * 601 not in prompt


async def test_follow_ups_swallow_failures():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(side_effect=ValueError("bad request"))
    with patch("gemini.followups.get_gemini_client", return_value=client):
        assert await generate_follow_ups("query", "answer") == []


# ==============================================================================
# IMAGE GENERATION
# ==============================================================================
async def test_image_stream_emits_thought_output_text_and_complete():
    client = MagicMock()
    client.aio.models.generate_content_stream = AsyncMock(
        return_value=async_iter(
            [
                _chunk([_image_part(b"draft", thought=True)]),
                _chunk([_image_part(b"final"), _text_part("Here you go")]),
            ]
        )
    )
    with patch("gemini.image_generation.get_gemini_client", return_value=client):
        chunks = await collect(generate_image_stream("a cat", None, ImageGenerationConfig()))

    print_test_status(f"Image chunk types: {[c['type'] for c in chunks]}")
    assert [c["type"] for c in chunks] == [
        "image-generating",
        "image-thought",
        "image-output",
        "image-text",
        "image-complete",
    ]
    assert chunks[2]["imageData"] == {
        "data": base64.b64encode(b"final").decode("ascii"),
        "mimeType": "image/png",
    }
    assert chunks[-1]["status"] == "Image generation complete"


async def test_image_stream_safety_finish_reason_blocks():
    client = MagicMock()
    client.aio.models.generate_content_stream = AsyncMock(
        return_value=async_iter([_chunk([], finish_reason="SAFETY")])
    )
    with patch("gemini.image_generation.get_gemini_client", return_value=client):
        chunks = await collect(generate_image_stream("something"))

    assert chunks[-1] == {
        "type": "image-error",
        "blocked": True,
        "blockReason": "Content blocked by safety filters",
    }


async def test_image_stream_rejects_too_many_flash_references():
    references = [{"data": "", "mimeType": "image/png"}] * 4
    chunks = await collect(
        generate_image_stream("x", references, ImageGenerationConfig(use_flash_model=True))
    )
    assert chunks == [
        {"type": "image-error", "error": "Maximum 3 reference images allowed for Flash model"}
    ]


def test_image_config_validators():
    assert validate_aspect_ratio("16:9") == "16:9"
    assert validate_aspect_ratio("7:3") is None
    assert validate_image_size("2K") == "2K"
    assert validate_image_size("8K") is None


# ==============================================================================
# VIDEO GENERATION
# ==============================================================================
@pytest.mark.parametrize(
    "mode, config, expected",
    [
        ("text-to-video", VideoGenerationConfig(resolution="1080p", duration_seconds="4"), ("16:9", "1080p", "8")),
        ("extend", VideoGenerationConfig(resolution="1080p", duration_seconds="4"), ("16:9", "720p", "8")),
        ("reference", VideoGenerationConfig(aspect_ratio="9:16", duration_seconds="6"), ("16:9", "720p", "8")),
        ("image-to-video", VideoGenerationConfig(aspect_ratio="9:16", duration_seconds="4"), ("9:16", "720p", "4")),
    ],
)
def test_validated_video_config_per_mode(mode, config, expected):
    validated = get_validated_video_config(mode, config)
    assert (validated.aspect_ratio, validated.resolution, validated.duration_seconds) == expected
    assert validate_video_config(validated, mode)["valid"] is True


def test_validate_video_config_reports_errors():
    result = validate_video_config(VideoGenerationConfig(resolution="1080p", duration_seconds="4"), "extend")
    assert result["valid"] is False
    assert "1080p resolution only supports 8 second duration" in result["errors"]
    assert "Video extension only supports 720p resolution" in result["errors"]


async def test_video_mode_without_inputs_yields_single_error():
    chunks = await collect(generate_video_for_mode("interpolation", "p", VideoGenerationConfig()))
    assert chunks == [
        {
            "type": "video-error",
            "error": "Both first and last frame images are required for interpolation mode",
        }
    ]
    chunks = await collect(generate_video_for_mode("unknown", "p", VideoGenerationConfig()))
    assert chunks[0]["error"] == "Unknown generation mode: unknown"


async def test_poll_video_operation_downloads_finished_video():
    done_operation = SimpleNamespace(
        done=True,
        error=None,
        response=SimpleNamespace(
            generated_videos=[SimpleNamespace(video=SimpleNamespace(uri="https://files/v.mp4"))]
        ),
    )
    pending_operation = SimpleNamespace(done=False)
    client = MagicMock()
    client.aio.operations.get = AsyncMock(return_value=done_operation)

    with patch("gemini.video_generation.asyncio.sleep", new_callable=AsyncMock), patch(
        "gemini.video_generation.download_video", AsyncMock(return_value=b"mp4")
    ):
        chunks = await collect(poll_video_operation(pending_operation, client))

    assert chunks[0]["type"] == "video-progress"
    assert chunks[0]["progress"] == 5
    assert chunks[-1]["type"] == "video-complete"
    assert chunks[-1]["videoUri"] == "https://files/v.mp4"
    assert chunks[-1]["videoData"]["data"] == base64.b64encode(b"mp4").decode("ascii")


async def test_poll_video_operation_flags_safety_errors():
    operation = SimpleNamespace(done=True, error={"message": "blocked by safety filters"})
    chunks = await collect(poll_video_operation(operation, MagicMock()))
    assert chunks == [
        {
            "type": "video-error",
            "error": "blocked by safety filters",
            "blocked": True,
            "blockReason": "blocked by safety filters",
        }
    ]


async def test_text_to_video_start_failure_becomes_error_chunk():
    client = MagicMock()
    client.aio.models.generate_videos = AsyncMock(side_effect=ValueError("invalid prompt"))
    with patch("gemini.video_generation.get_gemini_client", return_value=client):
        chunks = await collect(generate_video_for_mode("text-to-video", "p", VideoGenerationConfig()))

    assert chunks[0]["type"] == "video-starting"
    assert chunks[-1] == {"type": "video-error", "error": "invalid prompt"}


# ==============================================================================
# DEEP RESEARCH
# ==============================================================================
def test_map_content_delta():
    assert map_content_delta({"type": "text", "text": "Hello"}) == [
        {"type": "content", "content": "Hello"}
    ]
    assert map_content_delta({"type": "thought_summary", "content": {"text": "Planning"}}) == [
        {"type": "thought", "content": "Planning"},
        {"type": "progress", "content": "Planning", "phase": "synthesizing"},
    ]
    assert map_content_delta({"type": "image"}) == []


async def test_execute_deep_research_tracks_interaction_and_event_ids():
    events = [
        {"event_type": "interaction.start", "interaction": {"id": "int-1"}, "event_id": "e1"},
        {"event_type": "content.delta", "delta": {"type": "text", "text": "Report"}, "event_id": "e2"},
        {"event_type": "interaction.complete", "event_id": "e3"},
    ]
    client = MagicMock()
    client.aio.interactions.create = AsyncMock(return_value=async_iter(events))

    with patch("gemini.deep_research.get_gemini_client", return_value=client):
        chunks = await collect(execute_deep_research("quantum batteries", previous_interaction_id="prev"))

    kwargs = client.aio.interactions.create.await_args.kwargs
    assert kwargs["background"] is True
    assert kwargs["previous_interaction_id"] == "prev"
    assert {"type": "content", "content": "Report"} in chunks
    assert {"type": "phase", "phase": "complete"} in chunks
    assert chunks[-1] == {
        "type": "complete",
        "metadata": {"interactionId": "int-1", "lastEventId": "e3"},
    }


async def test_execute_deep_research_error_event_ends_stream():
    events = [{"event_type": "error", "error": {"message": "agent crashed"}}]
    client = MagicMock()
    client.aio.interactions.create = AsyncMock(return_value=async_iter(events))

    with patch("gemini.deep_research.get_gemini_client", return_value=client):
        chunks = await collect(execute_deep_research("q"))

    assert chunks[-1] == {"type": "error", "error": "agent crashed"}


async def test_reconnect_to_completed_research_returns_report():
    interaction = {"status": "completed", "outputs": [{"type": "text", "text": "Final report"}]}
    client = MagicMock()
    client.aio.interactions.get = AsyncMock(return_value=interaction)

    with patch("gemini.deep_research.get_gemini_client", return_value=client):
        chunks = await collect(reconnect_to_research("int-9", "e5"))

    assert {"type": "content", "content": "Final report"} in chunks
    assert chunks[-1] == {"type": "complete", "metadata": {"interactionId": "int-9"}}


async def test_reconnect_to_failed_research_yields_error():
    client = MagicMock()
    client.aio.interactions.get = AsyncMock(return_value={"status": "cancelled"})

    with patch("gemini.deep_research.get_gemini_client", return_value=client):
        chunks = await collect(reconnect_to_research("int-9"))

    assert chunks[-1]["type"] == "error"
    assert chunks[-1]["error"] == "Research task cancelled. Please start a new research."


async def test_reconnect_resumes_running_research_after_last_event():
    client = MagicMock()
    client.aio.interactions.get = AsyncMock(
        side_effect=[
            {"status": "in_progress"},
            async_iter([{"event_type": "content.delta", "delta": {"type": "text", "text": "more"}, "event_id": "e7"}]),
        ]
    )

    with patch("gemini.deep_research.get_gemini_client", return_value=client):
        chunks = await collect(reconnect_to_research("int-9", "e6"))

    resume_call = client.aio.interactions.get.await_args_list[1]
    assert resume_call.kwargs == {"stream": True, "last_event_id": "e6"}
    assert {"type": "content", "content": "more"} in chunks
    assert chunks[-1]["metadata"] == {"interactionId": "int-9", "lastEventId": "e7"}


async def test_ask_follow_up():
    client = MagicMock()
    client.aio.interactions.create = AsyncMock(
        return_value={"id": "int-2", "outputs": [{"type": "text", "text": "Answer"}]}
    )

    with patch("gemini.deep_research.get_gemini_client", return_value=client):
        chunks = await collect(ask_follow_up("And in Europe?", "int-1"))

    assert {"type": "content", "content": "Answer"} in chunks
    assert chunks[-1] == {
        "type": "complete",
        "metadata": {"interactionId": "int-2", "previousInteractionId": "int-1"},
    }
