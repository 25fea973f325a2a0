"""Video generation (Veo 3.1).

Veo runs as a long-running operation: the generate call returns an operation
that is polled every VIDEO_POLL_INTERVAL_SECONDS until done, then the video is
downloaded from its URI. Every mode is an async generator of video chunks:

    video-starting  {"status"}
    video-progress  {"status", "progress"}
    video-complete  {"status", "progress": 100, "videoData", "videoUri"}
    video-error     {"error", "blocked"?, "blockReason"?}

Modes: text-to-video, image-to-video (first frame), interpolation (first and
last frame), reference (up to 3 asset images) and extend (a previous Veo
video by URI).
"""

from __future__ import annotations

import asyncio
import base64
import time
from dataclasses import dataclass, replace
from typing import AsyncIterator, List, Optional

import httpx
from google.genai import types

from api.utils.debug import print__gemini_debug
from gemini.client import get_api_key, get_gemini_client
from gemini.constants import (
    MAX_VIDEO_REFERENCE_IMAGES,
    VEO_3_1,
    VEO_3_1_FAST,
    VIDEO_ASPECT_RATIO,
    VIDEO_DURATION_SECONDS,
    VIDEO_MAX_POLL_DURATION_SECONDS,
    VIDEO_POLL_INTERVAL_SECONDS,
    VIDEO_RESOLUTION,
)
from gemini.retry import with_gemini_retry

VIDEO_ASPECT_RATIOS = ["16:9", "9:16"]
VIDEO_RESOLUTIONS = ["720p", "1080p"]
VIDEO_DURATIONS = ["4", "6", "8"]
VIDEO_GENERATION_MODES = [
    "text-to-video",
    "image-to-video",
    "interpolation",
    "reference",
    "extend",
]
PERSON_GENERATION_OPTIONS = ["allow_all", "allow_adult", "dont_allow"]

VIDEO_DOWNLOAD_TIMEOUT_SECONDS = 120


@dataclass
class VideoGenerationConfig:
    aspect_ratio: str = VIDEO_ASPECT_RATIO
    resolution: str = VIDEO_RESOLUTION
    duration_seconds: str = VIDEO_DURATION_SECONDS
    negative_prompt: Optional[str] = None
    person_generation: Optional[str] = None
    seed: Optional[int] = None
    use_fast_model: bool = False


# ==============================================================================
# CONFIG HELPERS
# ==============================================================================
def get_validated_video_config(mode: str, config: VideoGenerationConfig) -> VideoGenerationConfig:
    """Copy of ``config`` with the constraints of ``mode`` applied.

    Interpolation, reference and extend always run 8 seconds, extend is
    720p only, reference is 16:9 only and 1080p is 8 seconds only.
    """
    validated = replace(config)

    if mode in ("interpolation", "reference", "extend"):
        validated.duration_seconds = "8"
    if mode == "extend":
        validated.resolution = "720p"
    if mode == "reference":
        validated.aspect_ratio = "16:9"
    if validated.resolution == "1080p":
        validated.duration_seconds = "8"

    return validated


def validate_video_config(config: VideoGenerationConfig, mode: str) -> dict:
    errors = []

    if config.resolution == "1080p" and config.duration_seconds != "8":
        errors.append("1080p resolution only supports 8 second duration")
    if mode in ("interpolation", "reference", "extend") and config.duration_seconds != "8":
        errors.append(f"{mode} mode requires 8 second duration")
    if mode == "extend" and config.resolution != "720p":
        errors.append("Video extension only supports 720p resolution")
    if mode == "reference" and config.aspect_ratio != "16:9":
        errors.append("Reference images only support 16:9 aspect ratio")

    return {"valid": not errors, "errors": errors}


def get_model_id(config: VideoGenerationConfig) -> str:
    return VEO_3_1_FAST if config.use_fast_model else VEO_3_1


def build_video_config(config: VideoGenerationConfig, **extra) -> types.GenerateVideosConfig:
    values = {
        "aspect_ratio": config.aspect_ratio,
        "resolution": config.resolution,
        "duration_seconds": int(config.duration_seconds) if config.duration_seconds else None,
        "negative_prompt": config.negative_prompt,
        "person_generation": config.person_generation,
        "seed": config.seed,
    }
    values.update(extra)
    return types.GenerateVideosConfig(
        **{key: value for key, value in values.items() if value is not None}
    )


def to_sdk_image(image: dict) -> types.Image:
    return types.Image(image_bytes=base64.b64decode(image["data"]), mime_type=image["mimeType"])


def _operation_error_message(error) -> Optional[str]:
    if isinstance(error, dict):
        return error.get("message")
    return getattr(error, "message", None) or str(error)


# ==============================================================================
# POLLING AND DOWNLOAD
# ==============================================================================
async def download_video(video_uri: str) -> bytes:
    """Fetch a generated video; Gemini keeps generated files for two days."""
    async with httpx.AsyncClient(timeout=VIDEO_DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True) as http:
        response = await http.get(video_uri, headers={"x-goog-api-key": get_api_key() or ""})
    if response.status_code >= 400:
        raise RuntimeError(f"Failed to download video: {response.reason_phrase}")
    return response.content


async def poll_video_operation(operation, client) -> AsyncIterator[dict]:
    start = time.monotonic()
    current = operation
    poll_count = 0

    while not current.done:
        elapsed = time.monotonic() - start
        if elapsed > VIDEO_MAX_POLL_DURATION_SECONDS:
            yield {
                "type": "video-error",
                "error": "Video generation timed out. Please try again.",
            }
            return

        poll_count += 1
        yield {
            "type": "video-progress",
            "status": f"Generating video... ({int(elapsed)}s elapsed)",
            "progress": min(95, poll_count * 5),
        }

        await asyncio.sleep(VIDEO_POLL_INTERVAL_SECONDS)

        try:
            previous = current
            current = await with_gemini_retry(
                lambda: client.aio.operations.get(previous),
                max_retries=2,
                base_delay_ms=1000,
            )
        except Exception as e:
            print__gemini_debug(f"❌ Video status check failed: {type(e).__name__}: {e}")
            yield {
                "type": "video-error",
                "error": str(e) or "Failed to check generation status",
            }
            return

    operation_error = getattr(current, "error", None)
    if operation_error:
        message = _operation_error_message(operation_error) or "Video generation failed"
        yield {
            "type": "video-error",
            "error": message,
            "blocked": "safety" in message or "blocked" in message,
            "blockReason": message,
        }
        return

    response = getattr(current, "response", None) or getattr(current, "result", None)
    generated_videos = getattr(response, "generated_videos", None) or []
    if not generated_videos:
        yield {"type": "video-error", "error": "No video was generated"}
        return

    try:
        yield {
            "type": "video-progress",
            "status": "Downloading generated video...",
            "progress": 98,
        }

        video_uri = getattr(generated_videos[0].video, "uri", None)
        if not video_uri:
            yield {"type": "video-error", "error": "No video URI returned from generation"}
            return

        video_bytes = await download_video(video_uri)
        print__gemini_debug(f"✅ Video downloaded ({len(video_bytes)} bytes) after {poll_count} polls")

        yield {
            "type": "video-complete",
            "status": "Video generation complete!",
            "progress": 100,
            "videoData": {
                "data": base64.b64encode(video_bytes).decode("ascii"),
                "mimeType": "video/mp4",
            },
            "videoUri": video_uri,
        }
    except Exception as e:
        yield {"type": "video-error", "error": str(e) or "Failed to download video"}


async def _start_and_poll(
    starting_status: str, fallback_error: str, request: dict, retry: bool
) -> AsyncIterator[dict]:
    yield {"type": "video-starting", "status": starting_status}

    try:
        client = get_gemini_client()
        print__gemini_debug(f"🚀 {starting_status} ({request['model']})")

        if retry:
            operation = await with_gemini_retry(
                lambda: client.aio.models.generate_videos(**request),
                max_retries=2,
                base_delay_ms=2000,
            )
        else:
            operation = await client.aio.models.generate_videos(**request)

        async for chunk in poll_video_operation(operation, client):
            yield chunk
    except Exception as e:
        print__gemini_debug(f"❌ Video generation failed: {type(e).__name__}: {e}")
        yield {"type": "video-error", "error": str(e) or fallback_error}


# ==============================================================================
# GENERATION MODES
# ==============================================================================
def generate_video(prompt: str, config: Optional[VideoGenerationConfig] = None) -> AsyncIterator[dict]:
    config = config or VideoGenerationConfig()
    request = {
        "model": get_model_id(config),
        "prompt": prompt,
        "config": build_video_config(config),
    }
    return _start_and_poll(
        "Starting video generation...", "Video generation failed", request, retry=True
    )


def generate_video_from_image(
    prompt: str, image: dict, config: Optional[VideoGenerationConfig] = None
) -> AsyncIterator[dict]:
    config = config or VideoGenerationConfig()
    request = {
        "model": get_model_id(config),
        "prompt": prompt,
        "image": to_sdk_image(image),
        "config": build_video_config(config),
    }
    return _start_and_poll(
        "Starting image-to-video generation...",
        "Image-to-video generation failed",
        request,
        retry=True,
    )


def generate_video_with_interpolation(
    prompt: str,
    first_frame: dict,
    last_frame: dict,
    config: Optional[VideoGenerationConfig] = None,
) -> AsyncIterator[dict]:
    config = replace(config or VideoGenerationConfig(), duration_seconds="8")
    request = {
        "model": get_model_id(config),
        "prompt": prompt,
        "image": to_sdk_image(first_frame),
        "config": build_video_config(config, last_frame=to_sdk_image(last_frame)),
    }
    return _start_and_poll(
        "Starting interpolation video generation...",
        "Interpolation video generation failed",
        request,
        retry=False,
    )


async def generate_video_with_references(
    prompt: str,
    reference_images: List[dict],
    config: Optional[VideoGenerationConfig] = None,
) -> AsyncIterator[dict]:
    if len(reference_images) > MAX_VIDEO_REFERENCE_IMAGES:
        yield {
            "type": "video-error",
            "error": (
                f"Maximum {MAX_VIDEO_REFERENCE_IMAGES} reference images allowed, "
                f"got {len(reference_images)}"
            ),
        }
        return
    if not reference_images:
        yield {"type": "video-error", "error": "At least one reference image is required"}
        return

    # Reference images only support 16:9
    config = replace(config or VideoGenerationConfig(), duration_seconds="8", aspect_ratio="16:9")
    references = [
        types.VideoGenerationReferenceImage(image=to_sdk_image(image), reference_type="ASSET")
        for image in reference_images
    ]
    request = {
        "model": get_model_id(config),
        "prompt": prompt,
        "config": build_video_config(config, reference_images=references),
    }
    async for chunk in _start_and_poll(
        "Starting video generation with reference images...",
        "Reference video generation failed",
        request,
        retry=False,
    ):
        yield chunk


def extend_video(
    video_uri: str, prompt: str, config: Optional[VideoGenerationConfig] = None
) -> AsyncIterator[dict]:
    config = replace(config or VideoGenerationConfig(), resolution="720p", duration_seconds="8")
    request = {
        "model": get_model_id(config),
        "prompt": prompt,
        "video": types.Video(uri=video_uri),
        "config": build_video_config(config, number_of_videos=1),
    }
    return _start_and_poll(
        "Starting video extension...", "Video extension failed", request, retry=False
    )


def generate_video_for_mode(
    mode: str,
    prompt: str,
    config: VideoGenerationConfig,
    first_frame_image: Optional[dict] = None,
    last_frame_image: Optional[dict] = None,
    reference_images: Optional[List[dict]] = None,
    input_video_uri: Optional[str] = None,
) -> AsyncIterator[dict]:
    """Generator for a request mode; missing inputs give a single error chunk."""
    if mode == "text-to-video":
        return generate_video(prompt, config)
    if mode == "image-to-video":
        if not first_frame_image:
            return _single_error("First frame image is required for image-to-video mode")
        return generate_video_from_image(prompt, first_frame_image, config)
    if mode == "interpolation":
        if not first_frame_image or not last_frame_image:
            return _single_error(
                "Both first and last frame images are required for interpolation mode"
            )
        return generate_video_with_interpolation(prompt, first_frame_image, last_frame_image, config)
    if mode == "reference":
        if not reference_images:
            return _single_error("At least one reference image is required for reference mode")
        return generate_video_with_references(prompt, reference_images, config)
    if mode == "extend":
        if not input_video_uri:
            return _single_error("Input video URI is required for extend mode")
        return extend_video(input_video_uri, prompt, config)
    return _single_error(f"Unknown generation mode: {mode}")


async def _single_error(message: str) -> AsyncIterator[dict]:
    yield {"type": "video-error", "error": message}
