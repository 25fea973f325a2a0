"""Video Generation API Route (Veo 3.1)

Long-running video generation with progress streamed as server-sent events.
"""

MODULE_DESCRIPTION = r"""Video Generation API Route (Veo 3.1)

1. POST /api/video
   - Modes: text-to-video, image-to-video (firstFrameImage), interpolation
     (firstFrameImage + lastFrameImage), reference (1-3 referenceImages),
     extend (inputVideoUri)
   - Request constraints: 1080p only at 8 s, reference only 16:9, extend
     only 720p; interpolation / reference / extend always run 8 s
   - Events: video-starting, video-progress, video-complete (base64 mp4 +
     URI), video-error (blocked for safety rejections)
   - 503 when Gemini is not configured; auth optional"""

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
from api.models.requests import VideoGenerationRequest
from api.routes.chat import gemini_unavailable_response
from api.utils.debug import print__videos_debug
from gemini.client import is_gemini_available
from gemini.video_generation import (
    VideoGenerationConfig,
    generate_video_for_mode,
    get_validated_video_config,
)

router = APIRouter()


@router.post("/api/video")
async def generate_video(request: VideoGenerationRequest, _user=Depends(get_optional_user)):
    if not is_gemini_available():
        return gemini_unavailable_response()

    config = get_validated_video_config(
        request.mode,
        VideoGenerationConfig(
            aspect_ratio=request.aspectRatio,
            resolution=request.resolution,
            duration_seconds=request.durationSeconds,
            negative_prompt=request.negativePrompt,
            person_generation=request.personGeneration,
            seed=request.seed,
            use_fast_model=request.useFastModel,
        ),
    )
    print__videos_debug(
        f"📡 Video: mode={request.mode}, {config.aspect_ratio} {config.resolution} "
        f"{config.duration_seconds}s, fast={config.use_fast_model}"
    )

    def _dump(image):
        return image.model_dump() if image is not None else None

    async def event_stream():
        async with generation_semaphore:
            try:
                async for chunk in generate_video_for_mode(
                    request.mode,
                    request.prompt,
                    config,
                    first_frame_image=_dump(request.firstFrameImage),
                    last_frame_image=_dump(request.lastFrameImage),
                    reference_images=[_dump(image) for image in request.referenceImages or []],
                    input_video_uri=request.inputVideoUri,
                ):
                    yield send_event(chunk)
            except Exception as e:
                print__videos_debug(f"❌ Video stream failed: {type(e).__name__}: {e}")
                yield send_event({"type": "video-error", "error": str(e) or "Unknown error"})
        yield done_event()

    return sse_response(event_stream())
