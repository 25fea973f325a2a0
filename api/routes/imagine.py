"""Image Generation API Route

Text-to-image and reference-image editing with the Gemini image models,
streamed as server-sent events.
"""

MODULE_DESCRIPTION = r"""Image Generation API Route

1. POST /api/imagine
   - Body: {prompt, referenceImages?, aspectRatio="1:1", imageSize="1K",
     includeText=false, useFlashModel=false}
   - Up to 14 reference images (3 with the flash image model)
   - includeText asks for TEXT and IMAGE modalities instead of IMAGE only
   - Events: image-generating, image-thought, image-output, image-text,
     image-complete, image-error (blocked + blockReason for safety blocks)
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
from api.models.requests import ImagineRequest
from api.routes.chat import gemini_unavailable_response
from api.utils.debug import print__images_debug
from gemini.client import is_gemini_available
from gemini.constants import IMAGE_ASPECT_RATIO, IMAGE_SIZE
from gemini.image_generation import (
    ImageGenerationConfig,
    generate_image_stream,
    validate_aspect_ratio,
    validate_image_size,
)

router = APIRouter()


@router.post("/api/imagine")
async def imagine(request: ImagineRequest, _user=Depends(get_optional_user)):
    if not is_gemini_available():
        return gemini_unavailable_response()

    config = ImageGenerationConfig(
        aspect_ratio=validate_aspect_ratio(request.aspectRatio) or IMAGE_ASPECT_RATIO,
        image_size=validate_image_size(request.imageSize) or IMAGE_SIZE,
        response_modalities=["TEXT", "IMAGE"] if request.includeText else ["IMAGE"],
        use_flash_model=request.useFlashModel,
    )
    reference_images = (
        [image.model_dump() for image in request.referenceImages]
        if request.referenceImages
        else None
    )
    print__images_debug(
        f"📡 Imagine: {config.aspect_ratio} {config.image_size}, "
        f"{len(reference_images or [])} reference image(s)"
    )

    async def event_stream():
        async with generation_semaphore:
            try:
                async for chunk in generate_image_stream(request.prompt, reference_images, config):
                    yield send_event(chunk)
            except Exception as e:
                print__images_debug(f"❌ Image stream failed: {type(e).__name__}: {e}")
                yield send_event({"type": "image-error", "error": str(e) or "Unknown error"})
        yield done_event()

    return sse_response(event_stream())
