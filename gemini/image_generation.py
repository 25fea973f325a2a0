"""Image generation and editing (Nano Banana).

Text-to-image and reference-image editing on the Gemini image models. Output
is streamed as image chunks:

    image-generating  {"status"}
    image-thought     {"status", "imageData"}   interim image from thinking
    image-output      {"status", "imageData"}   final image
    image-text        {"text"}                  only with TEXT modality
    image-error       {"error"} or {"blocked", "blockReason"}
    image-complete    {"status"}

``imageData`` is ``{"data": <base64>, "mimeType", "thoughtSignature"?}``.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from google.genai import types

from api.utils.debug import print__gemini_debug
from gemini.client import get_gemini_client
from gemini.constants import (
    FINISH_REASON_SAFETY,
    GEMINI_IMAGE_FLASH,
    GEMINI_IMAGE_PRO,
    IMAGE_ASPECT_RATIO,
    IMAGE_SIZE,
    MAX_FLASH_REFERENCE_IMAGES,
    MAX_REFERENCE_IMAGES,
)

IMAGE_ASPECT_RATIOS = [
    "1:1",
    "2:3",
    "3:2",
    "3:4",
    "4:3",
    "4:5",
    "5:4",
    "9:16",
    "16:9",
    "21:9",
]
IMAGE_SIZES = ["1K", "2K", "4K"]
REFERENCE_IMAGE_MIME_TYPES = ["image/png", "image/jpeg", "image/webp", "image/heic"]

SAFETY_BLOCK_REASON = "Content blocked by safety filters"


@dataclass
class ImageGenerationConfig:
    aspect_ratio: str = IMAGE_ASPECT_RATIO
    image_size: str = IMAGE_SIZE
    response_modalities: List[str] = field(default_factory=lambda: ["IMAGE"])
    use_flash_model: bool = False


def validate_aspect_ratio(ratio: Optional[str]) -> Optional[str]:
    return ratio if ratio in IMAGE_ASPECT_RATIOS else None


def validate_image_size(size: Optional[str]) -> Optional[str]:
    return size if size in IMAGE_SIZES else None


def _encode(value) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, str):
        return value
    return base64.b64encode(value).decode("ascii")


def _image_data(part) -> dict:
    image_data = {
        "data": _encode(part.inline_data.data),
        "mimeType": part.inline_data.mime_type or "image/png",
    }
    signature = _encode(getattr(part, "thought_signature", None))
    if signature:
        image_data["thoughtSignature"] = signature
    return image_data


def build_image_contents(prompt: str, reference_images: Optional[List[dict]]) -> List[types.Content]:
    """Single user turn: the prompt first, then the reference images inline."""
    parts = [types.Part(text=prompt)]
    for image in reference_images or []:
        parts.append(
            types.Part(
                inline_data=types.Blob(
                    mime_type=image["mimeType"],
                    data=base64.b64decode(image["data"]),
                )
            )
        )
    return [types.Content(role="user", parts=parts)]


def build_image_config(config: ImageGenerationConfig) -> types.GenerateContentConfig:
    # imageSize is only accepted by the pro model
    if config.use_flash_model:
        image_config = types.ImageConfig(aspect_ratio=config.aspect_ratio)
    else:
        image_config = types.ImageConfig(
            aspect_ratio=config.aspect_ratio, image_size=config.image_size
        )

    return types.GenerateContentConfig(
        response_modalities=list(config.response_modalities),
        image_config=image_config,
    )


async def generate_image_stream(
    prompt: str,
    reference_images: Optional[List[dict]] = None,
    config: Optional[ImageGenerationConfig] = None,
) -> AsyncIterator[dict]:
    config = config or ImageGenerationConfig()
    max_images = MAX_FLASH_REFERENCE_IMAGES if config.use_flash_model else MAX_REFERENCE_IMAGES

    if reference_images and len(reference_images) > max_images:
        model_label = "Flash" if config.use_flash_model else "Pro"
        yield {
            "type": "image-error",
            "error": f"Maximum {max_images} reference images allowed for {model_label} model",
        }
        return

    model_id = GEMINI_IMAGE_FLASH if config.use_flash_model else GEMINI_IMAGE_PRO
    has_image = False

    try:
        client = get_gemini_client()

        yield {"type": "image-generating", "status": "Generating image..."}

        print__gemini_debug(
            f"🎨 Generating image with {model_id} "
            f"({len(reference_images or [])} reference images)"
        )
        response = await client.aio.models.generate_content_stream(
            model=model_id,
            contents=build_image_contents(prompt, reference_images),
            config=build_image_config(config),
        )

        async for chunk in response:
            candidates = getattr(chunk, "candidates", None) or []
            if not candidates:
                continue
            candidate = candidates[0]

            reason = getattr(candidate, "finish_reason", None)
            if getattr(reason, "value", reason) == FINISH_REASON_SAFETY:
                yield {
                    "type": "image-error",
                    "blocked": True,
                    "blockReason": SAFETY_BLOCK_REASON,
                }
                return

            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline_data = getattr(part, "inline_data", None)
                if inline_data is not None and inline_data.data:
                    if part.thought:
                        yield {
                            "type": "image-thought",
                            "status": "Processing thinking image...",
                            "imageData": _image_data(part),
                        }
                    else:
                        has_image = True
                        yield {
                            "type": "image-output",
                            "status": "Image generated",
                            "imageData": _image_data(part),
                        }
                elif part.text:
                    yield {"type": "image-text", "text": part.text}

        yield {
            "type": "image-complete",
            "status": "Image generation complete" if has_image else "No image generated",
        }

    except Exception as e:
        message = str(e) or "Image generation failed"
        print__gemini_debug(f"❌ Image generation failed: {type(e).__name__}: {message}")
        if "safety" in message.lower() or "blocked" in message:
            yield {"type": "image-error", "blocked": True, "blockReason": message}
        else:
            yield {"type": "image-error", "error": message}
