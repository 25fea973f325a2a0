"""Gemini API Constants

Model ids, request limits, timing values and defaults shared by the research,
image, video and streaming modules.
"""

from __future__ import annotations

# ==============================================================================
# MODEL IDS
# ==============================================================================
GEMINI_3_FLASH = "gemini-3-flash-preview"  # balanced speed and quality
GEMINI_3_PRO = "gemini-3-pro-preview"  # highest quality
GEMINI_IMAGE_FLASH = "gemini-3-flash-image-preview"
GEMINI_IMAGE_PRO = "gemini-3-pro-image-preview"
DEEP_RESEARCH_MODEL = "deep-research-pro-preview-12-2025"
VEO_3_1 = "veo-3.1-generate-preview"
VEO_3_1_FAST = "veo-3.1-fast-generate-preview"

DEFAULT_MODEL = GEMINI_3_FLASH

# ==============================================================================
# API LIMITS
# ==============================================================================
MAX_URLS_PER_REQUEST = 20
MAX_URL_CONTENT_SIZE_MB = 34
MAX_INLINE_SIZE_MB = 20
MAX_MESSAGES_PER_REQUEST = 100
MAX_REFERENCE_IMAGES = 14
MAX_FLASH_REFERENCE_IMAGES = 3
MAX_OUTPUT_IMAGES = 4
MAX_VIDEO_REFERENCE_IMAGES = 3

# ==============================================================================
# TIMING (seconds unless stated otherwise)
# ==============================================================================
VIDEO_POLL_INTERVAL_SECONDS = 10
VIDEO_MAX_POLL_DURATION_SECONDS = 10 * 60
DEFAULT_RETRY_BASE_DELAY_MS = 1_000
DEFAULT_RETRY_MAX_DELAY_MS = 30_000
DEEP_RESEARCH_HEARTBEAT_SECONDS = 30

# ==============================================================================
# DEFAULTS
# ==============================================================================
GEMINI_3_NATIVE_TOOLS_TEMPERATURE = 1.0  # lower values make gemini-3 loop
LEGACY_NATIVE_TOOLS_TEMPERATURE = 0.4

IMAGE_ASPECT_RATIO = "1:1"
IMAGE_SIZE = "1K"

VIDEO_ASPECT_RATIO = "16:9"
VIDEO_RESOLUTION = "720p"
VIDEO_DURATION_SECONDS = "8"

# ==============================================================================
# SUPPORTED FORMATS
# ==============================================================================
IMAGE_MIME_TYPES = [
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "image/heic",
    "image/heif",
]
VIDEO_MIME_TYPES = ["video/mp4", "video/webm", "video/quicktime"]
AUDIO_MIME_TYPES = [
    "audio/mp3",
    "audio/mpeg",
    "audio/wav",
    "audio/ogg",
    "audio/flac",
    "audio/aac",
]
DOCUMENT_MIME_TYPES = ["application/pdf"]

# ==============================================================================
# FINISH REASONS / THINKING LEVELS
# ==============================================================================
FINISH_REASON_SAFETY = "SAFETY"
FINISH_REASON_RECITATION = "RECITATION"

THINKING_LEVELS = ["minimal", "low", "medium", "high"]
DEFAULT_THINKING_LEVEL = "high"
