"""Request models for the Yurie answer-engine API."""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Constants
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

# Standard imports
import uuid
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from gemini.constants import MAX_MESSAGES_PER_REQUEST, MAX_REFERENCE_IMAGES
from storage.notes import BLOCK_TYPES

# ============================================================
# CHAT
# ============================================================


class ChatMessage(BaseModel):
    """One UI message: a role plus typed parts (text, image, file, ...)."""

    id: str = Field(..., min_length=1)
    role: Literal["user", "assistant", "system"]
    parts: List[dict] = Field(default_factory=list)
    metadata: Optional[dict] = None

    @field_validator("parts")
    @classmethod
    def validate_parts(cls, v):
        for part in v:
            if not isinstance(part.get("type"), str):
                raise ValueError("Every message part needs a type")
        return v


class ChatRequest(BaseModel):
    """Request model for a streamed chat turn.

    ``id`` is the chat id the conversation is stored under; ``mode`` selects
    standard grounded search or the hosted deep-research agent.
    """

    id: str = Field(..., description="Chat identifier", examples=["k3j4h5g6"])
    messages: List[ChatMessage] = Field(..., min_length=1, max_length=MAX_MESSAGES_PER_REQUEST)
    mode: Literal["standard", "deep-research"] = "standard"

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        if not v or not v.strip():
            raise ValueError("Chat ID is required")
        return v.strip()


class ThinkingConfig(BaseModel):
    thinkingLevel: Optional[Literal["minimal", "low", "medium", "high"]] = None
    includeThoughts: Optional[bool] = None


class SelectedModel(BaseModel):
    """Model picked in the UI, read from the ``selectedModel`` cookie."""

    id: str
    providerId: str
    name: Optional[str] = None
    provider: Optional[str] = None
    enabled: bool = True
    toolCallType: str = "native"
    toolCallModel: Optional[str] = None
    thinkingConfig: Optional[ThinkingConfig] = None


# ============================================================
# NOTES
# ============================================================


class CreateNoteRequest(BaseModel):
    title: str = Field("Untitled", max_length=500)
    icon: Optional[str] = Field(None, max_length=50)


class UpdateNoteRequest(BaseModel):
    """Partial update; only fields present in the body are written."""

    title: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = Field(None, max_length=50)
    isFavorite: Optional[bool] = None
    isArchived: Optional[bool] = None

    @model_validator(mode="after")
    def validate_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


class NoteBlockInput(BaseModel):
    id: Optional[str] = None
    type: str
    content: dict = Field(default_factory=dict)
    position: Optional[int] = Field(None, ge=0)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        if v is not None:
            try:
                uuid.UUID(v)
            except ValueError as exc:
                raise ValueError("Block ID must be a valid UUID") from exc
        return v

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in BLOCK_TYPES:
            raise ValueError(f"Unsupported block type: {v}")
        return v


class SaveBlocksRequest(BaseModel):
    blocks: List[NoteBlockInput]


class NoteFileRequest(BaseModel):
    url: str = Field(..., min_length=1)


# ============================================================
# MEDIA LIBRARY
# ============================================================


class SaveImageRequest(BaseModel):
    imageData: str = Field(..., min_length=1, description="Base64 encoded image")
    mimeType: Literal["image/png", "image/jpeg", "image/webp"]
    prompt: str = Field(..., min_length=1, max_length=10000)
    aspectRatio: Optional[str] = None
    imageSize: Optional[str] = None


class UploadAttachmentRequest(BaseModel):
    """Chat attachment upload.

    Fields are optional so the route can answer a missing or empty one with
    the explicit 400 ``Missing or invalid <field> field``.
    """

    data: Optional[str] = Field(None, description="Base64 encoded file")
    mimeType: Optional[str] = None
    chatId: Optional[str] = None
    messageId: Optional[str] = None
    filename: Optional[str] = None


class SaveVideoRequest(BaseModel):
    videoData: str = Field(..., min_length=1, description="Base64 encoded video")
    mimeType: Literal["video/mp4", "video/webm"] = "video/mp4"
    prompt: str = Field(..., min_length=1, max_length=10000)
    aspectRatio: Optional[str] = None
    resolution: Optional[str] = None
    durationSeconds: Optional[int] = Field(None, gt=0)


# ============================================================
# GENERATION
# ============================================================


class ReferenceImageInput(BaseModel):
    data: str = Field(..., min_length=1)
    mimeType: Literal["image/png", "image/jpeg", "image/webp", "image/heic"]


class ImagineRequest(BaseModel):
    prompt: str = Field(..., min_length=1, max_length=10000)
    referenceImages: Optional[List[ReferenceImageInput]] = Field(
        None, max_length=MAX_REFERENCE_IMAGES
    )
    aspectRatio: Literal[
        "1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9"
    ] = "1:1"
    imageSize: Literal["1K", "2K", "4K"] = "1K"
    includeText: bool = False
    useFlashModel: bool = False

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v):
        if not v.strip():
            raise ValueError("Prompt cannot be empty or only whitespace")
        return v.strip()


class VideoGenerationRequest(BaseModel):
    """Veo request; per-mode constraints are checked after field validation."""

    prompt: str = Field(..., min_length=1, max_length=10000)
    mode: Literal[
        "text-to-video", "image-to-video", "interpolation", "reference", "extend"
    ] = "text-to-video"
    aspectRatio: Literal["16:9", "9:16"] = "16:9"
    resolution: Literal["720p", "1080p"] = "720p"
    durationSeconds: Literal["4", "6", "8"] = "8"
    negativePrompt: Optional[str] = Field(None, max_length=5000)
    personGeneration: Optional[Literal["allow_all", "allow_adult", "dont_allow"]] = None
    seed: Optional[int] = Field(None, gt=0)
    useFastModel: bool = False
    firstFrameImage: Optional[ReferenceImageInput] = None
    lastFrameImage: Optional[ReferenceImageInput] = None
    referenceImages: Optional[List[ReferenceImageInput]] = Field(None, max_length=3)
    inputVideoUri: Optional[str] = None

    @field_validator("durationSeconds", mode="before")
    @classmethod
    def coerce_duration(cls, v):
        return str(v) if isinstance(v, int) else v

    @field_validator("inputVideoUri")
    @classmethod
    def validate_video_uri(cls, v):
        if v is not None and not v.startswith(("http://", "https://")):
            raise ValueError("Input video URI must be a valid URL")
        return v

    @model_validator(mode="after")
    def validate_mode_requirements(self):
        if self.resolution == "1080p" and self.durationSeconds != "8":
            raise ValueError("1080p resolution only supports 8 second duration")
        if self.mode == "image-to-video" and self.firstFrameImage is None:
            raise ValueError("First frame image is required for image-to-video mode")
        if self.mode == "interpolation" and (
            self.firstFrameImage is None or self.lastFrameImage is None
        ):
            raise ValueError("Both first and last frame images are required for interpolation mode")
        if self.mode == "reference" and not self.referenceImages:
            raise ValueError("At least one reference image is required for reference mode")
        if self.mode == "extend" and not self.inputVideoUri:
            raise ValueError("Input video URI is required for extend mode")
        if self.mode == "reference" and self.aspectRatio != "16:9":
            raise ValueError("Reference image mode only supports 16:9 aspect ratio")
        if self.mode == "extend" and self.resolution != "720p":
            raise ValueError("Video extension only supports 720p resolution")
        return self


# ============================================================
# DEEP RESEARCH
# ============================================================


class ResearchReconnectRequest(BaseModel):
    interactionId: str = Field(..., min_length=1)
    lastEventId: Optional[str] = None


class ResearchFollowUpRequest(BaseModel):
    question: str = Field(..., min_length=1, max_length=10000)
    previousInteractionId: str = Field(..., min_length=1)


__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ThinkingConfig",
    "SelectedModel",
    "CreateNoteRequest",
    "UpdateNoteRequest",
    "NoteBlockInput",
    "SaveBlocksRequest",
    "NoteFileRequest",
    "SaveImageRequest",
    "SaveVideoRequest",
    "UploadAttachmentRequest",
    "ReferenceImageInput",
    "ImagineRequest",
    "VideoGenerationRequest",
    "ResearchReconnectRequest",
    "ResearchFollowUpRequest",
]
