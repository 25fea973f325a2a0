"""
MODULE_DESCRIPTION: Response Models - Pydantic Schemas for API Response Serialization

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Response schemas for the JSON endpoints of the Yurie answer-engine API. Field
names are camelCase because the web client consumes them unchanged.

Response Models:
    1. ChatsPageResponse: one page of stored chats
    2. NoteBlockResponse / NoteResponse: notes and their block documents
    3. NotesListData / NotesEnvelope / NoteEnvelope / NoteListEnvelope:
       the ``{success, data}`` envelope the notes endpoints answer with
    4. SavedImageResponse / ImagesPageResponse: image library
    5. SavedVideoResponse / VideosPageResponse: video library
    6. SavedMediaResponse: ``{id, url}`` returned after saving media
    7. AttachmentRef / AttachmentUploadResponse / AttachmentUrlResponse
    8. ModelInfo / ModelsResponse: enabled chat models
    9. HealthResponse: service status

Streaming endpoints (chat, imagine, video, research) answer with
server-sent events and have no response model.

===================================================================================
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
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
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

# ============================================================
# CHAT HISTORY
# ============================================================


class ChatsPageResponse(BaseModel):
    """Page of chats, newest first.

    ``errorType`` is ``"disabled"`` when chat history is switched off.
    """

    chats: List[dict] = Field(default_factory=list)
    nextOffset: Optional[int] = Field(
        None, description="Offset of the next page, null on the last page", examples=[20]
    )
    errorType: Optional[str] = None


# ============================================================
# NOTES
# ============================================================


class NoteBlockResponse(BaseModel):
    id: str
    noteId: str
    type: str
    content: dict = Field(default_factory=dict)
    position: int = 0
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class NoteResponse(BaseModel):
    id: str
    userId: str
    parentId: Optional[str] = None
    title: Optional[str] = None
    icon: Optional[str] = None
    coverImage: Optional[str] = None
    isFavorite: bool = False
    isArchived: bool = False
    isFolder: bool = False
    position: int = 0
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    blocks: Optional[List[NoteBlockResponse]] = None


class NotesListData(BaseModel):
    notes: List[NoteResponse]
    favorites: List[NoteResponse]


class NotesEnvelope(BaseModel):
    success: bool = True
    data: NotesListData


class NoteEnvelope(BaseModel):
    success: bool = True
    data: NoteResponse


class NoteListEnvelope(BaseModel):
    success: bool = True
    data: List[NoteResponse]


# ============================================================
# MEDIA LIBRARY
# ============================================================


class SavedMediaResponse(BaseModel):
    id: str
    url: str


class SavedImageResponse(BaseModel):
    id: str
    userId: str
    storagePath: str
    prompt: Optional[str] = None
    aspectRatio: Optional[str] = None
    imageSize: Optional[str] = None
    mimeType: Optional[str] = None
    createdAt: Optional[str] = None
    url: Optional[str] = Field(None, description="Signed URL, valid for one hour")


class ImagesPageResponse(BaseModel):
    images: List[SavedImageResponse]
    nextPage: Optional[int] = None


class SavedVideoResponse(BaseModel):
    id: str
    userId: str
    storagePath: str
    prompt: Optional[str] = None
    aspectRatio: Optional[str] = None
    resolution: Optional[str] = None
    durationSeconds: Optional[int] = None
    mimeType: Optional[str] = None
    fileSize: Optional[int] = None
    createdAt: Optional[str] = None
    url: Optional[str] = None


class VideosPageResponse(BaseModel):
    videos: List[SavedVideoResponse]
    nextPage: Optional[int] = None


# ============================================================
# ATTACHMENTS
# ============================================================


class AttachmentRef(BaseModel):
    """Reference stored in a message part in place of inline data."""

    id: str
    type: Literal["image", "video", "document", "audio"]
    mimeType: str
    filename: Optional[str] = None


class AttachmentUploadResponse(BaseModel):
    attachment: AttachmentRef


class AttachmentUrlResponse(BaseModel):
    url: str


# ============================================================
# MODELS AND HEALTH
# ============================================================


class ModelInfo(BaseModel):
    id: str
    name: str
    provider: str
    providerId: str
    enabled: bool = True
    toolCallType: str = "native"
    toolCallModel: Optional[str] = None
    thinkingConfig: Optional[Dict[str, object]] = None


class ModelsResponse(BaseModel):
    models: List[ModelInfo]


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded", "unhealthy"]
    timestamp: str
    version: str
    services: Dict[str, Dict[str, bool]]
    uptimeSeconds: Optional[float] = None
