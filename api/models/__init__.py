"""
Data models package for the API server.

This package contains Pydantic models for request/response validation
and data structures for the Yurie answer-engine API.
"""

# Import request models
from .requests import (
    ChatRequest,
    CreateNoteRequest,
    NoteFileRequest,
    ImagineRequest,
    ResearchFollowUpRequest,
    ResearchReconnectRequest,
    SaveBlocksRequest,
    SaveImageRequest,
    SaveVideoRequest,
    SelectedModel,
    UpdateNoteRequest,
    UploadAttachmentRequest,
    VideoGenerationRequest,
)

# Import response models
from .responses import (
    AttachmentUploadResponse,
    AttachmentUrlResponse,
    ChatsPageResponse,
    HealthResponse,
    ImagesPageResponse,
    ModelsResponse,
    NoteEnvelope,
    NoteListEnvelope,
    NotesEnvelope,
    SavedMediaResponse,
    VideosPageResponse,
)

# Export all models for easier access
__all__ = [
    # Request models
    "ChatRequest",
    "CreateNoteRequest",
    "NoteFileRequest",
    "ImagineRequest",
    "ResearchFollowUpRequest",
    "ResearchReconnectRequest",
    "SaveBlocksRequest",
    "SaveImageRequest",
    "SaveVideoRequest",
    "UploadAttachmentRequest",
    "SelectedModel",
    "UpdateNoteRequest",
    "VideoGenerationRequest",
    # Response models
    "AttachmentUploadResponse",
    "AttachmentUrlResponse",
    "ChatsPageResponse",
    "HealthResponse",
    "ImagesPageResponse",
    "ModelsResponse",
    "NoteEnvelope",
    "NoteListEnvelope",
    "NotesEnvelope",
    "SavedMediaResponse",
    "VideosPageResponse",
]
