"""Note attachment uploads (Supabase Storage bucket ``note-attachments``)."""

from __future__ import annotations

import random
import re
import string
import time
from typing import Optional

from api.utils.debug import print__notes_debug
from storage.errors import StorageError
from storage.supabase_storage import get_storage

BUCKET_NAME = "note-attachments"
CACHE_CONTROL_SECONDS = "3600"
SIGNED_URL_EXPIRY_SECONDS = 3600

IMAGE_TYPES = ["image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"]
VIDEO_TYPES = ["video/mp4", "video/webm", "video/quicktime"]
AUDIO_TYPES = ["audio/mpeg", "audio/wav", "audio/ogg", "audio/webm"]
DOCUMENT_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
    "text/markdown",
    "text/csv",
]

MAX_FILE_SIZE_MB = {"image": 10, "video": 50, "audio": 50, "document": 50}


def get_file_category(content_type: str) -> Optional[str]:
    if content_type in IMAGE_TYPES:
        return "image"
    if content_type in VIDEO_TYPES:
        return "video"
    if content_type in AUDIO_TYPES:
        return "audio"
    if content_type in DOCUMENT_TYPES:
        return "document"
    return None


def validate_file(content_type: str, size: int) -> str:
    """Return the file category or raise StorageError (400)."""
    category = get_file_category(content_type)
    if category is None:
        raise StorageError(f"File type {content_type} is not supported", status_code=400)

    limit_mb = MAX_FILE_SIZE_MB[category]
    if size > limit_mb * 1024 * 1024:
        raise StorageError(
            f"File size exceeds {limit_mb}MB limit for {category} files", status_code=400
        )
    return category


def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", filename or "file")


def build_storage_path(user_id: str, note_id: str, filename: str) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{user_id}/{note_id}/{int(time.time() * 1000)}-{suffix}-{sanitize_filename(filename)}"


def extract_storage_path(url: str) -> Optional[str]:
    marker = f"{BUCKET_NAME}/"
    index = url.find(marker)
    if index == -1:
        return None
    return url[index + len(marker):].split("?", 1)[0]


async def upload_note_file(
    user_id: str, note_id: str, filename: str, content_type: str, data: bytes
) -> dict:
    if not data:
        raise StorageError("No file provided", status_code=400)

    category = validate_file(content_type, len(data))
    storage = get_storage()
    path = build_storage_path(user_id, note_id, filename)

    await storage.upload(
        BUCKET_NAME, path, data, content_type, cache_control=CACHE_CONTROL_SECONDS
    )
    print__notes_debug(f"✅ Uploaded note file {path}")

    return {
        "url": storage.get_public_url(BUCKET_NAME, path),
        "path": path,
        "name": filename,
        "size": len(data),
        "type": content_type,
        "category": category,
    }


def owned_storage_path(user_id: str, file_url: str) -> str:
    """Bucket path of a note file URL (or bare path); 403 unless it sits under ``{user_id}/``."""
    path = extract_storage_path(file_url) if BUCKET_NAME in file_url else file_url.split("?", 1)[0]
    if not path or not path.startswith(f"{user_id}/") or ".." in path.split("/"):
        raise StorageError("Access denied", status_code=403)
    return path


async def delete_note_file(user_id: str, file_url: str) -> None:
    path = owned_storage_path(user_id, file_url)
    await get_storage().remove(BUCKET_NAME, [path])


async def delete_note_files(user_id: str, note_id: str) -> int:
    """Remove every file stored under a note; returns how many were removed."""
    storage = get_storage()
    prefix = f"{user_id}/{note_id}"
    files = await storage.list(BUCKET_NAME, prefix)
    paths = [f"{prefix}/{item['name']}" for item in files if item.get("name")]
    await storage.remove(BUCKET_NAME, paths)
    return len(paths)


async def get_signed_url(
    user_id: str, file_url: str, expires_in: int = SIGNED_URL_EXPIRY_SECONDS
) -> str:
    """Time-limited URL for one of the caller's note files."""
    path = owned_storage_path(user_id, file_url)
    return await get_storage().create_signed_url(BUCKET_NAME, path, expires_in)
