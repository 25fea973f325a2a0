"""Chat message attachments.

Files uploaded alongside chat messages are kept in ``user-attachments`` under
``{user_id}/{chat_id}/{attachment_id}.{ext}`` and indexed in
``user_attachments`` so messages can carry a small reference
(``{id, type, mimeType, filename}``) instead of inline base64.
"""

from __future__ import annotations

import base64
import uuid
from typing import Dict, List, Optional

from api.utils.debug import print__attachments_debug
from storage.database import get_connection
from storage.errors import StorageError
from storage.images import decode_base64
from storage.supabase_storage import get_storage

BUCKET_NAME = "user-attachments"
SIGNED_URL_TTL_SECONDS = 3600

MAX_SIZE_MB = {"image": 20, "video": 100, "document": 50, "audio": 50}

MIME_TYPE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/heic": "heic",
    "image/heif": "heif",
    "video/mp4": "mp4",
    "video/mpeg": "mpeg",
    "video/mov": "mov",
    "video/avi": "avi",
    "video/x-flv": "flv",
    "video/mpg": "mpg",
    "video/webm": "webm",
    "video/wmv": "wmv",
    "video/3gpp": "3gp",
    "application/pdf": "pdf",
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/mp3": "mp3",
    "audio/mpeg": "mp3",
    "audio/aiff": "aiff",
    "audio/x-aiff": "aiff",
    "audio/aac": "aac",
    "audio/x-aac": "aac",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
    "audio/x-flac": "flac",
}

ATTACHMENT_COLUMNS = (
    "id, user_id, chat_id, message_id, storage_path, filename, mime_type, "
    "file_size, attachment_type, created_at"
)


def get_attachment_type(mime_type: str) -> Optional[str]:
    if mime_type not in MIME_TYPE_EXTENSIONS:
        return None
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio"
    return "document"


def get_extension(mime_type: str) -> str:
    return MIME_TYPE_EXTENSIONS.get(mime_type, "bin")


def _transform_attachment(row: dict) -> dict:
    created_at = row.get("created_at")
    return {
        "id": str(row["id"]),
        "userId": str(row["user_id"]),
        "chatId": row.get("chat_id"),
        "messageId": row.get("message_id"),
        "storagePath": row["storage_path"],
        "filename": row.get("filename"),
        "mimeType": row["mime_type"],
        "fileSize": row.get("file_size"),
        "attachmentType": row.get("attachment_type"),
        "createdAt": created_at.isoformat() if hasattr(created_at, "isoformat") else created_at,
    }


# ==============================================================================
# UPLOAD
# ==============================================================================
async def upload_attachment(
    user_id: str,
    chat_id: str,
    message_id: str,
    data: str,
    mime_type: str,
    filename: Optional[str] = None,
) -> dict:
    """Store a base64 attachment and return its message reference."""
    attachment_type = get_attachment_type(mime_type)
    if attachment_type is None:
        raise StorageError("Unsupported file type", status_code=400)

    content = decode_base64(data, "Invalid attachment data")
    limit_mb = MAX_SIZE_MB[attachment_type]
    if len(content) > limit_mb * 1024 * 1024:
        raise StorageError(
            f"File exceeds {limit_mb}MB limit for {attachment_type}s", status_code=400
        )

    storage = get_storage()
    attachment_id = str(uuid.uuid4())
    path = f"{user_id}/{chat_id}/{attachment_id}.{get_extension(mime_type)}"

    try:
        await storage.upload(BUCKET_NAME, path, content, mime_type)
    except StorageError as e:
        print__attachments_debug(f"❌ Attachment upload failed: {e}")
        raise StorageError("Failed to upload attachment", cause=e) from e

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO user_attachments (id, user_id, chat_id, message_id, storage_path,
                        filename, mime_type, file_size, attachment_type)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        attachment_id,
                        user_id,
                        chat_id,
                        message_id,
                        path,
                        filename,
                        mime_type,
                        len(content),
                        attachment_type,
                    ),
                )
            await conn.commit()
    except Exception as e:
        print__attachments_debug(f"❌ Attachment metadata insert failed: {type(e).__name__}: {e}")
        try:
            await storage.remove(BUCKET_NAME, [path])
        except StorageError as cleanup_error:
            print__attachments_debug(f"⚠️ Orphaned upload {path} not removed: {cleanup_error}")
        raise StorageError("Failed to save attachment metadata", cause=e) from e

    print__attachments_debug(f"✅ Attachment {attachment_id} stored ({attachment_type})")
    return {
        "id": attachment_id,
        "type": attachment_type,
        "mimeType": mime_type,
        "filename": filename,
    }


# ==============================================================================
# READ
# ==============================================================================
async def _get_attachment_row(user_id: str, attachment_id: str) -> Optional[dict]:
    async with get_connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"SELECT {ATTACHMENT_COLUMNS} FROM user_attachments WHERE id = %s AND user_id = %s",
                (attachment_id, user_id),
            )
            return await cur.fetchone()


async def get_attachment_url(user_id: str, attachment_id: str) -> str:
    row = await _get_attachment_row(user_id, attachment_id)
    if row is None:
        raise StorageError("Attachment not found", status_code=404)

    try:
        return await get_storage().create_signed_url(
            BUCKET_NAME, row["storage_path"], SIGNED_URL_TTL_SECONDS
        )
    except StorageError as e:
        raise StorageError("Failed to generate access URL", cause=e) from e


async def get_attachment_urls(user_id: str, attachment_ids: List[str]) -> Dict[str, str]:
    """Signed URLs keyed by attachment id; unknown ids are left out."""
    urls = {}
    for attachment_id in attachment_ids:
        try:
            urls[attachment_id] = await get_attachment_url(user_id, attachment_id)
        except StorageError as e:
            print__attachments_debug(f"⚠️ No URL for attachment {attachment_id}: {e}")
    return urls


async def get_attachment_data(user_id: str, attachment_id: str) -> dict:
    """Attachment bytes as ``{"data": <base64>, "mimeType"}`` for model input."""
    row = await _get_attachment_row(user_id, attachment_id)
    if row is None:
        raise StorageError("Attachment not found", status_code=404)

    try:
        content = await get_storage().download(BUCKET_NAME, row["storage_path"])
    except StorageError as e:
        raise StorageError("Failed to download attachment", cause=e) from e

    return {"data": base64.b64encode(content).decode("ascii"), "mimeType": row["mime_type"]}


async def get_message_attachments(user_id: str, message_id: str) -> List[dict]:
    async with get_connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                f"""
                SELECT {ATTACHMENT_COLUMNS} FROM user_attachments
                WHERE user_id = %s AND message_id = %s
                ORDER BY created_at ASC
                """,
                (user_id, message_id),
            )
            rows = await cur.fetchall()
    return [_transform_attachment(row) for row in rows]


# ==============================================================================
# DELETE
# ==============================================================================
async def delete_attachments_by_chat(user_id: str, chat_id: str) -> dict:
    async with get_connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(
                "SELECT storage_path FROM user_attachments WHERE user_id = %s AND chat_id = %s",
                (user_id, chat_id),
            )
            paths = [row["storage_path"] for row in await cur.fetchall()]
            if not paths:
                return {"deletedCount": 0}

            await get_storage().remove(BUCKET_NAME, paths)
            await cur.execute(
                "DELETE FROM user_attachments WHERE user_id = %s AND chat_id = %s",
                (user_id, chat_id),
            )
        await conn.commit()

    print__attachments_debug(f"🧹 Deleted {len(paths)} attachment(s) for chat {chat_id}")
    return {"deletedCount": len(paths)}
