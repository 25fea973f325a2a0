"""Generated video library (bucket ``user-videos``, table ``user_videos``)."""

from __future__ import annotations

import uuid
from typing import Optional

from api.utils.debug import print__videos_debug
from storage.database import get_connection
from storage.errors import StorageError
from storage.images import decode_base64, is_valid_uuid
from storage.supabase_storage import get_storage

BUCKET_NAME = "user-videos"
VIDEOS_PER_PAGE = 12
SIGNED_URL_TTL_SECONDS = 3600
MAX_VIDEO_SIZE_BYTES = 50 * 1024 * 1024

VIDEO_EXTENSIONS = {"video/mp4": "mp4", "video/webm": "webm"}

VIDEO_COLUMNS = (
    "id, user_id, storage_path, prompt, aspect_ratio, resolution, "
    "duration_seconds, mime_type, file_size, created_at"
)


def _transform_video(row: dict, url: Optional[str]) -> dict:
    created_at = row.get("created_at")
    return {
        "id": str(row["id"]),
        "userId": str(row["user_id"]),
        "storagePath": row["storage_path"],
        "prompt": row.get("prompt"),
        "aspectRatio": row.get("aspect_ratio"),
        "resolution": row.get("resolution"),
        "durationSeconds": row.get("duration_seconds"),
        "mimeType": row.get("mime_type"),
        "fileSize": row.get("file_size"),
        "createdAt": created_at.isoformat() if hasattr(created_at, "isoformat") else created_at,
        "url": url,
    }


async def save_video(
    user_id: str,
    video_data: str,
    prompt: str,
    mime_type: str = "video/mp4",
    aspect_ratio: Optional[str] = None,
    resolution: Optional[str] = None,
    duration_seconds: Optional[int] = None,
) -> dict:
    data = decode_base64(video_data, "Invalid video data")
    if len(data) > MAX_VIDEO_SIZE_BYTES:
        raise StorageError("Video exceeds 50MB limit", status_code=400)

    extension = VIDEO_EXTENSIONS.get(mime_type, "mp4")
    storage = get_storage()
    video_id = str(uuid.uuid4())
    path = f"{user_id}/{video_id}.{extension}"

    try:
        await storage.upload(BUCKET_NAME, path, data, mime_type)
    except StorageError as e:
        print__videos_debug(f"❌ Video upload failed: {e}")
        raise StorageError("Failed to upload video", cause=e) from e

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO user_videos (id, user_id, storage_path, prompt, aspect_ratio,
                        resolution, duration_seconds, mime_type, file_size)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        video_id,
                        user_id,
                        path,
                        prompt,
                        aspect_ratio,
                        resolution,
                        duration_seconds,
                        mime_type,
                        len(data),
                    ),
                )
            await conn.commit()
    except Exception as e:
        print__videos_debug(f"❌ Video metadata insert failed: {type(e).__name__}: {e}")
        try:
            await storage.remove(BUCKET_NAME, [path])
        except StorageError as cleanup_error:
            print__videos_debug(f"⚠️ Orphaned upload {path} not removed: {cleanup_error}")
        raise StorageError("Failed to save video metadata", cause=e) from e

    url = await storage.create_signed_url(BUCKET_NAME, path, SIGNED_URL_TTL_SECONDS)
    print__videos_debug(f"✅ Video {video_id} saved ({len(data)} bytes)")
    return {"id": video_id, "url": url}


async def get_user_videos(user_id: str, page: int = 1) -> dict:
    page = max(1, page)

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {VIDEO_COLUMNS} FROM user_videos
                    WHERE user_id = %s
                    ORDER BY created_at DESC
                    LIMIT %s OFFSET %s
                    """,
                    (user_id, VIDEOS_PER_PAGE + 1, (page - 1) * VIDEOS_PER_PAGE),
                )
                rows = await cur.fetchall()
    except Exception as e:
        print__videos_debug(f"❌ Failed to fetch videos: {type(e).__name__}: {e}")
        raise StorageError("Failed to fetch videos", cause=e) from e

    has_more = len(rows) > VIDEOS_PER_PAGE
    storage = get_storage()
    videos = []
    for row in rows[:VIDEOS_PER_PAGE]:
        try:
            url = await storage.create_signed_url(
                BUCKET_NAME, row["storage_path"], SIGNED_URL_TTL_SECONDS
            )
        except StorageError as e:
            print__videos_debug(f"⚠️ Signed URL failed for {row['id']}: {e}")
            url = None
        videos.append(_transform_video(row, url))

    return {"videos": videos, "nextPage": page + 1 if has_more else None}


async def delete_video(user_id: str, video_id: str) -> None:
    if not is_valid_uuid(video_id):
        raise StorageError("Invalid video ID", status_code=400)

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT user_id, storage_path FROM user_videos WHERE id = %s",
                    (video_id,),
                )
                row = await cur.fetchone()
                if row is None:
                    raise StorageError("Video not found", status_code=404)
                if str(row["user_id"]) != user_id:
                    raise StorageError("You can only delete your own videos", status_code=403)

                try:
                    await get_storage().remove(BUCKET_NAME, [row["storage_path"]])
                except StorageError as e:
                    print__videos_debug(f"⚠️ Storage removal failed for {video_id}: {e}")

                await cur.execute(
                    "DELETE FROM user_videos WHERE id = %s AND user_id = %s",
                    (video_id, user_id),
                )
            await conn.commit()
    except StorageError:
        raise
    except Exception as e:
        print__videos_debug(f"❌ Failed to delete video {video_id}: {type(e).__name__}: {e}")
        raise StorageError("Failed to delete video", cause=e) from e

    print__videos_debug(f"🧹 Video {video_id} deleted")
