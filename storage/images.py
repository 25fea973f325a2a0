"""Generated image library.

Image bytes live in the ``user-images`` bucket under ``{user_id}/{uuid}.{ext}``;
metadata lives in ``user_images``. URLs handed to clients are signed and
expire after an hour.
"""

from __future__ import annotations

import base64
import binascii
import re
import uuid
from typing import Optional

from api.utils.debug import print__images_debug
from storage.database import get_connection
from storage.errors import StorageError
from storage.supabase_storage import get_storage

BUCKET_NAME = "user-images"
IMAGES_PER_PAGE = 20
SIGNED_URL_TTL_SECONDS = 3600
MAX_IMAGE_SIZE_BYTES = 5 * 1024 * 1024

IMAGE_EXTENSIONS = {"image/png": "png", "image/jpeg": "jpg", "image/webp": "webp"}

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

IMAGE_COLUMNS = "id, user_id, storage_path, prompt, aspect_ratio, image_size, mime_type, created_at"


def is_valid_uuid(value: Optional[str]) -> bool:
    return bool(value) and bool(UUID_PATTERN.match(value))


def decode_base64(data: str, error_message: str) -> bytes:
    if "," in data and data.startswith("data:"):
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise StorageError(error_message, status_code=400, cause=e) from e


def _transform_image(row: dict, url: Optional[str]) -> dict:
    created_at = row.get("created_at")
    return {
        "id": str(row["id"]),
        "userId": str(row["user_id"]),
        "storagePath": row["storage_path"],
        "prompt": row.get("prompt"),
        "aspectRatio": row.get("aspect_ratio"),
        "imageSize": row.get("image_size"),
        "mimeType": row.get("mime_type"),
        "createdAt": created_at.isoformat() if hasattr(created_at, "isoformat") else created_at,
        "url": url,
    }


async def save_image(
    user_id: str,
    image_data: str,
    mime_type: str,
    prompt: str,
    aspect_ratio: Optional[str] = None,
    image_size: Optional[str] = None,
) -> dict:
    """Upload a base64 image and record it; returns ``{"id", "url"}``."""
    extension = IMAGE_EXTENSIONS.get(mime_type)
    if extension is None:
        raise StorageError("Unsupported image type", status_code=400)

    data = decode_base64(image_data, "Invalid image data")
    if len(data) > MAX_IMAGE_SIZE_BYTES:
        raise StorageError("Image exceeds 5MB limit", status_code=400)

    storage = get_storage()
    image_id = str(uuid.uuid4())
    path = f"{user_id}/{image_id}.{extension}"

    try:
        await storage.upload(BUCKET_NAME, path, data, mime_type)
    except StorageError as e:
        print__images_debug(f"❌ Image upload failed: {e}")
        raise StorageError("Failed to upload image", cause=e) from e

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    """
                    INSERT INTO user_images
                        (id, user_id, storage_path, prompt, aspect_ratio, image_size, mime_type)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (image_id, user_id, path, prompt, aspect_ratio, image_size, mime_type),
                )
            await conn.commit()
    except Exception as e:
        print__images_debug(f"❌ Image metadata insert failed: {type(e).__name__}: {e}")
        try:
            await storage.remove(BUCKET_NAME, [path])
        except StorageError as cleanup_error:
            print__images_debug(f"⚠️ Orphaned upload {path} not removed: {cleanup_error}")
        raise StorageError("Failed to save image metadata", cause=e) from e

    url = await storage.create_signed_url(BUCKET_NAME, path, SIGNED_URL_TTL_SECONDS)
    print__images_debug(f"✅ Image {image_id} saved")
    return {"id": image_id, "url": url}


async def get_user_images(user_id: str, page: int = 1) -> dict:
    """One page of images, newest first, with signed URLs."""
    page = max(1, page)
    offset = (page - 1) * IMAGES_PER_PAGE

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                # One extra row tells us whether another page exists
                await cur.execute(
                    f"""
                    SELECT {IMAGE_COLUMNS} FROM user_images
                    WHERE user_id = %s
                    ORDER BY created_at DESC
                    LIMIT %s OFFSET %s
                    """,
                    (user_id, IMAGES_PER_PAGE + 1, offset),
                )
                rows = await cur.fetchall()
    except Exception as e:
        print__images_debug(f"❌ Failed to fetch images: {type(e).__name__}: {e}")
        raise StorageError("Failed to fetch images", cause=e) from e

    has_more = len(rows) > IMAGES_PER_PAGE
    rows = rows[:IMAGES_PER_PAGE]

    storage = get_storage()
    images = []
    for row in rows:
        try:
            url = await storage.create_signed_url(
                BUCKET_NAME, row["storage_path"], SIGNED_URL_TTL_SECONDS
            )
        except StorageError as e:
            print__images_debug(f"⚠️ Signed URL failed for {row['id']}: {e}")
            url = None
        images.append(_transform_image(row, url))

    return {"images": images, "nextPage": page + 1 if has_more else None}


async def delete_image(user_id: str, image_id: str) -> None:
    if not is_valid_uuid(image_id):
        raise StorageError("Invalid image ID", status_code=400)

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT user_id, storage_path FROM user_images WHERE id = %s",
                    (image_id,),
                )
                row = await cur.fetchone()
                if row is None:
                    raise StorageError("Image not found", status_code=404)
                if str(row["user_id"]) != user_id:
                    raise StorageError("Unauthorized", status_code=403)

                try:
                    await get_storage().remove(BUCKET_NAME, [row["storage_path"]])
                except StorageError as e:
                    # The metadata row is still removed
                    print__images_debug(f"⚠️ Storage removal failed for {image_id}: {e}")

                await cur.execute(
                    "DELETE FROM user_images WHERE id = %s AND user_id = %s",
                    (image_id, user_id),
                )
            await conn.commit()
    except StorageError:
        raise
    except Exception as e:
        print__images_debug(f"❌ Failed to delete image {image_id}: {type(e).__name__}: {e}")
        raise StorageError("Failed to delete image", cause=e) from e

    print__images_debug(f"🧹 Image {image_id} deleted")
