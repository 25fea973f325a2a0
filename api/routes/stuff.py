"""Media Library API Routes ("Your Stuff")

Saved images and videos: list with signed URLs, save generated media,
delete owned items.
"""

MODULE_DESCRIPTION = r"""Media Library API Routes

Endpoints:
---------
GET    /api/stuff/images?page=1     {images, nextPage}, 20 per page
POST   /api/stuff/images            save a base64 image -> {id, url}
DELETE /api/stuff/images/{id}       400 invalid id, 404 missing, 403 not owner
GET    /api/stuff/videos?page=1     {videos, nextPage}, 12 per page
POST   /api/stuff/videos            save a base64 video -> {id, url}
DELETE /api/stuff/videos/{id}

Signed URLs expire after one hour. Every endpoint needs a Bearer token and
answers 503 {"detail": "Storage is not configured"} without Supabase."""

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

from fastapi import APIRouter, Depends, HTTPException, Query

from api.config.settings import is_supabase_configured
from api.dependencies.auth import get_current_user, get_user_id
from api.models.requests import SaveImageRequest, SaveVideoRequest
from api.models.responses import ImagesPageResponse, SavedMediaResponse, VideosPageResponse
from api.utils.debug import print__images_debug, print__videos_debug
from storage import images, videos
from storage.database import is_database_configured
from storage.errors import StorageError
from storage.supabase_storage import STORAGE_NOT_CONFIGURED

router = APIRouter()


def require_storage() -> None:
    """Dependency: 503 unless both Supabase Storage and Postgres are configured."""
    if not (is_supabase_configured() and is_database_configured()):
        raise HTTPException(status_code=503, detail=STORAGE_NOT_CONFIGURED)


def _raise_storage_error(error: StorageError):
    raise HTTPException(status_code=error.status_code, detail=error.message) from error


# ==============================================================================
# API ENDPOINTS: IMAGES
# ==============================================================================
@router.get(
    "/api/stuff/images",
    response_model=ImagesPageResponse,
    dependencies=[Depends(require_storage)],
)
async def list_images(page: int = Query(1), user=Depends(get_current_user)):
    try:
        return await images.get_user_images(get_user_id(user), page)
    except StorageError as e:
        _raise_storage_error(e)


@router.post(
    "/api/stuff/images",
    response_model=SavedMediaResponse,
    dependencies=[Depends(require_storage)],
)
async def save_image(request: SaveImageRequest, user=Depends(get_current_user)):
    print__images_debug(f"📋 Saving image ({request.mimeType}, {len(request.imageData)} b64 chars)")
    try:
        return await images.save_image(
            get_user_id(user),
            request.imageData,
            request.mimeType,
            request.prompt,
            aspect_ratio=request.aspectRatio,
            image_size=request.imageSize,
        )
    except StorageError as e:
        _raise_storage_error(e)


@router.delete("/api/stuff/images/{image_id}", dependencies=[Depends(require_storage)])
async def delete_image(image_id: str, user=Depends(get_current_user)):
    try:
        await images.delete_image(get_user_id(user), image_id)
    except StorageError as e:
        _raise_storage_error(e)
    return {"success": True}


# ==============================================================================
# API ENDPOINTS: VIDEOS
# ==============================================================================
@router.get(
    "/api/stuff/videos",
    response_model=VideosPageResponse,
    dependencies=[Depends(require_storage)],
)
async def list_videos(page: int = Query(1), user=Depends(get_current_user)):
    try:
        return await videos.get_user_videos(get_user_id(user), page)
    except StorageError as e:
        _raise_storage_error(e)


@router.post(
    "/api/stuff/videos",
    response_model=SavedMediaResponse,
    dependencies=[Depends(require_storage)],
)
async def save_video(request: SaveVideoRequest, user=Depends(get_current_user)):
    print__videos_debug(f"📋 Saving video ({request.mimeType}, {len(request.videoData)} b64 chars)")
    try:
        return await videos.save_video(
            get_user_id(user),
            request.videoData,
            request.prompt,
            mime_type=request.mimeType,
            aspect_ratio=request.aspectRatio,
            resolution=request.resolution,
            duration_seconds=request.durationSeconds,
        )
    except StorageError as e:
        _raise_storage_error(e)


@router.delete("/api/stuff/videos/{video_id}", dependencies=[Depends(require_storage)])
async def delete_video(video_id: str, user=Depends(get_current_user)):
    try:
        await videos.delete_video(get_user_id(user), video_id)
    except StorageError as e:
        _raise_storage_error(e)
    return {"success": True}
