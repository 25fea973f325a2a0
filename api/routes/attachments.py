"""Attachment API Routes

Upload chat attachments to storage and hand out signed URLs for them.
"""

MODULE_DESCRIPTION = r"""Attachment API Routes

Endpoints:
---------
1. POST /api/attachments
   - Body: {data (base64), mimeType, chatId, messageId, filename?}
   - Returns: {attachment: {id, type, mimeType, filename}}
   - 400 for missing fields, unsupported type or size over the per-type limit

2. GET /api/attachments/{attachment_id}
   - Returns: {url} signed for one hour
   - 400 invalid id, 404 unknown or not owned

Both require a Bearer token."""

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

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies.auth import get_current_user, get_user_id
from api.models.requests import UploadAttachmentRequest
from api.models.responses import AttachmentUploadResponse, AttachmentUrlResponse
from api.routes.stuff import require_storage
from api.utils.debug import print__attachments_debug
from storage import attachments
from storage.errors import StorageError
from storage.images import is_valid_uuid

REQUIRED_FIELDS = ["data", "mimeType", "chatId", "messageId"]

router = APIRouter()


# ==============================================================================
# API ENDPOINT: UPLOAD
# ==============================================================================
@router.post(
    "/api/attachments",
    response_model=AttachmentUploadResponse,
    dependencies=[Depends(require_storage)],
)
async def upload_attachment(request: UploadAttachmentRequest, user=Depends(get_current_user)):
    for field in REQUIRED_FIELDS:
        if not getattr(request, field):
            raise HTTPException(status_code=400, detail=f"Missing or invalid {field} field")

    if attachments.get_attachment_type(request.mimeType) is None:
        raise HTTPException(status_code=400, detail="Unsupported file type")

    try:
        attachment = await attachments.upload_attachment(
            get_user_id(user),
            request.chatId,
            request.messageId,
            request.data,
            request.mimeType,
            filename=request.filename,
        )
    except StorageError as e:
        print__attachments_debug(f"❌ Upload rejected: {e.message}")
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    return {"attachment": attachment}


# ==============================================================================
# API ENDPOINT: SIGNED URL
# ==============================================================================
@router.get(
    "/api/attachments/{attachment_id}",
    response_model=AttachmentUrlResponse,
    dependencies=[Depends(require_storage)],
)
async def get_attachment_url(attachment_id: str, user=Depends(get_current_user)):
    if not is_valid_uuid(attachment_id):
        raise HTTPException(status_code=400, detail="Invalid attachment ID")

    try:
        url = await attachments.get_attachment_url(get_user_id(user), attachment_id)
    except StorageError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    return {"url": url}
