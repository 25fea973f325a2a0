"""Notes API Routes

CRUD for BlockNote documents: notes, their block lists and file uploads.
"""

MODULE_DESCRIPTION = r"""Notes API Routes

Every endpoint requires a Bearer token and only touches the caller's notes.
Successful responses use the envelope ``{"success": true, "data": ...}``;
failures answer ``{"success": false, "detail": <message>}`` with the status
mapped from the NotesError code:

    NOT_CONFIGURED 503, AUTH_REQUIRED 401, NOT_FOUND 404, ACCESS_DENIED 403,
    VALIDATION_ERROR 400, OPERATION_FAILED 500, NETWORK_ERROR 503

Endpoints:
---------
GET    /api/notes                      active notes + favorites
POST   /api/notes                      create (201)
GET    /api/notes/archived             archived notes
GET    /api/notes/{note_id}            note with blocks
PATCH  /api/notes/{note_id}            partial update (title, icon, isFavorite, isArchived)
DELETE /api/notes/{note_id}            hard delete (files removed best effort)
POST   /api/notes/{note_id}/archive    soft delete
POST   /api/notes/{note_id}/restore    undo archive
PUT    /api/notes/{note_id}/blocks     replace all blocks
POST   /api/notes/{note_id}/uploads    multipart file upload -> public URL
DELETE /api/notes/{note_id}/uploads    remove an uploaded file by URL
POST   /api/notes/{note_id}/uploads/sign   signed URL for an uploaded file"""

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

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from api.dependencies.auth import get_current_user, get_user_id
from api.models.requests import (
    CreateNoteRequest,
    NoteFileRequest,
    SaveBlocksRequest,
    UpdateNoteRequest,
)
from api.utils.debug import print__notes_debug
from storage import note_uploads, notes
from storage.errors import NotesError, StorageError

router = APIRouter()


def notes_error_response(error: NotesError) -> JSONResponse:
    print__notes_debug(f"❌ {error.code}: {error.message}")
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "detail": error.message},
    )


def storage_error_response(error: StorageError) -> JSONResponse:
    print__notes_debug(f"❌ Upload error ({error.status_code}): {error.message}")
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "detail": error.message},
    )


# ==============================================================================
# API ENDPOINTS: NOTES COLLECTION
# ==============================================================================
@router.get("/api/notes")
async def list_notes(user=Depends(get_current_user)):
    try:
        data = await notes.get_notes(get_user_id(user))
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": data}


@router.post("/api/notes", status_code=201)
async def create_note(request: CreateNoteRequest, user=Depends(get_current_user)):
    try:
        note = await notes.create_note(get_user_id(user), request.title, request.icon)
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": note}


@router.get("/api/notes/archived")
async def list_archived_notes(user=Depends(get_current_user)):
    try:
        data = await notes.get_archived_notes(get_user_id(user))
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": data}


# ==============================================================================
# API ENDPOINTS: SINGLE NOTE
# ==============================================================================
@router.get("/api/notes/{note_id}")
async def get_note(note_id: str, user=Depends(get_current_user)):
    try:
        note = await notes.get_note(note_id, get_user_id(user))
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": note}


@router.patch("/api/notes/{note_id}")
async def update_note(note_id: str, request: UpdateNoteRequest, user=Depends(get_current_user)):
    updates = request.model_dump(include=request.model_fields_set)
    try:
        note = await notes.update_note(note_id, get_user_id(user), updates)
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": note}


@router.delete("/api/notes/{note_id}")
async def delete_note(note_id: str, user=Depends(get_current_user)):
    user_id = get_user_id(user)
    try:
        await notes.delete_note(note_id, user_id)
    except NotesError as e:
        return notes_error_response(e)

    try:
        await note_uploads.delete_note_files(user_id, note_id)
    except StorageError as e:
        print__notes_debug(f"⚠️ File cleanup failed for note {note_id}: {e.message}")

    return {"success": True}


@router.post("/api/notes/{note_id}/archive")
async def archive_note(note_id: str, user=Depends(get_current_user)):
    try:
        note = await notes.archive_note(note_id, get_user_id(user))
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": note}


@router.post("/api/notes/{note_id}/restore")
async def restore_note(note_id: str, user=Depends(get_current_user)):
    try:
        note = await notes.restore_note(note_id, get_user_id(user))
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": note}


# ==============================================================================
# API ENDPOINTS: BLOCKS
# ==============================================================================
@router.put("/api/notes/{note_id}/blocks")
async def save_blocks(note_id: str, request: SaveBlocksRequest, user=Depends(get_current_user)):
    blocks = [block.model_dump() for block in request.blocks]
    try:
        saved = await notes.save_blocks(note_id, get_user_id(user), blocks)
    except NotesError as e:
        return notes_error_response(e)
    return {"success": True, "data": saved}


# ==============================================================================
# API ENDPOINTS: UPLOADS
# ==============================================================================
@router.post("/api/notes/{note_id}/uploads")
async def upload_note_file(
    note_id: str,
    file: UploadFile = File(None),
    user=Depends(get_current_user),
):
    """Upload a file referenced from a note block; answers with its public URL."""
    if file is None:
        return JSONResponse(status_code=400, content={"success": False, "detail": "No file provided"})

    user_id = get_user_id(user)
    try:
        # Uploads are only allowed into the caller's own notes
        await notes.get_note(note_id, user_id)
    except NotesError as e:
        return notes_error_response(e)

    data = await file.read()
    try:
        uploaded = await note_uploads.upload_note_file(
            user_id,
            note_id,
            file.filename or "file",
            file.content_type or "application/octet-stream",
            data,
        )
    except StorageError as e:
        return storage_error_response(e)
    return {"success": True, "data": uploaded}


@router.delete("/api/notes/{note_id}/uploads")
async def delete_note_file(
    note_id: str, request: NoteFileRequest, user=Depends(get_current_user)
):
    try:
        await note_uploads.delete_note_file(get_user_id(user), request.url)
    except StorageError as e:
        return storage_error_response(e)
    print__notes_debug(f"🧹 Removed upload from note {note_id}")
    return {"success": True}


@router.post("/api/notes/{note_id}/uploads/sign")
async def sign_note_file(note_id: str, request: NoteFileRequest, user=Depends(get_current_user)):
    """Signed, time-limited URL for a file in the caller's notes bucket."""
    try:
        url = await note_uploads.get_signed_url(get_user_id(user), request.url)
    except StorageError as e:
        return storage_error_response(e)
    return {"success": True, "data": {"url": url}}
