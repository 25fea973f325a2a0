"""Notes repository (Postgres).

Tables:
    notes        id, user_id, parent_id, title, icon, cover_image, is_favorite,
                 is_archived, is_folder, position, created_at, updated_at
    note_blocks  id, note_id, type, content (jsonb), position, created_at, updated_at

Every query is scoped to the owning user. Rows are returned camelCased.
"""

from __future__ import annotations

from typing import List, Optional

from psycopg.types.json import Jsonb

from api.utils.debug import print__notes_debug
from storage.database import get_connection, is_database_configured
from storage.errors import (
    ACCESS_DENIED,
    NOT_CONFIGURED,
    NOT_FOUND,
    NotesError,
    notes_error_from_exception,
)

NOTE_COLUMNS = (
    "id, user_id, parent_id, title, icon, cover_image, is_favorite, "
    "is_archived, is_folder, position, created_at, updated_at"
)
BLOCK_COLUMNS = "id, note_id, type, content, position, created_at, updated_at"

BLOCK_TYPES = [
    "paragraph",
    "heading1",
    "heading2",
    "heading3",
    "bulletList",
    "numberedList",
    "todoList",
    "toggle",
    "quote",
    "callout",
    "divider",
    "code",
    "image",
    "video",
    "audio",
    "file",
]


def _iso(value):
    return value.isoformat() if hasattr(value, "isoformat") else value


def _str(value):
    return str(value) if value is not None else None


def transform_note(row: dict) -> dict:
    return {
        "id": _str(row["id"]),
        "userId": _str(row["user_id"]),
        "parentId": _str(row.get("parent_id")),
        "title": row.get("title"),
        "icon": row.get("icon"),
        "coverImage": row.get("cover_image"),
        "isFavorite": bool(row.get("is_favorite")),
        "isArchived": bool(row.get("is_archived")),
        "isFolder": bool(row.get("is_folder")),
        "position": row.get("position") or 0,
        "createdAt": _iso(row.get("created_at")),
        "updatedAt": _iso(row.get("updated_at")),
    }


def transform_block(row: dict) -> dict:
    return {
        "id": _str(row["id"]),
        "noteId": _str(row["note_id"]),
        "type": row["type"],
        "content": row.get("content") or {},
        "position": row.get("position") or 0,
        "createdAt": _iso(row.get("created_at")),
        "updatedAt": _iso(row.get("updated_at")),
    }


def _ensure_configured() -> None:
    if not is_database_configured():
        raise NotesError(NOT_CONFIGURED)


# ==============================================================================
# NOTES
# ==============================================================================
async def get_notes(user_id: str) -> dict:
    """Active (non-archived, non-folder) notes, most recently updated first."""
    _ensure_configured()
    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {NOTE_COLUMNS} FROM notes
                    WHERE user_id = %s AND is_archived = false AND is_folder = false
                    ORDER BY updated_at DESC
                    """,
                    (user_id,),
                )
                rows = await cur.fetchall()
    except Exception as e:
        print__notes_debug(f"❌ Failed to fetch notes: {type(e).__name__}: {e}")
        raise notes_error_from_exception(e) from e

    notes = [transform_note(row) for row in rows]
    return {
        "notes": notes,
        "favorites": [note for note in notes if note["isFavorite"]],
    }


async def get_archived_notes(user_id: str) -> List[dict]:
    _ensure_configured()
    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    SELECT {NOTE_COLUMNS} FROM notes
                    WHERE user_id = %s AND is_archived = true
                    ORDER BY updated_at DESC
                    """,
                    (user_id,),
                )
                rows = await cur.fetchall()
    except Exception as e:
        print__notes_debug(f"❌ Failed to fetch archived notes: {type(e).__name__}: {e}")
        raise notes_error_from_exception(e) from e

    return [transform_note(row) for row in rows]


async def get_note(note_id: str, user_id: str) -> dict:
    """A note with its blocks ordered by position.

    Raises:
        NotesError: NOT_FOUND when the note does not exist for this user
    """
    _ensure_configured()
    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"SELECT {NOTE_COLUMNS} FROM notes WHERE id = %s AND user_id = %s",
                    (note_id, user_id),
                )
                row = await cur.fetchone()
                if row is None:
                    raise NotesError(NOT_FOUND)

                blocks = []
                try:
                    await cur.execute(
                        f"SELECT {BLOCK_COLUMNS} FROM note_blocks WHERE note_id = %s ORDER BY position ASC",
                        (note_id,),
                    )
                    blocks = [transform_block(block) for block in await cur.fetchall()]
                except Exception as e:
                    # Note is still returned without its blocks
                    print__notes_debug(f"⚠️ Failed to fetch blocks for {note_id}: {e}")
    except Exception as e:
        raise notes_error_from_exception(e) from e

    note = transform_note(row)
    note["blocks"] = blocks
    return note


async def create_note(user_id: str, title: str = "Untitled", icon: Optional[str] = None) -> dict:
    _ensure_configured()
    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    INSERT INTO notes (user_id, parent_id, title, icon, is_folder, position)
                    VALUES (%s, NULL, %s, %s, false, 0)
                    RETURNING {NOTE_COLUMNS}
                    """,
                    (user_id, title or "Untitled", icon),
                )
                row = await cur.fetchone()
            await conn.commit()
    except Exception as e:
        print__notes_debug(f"❌ Failed to create note: {type(e).__name__}: {e}")
        raise notes_error_from_exception(e) from e

    print__notes_debug(f"✅ Note {row['id']} created")
    return transform_note(row)


_UPDATABLE_FIELDS = {
    "title": "title",
    "icon": "icon",
    "isFavorite": "is_favorite",
    "isArchived": "is_archived",
}


async def update_note(note_id: str, user_id: str, updates: dict) -> dict:
    """Apply camelCase ``updates`` (title, icon, isFavorite, isArchived)."""
    _ensure_configured()

    assignments = []
    values = []
    for key, column in _UPDATABLE_FIELDS.items():
        if key in updates:
            assignments.append(f"{column} = %s")
            values.append(updates[key])
    assignments.append("updated_at = now()")

    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    f"""
                    UPDATE notes SET {", ".join(assignments)}
                    WHERE id = %s AND user_id = %s
                    RETURNING {NOTE_COLUMNS}
                    """,
                    (*values, note_id, user_id),
                )
                row = await cur.fetchone()
            await conn.commit()
    except Exception as e:
        print__notes_debug(f"❌ Failed to update note {note_id}: {type(e).__name__}: {e}")
        raise notes_error_from_exception(e) from e

    if row is None:
        raise NotesError(NOT_FOUND)
    return transform_note(row)


async def archive_note(note_id: str, user_id: str) -> dict:
    return await update_note(note_id, user_id, {"isArchived": True})


async def restore_note(note_id: str, user_id: str) -> dict:
    return await update_note(note_id, user_id, {"isArchived": False})


async def delete_note(note_id: str, user_id: str) -> None:
    _ensure_configured()
    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "DELETE FROM notes WHERE id = %s AND user_id = %s",
                    (note_id, user_id),
                )
            await conn.commit()
    except Exception as e:
        print__notes_debug(f"❌ Failed to delete note {note_id}: {type(e).__name__}: {e}")
        raise notes_error_from_exception(e) from e

    print__notes_debug(f"🧹 Note {note_id} deleted")


# ==============================================================================
# BLOCKS
# ==============================================================================
async def save_blocks(note_id: str, user_id: str, blocks: List[dict]) -> List[dict]:
    """Replace the note's blocks in one transaction.

    ``position`` defaults to the block's index; the note's updated_at is only
    touched when at least one block was written.
    """
    _ensure_configured()
    try:
        async with get_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(
                    "SELECT id FROM notes WHERE id = %s AND user_id = %s",
                    (note_id, user_id),
                )
                if await cur.fetchone() is None:
                    raise NotesError(ACCESS_DENIED)

                await cur.execute("DELETE FROM note_blocks WHERE note_id = %s", (note_id,))

                saved = []
                for index, block in enumerate(blocks):
                    position = block.get("position")
                    params = (
                        note_id,
                        block["type"],
                        Jsonb(block.get("content") or {}),
                        index if position is None else position,
                    )
                    if block.get("id"):
                        await cur.execute(
                            f"""
                            INSERT INTO note_blocks (id, note_id, type, content, position)
                            VALUES (%s, %s, %s, %s, %s)
                            RETURNING {BLOCK_COLUMNS}
                            """,
                            (block["id"], *params),
                        )
                    else:
                        await cur.execute(
                            f"""
                            INSERT INTO note_blocks (note_id, type, content, position)
                            VALUES (%s, %s, %s, %s)
                            RETURNING {BLOCK_COLUMNS}
                            """,
                            params,
                        )
                    saved.append(transform_block(await cur.fetchone()))

                if saved:
                    await cur.execute(
                        "UPDATE notes SET updated_at = now() WHERE id = %s AND user_id = %s",
                        (note_id, user_id),
                    )
            await conn.commit()
    except Exception as e:
        print__notes_debug(f"❌ Failed to save blocks for {note_id}: {type(e).__name__}: {e}")
        raise notes_error_from_exception(e) from e

    print__notes_debug(f"✅ Saved {len(saved)} block(s) for note {note_id}")
    return saved
