"""Notes repository against a fake psycopg connection."""

from datetime import datetime, timezone

import pytest

import storage.notes as notes
from storage.errors import NotesError, notes_error_from_exception
from tests.helpers import (
    TEST_USER_ID,
    FakeConnection,
    FakeCursor,
    fake_connection_factory,
    set_service_env,
)

NOTE_ID = "33333333-3333-4333-8333-333333333333"
NOW = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)


def note_row(note_id=NOTE_ID, title="Trip plan", favorite=False, archived=False):
    return {
        "id": note_id,
        "user_id": TEST_USER_ID,
        "parent_id": None,
        "title": title,
        "icon": None,
        "cover_image": None,
        "is_favorite": favorite,
        "is_archived": archived,
        "is_folder": False,
        "position": 0,
        "created_at": NOW,
        "updated_at": NOW,
    }


def block_row(block_id, block_type="paragraph", position=0):
    return {
        "id": block_id,
        "note_id": NOTE_ID,
        "type": block_type,
        "content": {"text": block_id},
        "position": position,
        "created_at": NOW,
        "updated_at": NOW,
    }


@pytest.fixture
def db(monkeypatch):
    """Install a fake connection; call with the queued query results."""
    set_service_env(monkeypatch)

    def install(results=None, error=None):
        cursor = FakeCursor(results, error=error)
        connection = FakeConnection(cursor)
        monkeypatch.setattr(notes, "get_connection", fake_connection_factory(connection))
        return cursor, connection

    return install


def test_transform_note_camel_cases_row():
    note = notes.transform_note(note_row(favorite=True))
    assert note["userId"] == TEST_USER_ID
    assert note["isFavorite"] is True
    assert note["createdAt"] == NOW.isoformat()
    assert note["parentId"] is None


async def test_get_notes_splits_favorites(db):
    cursor, _ = db([[note_row("n1", favorite=True), note_row("n2")]])

    result = await notes.get_notes(TEST_USER_ID)

    assert [note["id"] for note in result["notes"]] == ["n1", "n2"]
    assert [note["id"] for note in result["favorites"]] == ["n1"]
    query, params = cursor.executed[0]
    assert "is_archived = false" in query
    assert params == (TEST_USER_ID,)


async def test_get_note_includes_blocks(db):
    db([[note_row()], [block_row("b1"), block_row("b2", "heading1", 1)]])

    note = await notes.get_note(NOTE_ID, TEST_USER_ID)

    assert note["title"] == "Trip plan"
    assert [block["type"] for block in note["blocks"]] == ["paragraph", "heading1"]


async def test_get_missing_note_raises_not_found(db):
    db([[]])
    with pytest.raises(NotesError) as error:
        await notes.get_note(NOTE_ID, TEST_USER_ID)
    assert error.value.code == "NOT_FOUND"
    assert error.value.status_code == 404
    assert error.value.message == "Note not found."


async def test_create_note_defaults_title(db):
    cursor, connection = db([[note_row(title="Untitled")]])

    note = await notes.create_note(TEST_USER_ID, title="")

    assert note["title"] == "Untitled"
    assert cursor.executed[0][1] == (TEST_USER_ID, "Untitled", None)
    assert connection.committed is True


async def test_update_note_only_sets_given_fields(db):
    cursor, _ = db([[note_row(title="Renamed", favorite=True)]])

    note = await notes.update_note(NOTE_ID, TEST_USER_ID, {"title": "Renamed", "isFavorite": True})

    query, params = cursor.executed[0]
    assert "title = %s" in query and "is_favorite = %s" in query
    assert "icon = %s" not in query
    assert params == ("Renamed", True, NOTE_ID, TEST_USER_ID)
    assert note["isFavorite"] is True


async def test_archive_missing_note_raises_not_found(db):
    db([[]])
    with pytest.raises(NotesError) as error:
        await notes.archive_note(NOTE_ID, TEST_USER_ID)
    assert error.value.code == "NOT_FOUND"


async def test_save_blocks_replaces_blocks_and_defaults_position(db):
    cursor, connection = db(
        [
            [{"id": NOTE_ID}],  # ownership check
            [],  # delete
            [block_row("b1", position=0)],
            [block_row("b2", "todoList", position=1)],
            [],  # touch updated_at
        ]
    )

    saved = await notes.save_blocks(
        NOTE_ID,
        TEST_USER_ID,
        [{"type": "paragraph", "content": {"text": "a"}}, {"id": "b2", "type": "todoList"}],
    )

    assert [block["id"] for block in saved] == ["b1", "b2"]
    first_insert_params = cursor.executed[2][1]
    assert first_insert_params[-1] == 0
    second_insert_params = cursor.executed[3][1]
    assert second_insert_params[0] == "b2"
    assert second_insert_params[-1] == 1
    assert "UPDATE notes SET updated_at" in cursor.executed[4][0]
    assert connection.committed is True


async def test_save_blocks_on_foreign_note_is_denied(db):
    db([[]])
    with pytest.raises(NotesError) as error:
        await notes.save_blocks(NOTE_ID, TEST_USER_ID, [])
    assert error.value.code == "ACCESS_DENIED"
    assert error.value.status_code == 403


async def test_not_configured_without_database(monkeypatch):
    set_service_env(monkeypatch, database=False)
    with pytest.raises(NotesError) as error:
        await notes.get_notes(TEST_USER_ID)
    assert error.value.status_code == 503
    assert error.value.message == "Notes are not available. Please configure Supabase."


async def test_driver_errors_are_mapped(db):
    db(error=RuntimeError("connection refused"))
    with pytest.raises(NotesError) as error:
        await notes.get_archived_notes(TEST_USER_ID)
    assert error.value.code == "NETWORK_ERROR"


def test_sqlstate_mapping():
    class PermissionDenied(Exception):
        sqlstate = "42501"

    class UniqueViolation(Exception):
        sqlstate = "23505"

    assert notes_error_from_exception(PermissionDenied()).code == "ACCESS_DENIED"
    unique = notes_error_from_exception(UniqueViolation())
    assert unique.code == "OPERATION_FAILED"
    assert unique.message == "A note with this information already exists."
