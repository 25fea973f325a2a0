"""Image, video, attachment and note-file repositories with a fake bucket store."""

import base64
import json
from datetime import datetime, timezone

import httpx
import pytest

import storage.attachments as attachments
import storage.images as images
import storage.note_uploads as note_uploads
import storage.supabase_storage as supabase_storage
import storage.videos as videos
from storage.errors import StorageError
from tests.helpers import (
    OTHER_USER_ID,
    TEST_USER_ID,
    FakeConnection,
    FakeCursor,
    fake_connection_factory,
    set_service_env,
)

IMAGE_ID = "44444444-4444-4444-8444-444444444444"
NOW = datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc)
PNG_B64 = base64.b64encode(b"\x89PNG fake image").decode("ascii")


class FakeStorage:
    """In-memory SupabaseStorage stand-in."""

    def __init__(self, fail_upload=False, fail_remove=False):
        self.objects = {}
        self.removed = []
        self.signed = []
        self.fail_upload = fail_upload
        self.fail_remove = fail_remove

    async def upload(self, bucket, path, data, content_type, upsert=False, cache_control=None):
        if self.fail_upload:
            raise StorageError("bucket unavailable", status_code=502)
        self.objects[(bucket, path)] = data
        return path

    async def remove(self, bucket, paths):
        if self.fail_remove:
            raise StorageError("bucket unavailable", status_code=502)
        self.removed.extend((bucket, path) for path in paths)

    async def create_signed_url(self, bucket, path, expires_in):
        self.signed.append((bucket, path, expires_in))
        return f"https://signed.test/{bucket}/{path}?ttl={expires_in}"

    async def download(self, bucket, path):
        return self.objects[(bucket, path)]

    async def list(self, bucket, prefix, limit=100):
        return [
            {"name": path[len(prefix) + 1:]}
            for stored_bucket, path in self.objects
            if stored_bucket == bucket and path.startswith(prefix + "/")
        ]

    def get_public_url(self, bucket, path):
        return f"https://public.test/{bucket}/{path}"


@pytest.fixture
def fake_storage(monkeypatch):
    set_service_env(monkeypatch)
    store = FakeStorage()
    for module in (images, videos, attachments, note_uploads):
        monkeypatch.setattr(module, "get_storage", lambda: store)
    return store


@pytest.fixture
def db(monkeypatch):
    def install(results=None, error=None):
        cursor = FakeCursor(results, error=error)
        connection = FakeConnection(cursor)
        factory = fake_connection_factory(connection)
        for module in (images, videos, attachments):
            monkeypatch.setattr(module, "get_connection", factory)
        return cursor, connection

    return install


def image_row(image_id, user_id=TEST_USER_ID):
    return {
        "id": image_id,
        "user_id": user_id,
        "storage_path": f"{user_id}/{image_id}.png",
        "prompt": "a lighthouse",
        "aspect_ratio": "16:9",
        "image_size": "1K",
        "mime_type": "image/png",
        "created_at": NOW,
    }


# ============================================================
# IMAGES
# ============================================================


def test_decode_base64_accepts_data_urls():
    assert images.decode_base64(f"data:image/png;base64,{PNG_B64}", "bad") == b"\x89PNG fake image"
    with pytest.raises(StorageError) as error:
        images.decode_base64("not base64!!", "Invalid image data")
    assert error.value.status_code == 400


async def test_save_image_uploads_then_records(fake_storage, db):
    cursor, connection = db([[]])

    saved = await images.save_image(TEST_USER_ID, PNG_B64, "image/png", "a lighthouse", "16:9")

    path = f"{TEST_USER_ID}/{saved['id']}.png"
    assert (images.BUCKET_NAME, path) in fake_storage.objects
    assert saved["url"].startswith(f"https://signed.test/{images.BUCKET_NAME}/{path}")
    assert fake_storage.signed == [(images.BUCKET_NAME, path, images.SIGNED_URL_TTL_SECONDS)]
    assert cursor.executed[0][1][:3] == (saved["id"], TEST_USER_ID, path)
    assert connection.committed is True


async def test_save_image_rejects_unsupported_type(fake_storage):
    with pytest.raises(StorageError) as error:
        await images.save_image(TEST_USER_ID, PNG_B64, "image/bmp", "x")
    assert error.value.status_code == 400
    assert fake_storage.objects == {}


async def test_failed_metadata_insert_removes_upload(fake_storage, db):
    db(error=RuntimeError("insert failed"))

    with pytest.raises(StorageError) as error:
        await images.save_image(TEST_USER_ID, PNG_B64, "image/png", "x")

    assert error.value.message == "Failed to save image metadata"
    assert len(fake_storage.removed) == 1


@pytest.mark.parametrize(
    "save, expected",
    [
        (
            lambda: images.save_image(TEST_USER_ID, PNG_B64, "image/png", "x"),
            "Failed to save image metadata",
        ),
        (
            lambda: videos.save_video(TEST_USER_ID, PNG_B64, "x"),
            "Failed to save video metadata",
        ),
        (
            lambda: attachments.upload_attachment(TEST_USER_ID, "c", "m", PNG_B64, "image/png"),
            "Failed to save attachment metadata",
        ),
    ],
)
async def test_failed_cleanup_keeps_metadata_error(monkeypatch, db, save, expected):
    set_service_env(monkeypatch)
    store = FakeStorage(fail_remove=True)
    for module in (images, videos, attachments):
        monkeypatch.setattr(module, "get_storage", lambda: store)
    db(error=RuntimeError("insert failed"))

    with pytest.raises(StorageError) as error:
        await save()

    assert error.value.message == expected
    assert len(store.objects) == 1


async def test_upload_failure_is_reported(monkeypatch, db):
    set_service_env(monkeypatch)
    monkeypatch.setattr(images, "get_storage", lambda: FakeStorage(fail_upload=True))
    with pytest.raises(StorageError) as error:
        await images.save_image(TEST_USER_ID, PNG_B64, "image/png", "x")
    assert error.value.message == "Failed to upload image"


async def test_image_pages_use_extra_row_for_next_page(fake_storage, db):
    rows = [image_row(f"img-{i}") for i in range(images.IMAGES_PER_PAGE + 1)]
    cursor, _ = db([rows])

    page = await images.get_user_images(TEST_USER_ID, page=2)

    assert len(page["images"]) == images.IMAGES_PER_PAGE
    assert page["nextPage"] == 3
    assert cursor.executed[0][1] == (TEST_USER_ID, images.IMAGES_PER_PAGE + 1, images.IMAGES_PER_PAGE)
    assert page["images"][0]["url"].startswith("https://signed.test/")
    assert {ttl for _, _, ttl in fake_storage.signed} == {3600}
    assert len(fake_storage.signed) == images.IMAGES_PER_PAGE


async def test_last_image_page_has_no_next(fake_storage, db):
    db([[image_row("img-1")]])
    page = await images.get_user_images(TEST_USER_ID)
    assert page["nextPage"] is None
    assert page["images"][0]["createdAt"] == NOW.isoformat()


async def test_delete_image_checks_owner(fake_storage, db):
    db([[image_row(IMAGE_ID, user_id=OTHER_USER_ID)]])
    with pytest.raises(StorageError) as error:
        await images.delete_image(TEST_USER_ID, IMAGE_ID)
    assert error.value.status_code == 403
    assert fake_storage.removed == []


async def test_delete_image_removes_object_and_row(fake_storage, db):
    cursor, connection = db([[image_row(IMAGE_ID)], []])

    await images.delete_image(TEST_USER_ID, IMAGE_ID)

    assert fake_storage.removed == [(images.BUCKET_NAME, f"{TEST_USER_ID}/{IMAGE_ID}.png")]
    assert cursor.executed[1][0].startswith("DELETE FROM user_images")
    assert connection.committed is True


async def test_delete_image_validates_id_and_existence(fake_storage, db):
    with pytest.raises(StorageError) as error:
        await images.delete_image(TEST_USER_ID, "not-a-uuid")
    assert error.value.status_code == 400

    db([[]])
    with pytest.raises(StorageError) as error:
        await images.delete_image(TEST_USER_ID, IMAGE_ID)
    assert error.value.status_code == 404


# ============================================================
# VIDEOS
# ============================================================


async def test_save_video_records_file_size(fake_storage, db):
    cursor, _ = db([[]])
    data = base64.b64encode(b"mp4-bytes").decode("ascii")

    saved = await videos.save_video(TEST_USER_ID, data, "waves", resolution="720p", duration_seconds=8)

    params = cursor.executed[0][1]
    assert params[0] == saved["id"]
    assert params[-1] == len(b"mp4-bytes")
    assert params[2].endswith(".mp4")


async def test_video_pages_hold_twelve(fake_storage, db):
    rows = [
        {**image_row(f"vid-{i}"), "resolution": "720p", "duration_seconds": 8, "file_size": 10}
        for i in range(videos.VIDEOS_PER_PAGE + 1)
    ]
    db([rows])

    page = await videos.get_user_videos(TEST_USER_ID)

    assert len(page["videos"]) == 12
    assert page["nextPage"] == 2
    assert page["videos"][0]["durationSeconds"] == 8
    assert fake_storage.signed[0] == (
        videos.BUCKET_NAME, f"{TEST_USER_ID}/vid-0.png", videos.SIGNED_URL_TTL_SECONDS
    )


async def test_delete_foreign_video_is_forbidden(fake_storage, db):
    db([[{"user_id": OTHER_USER_ID, "storage_path": "x/y.mp4"}]])
    with pytest.raises(StorageError) as error:
        await videos.delete_video(TEST_USER_ID, IMAGE_ID)
    assert error.value.status_code == 403
    assert error.value.message == "You can only delete your own videos"


# ============================================================
# ATTACHMENTS
# ============================================================


@pytest.mark.parametrize(
    "mime_type, expected",
    [
        ("image/heic", "image"),
        ("video/3gpp", "video"),
        ("audio/x-flac", "audio"),
        ("application/pdf", "document"),
        ("application/zip", None),
    ],
)
def test_attachment_type(mime_type, expected):
    assert attachments.get_attachment_type(mime_type) == expected


async def test_upload_attachment_returns_reference(fake_storage, db):
    cursor, _ = db([[]])

    ref = await attachments.upload_attachment(
        TEST_USER_ID, "chat-1", "msg-1", PNG_B64, "image/png", filename="shot.png"
    )

    assert ref["type"] == "image"
    assert ref["mimeType"] == "image/png"
    assert ref["filename"] == "shot.png"
    path = cursor.executed[0][1][4]
    assert path == f"{TEST_USER_ID}/chat-1/{ref['id']}.png"


async def test_upload_attachment_enforces_size_limit(fake_storage, monkeypatch):
    monkeypatch.setitem(attachments.MAX_SIZE_MB, "image", 0)
    with pytest.raises(StorageError) as error:
        await attachments.upload_attachment(TEST_USER_ID, "c", "m", PNG_B64, "image/png")
    assert error.value.status_code == 400
    assert "limit for images" in error.value.message


async def test_attachment_data_is_base64(fake_storage, db):
    path = f"{TEST_USER_ID}/chat-1/att.pdf"
    fake_storage.objects[(attachments.BUCKET_NAME, path)] = b"%PDF"
    db([[{"id": "att", "user_id": TEST_USER_ID, "storage_path": path, "mime_type": "application/pdf"}]])

    result = await attachments.get_attachment_data(TEST_USER_ID, "att")

    assert result == {"data": base64.b64encode(b"%PDF").decode("ascii"), "mimeType": "application/pdf"}


async def test_attachment_urls_skip_unknown_ids(fake_storage, db):
    db([[{"id": "a", "storage_path": "p/a.png", "mime_type": "image/png"}], []])

    urls = await attachments.get_attachment_urls(TEST_USER_ID, ["a", "missing"])

    assert list(urls) == ["a"]
    assert fake_storage.signed == [
        (attachments.BUCKET_NAME, "p/a.png", attachments.SIGNED_URL_TTL_SECONDS)
    ]


async def test_delete_attachments_by_chat(fake_storage, db):
    db([[{"storage_path": "u/c/1.png"}, {"storage_path": "u/c/2.pdf"}], []])
    assert await attachments.delete_attachments_by_chat(TEST_USER_ID, "c") == {"deletedCount": 2}
    assert len(fake_storage.removed) == 2

    db([[]])
    assert await attachments.delete_attachments_by_chat(TEST_USER_ID, "c") == {"deletedCount": 0}


# ============================================================
# NOTE FILES
# ============================================================


def test_validate_note_file():
    assert note_uploads.validate_file("text/markdown", 10) == "document"
    with pytest.raises(StorageError, match="not supported"):
        note_uploads.validate_file("application/x-msdownload", 10)
    with pytest.raises(StorageError, match="10MB limit for image"):
        note_uploads.validate_file("image/png", 11 * 1024 * 1024)


def test_storage_path_helpers():
    path = note_uploads.build_storage_path(TEST_USER_ID, "note-1", "my report (v2).pdf")
    assert path.startswith(f"{TEST_USER_ID}/note-1/")
    assert path.endswith("-my_report__v2_.pdf")

    url = f"https://x.supabase.co/storage/v1/object/public/note-attachments/{path}?t=1"
    assert note_uploads.extract_storage_path(url) == path
    assert note_uploads.extract_storage_path("https://elsewhere.test/file.pdf") is None


async def test_upload_and_delete_note_file(fake_storage):
    result = await note_uploads.upload_note_file(
        TEST_USER_ID, "note-1", "plan.txt", "text/plain", b"hello"
    )
    assert result["category"] == "document"
    assert result["size"] == 5
    assert result["url"] == f"https://public.test/note-attachments/{result['path']}"

    await note_uploads.delete_note_file(TEST_USER_ID, result["url"])
    assert fake_storage.removed == [(note_uploads.BUCKET_NAME, result["path"])]


async def test_delete_note_file_of_other_user_is_denied(fake_storage):
    url = f"https://public.test/note-attachments/{OTHER_USER_ID}/n/file.txt"
    with pytest.raises(StorageError) as error:
        await note_uploads.delete_note_file(TEST_USER_ID, url)
    assert error.value.status_code == 403


async def test_note_file_signed_url_requires_ownership(fake_storage):
    own = f"https://x.supabase.co/storage/v1/object/public/note-attachments/{TEST_USER_ID}/n/a.pdf"

    url = await note_uploads.get_signed_url(TEST_USER_ID, own)

    path = f"{TEST_USER_ID}/n/a.pdf"
    assert url == f"https://signed.test/note-attachments/{path}?ttl=3600"
    assert fake_storage.signed == [
        (note_uploads.BUCKET_NAME, path, note_uploads.SIGNED_URL_EXPIRY_SECONDS)
    ]
    assert await note_uploads.get_signed_url(TEST_USER_ID, path) == url

    for foreign in (
        f"https://x.supabase.co/storage/v1/object/public/note-attachments/{OTHER_USER_ID}/n/a.pdf",
        f"{OTHER_USER_ID}/n/a.pdf",
        f"{TEST_USER_ID}/../{OTHER_USER_ID}/n/a.pdf",
    ):
        with pytest.raises(StorageError) as error:
            await note_uploads.get_signed_url(TEST_USER_ID, foreign)
        assert error.value.status_code == 403
    assert len(fake_storage.signed) == 2


async def test_delete_note_files_removes_prefix(fake_storage):
    await note_uploads.upload_note_file(TEST_USER_ID, "note-1", "a.txt", "text/plain", b"a")
    await note_uploads.upload_note_file(TEST_USER_ID, "note-2", "b.txt", "text/plain", b"b")

    assert await note_uploads.delete_note_files(TEST_USER_ID, "note-1") == 1


# ============================================================
# SUPABASE STORAGE CLIENT
# ============================================================


@pytest.fixture
def mock_http(monkeypatch):
    """Route the storage client's httpx traffic through a handler."""
    requests = []
    real_client = httpx.AsyncClient

    def install(handler):
        def recording_handler(request):
            requests.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording_handler)
        monkeypatch.setattr(
            supabase_storage.httpx,
            "AsyncClient",
            lambda timeout=None: real_client(transport=transport, timeout=timeout),
        )
        return requests

    return install


async def test_signed_url_is_absolute(mock_http):
    requests = mock_http(
        lambda request: httpx.Response(200, json={"signedURL": "/object/sign/b/p.png?token=t"})
    )
    client = supabase_storage.SupabaseStorage("https://proj.supabase.co/", "service-key")

    url = await client.create_signed_url("b", "p.png", 3600)

    assert url == "https://proj.supabase.co/storage/v1/object/sign/b/p.png?token=t"
    assert requests[0].headers["apikey"] == "service-key"
    assert requests[0].headers["Authorization"] == "Bearer service-key"
    assert requests[0].url.path == "/storage/v1/object/sign/b/p.png"
    assert json.loads(requests[0].content) == {"expiresIn": 3600}


async def test_storage_error_status_is_kept(mock_http):
    mock_http(lambda request: httpx.Response(404, json={"message": "Object not found"}))
    client = supabase_storage.SupabaseStorage("https://proj.supabase.co", "k")

    with pytest.raises(StorageError) as error:
        await client.download("b", "missing.png")

    assert error.value.status_code == 404
    assert error.value.message == "Object not found"


def test_get_storage_requires_configuration(monkeypatch):
    set_service_env(monkeypatch, supabase=False)
    with pytest.raises(StorageError) as error:
        supabase_storage.get_storage()
    assert error.value.status_code == 503


async def test_message_attachments_are_camel_cased(fake_storage, db):
    row = {
        "id": "a1",
        "user_id": TEST_USER_ID,
        "chat_id": "c1",
        "message_id": "m1",
        "storage_path": "u/c1/a1.pdf",
        "filename": "spec.pdf",
        "mime_type": "application/pdf",
        "file_size": 4,
        "attachment_type": "document",
        "created_at": NOW,
    }
    cursor, _ = db([[row]])

    result = await attachments.get_message_attachments(TEST_USER_ID, "m1")

    assert result[0]["attachmentType"] == "document"
    assert result[0]["createdAt"] == NOW.isoformat()
    assert cursor.executed[0][1] == (TEST_USER_ID, "m1")
