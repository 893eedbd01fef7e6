import io
import re
import threading

import pytest

from courseflow.core.config import settings
from courseflow.core.constants import MIB
from courseflow.core.exceptions import StorageUnavailable, UploadCancelled
from courseflow.services.local_storage import LocalStorage
from courseflow.services.s3_service import S3Service, parse_size_to_bytes
from courseflow.services.storage import (
    MODE_DIRECT, MODE_LOCAL, MODE_STREAMING, StorageRouter,
    build_object_name, sanitize_filename, validate_folder,
)


@pytest.fixture
def cdn_settings(monkeypatch):
    monkeypatch.setattr(settings, "USE_LOCAL_STORAGE", False)
    monkeypatch.setattr(settings, "AWS_ACCESS_KEY_ID", "key")
    monkeypatch.setattr(settings, "AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setattr(settings, "S3_BUCKET_NAME", "courseflow-test")
    monkeypatch.setattr(settings, "CDN_PUBLIC_BASE_URL", "https://cdn.example.com")


@pytest.fixture
def recording_cdn(monkeypatch):
    calls = []

    def fake_put(self, key, fileobj, content_type=None):
        calls.append(("direct", key, len(fileobj.read())))
        return key

    def fake_multipart(self, key, fileobj, total_size, content_type=None, progress_callback=None, cancel_event=None):
        calls.append(("streaming", key, total_size))
        return key

    monkeypatch.setattr(S3Service, "put_object", fake_put)
    monkeypatch.setattr(S3Service, "upload_multipart", fake_multipart)
    return calls


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("lecture notes (final).pdf", "lecture-notes-final-.pdf"),
        ("../../etc/passwd", "passwd"),
        ("ümlaut ünïcode.mp4", "mlaut-n-code.mp4"),
        ("---", "file"),
        (None, "file"),
        ("a  b", "a-b"),
    ],
)
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected


def test_object_name_is_prefixed_with_milliseconds():
    assert build_object_name("My File.pdf", now_ms=1700000000123) == "1700000000123-My-File.pdf"
    assert re.match(r"^\d{13}-notes\.txt$", build_object_name("notes.txt"))


def test_validate_folder_rejects_unknown_folders():
    assert validate_folder("materials") == "materials"
    with pytest.raises(ValueError):
        validate_folder("secrets")


@pytest.mark.parametrize(
    "raw, expected",
    [("20MB", 20 * MIB), ("8mb", 8 * MIB), ("1.5KB", 1536), ("1GB", 1024 * MIB), ("512", 512)],
)
def test_parse_size_to_bytes(raw, expected):
    assert parse_size_to_bytes(raw) == expected


def test_mode_selection_is_evaluated_per_call(monkeypatch, cdn_settings):
    router = StorageRouter()
    assert router.select_mode(5 * MIB) == MODE_DIRECT
    assert router.select_mode(20 * MIB) == MODE_DIRECT
    assert router.select_mode(20 * MIB + 1) == MODE_STREAMING

    monkeypatch.setattr(settings, "USE_LOCAL_STORAGE", True)
    assert router.select_mode(25 * MIB) == MODE_LOCAL


def test_large_upload_streams_and_small_upload_goes_direct(cdn_settings, recording_cdn):
    router = StorageRouter()

    big = router.store("materials", "lecture.mp4", io.BytesIO(b"\0" * (25 * MIB)))
    small = router.store("materials", "notes.pdf", io.BytesIO(b"\0" * (5 * MIB)))

    assert big.mode == MODE_STREAMING
    assert small.mode == MODE_DIRECT
    assert [call[0] for call in recording_cdn] == ["streaming", "direct"]
    assert recording_cdn[0][2] == 25 * MIB
    assert recording_cdn[1][2] == 5 * MIB
    assert re.match(r"^materials/\d+-lecture\.mp4$", big.reference)
    assert re.match(r"^materials/\d+-notes\.pdf$", small.reference)


def test_missing_credentials_raise_storage_unavailable(monkeypatch):
    monkeypatch.setattr(settings, "USE_LOCAL_STORAGE", False)
    router = StorageRouter()
    with pytest.raises(StorageUnavailable):
        router.store("materials", "notes.pdf", io.BytesIO(b"data"))


def test_local_store_writes_file_and_returns_public_url(tmp_path):
    storage = LocalStorage(root=str(tmp_path), base_url="http://localhost:8000/")
    reference = storage.save("images", "123-cover.png", io.BytesIO(b"png-bytes"))

    assert reference == "http://localhost:8000/uploads/images/123-cover.png"
    assert (tmp_path / "images" / "123-cover.png").read_bytes() == b"png-bytes"
    assert not (tmp_path / "images" / "123-cover.png.part").exists()


def test_local_store_cancelled_leaves_no_partial_file(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    cancel_event = threading.Event()
    cancel_event.set()

    with pytest.raises(UploadCancelled):
        storage.save("materials", "123-video.mp4", io.BytesIO(b"x" * 1024), cancel_event=cancel_event)

    assert list((tmp_path / "materials").iterdir()) == []


def test_local_delete_of_missing_file_returns_false(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    assert storage.delete("materials", "http://localhost:8000/uploads/materials/nope.pdf") is False


def test_router_store_in_local_mode(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path))
    router = StorageRouter()

    stored = router.store("avatars", "me.png", io.BytesIO(b"avatar"))

    assert stored.mode == MODE_LOCAL
    assert stored.size == 6
    assert re.match(r"^http://testserver/uploads/avatars/\d+-me\.png$", stored.reference)
    assert router.delete("avatars", stored.reference) is True
    assert not (tmp_path / "avatars" / stored.filename).exists()


class _RecordingCDN:
    def __init__(self, result=True, error=None):
        self.keys = []
        self.result = result
        self.error = error

    def public_url(self, key):
        return f"https://courseflow-test.s3.us-east-1.amazonaws.com/{key}"

    def delete_object(self, key):
        self.keys.append(key)
        if self.error:
            raise self.error
        return self.result


class _RecordingLocal:
    base_url = "http://localhost:8000"

    def __init__(self):
        self.calls = []

    def delete(self, folder, reference):
        self.calls.append((folder, reference))
        return True


@pytest.mark.parametrize(
    "reference",
    ["http://localhost:8000/uploads/materials/1-a.pdf", "uploads/materials/1-a.pdf"],
)
def test_delete_routes_local_references_to_disk(reference):
    local, cdn = _RecordingLocal(), _RecordingCDN()
    router = StorageRouter(local=local, cdn=cdn)

    assert router.delete("materials", reference) is True
    assert local.calls == [("materials", reference)]
    assert cdn.keys == []


@pytest.mark.parametrize(
    "reference, key",
    [
        ("materials/1-a.pdf", "materials/1-a.pdf"),
        ("https://cdn.example.com/materials/1-a.pdf", "materials/1-a.pdf"),
        ("https://courseflow-test.s3.us-east-1.amazonaws.com/images/2-b.png", "images/2-b.png"),
    ],
)
def test_delete_routes_everything_else_to_the_cdn(cdn_settings, reference, key):
    local, cdn = _RecordingLocal(), _RecordingCDN()
    router = StorageRouter(local=local, cdn=cdn)

    assert router.delete("materials", reference) is True
    assert cdn.keys == [key]
    assert local.calls == []


@pytest.mark.parametrize(
    "reference",
    [
        "https://other.example.net/images/2-b.png",
        "https://video.example/materials/1700000000000-other-tutor.mp4",
        "https://cdn.example.com.evil.test/materials/1-a.pdf",
        "https://elsewhere.test/uploads/materials/1-a.pdf",
    ],
)
def test_delete_ignores_urls_outside_our_storage(cdn_settings, reference):
    local, cdn = _RecordingLocal(), _RecordingCDN()
    router = StorageRouter(local=local, cdn=cdn)

    assert router.delete("materials", reference) is False
    assert cdn.keys == []
    assert local.calls == []


def test_local_delete_uses_folder_from_reference(tmp_path):
    storage = LocalStorage(root=str(tmp_path), base_url="http://localhost:8000")
    reference = storage.save("images", "1-cover.png", io.BytesIO(b"png"))

    assert storage.delete("materials", reference) is True
    assert not (tmp_path / "images" / "1-cover.png").exists()


def test_local_delete_keeps_caller_folder_for_bare_names(tmp_path):
    storage = LocalStorage(root=str(tmp_path))
    storage.save("materials", "2-notes.pdf", io.BytesIO(b"pdf"))

    assert storage.delete("materials", "2-notes.pdf") is True
    assert storage.delete("materials", "..") is False


def test_delete_never_raises():
    router = StorageRouter(local=_RecordingLocal(), cdn=_RecordingCDN(error=StorageUnavailable("down")))
    assert router.delete("materials", "materials/1-a.pdf") is False
    assert router.delete("materials", None) is False
    assert router.delete("materials", "") is False


def test_resolve_url(cdn_settings):
    router = StorageRouter()
    assert router.resolve_url("materials/1-a.pdf") == "https://cdn.example.com/materials/1-a.pdf"
    assert router.resolve_url("http://x.test/uploads/a.pdf") == "http://x.test/uploads/a.pdf"
    assert router.resolve_url("uploads/materials/a.pdf") == "http://testserver/uploads/materials/a.pdf"
    assert router.resolve_url(None) is None
