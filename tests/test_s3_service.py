import io
import threading

import pytest
from botocore.exceptions import ClientError

from courseflow.core.config import settings
from courseflow.core.exceptions import StorageUnavailable, UploadCancelled
from courseflow.services.s3_service import S3Service


class FakeS3Client:
    def __init__(self, fail_on_part=None, missing=False):
        self.calls = []
        self.fail_on_part = fail_on_part
        self.missing = missing

    def create_multipart_upload(self, **kwargs):
        self.calls.append(("create", kwargs["Key"]))
        return {"UploadId": "upload-1"}

    def upload_part(self, **kwargs):
        if kwargs["PartNumber"] == self.fail_on_part:
            raise ClientError({"Error": {"Code": "500", "Message": "boom"}}, "UploadPart")
        self.calls.append(("part", kwargs["PartNumber"], len(kwargs["Body"])))
        return {"ETag": f"etag-{kwargs['PartNumber']}"}

    def complete_multipart_upload(self, **kwargs):
        self.calls.append(("complete", [p["PartNumber"] for p in kwargs["MultipartUpload"]["Parts"]]))

    def abort_multipart_upload(self, **kwargs):
        self.calls.append(("abort", kwargs["UploadId"]))

    def head_object(self, **kwargs):
        if self.missing:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {}

    def delete_object(self, **kwargs):
        self.calls.append(("delete", kwargs["Key"]))


@pytest.fixture
def s3(monkeypatch):
    monkeypatch.setattr(settings, "S3_BUCKET_NAME", "courseflow-test")
    monkeypatch.setattr(settings, "CHUNK_SIZE", "4KB")
    return S3Service()


def _use(monkeypatch, service, client):
    monkeypatch.setattr(service, "get_client", lambda: client)
    return client


def test_multipart_upload_in_chunks_reports_progress(monkeypatch, s3):
    client = _use(monkeypatch, s3, FakeS3Client())
    progress = []

    key = s3.upload_multipart(
        "materials/1-video.mp4", io.BytesIO(b"x" * 10240), 10240,
        progress_callback=lambda done, total: progress.append((done, total)),
    )

    assert key == "materials/1-video.mp4"
    assert [c for c in client.calls if c[0] == "part"] == [("part", 1, 4096), ("part", 2, 4096), ("part", 3, 2048)]
    assert client.calls[-1] == ("complete", [1, 2, 3])
    assert progress == [(4096, 10240), (8192, 10240), (10240, 10240)]


def test_multipart_failure_aborts_upload(monkeypatch, s3):
    client = _use(monkeypatch, s3, FakeS3Client(fail_on_part=2))

    with pytest.raises(StorageUnavailable):
        s3.upload_multipart("materials/1-video.mp4", io.BytesIO(b"x" * 10240), 10240)

    assert client.calls[-1] == ("abort", "upload-1")
    assert not any(c[0] == "complete" for c in client.calls)


def test_cancelled_multipart_aborts_upload(monkeypatch, s3):
    client = _use(monkeypatch, s3, FakeS3Client())
    cancel_event = threading.Event()

    def cancel_after_first_part(done, total):
        cancel_event.set()

    with pytest.raises(UploadCancelled):
        s3.upload_multipart(
            "materials/1-video.mp4", io.BytesIO(b"x" * 10240), 10240,
            progress_callback=cancel_after_first_part, cancel_event=cancel_event,
        )

    assert [c[0] for c in client.calls] == ["create", "part", "abort"]


def test_delete_missing_object_returns_false(monkeypatch, s3):
    client = _use(monkeypatch, s3, FakeS3Client(missing=True))
    assert s3.delete_object("materials/gone.pdf") is False
    assert client.calls == []


def test_delete_existing_object(monkeypatch, s3):
    client = _use(monkeypatch, s3, FakeS3Client())
    assert s3.delete_object("materials/1-a.pdf") is True
    assert client.calls == [("delete", "materials/1-a.pdf")]


def test_public_url_prefers_cdn_base(monkeypatch, s3):
    monkeypatch.setattr(settings, "CDN_PUBLIC_BASE_URL", "https://cdn.example.com/")
    assert s3.public_url("images/1-a.png") == "https://cdn.example.com/images/1-a.png"
    monkeypatch.setattr(settings, "CDN_PUBLIC_BASE_URL", None)
    monkeypatch.setattr(settings, "S3_ENDPOINT_URL", None)
    assert s3.public_url("images/1-a.png") == (
        f"https://courseflow-test.s3.{settings.AWS_REGION}.amazonaws.com/images/1-a.png"
    )


def test_client_requires_credentials(s3):
    with pytest.raises(StorageUnavailable):
        s3.get_client()
