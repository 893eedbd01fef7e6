import logging
import mimetypes
import threading
from typing import BinaryIO, Callable, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from courseflow.core.config import settings
from courseflow.core.exceptions import StorageUnavailable, UploadCancelled

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

def parse_size_to_bytes(size_str: str) -> int:
    size_str = size_str.strip().upper()
    for suffix, factor in (("TB", 1024 ** 4), ("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
        if size_str.endswith(suffix):
            return int(float(size_str[:-2]) * factor)
    return int(size_str)


class S3Service:
    """Remote object store behind the CDN. Keys are `folder/name` references."""

    def __init__(self):
        self._client = None
        self._client_key = None

    @property
    def bucket_name(self) -> Optional[str]:
        return settings.S3_BUCKET_NAME

    @property
    def chunk_size(self) -> int:
        return parse_size_to_bytes(settings.CHUNK_SIZE)

    def is_configured(self) -> bool:
        return bool(settings.S3_BUCKET_NAME and settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY)

    def get_client(self):
        if not self.is_configured():
            raise StorageUnavailable("CDN storage credentials are not configured")

        key = (
            settings.AWS_REGION,
            settings.AWS_ACCESS_KEY_ID,
            settings.AWS_SECRET_ACCESS_KEY,
            settings.S3_ENDPOINT_URL,
        )
        if self._client is None or self._client_key != key:
            self._client = boto3.client(
                "s3",
                region_name=settings.AWS_REGION,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
                endpoint_url=settings.S3_ENDPOINT_URL or None,
                config=Config(
                    connect_timeout=30,
                    read_timeout=settings.UPLOAD_TIMEOUT_SECONDS,
                    retries={"max_attempts": 1, "mode": "standard"},
                ),
            )
            self._client_key = key
        return self._client

    def public_url(self, key: str) -> str:
        if settings.CDN_PUBLIC_BASE_URL:
            return f"{settings.CDN_PUBLIC_BASE_URL.rstrip('/')}/{key}"
        if settings.S3_ENDPOINT_URL:
            return f"{settings.S3_ENDPOINT_URL.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{settings.AWS_REGION}.amazonaws.com/{key}"

    def put_object(self, key: str, fileobj: BinaryIO, content_type: Optional[str] = None) -> str:
        client = self.get_client()
        content_type = content_type or mimetypes.guess_type(key)[0] or "application/octet-stream"
        try:
            client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=fileobj.read(),
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailable(f"Failed to upload {key}: {e}") from e
        logger.info(f"Uploaded {key} with a single PUT")
        return key

    def upload_multipart(
        self,
        key: str,
        fileobj: BinaryIO,
        total_size: int,
        content_type: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        client = self.get_client()
        content_type = content_type or mimetypes.guess_type(key)[0] or "application/octet-stream"
        multipart_upload = None
        try:
            multipart_upload = client.create_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                ContentType=content_type,
            )
            upload_id = multipart_upload["UploadId"]

            parts = []
            part_number = 1
            bytes_uploaded = 0
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise UploadCancelled(f"Upload of {key} cancelled after {bytes_uploaded} bytes")
                chunk = fileobj.read(self.chunk_size)
                if not chunk:
                    break

                part_upload = client.upload_part(
                    Bucket=self.bucket_name,
                    Key=key,
                    PartNumber=part_number,
                    UploadId=upload_id,
                    Body=chunk,
                )
                parts.append({"ETag": part_upload["ETag"], "PartNumber": part_number})

                bytes_uploaded += len(chunk)
                if progress_callback:
                    progress_callback(bytes_uploaded, total_size)
                part_number += 1

            client.complete_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={"Parts": parts},
            )
        except (ClientError, BotoCoreError, UploadCancelled) as e:
            if multipart_upload:
                self._abort(key, multipart_upload["UploadId"])
            if isinstance(e, UploadCancelled):
                raise
            raise StorageUnavailable(f"Failed to stream {key}: {e}") from e

        logger.info(f"Uploaded {key} in {len(parts)} parts ({bytes_uploaded} bytes)")
        return key

    def _abort(self, key: str, upload_id: str):
        try:
            self.get_client().abort_multipart_upload(
                Bucket=self.bucket_name,
                Key=key,
                UploadId=upload_id,
            )
            logger.info(f"Aborted multipart upload for {key}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to abort multipart upload for {key}: {e}")

    def delete_object(self, key: str) -> bool:
        client = self.get_client()
        try:
            client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                logger.warning(f"CDN object not found for deletion: {key}")
                return False
            raise StorageUnavailable(f"Failed to look up {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageUnavailable(f"Failed to look up {key}: {e}") from e

        try:
            client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailable(f"Failed to delete {key}: {e}") from e
        logger.info(f"Deleted CDN object {key}")
        return True


s3_service = S3Service()
