import logging
import os
import re
import time
import threading
from dataclasses import dataclass
from typing import BinaryIO, Callable, List, Optional

from courseflow.core.config import settings
from courseflow.core.constants import StorageFolderEnum
from courseflow.core.exceptions import StorageError
from courseflow.services.local_storage import LocalStorage, local_storage
from courseflow.services.s3_service import S3Service, s3_service, parse_size_to_bytes

logger = logging.getLogger(__name__)

MODE_LOCAL = "local"
MODE_DIRECT = "direct"
MODE_STREAMING = "streaming"

_INVALID_CHARS = re.compile(r"[^a-zA-Z0-9.\-_]")
_HYPHEN_RUNS = re.compile(r"-+")


def sanitize_filename(filename: Optional[str]) -> str:
    name = os.path.basename(filename or "")
    name = _INVALID_CHARS.sub("-", name)
    name = _HYPHEN_RUNS.sub("-", name).strip("-")
    return name or "file"


def build_object_name(filename: Optional[str], now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}-{sanitize_filename(filename)}"


def validate_folder(folder: str) -> str:
    try:
        return StorageFolderEnum(folder).value
    except ValueError:
        allowed = ", ".join(f.value for f in StorageFolderEnum)
        raise ValueError(f"Unknown storage folder '{folder}'. Allowed: {allowed}")


@dataclass
class StoredObject:
    reference: str
    mode: str
    size: int
    filename: str


def _measure(fileobj: BinaryIO) -> int:
    current = fileobj.tell()
    fileobj.seek(0, os.SEEK_END)
    size = fileobj.tell()
    fileobj.seek(current)
    return size


class StorageRouter:
    def __init__(self, local: LocalStorage = local_storage, cdn: S3Service = s3_service):
        self.local = local
        self.cdn = cdn

    @property
    def streaming_threshold(self) -> int:
        return parse_size_to_bytes(settings.STREAMING_UPLOAD_THRESHOLD)

    def select_mode(self, size: int) -> str:
        if settings.USE_LOCAL_STORAGE:
            return MODE_LOCAL
        if size > self.streaming_threshold:
            return MODE_STREAMING
        return MODE_DIRECT

    def store(
        self,
        folder: str,
        filename: Optional[str],
        fileobj: BinaryIO,
        content_type: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> StoredObject:
        folder = validate_folder(folder)
        size = _measure(fileobj)
        object_name = build_object_name(filename)
        mode = self.select_mode(size)
        logger.info(f"Storing {filename!r} ({size} bytes) in {folder} via {mode}")

        if mode == MODE_LOCAL:
            reference = self.local.save(folder, object_name, fileobj, cancel_event=cancel_event)
        elif mode == MODE_STREAMING:
            reference = self.cdn.upload_multipart(
                f"{folder}/{object_name}",
                fileobj,
                size,
                content_type=content_type,
                progress_callback=progress_callback or self._log_progress(object_name),
                cancel_event=cancel_event,
            )
        else:
            reference = self.cdn.put_object(f"{folder}/{object_name}", fileobj, content_type=content_type)

        return StoredObject(reference=reference, mode=mode, size=size, filename=object_name)

    @staticmethod
    def _log_progress(object_name: str):
        def _callback(uploaded: int, total: int):
            percent = round(uploaded / total * 100, 2) if total else 100.0
            logger.debug(f"{object_name}: {uploaded}/{total} bytes ({percent}%)")
        return _callback

    def is_local_reference(self, reference: str) -> bool:
        return reference.startswith(("uploads/", f"{self.local.base_url}/uploads/"))

    def _cdn_prefixes(self) -> List[str]:
        prefixes = []
        if settings.CDN_PUBLIC_BASE_URL:
            prefixes.append(settings.CDN_PUBLIC_BASE_URL.rstrip("/") + "/")
        if settings.S3_BUCKET_NAME:
            prefixes.append(self.cdn.public_url(""))
        return prefixes

    def _cdn_key(self, reference: str) -> Optional[str]:
        """Bucket key for a reference, or None for URLs outside our bucket."""
        if not reference.startswith(("http://", "https://")):
            return reference.lstrip("/")
        for prefix in self._cdn_prefixes():
            if reference.startswith(prefix):
                return reference[len(prefix):].lstrip("/")
        return None

    def delete(self, folder: str, reference: Optional[str]) -> bool:
        """Best-effort removal. Returns False instead of raising on any failure."""
        if not reference:
            return False
        try:
            if self.is_local_reference(reference):
                return self.local.delete(folder, reference)
            key = self._cdn_key(reference)
            if key is None:
                logger.warning(f"Not deleting {reference}: not an object in our storage")
                return False
            return self.cdn.delete_object(key)
        except (StorageError, OSError) as e:
            logger.error(f"Failed to delete {reference} from {folder}: {e}")
            return False
        try:
            if self.is_local_reference(reference):
                return self.local.delete(folder, reference)
            return self.cdn.delete_object(self._cdn_key(reference))
        except (StorageError, OSError) as e:
            logger.error(f"Failed to delete {reference} from {folder}: {e}")
            return False

    def resolve_url(self, reference: Optional[str]) -> Optional[str]:
        if not reference:
            return None
        if reference.startswith(("http://", "https://")):
            return reference
        if reference.startswith("uploads/"):
            return f"{self.local.base_url}/{reference}"
        return self.cdn.public_url(reference.lstrip("/"))


storage_router = StorageRouter()
