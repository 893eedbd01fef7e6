import os
import logging
import threading
from pathlib import Path
from typing import BinaryIO, Optional

from courseflow.core.config import settings
from courseflow.core.constants import MIB, StorageFolderEnum
from courseflow.core.exceptions import UploadCancelled

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1 * MIB


class LocalStorage:
    """Stores uploads on the local disk under `<UPLOAD_DIR>/<folder>/`."""

    FOLDERS = frozenset(f.value for f in StorageFolderEnum)

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self._root = root
        self._base_url = base_url

    @property
    def root(self) -> Path:
        return Path(self._root or settings.UPLOAD_DIR)

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.LOCAL_BASE_URL).rstrip("/")

    def folder_path(self, folder: str) -> Path:
        path = self.root / folder
        path.mkdir(parents=True, exist_ok=True)
        return path

    def public_url(self, folder: str, object_name: str) -> str:
        return f"{self.base_url}/uploads/{folder}/{object_name}"

    def save(
        self,
        folder: str,
        object_name: str,
        fileobj: BinaryIO,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        target = self.folder_path(folder) / object_name
        partial = target.with_name(target.name + ".part")
        written = 0
        try:
            with open(partial, "wb") as out:
                while True:
                    if cancel_event is not None and cancel_event.is_set():
                        raise UploadCancelled(f"Upload of {object_name} cancelled after {written} bytes")
                    chunk = fileobj.read(COPY_CHUNK_SIZE)
                    if not chunk:
                        break
                    out.write(chunk)
                    written += len(chunk)
            os.replace(partial, target)
        except BaseException:
            partial.unlink(missing_ok=True)
            raise

        logger.info(f"Stored {written} bytes locally at {target}")
        return self.public_url(folder, object_name)

    def _locate(self, folder: str, reference: str) -> Optional[Path]:
        path = reference.split("://", 1)[-1]
        parts = [p for p in path.split("/") if p]
        name = parts[-1] if parts else ""
        if not name or name in (".", ".."):
            return None
        # the folder in `.../uploads/<folder>/<name>` wins over the caller's guess
        if "uploads" in parts:
            index = len(parts) - 1 - parts[::-1].index("uploads")
            if len(parts) - index == 3 and parts[index + 1] in self.FOLDERS:
                folder = parts[index + 1]
        return self.root / folder / name

    def delete(self, folder: str, reference: str) -> bool:
        path = self._locate(folder, reference.rstrip("/"))
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning(f"Local file not found for deletion: {path}")
            return False
        logger.info(f"Deleted local file {path}")
        return True


local_storage = LocalStorage()
