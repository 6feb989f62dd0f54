"""
NoteKeeper Backend: Local Filesystem Storage Gateway
=====================================================

What:  ObjectStorageGateway that keeps images on the local disk.
How:   Writes under <storage_root>/<folder>/YYYY/MM/DD/<uuid><ext> with async
       file I/O; the relative path is the deletion handle and
       <storage_public_url>/<relative path> is the URL served by
       GET /api/files/{path}.
When:  STORAGE_BACKEND=local (the default) for development and tests.

Directory Structure:
    storage/
    └── notes/
        └── 2024/
            └── 01/
                └── 15/
                    ├── a1b2c3d4-....jpg
                    └── e5f6g7h8-....png
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from notekeeper.services.storage_base import ObjectStorageGateway, UploadSuccess

logger = logging.getLogger(__name__)

# Declared content type → stored file extension
EXTENSIONS_BY_MIME = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "image/bmp": ".bmp",
    "image/svg+xml": ".svg",
    "image/heic": ".heic",
}


class LocalStorageGateway(ObjectStorageGateway):
    """
    Stores objects as files below a root directory.

    Handles are relative POSIX paths; they are resolved against the root
    and rejected if they escape it.
    """

    name = "local"

    def __init__(self, storage_root: str, public_url: str, timeout_seconds: float):
        super().__init__(timeout_seconds=timeout_seconds)
        self.storage_root = Path(storage_root).resolve()
        self.public_url = public_url.rstrip("/")
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalStorageGateway initialized with storage_root=%s", self.storage_root)

    def _generate_storage_path(self, folder: str, extension: str) -> Tuple[Path, str]:
        """
        Build <folder>/YYYY/MM/DD/<uuid><ext>.

        Returns: (absolute_path, relative_path_from_storage_root)
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"
        folder = folder.strip("/")
        relative_path = f"{folder}/{date_dir}/{unique_name}" if folder else f"{date_dir}/{unique_name}"
        return self.storage_root / relative_path, relative_path

    def resolve(self, handle: str) -> Path:
        """
        Map a handle to an absolute path inside the storage root.

        Raises:
            ValueError if the handle points outside the root (path traversal).
        """
        path = (self.storage_root / handle).resolve()
        if path != self.storage_root and self.storage_root not in path.parents:
            raise ValueError(f"Handle escapes storage root: {handle}")
        return path

    async def _upload(
        self,
        content: bytes,
        folder: str,
        content_type: Optional[str],
    ) -> UploadSuccess:
        extension = EXTENSIONS_BY_MIME.get((content_type or "").lower(), ".bin")
        absolute_path, relative_path = self._generate_storage_path(folder, extension)

        absolute_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(absolute_path, "wb") as f:
            await f.write(content)

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return UploadSuccess(url=f"{self.public_url}/{relative_path}", handle=relative_path)

    async def _delete(self, handle: str) -> None:
        path = self.resolve(handle)
        if not path.exists():
            raise FileNotFoundError(f"No stored object for handle {handle}")
        os.remove(path)
        logger.info("File deleted: %s", handle)

    async def health_check(self) -> bool:
        return self.storage_root.is_dir() and os.access(self.storage_root, os.W_OK)
