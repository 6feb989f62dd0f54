"""
NoteKeeper Backend: Object Storage Gateway Interface
=====================================================

What:  Abstract contract for hosting note images outside the database.
How:   Concrete gateways implement `_upload()` / `_delete()` and may raise
       anything. The public `upload()` / `delete()` wrap them with a timeout
       and turn every failure into a StorageFailure value, so callers branch
       on an explicit result instead of catching exceptions.
Who:   NoteService is the only caller.

Implementations:
    - LocalStorageGateway:      files on disk via aiofiles (development, tests)
    - CloudinaryStorageGateway: Cloudinary upload/destroy (production)

Result types:
    upload(...)  → UploadSuccess(url, handle) | StorageFailure(reason)
    delete(...)  → DeleteSuccess(handle)      | StorageFailure(reason)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadSuccess:
    """Both values are required before an attachment may be persisted."""
    url: str
    handle: str


@dataclass(frozen=True)
class DeleteSuccess:
    handle: str


@dataclass(frozen=True)
class StorageFailure:
    """A failed or timed-out gateway call."""
    reason: str
    handle: Optional[str] = None


UploadResult = Union[UploadSuccess, StorageFailure]
DeleteResult = Union[DeleteSuccess, StorageFailure]


class ObjectStorageGateway(ABC):
    """
    Abstract interface for external binary-object hosting.

    Contract:
        - upload() stores bytes under a folder and returns a durable URL
          plus an opaque deletion handle
        - delete() removes an object by its handle
        - neither method raises: failures (including timeouts) come back
          as StorageFailure
        - no retries: every call is one-shot
    """

    #: Reported by the health endpoint
    name: str = "storage"

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds

    async def upload(
        self,
        content: bytes,
        folder: str,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        """
        Upload one object.

        Args:
            content:      Raw image bytes (already validated by FileService)
            folder:       Logical folder / prefix, e.g. "notes"
            content_type: Declared MIME type, used to pick a file extension

        Returns:
            UploadSuccess, or StorageFailure when the backend errored, returned
            an incomplete record, or exceeded `timeout_seconds`.
        """
        try:
            result = await asyncio.wait_for(
                self._upload(content, folder, content_type),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "%s upload timed out after %.1fs (%d bytes)",
                self.name, self.timeout_seconds, len(content),
            )
            return StorageFailure(reason=f"upload timed out after {self.timeout_seconds}s")
        except Exception as e:
            logger.warning("%s upload failed: %s", self.name, str(e))
            return StorageFailure(reason=str(e) or type(e).__name__)

        if not result.url or not result.handle:
            logger.warning("%s upload returned an incomplete record: %r", self.name, result)
            return StorageFailure(reason="storage returned an incomplete record")
        return result

    async def delete(self, handle: str) -> DeleteResult:
        """
        Delete one object by its handle.

        Returns:
            DeleteSuccess, or StorageFailure (error, rejection or timeout).
        """
        try:
            await asyncio.wait_for(self._delete(handle), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "%s delete timed out after %.1fs: %s", self.name, self.timeout_seconds, handle,
            )
            return StorageFailure(
                reason=f"delete timed out after {self.timeout_seconds}s", handle=handle,
            )
        except Exception as e:
            logger.warning("%s delete failed for %s: %s", self.name, handle, str(e))
            return StorageFailure(reason=str(e) or type(e).__name__, handle=handle)
        return DeleteSuccess(handle=handle)

    @abstractmethod
    async def _upload(
        self,
        content: bytes,
        folder: str,
        content_type: Optional[str],
    ) -> UploadSuccess:
        """Backend-specific upload. May raise; must not swallow errors."""
        ...

    @abstractmethod
    async def _delete(self, handle: str) -> None:
        """Backend-specific delete. Raises when the object was not removed."""
        ...

    async def health_check(self) -> bool:
        """Lightweight reachability probe used by GET /health."""
        return True
