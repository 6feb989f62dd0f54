"""
NoteKeeper Backend: Cloudinary Storage Gateway
===============================================

What:  ObjectStorageGateway backed by Cloudinary.
How:   The Cloudinary SDK is synchronous, so each call runs in a worker thread
       (asyncio.to_thread) and the base class bounds it with a timeout.
       URL = secure_url, handle = public_id.
When:  STORAGE_BACKEND=cloudinary.

Delete semantics:
    destroy() answers {"result": "ok"} on success and {"result": "not found"}
    (or similar) otherwise. Anything but "ok" is reported as a failure so it
    shows up in the logs as a possibly orphaned object.
"""

import asyncio
import io
import logging
from typing import Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader

from notekeeper.services.storage_base import ObjectStorageGateway, UploadSuccess

logger = logging.getLogger(__name__)


class CloudinaryStorageGateway(ObjectStorageGateway):
    """Uploads images to Cloudinary and deletes them by public_id."""

    name = "cloudinary"

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout_seconds: float,
    ):
        super().__init__(timeout_seconds=timeout_seconds)
        # The SDK keeps its credentials in module-level state
        cloudinary.config(
            cloud_name=cloud_name,
            api_key=api_key,
            api_secret=api_secret,
            secure=True,
        )
        logger.info("CloudinaryStorageGateway initialized for cloud=%s", cloud_name)

    async def _upload(
        self,
        content: bytes,
        folder: str,
        content_type: Optional[str],
    ) -> UploadSuccess:
        result = await asyncio.to_thread(
            cloudinary.uploader.upload,
            io.BytesIO(content),
            folder=folder,
            resource_type="image",
            quality="auto:good",
            fetch_format="auto",
        )
        logger.info(
            "Cloudinary upload stored %s (%d bytes)", result.get("public_id"), len(content),
        )
        return UploadSuccess(
            url=result.get("secure_url") or "",
            handle=result.get("public_id") or "",
        )

    async def _delete(self, handle: str) -> None:
        result = await asyncio.to_thread(cloudinary.uploader.destroy, handle)
        outcome = (result or {}).get("result")
        if outcome != "ok":
            raise RuntimeError(f"Cloudinary destroy returned {outcome!r}")
        logger.info("Cloudinary object deleted: %s", handle)

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(cloudinary.api.ping)
            return True
        except Exception as e:
            logger.warning("Cloudinary health check failed: %s", str(e))
            return False
