"""
NoteKeeper Backend: Stored File Route
======================================

What:  Serves images written by the local storage backend.
How:   Resolves the path through LocalStorageGateway.resolve(), which rejects
       anything outside the storage root, and streams it with FileResponse.
When:  Only meaningful with STORAGE_BACKEND=local; Cloudinary images are
       served by Cloudinary itself.

Image URLs are unguessable (uuid file names) and are served without a
bearer token so they work in <img> tags.
"""

import logging
import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from notekeeper.dependencies import get_storage_gateway
from notekeeper.exceptions import NotFoundError, ValidationError
from notekeeper.services.local_storage import LocalStorageGateway
from notekeeper.services.storage_base import ObjectStorageGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])


@router.get(
    "/{file_path:path}",
    summary="Serve a locally stored image",
    responses={200: {"description": "Image file"}, 404: {"description": "File not found"}},
)
async def serve_file(
    file_path: str,
    storage: ObjectStorageGateway = Depends(get_storage_gateway),
) -> FileResponse:
    if not isinstance(storage, LocalStorageGateway):
        raise NotFoundError(resource="file", resource_id=file_path)

    try:
        full_path = storage.resolve(file_path)
    except ValueError:
        logger.warning("Rejected file path outside storage root: %s", file_path)
        raise ValidationError(message="Invalid file path", field="file_path")

    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    media_type, _ = mimetypes.guess_type(full_path.name)
    return FileResponse(
        path=str(full_path),
        media_type=media_type or "application/octet-stream",
        headers={
            "Cache-Control": "public, max-age=86400",
            # Opened directly, a stored file may not run script or be re-sniffed
            "Content-Security-Policy": "default-src 'none'; sandbox",
            "X-Content-Type-Options": "nosniff",
        },
    )
