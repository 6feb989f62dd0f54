"""
NoteKeeper Backend: Storage Gateway Factory
============================================

Builds the ObjectStorageGateway selected by STORAGE_BACKEND.
"""

from notekeeper.config import Settings
from notekeeper.exceptions import DependencyError
from notekeeper.services.storage_base import ObjectStorageGateway


def build_storage_gateway(settings: Settings) -> ObjectStorageGateway:
    """
    Construct the configured gateway.

    Raises:
        DependencyError: Cloudinary was selected without complete credentials.
    """
    if settings.storage_backend == "cloudinary":
        if not (
            settings.cloudinary_cloud_name
            and settings.cloudinary_api_key
            and settings.cloudinary_api_secret
        ):
            raise DependencyError(
                message="Image storage is not configured.",
                dependency="cloudinary",
                context={"reason": "missing CLOUDINARY_* credentials"},
            )
        from notekeeper.services.cloudinary_storage import CloudinaryStorageGateway

        return CloudinaryStorageGateway(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            timeout_seconds=settings.storage_timeout_seconds,
        )

    from notekeeper.services.local_storage import LocalStorageGateway

    return LocalStorageGateway(
        storage_root=settings.storage_root,
        public_url=settings.storage_public_url,
        timeout_seconds=settings.storage_timeout_seconds,
    )
