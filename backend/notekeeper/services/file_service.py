"""
NoteKeeper Backend: Upload Validation Service
==============================================

What:  Checks multipart image parts before they reach NoteService.
How:   Per request: number of parts. Per part: declared content type must be
       image/* (SVG excluded), content must be non-empty and within MAX_FILE_SIZE.
Who:   Called by the notes routes for create and update.

Validation order (cheapest first):
    1. Part count   - no reading needed
    2. Content type - header only
    3. Size         - Content-Length hint first, then actual byte count

Any violation raises ValidationError and the whole request is rejected;
nothing is uploaded and no note is written.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from notekeeper.config import settings
from notekeeper.exceptions import ValidationError

logger = logging.getLogger(__name__)

# image/* types a browser can execute script from when served inline
BLOCKED_IMAGE_TYPES = {"image/svg+xml"}


@dataclass(frozen=True)
class ImageUpload:
    """A validated image part, ready for the storage gateway."""
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class FileService:
    """Validates uploaded image parts against the configured limits."""

    def __init__(
        self,
        max_file_size: Optional[int] = None,
        max_files: Optional[int] = None,
    ):
        self.max_file_size = max_file_size or settings.max_file_size
        self.max_files = max_files or settings.max_files_per_request

    def validate_count(self, count: int) -> None:
        """
        Raises:
            ValidationError when more than `max_files` parts were sent.
        """
        if count > self.max_files:
            raise ValidationError(
                message=f"Too many images: at most {self.max_files} can be uploaded at once.",
                field="images",
                context={"max_files": self.max_files, "received": count},
            )

    def validate_content_type(self, content_type: Optional[str], filename: str) -> str:
        """
        What:    Only image/* parts are accepted, minus BLOCKED_IMAGE_TYPES.
        Returns: Normalized (lower-cased, parameters stripped) content type.
        """
        normalized = (content_type or "").split(";")[0].strip().lower()
        if not normalized.startswith("image/"):
            raise ValidationError(
                message=f"File '{filename}' is not an image. Only image uploads are allowed.",
                field="images",
                context={"filename": filename, "content_type": normalized or None},
            )
        if normalized in BLOCKED_IMAGE_TYPES:
            raise ValidationError(
                message=f"File '{filename}' has an unsupported image type ({normalized}).",
                field="images",
                context={"filename": filename, "content_type": normalized},
            )
        return normalized

    def validate_size(self, content_length: Optional[int], actual_size: int, filename: str) -> None:
        """
        Reject empty parts and parts larger than `max_file_size`.

        Args:
            content_length: Size reported by the client (may be None or wrong)
            actual_size:    Byte count actually received
        """
        max_mb = self.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message=f"File '{filename}' is empty.",
                field="images",
                context={"filename": filename},
            )

        if content_length and content_length > self.max_file_size:
            raise ValidationError(
                message=f"File '{filename}' exceeds the maximum size of {max_mb:.0f}MB.",
                field="images",
                context={"filename": filename, "max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > self.max_file_size:
            raise ValidationError(
                message=(
                    f"File '{filename}' ({actual_size / (1024 * 1024):.1f}MB) "
                    f"exceeds the maximum size of {max_mb:.0f}MB."
                ),
                field="images",
                context={"filename": filename, "max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_image(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> ImageUpload:
        """
        Complete per-part validation.

        Returns:
            ImageUpload carrying the normalized content type.
        """
        name = filename or "upload"
        normalized = self.validate_content_type(content_type, name)
        self.validate_size(content_length, len(content), name)
        logger.debug("Accepted image part %s (%s, %d bytes)", name, normalized, len(content))
        return ImageUpload(filename=name, content_type=normalized, content=content)


# Stateless apart from limits read from settings
file_service = FileService()
