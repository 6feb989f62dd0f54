"""
NoteKeeper Backend: Upload Validation Tests
============================================

What:  FileService checks on multipart image parts.

Test Strategy:
    ✅ image/* content types accepted, others rejected
    ✅ Size limits (boundary at max_file_size, empty parts)
    ✅ Client-reported size checked before the byte count
    ✅ Per-request part count
"""

import pytest

from notekeeper.exceptions import ValidationError
from notekeeper.services.file_service import FileService

MAX_SIZE = 1024


class TestContentType:

    def setup_method(self):
        self.service = FileService(max_file_size=MAX_SIZE, max_files=3)

    @pytest.mark.parametrize("content_type", ["image/png", "image/jpeg", "image/gif", "image/webp", "IMAGE/PNG"])
    def test_image_types_accepted(self, content_type):
        assert self.service.validate_content_type(content_type, "photo") == content_type.lower()

    def test_parameters_are_stripped(self):
        assert self.service.validate_content_type("image/png; charset=binary", "photo") == "image/png"

    @pytest.mark.parametrize("content_type", ["application/pdf", "text/plain", "", None, "video/mp4"])
    def test_non_image_types_rejected(self, content_type):
        with pytest.raises(ValidationError, match="not an image"):
            self.service.validate_content_type(content_type, "document")

    @pytest.mark.parametrize("content_type", ["image/svg+xml", "IMAGE/SVG+XML; charset=utf-8"])
    def test_svg_rejected(self, content_type):
        with pytest.raises(ValidationError, match="unsupported image type"):
            self.service.validate_content_type(content_type, "drawing.svg")


class TestSize:

    def setup_method(self):
        self.service = FileService(max_file_size=MAX_SIZE, max_files=3)

    def test_within_limit(self):
        self.service.validate_size(None, 100, "photo.png")

    def test_exactly_at_limit(self):
        """The limit itself is allowed."""
        self.service.validate_size(MAX_SIZE, MAX_SIZE, "photo.png")

    def test_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds the maximum size"):
            self.service.validate_size(None, MAX_SIZE + 1, "photo.png")

    def test_reported_size_over_limit(self):
        """A too-large Content-Length is rejected even if fewer bytes arrived."""
        with pytest.raises(ValidationError, match="exceeds the maximum size"):
            self.service.validate_size(MAX_SIZE * 2, 10, "photo.png")

    def test_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0, 0, "photo.png")


class TestValidateImage:

    def setup_method(self):
        self.service = FileService(max_file_size=MAX_SIZE, max_files=3)

    def test_returns_normalized_upload(self, sample_image_bytes):
        upload = self.service.validate_image("photo.jpg", "Image/JPEG", sample_image_bytes)

        assert upload.filename == "photo.jpg"
        assert upload.content_type == "image/jpeg"
        assert upload.content == sample_image_bytes
        assert upload.size == len(sample_image_bytes)

    def test_missing_filename_gets_placeholder(self, sample_image_bytes):
        assert self.service.validate_image(None, "image/jpeg", sample_image_bytes).filename == "upload"

    def test_error_names_the_field(self):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_image("notes.txt", "text/plain", b"hello")

        assert exc_info.value.field == "images"
        assert exc_info.value.context["filename"] == "notes.txt"


class TestCount:

    def test_limit_is_inclusive(self):
        FileService(max_file_size=MAX_SIZE, max_files=3).validate_count(3)

    def test_too_many_parts(self):
        with pytest.raises(ValidationError, match="Too many images"):
            FileService(max_file_size=MAX_SIZE, max_files=3).validate_count(4)

    def test_defaults_come_from_settings(self):
        from notekeeper.config import settings

        service = FileService()

        assert service.max_file_size == settings.max_file_size
        assert service.max_files == settings.max_files_per_request
