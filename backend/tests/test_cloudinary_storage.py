"""
NoteKeeper Backend: Cloudinary Storage Gateway Tests
=====================================================

What:  CloudinaryStorageGateway with the SDK patched out (no network).
"""

from unittest.mock import patch

import pytest

from notekeeper.services.cloudinary_storage import CloudinaryStorageGateway
from notekeeper.services.storage_base import DeleteSuccess, StorageFailure, UploadSuccess

MODULE = "notekeeper.services.cloudinary_storage"


@pytest.fixture
def gateway():
    with patch(f"{MODULE}.cloudinary.config"):
        yield CloudinaryStorageGateway(
            cloud_name="demo", api_key="key", api_secret="secret", timeout_seconds=5.0,
        )


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_maps_secure_url_and_public_id(self, gateway, sample_image_bytes):
        with patch(f"{MODULE}.cloudinary.uploader.upload") as upload:
            upload.return_value = {
                "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/notes/abc.jpg",
                "public_id": "notes/abc",
            }

            result = await gateway.upload(sample_image_bytes, "notes", "image/jpeg")

        assert result == UploadSuccess(
            url="https://res.cloudinary.com/demo/image/upload/v1/notes/abc.jpg",
            handle="notes/abc",
        )
        _, kwargs = upload.call_args
        assert kwargs["folder"] == "notes"
        assert kwargs["resource_type"] == "image"

    @pytest.mark.asyncio
    async def test_sdk_error_is_failure(self, gateway, sample_image_bytes):
        with patch(f"{MODULE}.cloudinary.uploader.upload", side_effect=Exception("Invalid API key")):
            result = await gateway.upload(sample_image_bytes, "notes", "image/jpeg")

        assert isinstance(result, StorageFailure)
        assert "Invalid API key" in result.reason

    @pytest.mark.asyncio
    async def test_missing_public_id_is_failure(self, gateway, sample_image_bytes):
        with patch(f"{MODULE}.cloudinary.uploader.upload", return_value={"secure_url": "https://x"}):
            result = await gateway.upload(sample_image_bytes, "notes", "image/jpeg")

        assert isinstance(result, StorageFailure)


class TestDelete:

    @pytest.mark.asyncio
    async def test_destroy_ok(self, gateway):
        with patch(f"{MODULE}.cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy:
            result = await gateway.delete("notes/abc")

        destroy.assert_called_once_with("notes/abc")
        assert result == DeleteSuccess(handle="notes/abc")

    @pytest.mark.asyncio
    async def test_destroy_not_found_is_failure(self, gateway):
        with patch(f"{MODULE}.cloudinary.uploader.destroy", return_value={"result": "not found"}):
            result = await gateway.delete("notes/abc")

        assert isinstance(result, StorageFailure)
        assert result.handle == "notes/abc"


class TestHealth:

    @pytest.mark.asyncio
    async def test_ping_failure_reports_unhealthy(self, gateway):
        with patch(f"{MODULE}.cloudinary.api.ping", side_effect=Exception("unreachable")):
            assert await gateway.health_check() is False

    @pytest.mark.asyncio
    async def test_ping_success(self, gateway):
        with patch(f"{MODULE}.cloudinary.api.ping", return_value={"status": "ok"}):
            assert await gateway.health_check() is True
