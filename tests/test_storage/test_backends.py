"""
Tests for storage backends.
"""

import pytest

from app.core.exceptions import StorageException
from app.storage.base import get_extension
from app.storage.local import LocalStorageBackend

PNG = b"\x89PNG\r\n\x1a\n fake image body"


class TestLocalStorageBackend:
    """Tests for local filesystem storage."""

    @pytest.fixture
    def storage(self, tmp_path) -> LocalStorageBackend:
        return LocalStorageBackend(base_path=str(tmp_path))

    @pytest.mark.asyncio
    async def test_upload_returns_path(self, storage: LocalStorageBackend):
        path = "codes/asset_1_qrcode.png"

        result = await storage.upload_bytes(PNG, path, "image/png")

        assert result == path
        assert await storage.exists(path)

    @pytest.mark.asyncio
    async def test_download_streaming(self, storage: LocalStorageBackend):
        path = "codes/asset_1_barcode.png"
        await storage.upload_bytes(PNG, path, "image/png")

        chunks = []
        async for chunk in storage.download(path):
            chunks.append(chunk)

        assert b"".join(chunks) == PNG

    @pytest.mark.asyncio
    async def test_download_missing(self, storage: LocalStorageBackend):
        with pytest.raises(StorageException):
            async for _ in storage.download("codes/missing.png"):
                pass

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, storage: LocalStorageBackend, tmp_path):
        path = "assets/3/camera/12/photo.png"
        assert not await storage.exists(path)

        await storage.upload_bytes(PNG, path, "image/png")
        assert await storage.exists(path)

        assert await storage.delete(path) is True
        assert not await storage.exists(path)
        # Empty parent directories are pruned
        assert not (tmp_path / "assets").exists()

    @pytest.mark.asyncio
    async def test_delete_nonexistent(self, storage: LocalStorageBackend):
        assert await storage.delete("nonexistent/file.png") is False

    def test_get_url(self, storage: LocalStorageBackend):
        assert storage.get_url("codes/a.png") == "/storage/codes/a.png"

    @pytest.mark.asyncio
    async def test_path_escape_rejected(self, storage: LocalStorageBackend):
        with pytest.raises(StorageException):
            await storage.upload_bytes(PNG, "../outside.png", "image/png")


def test_extensions():
    assert get_extension("image/png") == "png"
    assert get_extension("IMAGE/JPEG") == "jpg"
    assert get_extension("image/webp") == "webp"
    assert get_extension("application/pdf") == "bin"
