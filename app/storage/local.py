"""
Local filesystem storage backend.
Stores generated codes and uploaded images under a base directory.
"""

from pathlib import Path
from typing import AsyncGenerator

import aiofiles
import aiofiles.os

from app.config import get_settings
from app.core.exceptions import StorageException
from app.storage.base import StorageBackend


class LocalStorageBackend(StorageBackend):
    """
    Local filesystem storage implementation.

    Files are stored under the configured LOCAL_STORAGE_PATH directory.
    """

    def __init__(self, base_path: str | None = None):
        self.base_path = Path(base_path or get_settings().LOCAL_STORAGE_PATH)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, path: str) -> Path:
        """Resolve a storage path, refusing anything outside the base directory."""
        full_path = (self.base_path / path).resolve()
        if not full_path.is_relative_to(self.base_path.resolve()):
            raise StorageException(
                message="Path escapes the storage directory",
                details={"path": path},
            )
        return full_path

    async def upload_bytes(self, data: bytes, path: str, content_type: str) -> str:
        """Upload raw bytes to storage."""
        full_path = self._get_full_path(path)

        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(full_path, "wb") as f:
                await f.write(data)

            return path

        except OSError as e:
            raise StorageException(
                message=f"Failed to upload bytes: {str(e)}",
                details={"path": path},
            )

    async def download(self, path: str) -> AsyncGenerator[bytes, None]:
        """Stream download a file in chunks."""
        full_path = self._get_full_path(path)

        if not full_path.exists():
            raise StorageException(
                message=f"File not found: {path}",
                details={"path": path},
            )

        try:
            async with aiofiles.open(full_path, "rb") as f:
                while chunk := await f.read(1024 * 1024):  # 1MB chunks
                    yield chunk

        except OSError as e:
            raise StorageException(
                message=f"Failed to download file: {str(e)}",
                details={"path": path},
            )

    async def delete(self, path: str) -> bool:
        """Delete a file from storage."""
        full_path = self._get_full_path(path)

        if not full_path.exists():
            return False

        try:
            await aiofiles.os.remove(full_path)

            # Prune empty parent directories
            parent = full_path.parent
            base = self.base_path.resolve()
            while parent != base:
                try:
                    parent.rmdir()
                    parent = parent.parent
                except OSError:
                    break

            return True

        except OSError as e:
            raise StorageException(
                message=f"Failed to delete file: {str(e)}",
                details={"path": path},
            )

    async def exists(self, path: str) -> bool:
        return self._get_full_path(path).exists()

    def get_url(self, path: str) -> str:
        return f"/storage/{path}"
