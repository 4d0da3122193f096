"""
Abstract storage backend interface.
Defines the contract for where generated codes and camera images are kept.
"""

from abc import ABC, abstractmethod
from typing import AsyncGenerator


class StorageBackend(ABC):
    """
    Abstract base class for storage backends.

    Paths are relative storage keys such as ``codes/asset_12_qrcode.png``.
    """

    @abstractmethod
    async def upload_bytes(self, data: bytes, path: str, content_type: str) -> str:
        """
        Upload raw bytes to storage.

        Args:
            data: Raw file bytes
            path: Destination path in storage
            content_type: MIME type of the content

        Returns:
            The storage path where the file was saved

        Raises:
            StorageException: If upload fails
        """
        pass

    @abstractmethod
    async def download(self, path: str) -> AsyncGenerator[bytes, None]:
        """
        Stream download a file from storage.

        Raises:
            StorageException: If file not found or download fails
        """
        pass

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """
        Delete a file from storage.

        Returns:
            True if deleted successfully, False if file didn't exist
        """
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def get_url(self, path: str) -> str:
        """URL or path a client can use to fetch the file."""
        pass


IMAGE_MIME_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
}


def get_extension(mime_type: str) -> str:
    """Preferred file extension for an image MIME type."""
    for extension, mime in IMAGE_MIME_TYPES.items():
        if mime == mime_type.lower():
            return extension
    return "bin"
