"""
Storage abstraction for generated code images and camera uploads.
"""

from app.storage.base import IMAGE_MIME_TYPES, StorageBackend, get_extension
from app.storage.local import LocalStorageBackend
from app.storage.factory import get_storage_backend, get_storage

__all__ = [
    "StorageBackend",
    "LocalStorageBackend",
    "get_storage_backend",
    "get_storage",
    "get_extension",
    "IMAGE_MIME_TYPES",
]
