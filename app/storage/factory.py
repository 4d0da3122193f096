"""
Storage backend factory.
Provides configuration-driven backend selection.
"""

from functools import lru_cache

from app.config import get_settings
from app.storage.base import StorageBackend
from app.storage.local import LocalStorageBackend


@lru_cache
def get_storage_backend() -> StorageBackend:
    """
    Get the configured storage backend.

    Uses LRU cache to ensure only one instance is created.

    Raises:
        ValueError: If unknown storage backend is configured
    """
    backend = get_settings().STORAGE_BACKEND.lower()

    if backend == "local":
        return LocalStorageBackend()
    raise ValueError(f"Unknown storage backend: {backend}")


def get_storage() -> StorageBackend:
    """Dependency function for FastAPI."""
    return get_storage_backend()
