"""Core utilities and exceptions for the asset tag engine."""

from app.core.exceptions import (
    AssetTagEngineException,
    AssetNotFoundException,
    CodeNotFoundException,
    FormNotFoundException,
    GenerationError,
    ImageUploadException,
    StorageException,
    TagConflictError,
    ValidationException,
)

__all__ = [
    "AssetTagEngineException",
    "AssetNotFoundException",
    "CodeNotFoundException",
    "FormNotFoundException",
    "GenerationError",
    "ImageUploadException",
    "StorageException",
    "TagConflictError",
    "ValidationException",
]
