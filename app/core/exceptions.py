"""
Custom exceptions for the asset tag engine.
"""

from typing import Any


class AssetTagEngineException(Exception):
    """Base exception for all engine errors."""

    def __init__(
        self,
        error: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        self.error = error
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response dictionary."""
        response = {
            "error": self.error,
            "message": self.message,
        }
        if self.details:
            response["details"] = self.details
        return response


class ValidationException(AssetTagEngineException):
    """400 - Malformed request (invalid JSON, missing parameters)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            error="validation_failed",
            message=message,
            status_code=400,
            details=details,
        )


class AssetNotFoundException(AssetTagEngineException):
    """404 - Asset not found."""

    def __init__(self, asset_id: int | str):
        super().__init__(
            error="not_found",
            message=f"Asset '{asset_id}' not found",
            status_code=404,
        )


class FormNotFoundException(AssetTagEngineException):
    """404 - Form definition not found."""

    def __init__(self, form_id: int | str):
        super().__init__(
            error="not_found",
            message=f"Form '{form_id}' not found",
            status_code=404,
        )


class GenerationError(AssetTagEngineException):
    """
    422 - Identifier could not be generated from the form configuration.

    Raised for user/config faults: a required segment has no value,
    the configured segments render nothing, a required asset class cannot
    be resolved, or the category and class disagree.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            error="tag_generation_failed",
            message=message,
            status_code=422,
            details=details,
        )


class TagConflictError(AssetTagEngineException):
    """409 - Unique identifier still collides after the retry budget."""

    def __init__(self, asset_tag: str | None, attempts: int):
        super().__init__(
            error="tag_conflict",
            message=f"Could not allocate a unique asset tag after {attempts} attempts",
            status_code=409,
            details={"assetTag": asset_tag, "attempts": attempts},
        )
        self.asset_tag = asset_tag
        self.attempts = attempts


class StorageException(AssetTagEngineException):
    """500 - Storage backend error."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            error="storage_error",
            message=message,
            status_code=500,
            details=details,
        )


class ImageUploadException(AssetTagEngineException):
    """502 - Camera image upload failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            error="image_upload_failed",
            message=message,
            status_code=502,
            details=details,
        )


class CodeNotFoundException(AssetTagEngineException):
    """404 - Requested code image was never generated."""

    def __init__(self, asset_id: int, kind: str):
        super().__init__(
            error="not_found",
            message=f"No {kind} image for asset '{asset_id}'",
            status_code=404,
        )
