"""
Pydantic schemas for error responses.
"""

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standard error response format.

    Examples:
        400: {"error": "validation_failed", "message": "..."}
        404: {"error": "not_found", "message": "Asset '12' not found"}
        409: {"error": "tag_conflict", "message": "...", "details": {"attempts": 3}}
        422: {"error": "tag_generation_failed", "message": "..."}
    """

    error: str = Field(
        ...,
        description="Error code string",
        examples=["tag_generation_failed", "tag_conflict", "not_found"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Optional additional error details",
    )
