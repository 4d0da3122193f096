"""
Pydantic schemas for request/response validation and tag configuration.
"""

from app.schemas.asset import (
    AssetBase,
    AssetCreate,
    AssetResponse,
    AssetUpdate,
    GeneratedCode,
)
from app.schemas.tag_config import (
    FieldSegment,
    SequenceSegment,
    TagConfig,
    TagConfigResponse,
    TagConfigUpdate,
    TagGroupConfig,
    TagPreviewRequest,
    TagPreviewResponse,
)
from app.schemas.error import ErrorResponse

__all__ = [
    # Asset schemas
    "AssetBase",
    "AssetCreate",
    "AssetResponse",
    "AssetUpdate",
    "GeneratedCode",
    # Tag configuration
    "FieldSegment",
    "SequenceSegment",
    "TagConfig",
    "TagConfigResponse",
    "TagConfigUpdate",
    "TagGroupConfig",
    "TagPreviewRequest",
    "TagPreviewResponse",
    # Error schemas
    "ErrorResponse",
]
