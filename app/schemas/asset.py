"""
Pydantic schemas for Asset request/response validation.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.models.asset import ApprovalStatus, AssetStatus


class AssetBase(BaseModel):
    """Core asset properties shared across schemas."""

    name: str | None = Field(
        default=None,
        max_length=255,
        description="Human-readable asset name",
        examples=["Dell Laptop"],
    )
    category_id: int | None = Field(
        default=None,
        description="Asset category id",
    )
    asset_location: str | None = Field(
        default=None,
        max_length=100,
        description="Free-text location, used by the legacy tag layout",
        examples=["Head Office"],
    )
    notes: str | None = None


class AssetCreate(AssetBase):
    """Schema for creating a new asset."""

    status: AssetStatus = AssetStatus.AVAILABLE
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    asset_tag: str | None = Field(
        default=None,
        max_length=100,
        description="Explicit tag; generated from the form configuration when omitted",
    )
    asset_tag_group: str | None = Field(default=None, max_length=100)
    form_id: int | None = Field(
        default=None,
        description="Dynamic form the answers belong to",
    )
    form_responses: dict[str, Any] = Field(
        default_factory=dict,
        description="Answers keyed by form field id",
    )


class AssetUpdate(BaseModel):
    """Schema for updating an asset. Identifiers cannot be rewritten."""

    name: str | None = Field(default=None, max_length=255)
    category_id: int | None = None
    asset_location: str | None = Field(default=None, max_length=100)
    status: AssetStatus | None = None
    approval_status: ApprovalStatus | None = None
    notes: str | None = None
    form_id: int | None = None
    form_responses: dict[str, Any] | None = None


class GeneratedCode(BaseModel):
    """Storage paths of the rendered artifacts."""

    barcode_path: str | None = None
    qr_code_path: str | None = None
    codesheet_path: str | None = None


class AssetResponse(BaseModel):
    """Response schema for a single asset."""

    id: int
    asset_tag: str | None
    asset_tag_group: str | None
    name: str | None
    category_id: int | None
    asset_location: str | None
    status: AssetStatus
    approval_status: ApprovalStatus
    active_form_id: int | None
    notes: str | None
    barcode: str | None
    qr_code: str | None
    codesheet_path: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    form_responses: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(from_attributes=True)
