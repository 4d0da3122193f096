"""
Asset and AssetFormValue SQLAlchemy models.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class AssetStatus(str, enum.Enum):
    """Lifecycle status of a physical asset."""
    AVAILABLE = "available"
    ASSIGNED = "assigned"
    IN_REPAIR = "in_repair"
    RETIRED = "retired"


class ApprovalStatus(str, enum.Enum):
    """Approval workflow state."""
    PENDING = "PENDING"
    REJECTED = "REJECTED"
    APPROVED = "APPROVED"


class Asset(Base):
    """
    Physical asset record.

    `asset_tag` and `asset_tag_group` are globally unique; the database
    constraints are the final arbiter when concurrent creations allocate
    the same sequence number.
    """
    __tablename__ = "assets"

    # ===================
    # Identity
    # ===================
    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    asset_tag: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        unique=True,
        comment="Generated primary asset tag (e.g., ENG-001)",
    )
    asset_tag_group: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        unique=True,
        comment="Class-scoped tag group code",
    )

    # ===================
    # Core Properties
    # ===================
    name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    category_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("asset_categories.category_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    asset_location: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )
    status: Mapped[AssetStatus] = mapped_column(
        Enum(AssetStatus),
        nullable=False,
        default=AssetStatus.AVAILABLE,
        index=True,
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus),
        nullable=False,
        default=ApprovalStatus.PENDING,
        index=True,
    )
    active_form_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("forms.form_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # ===================
    # Generated Codes
    # ===================
    barcode: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Storage path of the barcode PNG",
    )
    qr_code: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Storage path of the QR PNG",
    )
    codesheet_path: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Storage path of the combined code sheet PNG",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    form_values: Mapped[list["AssetFormValue"]] = relationship(
        "AssetFormValue",
        back_populates="asset",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Asset(id={self.id}, asset_tag={self.asset_tag})>"


class AssetFormValue(Base):
    """Captured answer of one form field for one asset."""
    __tablename__ = "asset_form_values"
    __table_args__ = (
        UniqueConstraint("asset_id", "form_id", "form_field_id", name="uq_asset_form_field"),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    asset_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    form_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("forms.form_id", ondelete="CASCADE"),
        nullable=False,
    )
    form_field_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("form_fields.id", ondelete="CASCADE"),
        nullable=False,
    )
    value: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Raw string answer or JSON-encoded structured answer",
    )

    asset: Mapped["Asset"] = relationship("Asset", back_populates="form_values")

    def __repr__(self) -> str:
        return f"<AssetFormValue(asset_id={self.asset_id}, field={self.form_field_id})>"
