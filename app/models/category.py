"""
Asset category and category-class SQLAlchemy models.
A category optionally belongs to exactly one class.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class AssetCategoryClass(Base):
    """Top-level grouping of categories, used to scope tag-group sequences."""
    __tablename__ = "asset_category_classes"

    asset_class_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        unique=True,
        comment="Display name (e.g., IT Equipment)",
    )
    slug: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        unique=True,
        index=True,
        comment="URL-safe identifier (e.g., it-equipment)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    categories: Mapped[list["AssetCategory"]] = relationship(
        "AssetCategory",
        back_populates="asset_class",
    )

    def __repr__(self) -> str:
        return f"<AssetCategoryClass(id={self.asset_class_id}, slug={self.slug})>"


class AssetCategory(Base):
    """Asset category (e.g., Laptop, Printer)."""
    __tablename__ = "asset_categories"

    category_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    asset_class_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("asset_category_classes.asset_class_id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    asset_class: Mapped["AssetCategoryClass | None"] = relationship(
        "AssetCategoryClass",
        back_populates="categories",
    )

    def __repr__(self) -> str:
        return f"<AssetCategory(id={self.category_id}, name={self.name})>"
