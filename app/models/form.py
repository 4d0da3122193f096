"""
Dynamic form definition models.
A form carries the tag and tag-group configuration used at asset creation.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class FormFieldType(str, enum.Enum):
    """Supported dynamic form field types."""
    TEXT = "text"
    SELECT = "select"
    CHECKBOX = "checkbox"
    RATING = "rating"
    DATE = "date"
    LOCATION = "location"
    CAMERA = "camera"
    HIERARCHICAL_SELECT = "hierarchical_select"


class Form(Base):
    """Form definition used to capture asset details."""
    __tablename__ = "forms"

    form_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    asset_tag_config: Mapped[dict | str | None] = mapped_column(
        JSON,
        nullable=True,
        default=None,
        comment='Tag config: {"enabled": true, "separator": "-", "segments": [...]}',
    )
    asset_tag_group_config: Mapped[dict | str | None] = mapped_column(
        JSON,
        nullable=True,
        default=None,
        comment="Tag-group config: tag config plus class_field_id / class_hierarchy_level_name",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
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

    fields: Mapped[list["FormField"]] = relationship(
        "FormField",
        back_populates="form",
        lazy="selectin",
        order_by="FormField.position",
    )

    def __repr__(self) -> str:
        return f"<Form(id={self.form_id}, name={self.name})>"


class FormField(Base):
    """Single field of a dynamic form."""
    __tablename__ = "form_fields"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    form_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("forms.form_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    label: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    type: Mapped[FormFieldType] = mapped_column(
        Enum(FormFieldType),
        nullable=False,
    )
    required: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    options: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
        default=None,
    )
    hierarchy_levels: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
        default=None,
        comment='Level names for hierarchical selects: ["Building", "Floor", "Room"]',
    )
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    form: Mapped["Form"] = relationship("Form", back_populates="fields")

    def __repr__(self) -> str:
        return f"<FormField(id={self.id}, label={self.label}, type={self.type})>"
