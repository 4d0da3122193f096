"""
Pydantic models for the per-form tag configuration.

Segments form a tagged union on ``type``: a field segment renders a form
answer (or a static literal), a sequence segment renders the next number
in its scope.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator


def _coerce_id(value: Any) -> Any:
    """Field ids arrive as ints or strings; form responses are keyed by string."""
    if value is None or value == "":
        return None
    return str(value)


class FieldSegment(BaseModel):
    """Segment rendered from a form answer."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["field"] = "field"
    field_id: str | None = None
    hierarchy_level_name: str | None = None
    max_length: int | None = None
    static_value: str | None = None

    @field_validator("field_id", mode="before")
    @classmethod
    def coerce_field_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator("static_value", mode="before")
    @classmethod
    def coerce_static_value(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return str(v)

    @model_validator(mode="after")
    def require_source(self) -> "FieldSegment":
        if self.field_id is None and self.static_value is None:
            raise ValueError("field segment needs a field_id or a static_value")
        return self


class SequenceSegment(BaseModel):
    """Zero-padded counter scoped by the parts rendered before it."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["sequence"] = "sequence"
    length: int = Field(default=4, ge=1, le=12)
    start: int = Field(default=1, ge=0)


Segment = Annotated[Union[FieldSegment, SequenceSegment], Field(discriminator="type")]


class TagConfig(BaseModel):
    """Asset tag configuration stored on a form."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = False
    separator: str = "-"
    segments: list[Segment] = Field(default_factory=list)

    # Segment entries present before unsupported ones were dropped
    _declared_segments: int = PrivateAttr(default=0)

    @field_validator("separator", mode="before")
    @classmethod
    def default_separator(cls, v: Any) -> Any:
        return "-" if v is None else v

    @property
    def has_segments(self) -> bool:
        return self.enabled and bool(self.segments)

    @property
    def lost_all_segments(self) -> bool:
        """Enabled, declared segments, but none of them were usable."""
        return self.enabled and self._declared_segments > 0 and not self.segments


class TagGroupConfig(TagConfig):
    """
    Tag-group configuration: a tag config plus the class field, and the
    options of the segment-less layout.
    """

    class_field_id: str | None = None
    class_hierarchy_level_name: str | None = None

    # Segment-less layout
    field_id: str | None = None
    hierarchy_level_name: str | None = None
    max_length: int | None = None
    static_token: str | None = None
    include_sequence: bool = False
    sequence_length: int = Field(default=4, ge=1, le=12)
    sequence_start: int = Field(default=1, ge=0)

    @field_validator("class_field_id", "field_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        return _coerce_id(v)


class TagConfigUpdate(BaseModel):
    """Request body for replacing a form's tag configuration."""

    asset_tag_config: dict[str, Any] | None = None
    asset_tag_group_config: dict[str, Any] | None = None


class TagPreviewRequest(BaseModel):
    """Request body for previewing identifiers without persisting."""

    form_responses: dict[str, Any] = Field(default_factory=dict)
    name: str | None = None
    category_id: int | None = None
    asset_location: str | None = None


class TagPreviewResponse(BaseModel):
    """Identifiers a creation would currently receive."""

    asset_tag: str | None = None
    asset_tag_group: str | None = None


class TagConfigResponse(BaseModel):
    """Normalized tag configuration of a form."""

    form_id: int
    asset_tag_config: TagConfig | None = None
    asset_tag_group_config: TagGroupConfig | None = None
