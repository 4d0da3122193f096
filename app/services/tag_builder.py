"""
Asset tag and tag-group generation.

A tag is built from the form's segment configuration: field segments
render form answers into sanitized chunks, sequence segments append the
next number in the scope formed by the chunks before them. Forms without
a usable configuration fall back to the legacy LOCATION-CATEGORY-SEQ
layout.
"""

import logging
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import GenerationError
from app.schemas.tag_config import FieldSegment, SequenceSegment, TagConfig, TagGroupConfig
from app.services.class_resolver import ClassResolver
from app.services.form_values import is_empty, legacy_code, resolve_field_value, to_chunk
from app.services.sequence_allocator import SequenceAllocator, SequenceScope, TagColumn

logger = logging.getLogger(__name__)

ASSET_CLASS_LEVEL = "asset class"

LEGACY_CATEGORY_LENGTH = 8
LEGACY_LOCATION_LENGTH = 3
LEGACY_SEQUENCE_LENGTH = 3
LEGACY_CATEGORY_DEFAULT = "CAT"
LEGACY_LOCATION_DEFAULT = "LOC"


def format_sequence(value: int, length: int) -> str:
    return f"{value:0{length}d}"


def _same_level(a: str | None, b: str | None) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()


class TagBuilder:
    """Builds ``asset_tag`` and ``asset_tag_group`` values."""

    def __init__(
        self,
        db: AsyncSession,
        allocator: SequenceAllocator | None = None,
        class_resolver: ClassResolver | None = None,
    ):
        self.db = db
        self.allocator = allocator or SequenceAllocator(db)
        self.class_resolver = class_resolver or ClassResolver(db)

    # ===================
    # Asset tag
    # ===================

    async def generate(
        self,
        asset_data: dict[str, Any],
        form_id: int | None,
        form_responses: dict[str, Any] | None,
        tag_config: TagConfig | None,
        sequence_offset: int = 0,
    ) -> str:
        """
        Build an asset tag.

        Args:
            asset_data: Core asset fields (category_id, asset_location, ...)
            form_id: Form the answers belong to
            form_responses: Answers keyed by field id
            tag_config: Parsed tag config, None for the legacy layout
            sequence_offset: Added to every allocated sequence (retry cycles)

        Returns:
            The composed tag

        Raises:
            GenerationError: If a required segment has no value
        """
        if tag_config is not None and tag_config.lost_all_segments:
            raise GenerationError(
                "Tag configuration produced no parts",
                details={"formId": form_id},
            )
        if tag_config is None or not tag_config.has_segments:
            return await self._generate_legacy(asset_data, sequence_offset)

        parts = await self._render_segments(
            tag_config,
            form_responses or {},
            sequence_offset,
            column="asset_tag",
            form_id=form_id,
        )
        tag = tag_config.separator.join(parts)
        logger.info("Generated asset tag %s (form=%s)", tag, form_id)
        return tag

    async def generate_for_asset(
        self,
        asset_data: dict[str, Any],
        form_id: int | None,
        form_responses: dict[str, Any] | None,
        tag_config: TagConfig | None,
        sequence_offset: int = 0,
        force: bool = False,
    ) -> str:
        """Keep an existing tag unless ``force`` is set, otherwise generate."""
        existing = asset_data.get("asset_tag")
        if existing and not force:
            return existing
        return await self.generate(asset_data, form_id, form_responses, tag_config, sequence_offset)

    async def _generate_legacy(self, asset_data: dict[str, Any], sequence_offset: int) -> str:
        category_id = asset_data.get("category_id")
        category_name = await self.class_resolver.category_name(category_id)
        category_code = legacy_code(category_name, LEGACY_CATEGORY_LENGTH, LEGACY_CATEGORY_DEFAULT)
        location_code = legacy_code(
            asset_data.get("asset_location"), LEGACY_LOCATION_LENGTH, LEGACY_LOCATION_DEFAULT
        )

        sequence = await self.allocator.compute_legacy_sequence(category_id, category_code)
        tag = "-".join(
            [
                location_code,
                category_code,
                format_sequence(sequence + sequence_offset, LEGACY_SEQUENCE_LENGTH),
            ]
        )
        logger.info("Generated legacy asset tag %s", tag)
        return tag

    # ===================
    # Tag group
    # ===================

    async def generate_group(
        self,
        asset_data: dict[str, Any],
        form_id: int | None,
        form_responses: dict[str, Any] | None,
        group_config: TagGroupConfig | None,
        sequence_offset: int = 0,
    ) -> str | None:
        """
        Build a class-scoped tag-group code.

        Returns:
            The code, or None when the group config is missing or disabled

        Raises:
            GenerationError: If the class cannot be resolved, the class and
                category disagree, or a required segment has no value
        """
        if group_config is None or not group_config.enabled:
            return None
        if group_config.lost_all_segments:
            raise GenerationError(
                "Tag group configuration produced no parts",
                details={"formId": form_id},
            )

        form_responses = form_responses or {}
        class_id = await self._resolve_group_class(asset_data, form_responses, group_config)

        if group_config.segments:
            parts = await self._render_segments(
                group_config,
                form_responses,
                sequence_offset,
                column="asset_tag_group",
                form_id=form_id,
                class_id=class_id,
                is_class_segment=lambda segment: self._is_class_segment(segment, group_config),
            )
        else:
            parts = await self._render_legacy_group(
                group_config, form_responses, sequence_offset, class_id
            )

        code = group_config.separator.join(parts)
        logger.info("Generated asset tag group %s (form=%s, class=%s)", code, form_id, class_id)
        return code

    async def generate_group_for_asset(
        self,
        asset_data: dict[str, Any],
        form_id: int | None,
        form_responses: dict[str, Any] | None,
        group_config: TagGroupConfig | None,
        sequence_offset: int = 0,
        force: bool = False,
    ) -> str | None:
        """Keep an existing group code unless ``force`` is set, otherwise generate."""
        existing = asset_data.get("asset_tag_group")
        if existing and not force:
            return existing
        return await self.generate_group(
            asset_data, form_id, form_responses, group_config, sequence_offset
        )

    @staticmethod
    def _is_class_segment(segment: FieldSegment, config: TagGroupConfig) -> bool:
        if config.class_field_id and segment.field_id == config.class_field_id:
            if not config.class_hierarchy_level_name or not segment.hierarchy_level_name:
                return True
            return _same_level(segment.hierarchy_level_name, config.class_hierarchy_level_name)
        return _same_level(segment.hierarchy_level_name, ASSET_CLASS_LEVEL)

    async def _resolve_group_class(
        self,
        asset_data: dict[str, Any],
        form_responses: dict[str, Any],
        config: TagGroupConfig,
    ) -> int | None:
        category_id = asset_data.get("category_id")
        category_class = await self.class_resolver.class_for_category(category_id)

        if config.class_field_id:
            raw = resolve_field_value(
                form_responses, config.class_field_id, config.class_hierarchy_level_name
            )
            if is_empty(raw):
                raise GenerationError(
                    "Asset class is required for the tag group",
                    details={"fieldId": config.class_field_id},
                )
            identity = await self.class_resolver.resolve(raw)
            if not identity.known:
                raise GenerationError(
                    f"Unknown asset class '{raw}'",
                    details={"fieldId": config.class_field_id},
                )
            if category_class is not None and category_class != identity.class_id:
                raise GenerationError(
                    "Asset category does not belong to the selected asset class",
                    details={"categoryId": category_id, "classId": identity.class_id},
                )
            return identity.class_id

        if category_class is not None:
            return category_class

        for segment in config.segments:
            if (
                isinstance(segment, FieldSegment)
                and segment.field_id
                and _same_level(segment.hierarchy_level_name, ASSET_CLASS_LEVEL)
            ):
                raw = resolve_field_value(form_responses, segment.field_id, segment.hierarchy_level_name)
                identity = await self.class_resolver.resolve(raw)
                if identity.known:
                    return identity.class_id
        return None

    async def _render_legacy_group(
        self,
        config: TagGroupConfig,
        form_responses: dict[str, Any],
        sequence_offset: int,
        class_id: int | None,
    ) -> list[str]:
        parts: list[str] = []

        if config.field_id:
            raw = resolve_field_value(form_responses, config.field_id, config.hierarchy_level_name)
            chunk = "" if is_empty(raw) else to_chunk(raw, config.max_length)
            if not chunk:
                raise GenerationError(
                    f"Missing value for tag group field {config.field_id}",
                    details={"fieldId": config.field_id},
                )
            parts.append(chunk)

        class_token = to_chunk(config.static_token) if config.static_token else ""
        if class_token:
            parts.append(class_token)

        if config.include_sequence:
            sequence = await self.allocator.compute_sequence(
                config.separator.join(parts),
                config.separator,
                start=config.sequence_start,
                scope=SequenceScope(class_token=class_token or None, class_id=class_id),
                column="asset_tag_group",
            )
            parts.append(format_sequence(sequence + sequence_offset, config.sequence_length))

        if not parts:
            raise GenerationError("Tag group configuration produced no parts")
        return parts

    # ===================
    # Segment loop
    # ===================

    async def _render_segments(
        self,
        config: TagConfig,
        form_responses: dict[str, Any],
        sequence_offset: int,
        column: TagColumn,
        form_id: int | None = None,
        class_id: int | None = None,
        is_class_segment: Callable[[FieldSegment], bool] | None = None,
    ) -> list[str]:
        parts: list[str] = []
        class_token: str | None = None

        for index, segment in enumerate(config.segments):
            if isinstance(segment, FieldSegment):
                chunk = self._render_field(segment, form_responses, form_id)
                parts.append(chunk)
                if is_class_segment is not None and class_token is None and is_class_segment(segment):
                    class_token = chunk
            elif isinstance(segment, SequenceSegment):
                scope = None
                if column == "asset_tag_group":
                    scope = SequenceScope(class_token=class_token, class_id=class_id)
                sequence = await self.allocator.compute_sequence(
                    config.separator.join(parts),
                    config.separator,
                    start=segment.start,
                    scope=scope,
                    column=column,
                )
                parts.append(format_sequence(sequence + sequence_offset, segment.length))
            else:
                logger.warning("Skipping unsupported tag segment at position %d", index)

        if not parts:
            raise GenerationError(
                "Tag configuration produced no parts",
                details={"formId": form_id},
            )
        return parts

    @staticmethod
    def _render_field(
        segment: FieldSegment,
        form_responses: dict[str, Any],
        form_id: int | None,
    ) -> str:
        value = None
        if segment.field_id is not None:
            value = resolve_field_value(form_responses, segment.field_id, segment.hierarchy_level_name)

        chunk = "" if is_empty(value) else to_chunk(value, segment.max_length)
        if not chunk and segment.static_value is not None:
            chunk = to_chunk(segment.static_value, segment.max_length)
        if not chunk:
            raise GenerationError(
                f"Missing value for tag field {segment.field_id}",
                details={"fieldId": segment.field_id, "formId": form_id},
            )
        return chunk
