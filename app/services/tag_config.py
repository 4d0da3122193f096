"""
Tag configuration parsing.

Configs are stored as JSON on the form row and may arrive as parsed
objects, JSON strings, or garbage. Parsing never raises: anything that is
not an object reads as "disabled".
"""

import json
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from app.schemas.tag_config import Segment, TagConfig, TagGroupConfig

logger = logging.getLogger(__name__)

_segment_adapter: TypeAdapter = TypeAdapter(Segment)

KNOWN_SEGMENT_TYPES = {"field", "sequence"}


def parse_json_config(raw: Any) -> Any:
    """
    Normalize a stored config value.

    Returns dicts/lists unchanged, ``None`` for empty input, the decoded
    value for valid JSON strings, and the original string for malformed
    JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, (dict, list)):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw
    return raw


def _parse_segments(raw_segments: Any) -> list:
    if not isinstance(raw_segments, list):
        return []

    segments = []
    for index, raw in enumerate(raw_segments):
        if not isinstance(raw, dict):
            logger.warning("Skipping non-object tag segment at position %d", index)
            continue

        data = dict(raw)
        segment_type = data.get("type")
        if segment_type is None and data.get("field_id") is not None:
            data["type"] = "field"
        elif segment_type not in KNOWN_SEGMENT_TYPES:
            logger.warning(
                "Skipping unsupported tag segment type %r at position %d",
                segment_type,
                index,
            )
            continue

        try:
            segments.append(_segment_adapter.validate_python(data).model_dump())
        except ValidationError as e:
            logger.warning("Skipping invalid tag segment at position %d: %s", index, e)
    return segments


def _load(raw: Any, model: type[TagConfig]) -> TagConfig | None:
    parsed = parse_json_config(raw)
    if not isinstance(parsed, dict):
        if parsed is not None:
            logger.warning("Ignoring tag config that is not a JSON object")
        return None

    raw_segments = parsed.get("segments")
    data = dict(parsed)
    data["segments"] = _parse_segments(raw_segments)
    try:
        config = model.model_validate(data)
    except ValidationError as e:
        logger.warning("Ignoring invalid tag config: %s", e)
        return None

    config._declared_segments = len(raw_segments) if isinstance(raw_segments, list) else 0
    if config.lost_all_segments:
        logger.warning("Tag config declares %d segments but none are usable", len(raw_segments))
    return config


def load_tag_config(raw: Any) -> TagConfig | None:
    """Parse a stored asset tag config into a validated model."""
    return _load(raw, TagConfig)


def load_tag_group_config(raw: Any) -> TagGroupConfig | None:
    """Parse a stored tag-group config into a validated model."""
    return _load(raw, TagGroupConfig)
