"""
Form response value handling.

Answers come in three shapes: scalars, lists of scalars, and hierarchical
selections (``{"selections": {...}, "resolved": [{"level", "id",
"label"}]}``). Everything that needs to look inside an answer goes
through this module.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any

_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_SEPARATORS = re.compile(r"[\s\-]+")

LEGACY_EMPTY_CODE = "GEN"


@dataclass
class ResolvedLevel:
    level: str | None
    id: Any = None
    label: Any = None
    value: Any = None


@dataclass
class HierarchicalSelection:
    """Multi-level choice such as building -> floor -> room."""

    selections: dict[str, Any] = field(default_factory=dict)
    resolved: list[ResolvedLevel] = field(default_factory=list)

    @classmethod
    def from_raw(cls, value: Any) -> "HierarchicalSelection | None":
        """Return a selection when the raw answer has the hierarchical shape."""
        if not isinstance(value, dict):
            return None
        selections = value.get("selections")
        resolved = value.get("resolved")
        if not isinstance(selections, dict) and not isinstance(resolved, list):
            return None

        levels = []
        for entry in resolved if isinstance(resolved, list) else []:
            if isinstance(entry, dict):
                levels.append(
                    ResolvedLevel(
                        level=entry.get("level"),
                        id=entry.get("id"),
                        label=entry.get("label"),
                        value=entry.get("value"),
                    )
                )
        return cls(
            selections=selections if isinstance(selections, dict) else {},
            resolved=levels,
        )

    def find_level(self, level_name: str) -> ResolvedLevel | None:
        wanted = level_name.strip().lower()
        for entry in self.resolved:
            if entry.level is not None and str(entry.level).strip().lower() == wanted:
                return entry
        return None


def is_empty(value: Any) -> bool:
    """True for missing answers: None, blank strings, empty containers."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _level_keys(level_name: str) -> list[str]:
    lowered = level_name.lower()
    keys = [
        level_name,
        lowered,
        _SEPARATORS.sub("_", level_name.strip()),
        _SEPARATORS.sub("_", lowered.strip()),
    ]
    return list(dict.fromkeys(keys))


def resolve_field_value(
    form_responses: dict[str, Any] | None,
    field_id: Any,
    hierarchy_level_name: str | None = None,
) -> Any:
    """
    Return the answer relevant to a tag segment.

    Args:
        form_responses: Answers keyed by field id
        field_id: Field id (int or str)
        hierarchy_level_name: Optional level inside a hierarchical answer

    Returns:
        The scalar, list or object answer, or None when absent
    """
    if not form_responses or field_id is None:
        return None

    value = form_responses.get(str(field_id))
    if value is None and not isinstance(field_id, str):
        value = form_responses.get(field_id)

    if not hierarchy_level_name or not isinstance(value, dict):
        return value

    selection = HierarchicalSelection.from_raw(value)
    if selection is not None and selection.resolved:
        entry = selection.find_level(hierarchy_level_name)
        if entry is not None:
            for candidate in (entry.id, entry.label, entry.value):
                if candidate is not None:
                    return candidate

    lookup = selection.selections if selection is not None and selection.selections else value
    for key in _level_keys(hierarchy_level_name):
        if key in lookup:
            return lookup[key]
    return value


def flatten(value: Any) -> str:
    """Serialize a non-scalar answer so it can be sanitized into a chunk."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return json.dumps(value, ensure_ascii=False, default=str)


def sanitize(text: str) -> str:
    return _NON_ALNUM.sub("", text.upper())


def to_chunk(value: Any, max_length: int | None = None) -> str:
    """
    Render an answer as a tag chunk: uppercase, only ``[A-Z0-9]``,
    truncated to ``max_length`` when positive. May return "".
    """
    chunk = sanitize(flatten(value))
    if max_length is not None and max_length > 0:
        chunk = chunk[:max_length]
    return chunk


def legacy_code(value: Any, max_length: int, default: str) -> str:
    """Code for the legacy LOCATION-CATEGORY-SEQ layout."""
    if is_empty(value):
        return default
    return to_chunk(value, max_length) or LEGACY_EMPTY_CODE


def render_value(value: Any) -> str:
    """Human-readable rendering of an answer, used for QR text blocks."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        rendered = (render_value(item) for item in value)
        return ", ".join(part for part in rendered if part)
    if isinstance(value, dict):
        selection = HierarchicalSelection.from_raw(value)
        if selection is not None:
            labels = [str(entry.label) for entry in selection.resolved if not is_empty(entry.label)]
            if labels:
                return " / ".join(labels)
            parts = (render_value(item) for item in selection.selections.values())
            return " / ".join(part for part in parts if part)
        parts = (render_value(item) for item in value.values())
        return ", ".join(part for part in parts if part)
    return str(value)
