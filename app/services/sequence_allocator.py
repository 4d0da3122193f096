"""
Scoped sequence allocation for generated identifiers.

The allocator reads the most recent identifiers in a scope and returns
max + 1. It takes no locks: two concurrent creations can compute the same
value, and the unique constraints on ``assets.asset_tag`` /
``assets.asset_tag_group`` plus the creation retry loop resolve the
collision.

Only a bounded window of recent rows is scanned. A higher sequence held
by an older row outside the window is not seen; the retry loop is the
backstop for that case.
"""

import logging
import re
from dataclasses import dataclass
from typing import Literal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.asset import Asset
from app.models.category import AssetCategory

logger = logging.getLogger(__name__)

DEFAULT_SCAN_WINDOW = 200
CLASS_SCAN_WINDOW = 500

_TRAILING_DIGITS = re.compile(r"(\d+)$")
_LEGACY_TRAILING_DIGITS = re.compile(r"(\d{1,6})$")

TagColumn = Literal["asset_tag", "asset_tag_group"]


@dataclass(frozen=True)
class SequenceScope:
    """Class scope for tag-group sequences."""

    class_token: str | None = None
    class_id: int | None = None


def extract_sequence(value: str | None, prefix: str, separator: str) -> int | None:
    """
    Leading digit run after ``prefix + separator``.

    With an empty prefix the digits must start the value. Returns None
    when the value is outside the scope.
    """
    if not value:
        return None
    head = f"{prefix}{separator}" if prefix else ""
    match = re.match(rf"{re.escape(head)}(\d+)", value)
    return int(match.group(1)) if match else None


def extract_class_sequence(value: str | None, class_token: str, separator: str) -> int | None:
    """
    Trailing digit run of a value carrying ``class_token`` as a delimited
    segment anywhere in the string.
    """
    if not value or not class_token:
        return None
    if separator:
        sep = re.escape(separator)
        pattern = rf"(?:^|{sep}){re.escape(class_token)}{sep}"
    else:
        pattern = re.escape(class_token)
    if not re.search(pattern, value):
        return None
    match = _TRAILING_DIGITS.search(value)
    return int(match.group(1)) if match else None


def extract_legacy_sequence(value: str | None) -> int | None:
    if not value:
        return None
    match = _LEGACY_TRAILING_DIGITS.search(value)
    return int(match.group(1)) if match else None


class SequenceAllocator:
    """Computes the next number in a scoped sequence."""

    def __init__(
        self,
        db: AsyncSession,
        scan_window: int = DEFAULT_SCAN_WINDOW,
        class_scan_window: int = CLASS_SCAN_WINDOW,
    ):
        self.db = db
        self.scan_window = scan_window
        self.class_scan_window = class_scan_window

    @staticmethod
    def _column(column: TagColumn):
        return Asset.asset_tag_group if column == "asset_tag_group" else Asset.asset_tag

    async def compute_sequence(
        self,
        prefix: str,
        separator: str,
        start: int = 1,
        scope: SequenceScope | None = None,
        column: TagColumn = "asset_tag",
    ) -> int:
        """
        Next sequence value for a scope.

        Args:
            prefix: Parts rendered before the sequence, already joined
            separator: Separator between parts
            start: Floor for the returned value
            scope: Class scope for tag-group sequences
            column: Identifier column to scan

        Returns:
            max(found) + 1, never below ``start``
        """
        if scope is not None and scope.class_token:
            values = await self._class_token_values(column, scope.class_token)
            found = [extract_class_sequence(v, scope.class_token, separator) for v in values]
        elif scope is not None and scope.class_id is not None:
            values = await self._prefix_values(column, prefix, separator, class_id=scope.class_id)
            found = [extract_sequence(v, prefix, separator) for v in values]
        else:
            values = await self._prefix_values(column, prefix, separator)
            found = [extract_sequence(v, prefix, separator) for v in values]

        highest = max((n for n in found if n is not None), default=start - 1)
        next_value = max(highest + 1, start)
        logger.debug(
            "Allocated %s sequence %d (prefix=%r, scope=%s, scanned=%d)",
            column,
            next_value,
            prefix,
            scope,
            len(values),
        )
        return next_value

    async def compute_legacy_sequence(self, category_id: int | None, category_code: str) -> int:
        """
        Next number for the legacy LOCATION-CATEGORY-SEQ layout, scoped to
        the category and its code.
        """
        query = select(Asset.asset_tag).where(
            Asset.asset_tag.is_not(None),
            Asset.asset_tag.contains(f"-{category_code}-", autoescape=True),
        )
        if category_id is None:
            query = query.where(Asset.category_id.is_(None))
        else:
            query = query.where(Asset.category_id == category_id)
        query = query.order_by(Asset.id.desc()).limit(self.scan_window)

        values = (await self.db.execute(query)).scalars().all()
        found = [extract_legacy_sequence(v) for v in values]
        return max((n for n in found if n is not None), default=0) + 1

    async def _prefix_values(
        self,
        column: TagColumn,
        prefix: str,
        separator: str,
        class_id: int | None = None,
    ) -> list[str]:
        col = self._column(column)
        query = select(col).where(col.is_not(None))
        if prefix:
            query = query.where(col.startswith(f"{prefix}{separator}", autoescape=True))
        if class_id is not None:
            query = query.join(
                AssetCategory, AssetCategory.category_id == Asset.category_id
            ).where(AssetCategory.asset_class_id == class_id)
        query = query.order_by(Asset.id.desc()).limit(self.scan_window)
        return list((await self.db.execute(query)).scalars().all())

    async def _class_token_values(self, column: TagColumn, class_token: str) -> list[str]:
        col = self._column(column)
        query = (
            select(col)
            .where(col.is_not(None), col.contains(class_token, autoescape=True))
            .order_by(Asset.id.desc())
            .limit(self.class_scan_window)
        )
        return list((await self.db.execute(query)).scalars().all())
