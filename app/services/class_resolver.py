"""
Asset class resolution for tag-group generation.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.category import AssetCategory, AssetCategoryClass
from app.services.form_values import is_empty


@dataclass(frozen=True)
class ClassIdentity:
    """Resolved class, plus the category it was reached through (if any)."""

    class_id: int | None = None
    category_id: int | None = None

    @property
    def known(self) -> bool:
        return self.class_id is not None


UNKNOWN_CLASS = ClassIdentity()


def _scalar(raw: Any) -> Any:
    if isinstance(raw, (list, tuple)):
        return raw[0] if raw else None
    return raw


class ClassResolver:
    """Looks up asset category classes from raw answers or category ids."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, raw_value: Any) -> ClassIdentity:
        """
        Resolve a class from a raw field value.

        Numeric values match a class id first, then a category id.
        Text matches a class slug or name (case-insensitive), then a
        category name. Returns UNKNOWN_CLASS when nothing matches.
        """
        raw_value = _scalar(raw_value)
        if is_empty(raw_value) or isinstance(raw_value, (dict, bool)):
            return UNKNOWN_CLASS

        text = str(raw_value).strip()
        if text.isascii() and text.isdigit():
            return await self._resolve_numeric(int(text))
        return await self._resolve_text(text)

    async def _resolve_numeric(self, value: int) -> ClassIdentity:
        query = select(AssetCategoryClass.asset_class_id).where(
            AssetCategoryClass.asset_class_id == value
        )
        class_id = (await self.db.execute(query)).scalar_one_or_none()
        if class_id is not None:
            return ClassIdentity(class_id=class_id)

        query = select(AssetCategory.category_id, AssetCategory.asset_class_id).where(
            AssetCategory.category_id == value
        )
        row = (await self.db.execute(query)).first()
        if row is not None:
            return ClassIdentity(class_id=row.asset_class_id, category_id=row.category_id)

        return UNKNOWN_CLASS

    async def _resolve_text(self, value: str) -> ClassIdentity:
        lowered = value.lower()
        query = (
            select(AssetCategoryClass.asset_class_id)
            .where(
                (func.lower(AssetCategoryClass.slug) == lowered)
                | (func.lower(AssetCategoryClass.name) == lowered)
            )
            .limit(1)
        )
        class_id = (await self.db.execute(query)).scalar_one_or_none()
        if class_id is not None:
            return ClassIdentity(class_id=class_id)

        query = (
            select(AssetCategory.category_id, AssetCategory.asset_class_id)
            .where(func.lower(AssetCategory.name) == lowered)
            .limit(1)
        )
        row = (await self.db.execute(query)).first()
        if row is not None:
            return ClassIdentity(class_id=row.asset_class_id, category_id=row.category_id)

        return UNKNOWN_CLASS

    async def class_for_category(self, category_id: int | None) -> int | None:
        """Class id of a category, or None when unknown/unclassified."""
        if category_id is None:
            return None
        query = select(AssetCategory.asset_class_id).where(
            AssetCategory.category_id == category_id
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def category_name(self, category_id: int | None) -> str | None:
        if category_id is None:
            return None
        query = select(AssetCategory.name).where(AssetCategory.category_id == category_id)
        return (await self.db.execute(query)).scalar_one_or_none()
