"""
Asset service - Business logic for asset operations.
Handles creation with generated identifiers, updates, lookup and tag preview.
"""

import json
import logging
import re
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.exceptions import (
    AssetNotFoundException,
    FormNotFoundException,
    TagConflictError,
)
from app.models.asset import Asset, AssetFormValue
from app.models.form import Form, FormField, FormFieldType
from app.schemas.asset import AssetCreate, AssetUpdate
from app.schemas.tag_config import TagConfig, TagGroupConfig, TagPreviewRequest, TagPreviewResponse
from app.services.code_service import BARCODE_NUMBER_PREFIX, CodeService
from app.services.image_upload import StorageImageUploader
from app.services.sequence_allocator import SequenceAllocator
from app.services.tag_builder import TagBuilder
from app.services.tag_config import load_tag_config, load_tag_group_config
from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)

MAX_CREATE_ATTEMPTS = 3

# Core fields that show up in the QR payload; changing them re-renders codes
CODE_RELEVANT_FIELDS = ("name", "status", "approval_status", "asset_location", "category_id")

_BARCODE_NUMBER = re.compile(rf"^{BARCODE_NUMBER_PREFIX}-(\d+)$", re.IGNORECASE)


def is_tag_conflict(error: IntegrityError) -> bool:
    """
    True when the violation is on one of the generated identifier columns.

    SQLite reports ``UNIQUE constraint failed: assets.asset_tag``; PostgreSQL
    names the constraint (``assets_asset_tag_key``). Both contain the
    column name.
    """
    message = str(error.orig) if error.orig is not None else str(error)
    lowered = message.lower()
    return "asset_tag" in lowered and ("unique" in lowered or "duplicate" in lowered)


def parse_stored_value(value: str | None) -> Any:
    """Stored answers are JSON for structured values and raw text otherwise."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value


class AssetService:
    """Service class for asset operations."""

    def __init__(
        self,
        db: AsyncSession,
        storage: StorageBackend,
        tag_builder: TagBuilder | None = None,
        code_service: CodeService | None = None,
        uploader: StorageImageUploader | None = None,
    ):
        self.db = db
        self.storage = storage
        if tag_builder is None:
            settings = get_settings()
            allocator = SequenceAllocator(
                db,
                scan_window=settings.TAG_SCAN_WINDOW,
                class_scan_window=settings.TAG_CLASS_SCAN_WINDOW,
            )
            tag_builder = TagBuilder(db, allocator=allocator)
        self.tag_builder = tag_builder
        self.code_service = code_service or CodeService(db, storage)
        self.uploader = uploader or StorageImageUploader(storage)

    # ===================
    # Reads
    # ===================

    async def get_by_id(self, asset_id: int) -> Asset:
        """
        Get asset by ID, reloading its columns and form values.

        Raises:
            AssetNotFoundException: If asset not found
        """
        query = (
            select(Asset)
            .where(Asset.id == asset_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        asset = result.scalar_one_or_none()

        if not asset:
            raise AssetNotFoundException(asset_id)

        return asset

    async def get_by_tag(self, tag: str) -> Asset:
        """
        Look an asset up by asset tag, tag group code or barcode number.

        Raises:
            AssetNotFoundException: If nothing matches
        """
        tag = tag.strip()
        query = (
            select(Asset)
            .where(or_(Asset.asset_tag == tag, Asset.asset_tag_group == tag))
            .limit(1)
            .execution_options(populate_existing=True)
        )
        asset = (await self.db.execute(query)).scalar_one_or_none()
        if asset is not None:
            return asset

        match = _BARCODE_NUMBER.match(tag)
        if match:
            try:
                asset = await self.get_by_id(int(match.group(1)))
            except AssetNotFoundException:
                asset = None
            if asset is not None and not asset.asset_tag:
                return asset

        raise AssetNotFoundException(tag)

    @staticmethod
    def form_responses_for(asset: Asset) -> dict[str, Any]:
        """Stored answers keyed by field id, JSON values decoded."""
        return {
            str(value.form_field_id): parse_stored_value(value.value)
            for value in asset.form_values
        }

    async def _load_form(self, form_id: int) -> Form:
        query = select(Form).where(Form.form_id == form_id)
        form = (await self.db.execute(query)).scalar_one_or_none()
        if form is None:
            raise FormNotFoundException(form_id)
        return form

    async def load_configs(
        self, form_id: int | None
    ) -> tuple[TagConfig | None, TagGroupConfig | None]:
        """Parsed tag and tag-group configs of a form; (None, None) without a form."""
        if form_id is None:
            return None, None
        form = await self._load_form(form_id)
        return (
            load_tag_config(form.asset_tag_config),
            load_tag_group_config(form.asset_tag_group_config),
        )

    # ===================
    # Create
    # ===================

    async def create(self, data: AssetCreate) -> Asset:
        """
        Create an asset with generated identifiers and codes.

        Identifiers are generated before the insert. A unique violation on
        either identifier rolls back, regenerates both with a growing
        sequence offset and retries, up to MAX_CREATE_ATTEMPTS inserts.
        Form answers are saved in the same transaction as the asset; codes
        are rendered after it is committed.

        Raises:
            FormNotFoundException: If ``form_id`` is unknown
            GenerationError: If an identifier cannot be built
            TagConflictError: If identifiers still collide after all attempts
            ImageUploadException: If a camera answer cannot be stored
        """
        form_id = data.form_id
        form_responses = data.form_responses or {}
        tag_config, group_config = await self.load_configs(form_id)

        asset_data = data.model_dump(exclude={"form_id", "form_responses"})
        asset_data["asset_tag"] = await self.tag_builder.generate_for_asset(
            asset_data, form_id, form_responses, tag_config
        )
        asset_data["asset_tag_group"] = await self.tag_builder.generate_group_for_asset(
            asset_data, form_id, form_responses, group_config
        )

        attempt = 1
        while True:
            asset = await self._insert(asset_data, form_id)
            if asset is not None:
                break
            if attempt >= MAX_CREATE_ATTEMPTS:
                logger.error(
                    "Asset tag %s still conflicts after %d attempts",
                    asset_data["asset_tag"],
                    attempt,
                )
                raise TagConflictError(asset_data["asset_tag"], attempt)

            logger.warning(
                "Asset identifiers %s / %s already taken, regenerating (attempt %d)",
                asset_data["asset_tag"],
                asset_data["asset_tag_group"],
                attempt,
            )
            asset_data["asset_tag"] = await self.tag_builder.generate_for_asset(
                asset_data, form_id, form_responses, tag_config, sequence_offset=attempt, force=True
            )
            asset_data["asset_tag_group"] = await self.tag_builder.generate_group_for_asset(
                asset_data, form_id, form_responses, group_config, sequence_offset=attempt, force=True
            )
            attempt += 1

        processed: dict[str, Any] = {}
        if form_id is not None and form_responses:
            processed = await self._save_form_responses(asset, form_id, form_responses)

        await self.db.commit()
        logger.info(f"Created asset {asset.id} with tag {asset.asset_tag}")

        await self.code_service.generate_for_asset(asset, processed, form_id)
        await self.db.commit()

        return await self.get_by_id(asset.id)

    async def _insert(self, asset_data: dict[str, Any], form_id: int | None) -> Asset | None:
        """Flush one insert; None when an identifier is already taken."""
        asset = Asset(**asset_data, active_form_id=form_id)
        self.db.add(asset)
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if not is_tag_conflict(e):
                raise
            return None
        return asset

    async def _save_form_responses(
        self,
        asset: Asset,
        form_id: int,
        form_responses: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Upsert answers into asset_form_values.

        Camera answers are uploaded first and stored as their URL list.
        Answers for fields that are not part of the form are skipped.

        Returns:
            The processed answers keyed by field id
        """
        query = select(FormField).where(FormField.form_id == form_id)
        fields = {str(f.id): f for f in (await self.db.execute(query)).scalars().all()}

        query = select(AssetFormValue).where(
            AssetFormValue.asset_id == asset.id,
            AssetFormValue.form_id == form_id,
        )
        existing = {
            str(v.form_field_id): v for v in (await self.db.execute(query)).scalars().all()
        }

        processed: dict[str, Any] = {}
        for field_key, raw_value in form_responses.items():
            field = fields.get(str(field_key))
            if field is None:
                logger.warning(
                    f"Form response for unknown field {field_key} (form={form_id}, asset={asset.id})"
                )
                continue

            value = raw_value
            if field.type == FormFieldType.CAMERA:
                value = await self.uploader.upload_many(raw_value, asset.id, field.id)

            processed[str(field.id)] = value
            stored = None if value is None else value if isinstance(value, str) else json.dumps(value)

            record = existing.get(str(field.id))
            if record is None:
                self.db.add(
                    AssetFormValue(
                        asset_id=asset.id,
                        form_id=form_id,
                        form_field_id=field.id,
                        value=stored,
                    )
                )
            else:
                record.value = stored

        if processed:
            await self.db.flush()
            logger.info(f"Saved {len(processed)} form responses for asset {asset.id}")
        return processed

    # ===================
    # Update
    # ===================

    async def update(self, asset_id: int, data: AssetUpdate) -> Asset:
        """
        Update core fields and form answers.

        Existing identifiers are never rewritten. When answers change, a
        missing tag or tag group is generated from the form configuration.
        Codes are re-rendered when answers or payload-relevant core fields
        change.
        """
        asset = await self.get_by_id(asset_id)

        changes = data.model_dump(exclude_unset=True, exclude={"form_id", "form_responses"})
        core_changed = any(
            key in changes and getattr(asset, key) != changes[key] for key in CODE_RELEVANT_FIELDS
        )
        for key, value in changes.items():
            setattr(asset, key, value)

        if data.form_id is not None:
            asset.active_form_id = data.form_id
        form_id = asset.active_form_id

        responses = self.form_responses_for(asset)
        responses_changed = data.form_responses is not None and form_id is not None

        if responses_changed:
            tag_config, group_config = await self.load_configs(form_id)
            processed = await self._save_form_responses(asset, form_id, data.form_responses)
            responses.update(processed)

            asset_data = {
                "name": asset.name,
                "category_id": asset.category_id,
                "asset_location": asset.asset_location,
                "asset_tag": asset.asset_tag,
                "asset_tag_group": asset.asset_tag_group,
            }
            if not asset.asset_tag:
                asset.asset_tag = await self.tag_builder.generate_for_asset(
                    asset_data, form_id, responses, tag_config
                )
            if not asset.asset_tag_group:
                asset.asset_tag_group = await self.tag_builder.generate_group_for_asset(
                    asset_data, form_id, responses, group_config
                )

        # Rollback expires the instance, so the tag is read beforehand
        candidate_tag = asset.asset_tag
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            if is_tag_conflict(e):
                raise TagConflictError(candidate_tag, 1)
            raise
        await self.db.commit()

        if responses_changed or core_changed:
            await self.code_service.generate_for_asset(asset, responses, form_id)
            await self.db.commit()

        logger.info(f"Updated asset {asset_id}")
        return await self.get_by_id(asset_id)

    # ===================
    # Preview
    # ===================

    async def preview_tags(self, form_id: int, request: TagPreviewRequest) -> TagPreviewResponse:
        """
        Identifiers a creation with these answers would currently get.

        Nothing is written and no sequence number is reserved; a concurrent
        creation may take the previewed value first.
        """
        tag_config, group_config = await self.load_configs(form_id)
        asset_data = request.model_dump(exclude={"form_responses"})

        asset_tag = await self.tag_builder.generate(
            asset_data, form_id, request.form_responses, tag_config
        )
        asset_tag_group = await self.tag_builder.generate_group(
            asset_data, form_id, request.form_responses, group_config
        )
        return TagPreviewResponse(asset_tag=asset_tag, asset_tag_group=asset_tag_group)
