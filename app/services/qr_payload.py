"""
QR payload construction.

Two encodings are supported: a compact versioned JSON object for scanners
that parse payloads, and a human-readable text block for phones that just
display what they scan.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.asset import Asset
from app.models.form import FormField, FormFieldType
from app.services.form_values import is_empty, render_value

QR_PAYLOAD_VERSION = 1

EXCLUDED_FIELD_TYPES = {FormFieldType.CAMERA, FormFieldType.LOCATION}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def build_structured_payload(
    asset: Asset,
    form_responses: dict[str, Any] | None,
    form_id: int | None,
) -> dict[str, Any]:
    """Versioned summary object; keys without a value are left out."""
    payload = {
        "version": QR_PAYLOAD_VERSION,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "asset_id": asset.id,
        "asset_tag": asset.asset_tag,
        "asset_tag_group": asset.asset_tag_group,
        "status": _plain(asset.status),
        "approval_status": _plain(asset.approval_status),
        "asset_location": asset.asset_location,
        "category_id": asset.category_id,
        "form_id": form_id,
        "barcode": asset.barcode,
    }
    if form_responses:
        payload["form_responses"] = form_responses
    return {key: value for key, value in payload.items() if value is not None}


def format_human_readable_text(
    asset: Asset,
    fields: Sequence[FormField],
    form_responses: dict[str, Any] | None,
) -> str:
    """
    Multi-line summary: tag, name, status, then one line per answered
    field in form order (camera and location fields excluded).
    """
    lines = []
    if asset.asset_tag:
        lines.append(f"ASSET TAG: {asset.asset_tag}")
    lines.append(f"NAME: {asset.name or ''}")
    lines.append(f"STATUS: {_plain(asset.status) or ''}")

    responses = form_responses or {}
    for field in sorted(fields, key=lambda f: (f.position, f.id)):
        if field.type in EXCLUDED_FIELD_TYPES:
            continue
        value = responses.get(str(field.id))
        if is_empty(value):
            continue
        rendered = render_value(value)
        if rendered:
            lines.append(f"{field.label}: {rendered}")

    return "\n\n".join(lines)


class QrPayloadBuilder:
    """Builds QR payloads for persisted assets."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _form_fields(self, form_id: int | None) -> Sequence[FormField]:
        if form_id is None:
            return []
        query = select(FormField).where(FormField.form_id == form_id).order_by(FormField.position)
        result = await self.db.execute(query)
        return result.scalars().all()

    def build_structured_payload(
        self,
        asset: Asset,
        form_responses: dict[str, Any] | None,
        form_id: int | None,
    ) -> dict[str, Any]:
        return build_structured_payload(asset, form_responses, form_id)

    async def build_human_readable_text(
        self,
        asset: Asset,
        form_id: int | None,
        form_responses: dict[str, Any] | None,
    ) -> str:
        fields = await self._form_fields(form_id)
        return format_human_readable_text(asset, fields, form_responses)
