"""
Form tag-configuration endpoints.
"""

from fastapi import APIRouter
from sqlalchemy import select

from app.core.exceptions import FormNotFoundException, ValidationException
from app.dependencies import DbSession, Storage
from app.models.form import Form
from app.schemas.tag_config import (
    TagConfigResponse,
    TagConfigUpdate,
    TagPreviewRequest,
    TagPreviewResponse,
)
from app.services.asset_service import AssetService
from app.services.tag_config import load_tag_config, load_tag_group_config

router = APIRouter()


async def _get_form(db, form_id: int) -> Form:
    result = await db.execute(select(Form).where(Form.form_id == form_id))
    form = result.scalar_one_or_none()
    if form is None:
        raise FormNotFoundException(form_id)
    return form


def _config_response(form: Form) -> TagConfigResponse:
    return TagConfigResponse(
        form_id=form.form_id,
        asset_tag_config=load_tag_config(form.asset_tag_config),
        asset_tag_group_config=load_tag_group_config(form.asset_tag_group_config),
    )


@router.get("/{form_id}/tag-config", response_model=TagConfigResponse)
async def get_tag_config(form_id: int, db: DbSession):
    """
    Get the normalized tag configuration of a form.
    Unsupported or invalid segments are left out.
    """
    form = await _get_form(db, form_id)
    return _config_response(form)


@router.put("/{form_id}/tag-config", response_model=TagConfigResponse)
async def update_tag_config(form_id: int, data: TagConfigUpdate, db: DbSession):
    """
    Replace the tag and tag-group configuration of a form.

    Configs are normalized before they are stored; a null config disables
    the corresponding identifier. An enabled config whose segments are all
    unusable is rejected.
    """
    form = await _get_form(db, form_id)

    tag_config = load_tag_config(data.asset_tag_config)
    group_config = load_tag_group_config(data.asset_tag_group_config)
    for key, config in (("asset_tag_config", tag_config), ("asset_tag_group_config", group_config)):
        if config is not None and config.lost_all_segments:
            raise ValidationException(
                "Tag configuration has no usable segments",
                details={"config": key},
            )

    form.asset_tag_config = tag_config.model_dump() if tag_config else None
    form.asset_tag_group_config = group_config.model_dump() if group_config else None

    await db.flush()
    return _config_response(form)


@router.post("/{form_id}/tag-preview", response_model=TagPreviewResponse)
async def preview_tags(form_id: int, data: TagPreviewRequest, db: DbSession, storage: Storage):
    """
    Render the identifiers an asset with these answers would receive.
    Nothing is stored and no sequence number is reserved.
    """
    service = AssetService(db, storage)
    return await service.preview_tags(form_id, data)
