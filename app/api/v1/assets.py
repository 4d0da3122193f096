"""
Asset endpoints.
Creation runs tag generation, the conflict retry loop and code rendering.
"""

from typing import Literal

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from app.core.exceptions import CodeNotFoundException
from app.dependencies import DbSession, Storage
from app.models.asset import Asset
from app.schemas.asset import AssetCreate, AssetResponse, AssetUpdate
from app.services.asset_service import AssetService

router = APIRouter()

CodeKind = Literal["barcode", "qrcode", "codesheet"]

_CODE_COLUMNS = {
    "barcode": "barcode",
    "qrcode": "qr_code",
    "codesheet": "codesheet_path",
}


def _asset_to_response(asset: Asset) -> AssetResponse:
    """Convert Asset model to response schema."""
    response = AssetResponse.model_validate(asset)
    response.form_responses = AssetService.form_responses_for(asset)
    return response


@router.post("", response_model=AssetResponse, status_code=201)
async def create_asset(data: AssetCreate, db: DbSession, storage: Storage):
    """
    Create a new asset.

    The asset tag and tag group are generated from the form's tag
    configuration unless supplied. Barcode, QR and code-sheet images are
    rendered after the asset is stored; a rendering failure leaves the
    corresponding path empty.
    """
    service = AssetService(db, storage)
    asset = await service.create(data)
    return _asset_to_response(asset)


@router.get("/lookup", response_model=AssetResponse)
async def lookup_asset(
    db: DbSession,
    storage: Storage,
    tag: str = Query(..., min_length=1, description="Asset tag, tag group code or barcode number"),
):
    """Find an asset by any of its scannable identifiers."""
    service = AssetService(db, storage)
    asset = await service.get_by_tag(tag)
    return _asset_to_response(asset)


@router.get("/{asset_id}", response_model=AssetResponse)
async def get_asset(asset_id: int, db: DbSession, storage: Storage):
    service = AssetService(db, storage)
    asset = await service.get_by_id(asset_id)
    return _asset_to_response(asset)


@router.patch("/{asset_id}", response_model=AssetResponse)
async def update_asset(asset_id: int, data: AssetUpdate, db: DbSession, storage: Storage):
    """
    Update asset metadata and form answers.

    Existing identifiers are kept; missing ones are generated when form
    answers are supplied. Codes are re-rendered when their content changes.
    """
    service = AssetService(db, storage)
    asset = await service.update(asset_id, data)
    return _asset_to_response(asset)


@router.get("/{asset_id}/codes/{kind}")
async def download_code(asset_id: int, kind: CodeKind, db: DbSession, storage: Storage):
    """Stream a generated code image as PNG."""
    service = AssetService(db, storage)
    asset = await service.get_by_id(asset_id)

    path = getattr(asset, _CODE_COLUMNS[kind])
    if not path or not await storage.exists(path):
        raise CodeNotFoundException(asset_id, kind)

    async def file_iterator():
        async for chunk in storage.download(path):
            yield chunk

    return StreamingResponse(
        file_iterator(),
        media_type="image/png",
        headers={"Content-Disposition": f'inline; filename="asset_{asset_id}_{kind}.png"'},
    )
