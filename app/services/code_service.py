"""
Generated code artifacts for persisted assets.

Renders the barcode, QR code and code sheet for an asset, writes them
through the storage backend and records their paths on the asset row.
Every artifact is best-effort: a failure is logged and the artifact left
out, the asset itself is never rolled back because of it.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

import aiofiles
import httpx
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.core.exceptions import StorageException
from app.models.asset import Asset
from app.schemas.asset import GeneratedCode
from app.services.code_renderer import CodeRenderer, image_to_png, open_image
from app.services.qr_payload import QrPayloadBuilder
from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)

BARCODE_NUMBER_PREFIX = "ASSET"


def barcode_number(asset: Asset) -> str:
    """Text encoded in the barcode: the asset tag, or ASSET-000123 without one."""
    if asset.asset_tag:
        return asset.asset_tag
    return f"{BARCODE_NUMBER_PREFIX}-{asset.id:06d}"


def code_paths(codes_dir: str, asset_id: int) -> dict[str, str]:
    base = codes_dir.strip("/")
    return {
        "barcode": f"{base}/asset_{asset_id}_barcode.png",
        "qrcode": f"{base}/asset_{asset_id}_qrcode.png",
        "codesheet": f"{base}/asset_{asset_id}_codes.png",
    }


async def load_logo(source: str | None, timeout: float = 5.0) -> bytes | None:
    """
    Fetch the organization logo.

    http(s) sources are downloaded with httpx, anything else is read as a
    local file. Returns None when no source is set or loading fails.
    """
    if not source:
        return None

    try:
        if source.startswith(("http://", "https://")):
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                response = await client.get(source)
                response.raise_for_status()
                return response.content

        async with aiofiles.open(Path(source), "rb") as f:
            return await f.read()

    except (httpx.HTTPError, OSError) as e:
        logger.warning(f"Organization logo could not be loaded from {source}: {e}")
        return None


class CodeService:
    """Produces and stores the barcode, QR and code-sheet images of an asset."""

    def __init__(
        self,
        db: AsyncSession,
        storage: StorageBackend,
        settings: Settings | None = None,
        renderer: CodeRenderer | None = None,
        payload_builder: QrPayloadBuilder | None = None,
    ):
        self.db = db
        self.storage = storage
        self.settings = settings or get_settings()
        self.renderer = renderer or CodeRenderer(
            qr_width=self.settings.QR_WIDTH,
            font_path=self.settings.CODESHEET_FONT_PATH,
            font_size=self.settings.CODESHEET_FONT_SIZE,
        )
        self.payload_builder = payload_builder or QrPayloadBuilder(db)

    async def build_payload(
        self,
        asset: Asset,
        form_responses: dict[str, Any] | None,
        form_id: int | None,
    ) -> str | dict[str, Any]:
        if self.settings.QR_PAYLOAD_FORMAT == "json":
            return self.payload_builder.build_structured_payload(asset, form_responses, form_id)
        return await self.payload_builder.build_human_readable_text(asset, form_id, form_responses)

    async def _store_png(self, image: Image.Image, path: str) -> str:
        data = await asyncio.to_thread(image_to_png, image)
        return await self.storage.upload_bytes(data, path, "image/png")

    async def generate_for_asset(
        self,
        asset: Asset,
        form_responses: dict[str, Any] | None = None,
        form_id: int | None = None,
    ) -> GeneratedCode:
        """
        Render and store all artifacts for a persisted asset.

        The asset's ``barcode``, ``qr_code`` and ``codesheet_path`` columns
        are set for each artifact that was written. An artifact that could
        not be written is removed along with its column, so an image from an
        earlier render is never served for changed data. The caller commits.
        """
        paths = code_paths(self.settings.CODES_DIR, asset.id)
        result = GeneratedCode()
        number = barcode_number(asset)

        try:
            barcode_image = await asyncio.to_thread(self.renderer.render_barcode, number)
            result.barcode_path = await self._store_png(barcode_image, paths["barcode"])
            asset.barcode = result.barcode_path
        except Exception as e:
            logger.error(f"Barcode generation failed for asset {asset.id}: {e}")

        logo_bytes = await load_logo(
            self.settings.ORGANIZATION_LOGO_URL, self.settings.LOGO_FETCH_TIMEOUT
        )

        qr_image = None
        try:
            payload = await self.build_payload(asset, form_responses, form_id)
            qr_logo = self._qr_logo(logo_bytes) if self.settings.QR_EMBED_LOGO else None
            qr_image = await asyncio.to_thread(
                self.renderer.render_qr, payload, qr_logo, self.settings.QR_LOGO_SCALE
            )
            result.qr_code_path = await self._store_png(qr_image, paths["qrcode"])
            asset.qr_code = result.qr_code_path
        except Exception as e:
            logger.error(f"QR code generation failed for asset {asset.id}: {e}")

        if qr_image is not None:
            try:
                sheet = await asyncio.to_thread(
                    self.renderer.render_code_sheet, qr_image, number, logo_bytes
                )
                result.codesheet_path = await self._store_png(sheet, paths["codesheet"])
                asset.codesheet_path = result.codesheet_path
            except Exception as e:
                logger.error(f"Code sheet generation failed for asset {asset.id}: {e}")

        for column, kind, written in (
            ("barcode", "barcode", result.barcode_path),
            ("qr_code", "qrcode", result.qr_code_path),
            ("codesheet_path", "codesheet", result.codesheet_path),
        ):
            if written is None:
                await self._discard(asset, column, paths[kind])

        logger.info(
            "Generated codes for asset %s: barcode=%s qr=%s sheet=%s",
            asset.id,
            result.barcode_path,
            result.qr_code_path,
            result.codesheet_path,
        )
        return result

    async def _discard(self, asset: Asset, column: str, path: str) -> None:
        setattr(asset, column, None)
        try:
            if await self.storage.delete(path):
                logger.info(f"Removed stale code image {path} for asset {asset.id}")
        except StorageException as e:
            logger.warning(f"Stale code image {path} could not be removed: {e}")

    @staticmethod
    def _qr_logo(logo_bytes: bytes | None) -> Image.Image | None:
        if not logo_bytes:
            return None
        try:
            return open_image(logo_bytes)
        except Exception as e:
            logger.warning(f"Organization logo is not a readable image, QR rendered without it: {e}")
            return None
