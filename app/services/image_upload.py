"""
Camera answer uploads.

Camera fields arrive as base64 strings or data URIs. Each image is
decoded, written to storage under the asset's folder, and replaced in the
stored answer by its URL.
"""

import base64
import binascii
import logging
import re
from uuid import uuid4

from app.core.exceptions import ImageUploadException, StorageException
from app.storage.base import StorageBackend, get_extension

logger = logging.getLogger(__name__)

_DATA_URI = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w-]+=[^;,]+)*;base64,(?P<data>.*)$", re.DOTALL)


def decode_image(encoded: str) -> tuple[bytes, str]:
    """
    Decode a base64 payload or data URI.

    Returns:
        (raw bytes, MIME type); plain base64 is assumed to be PNG

    Raises:
        ImageUploadException: If the payload is not valid base64
    """
    mime_type = "image/png"
    data = encoded.strip()

    match = _DATA_URI.match(data)
    if match:
        mime_type = match.group("mime") or mime_type
        data = match.group("data")

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageUploadException(f"Camera image is not valid base64: {e}")
    if not raw:
        raise ImageUploadException("Camera image is empty")
    return raw, mime_type


class StorageImageUploader:
    """Uploads camera images through the configured storage backend."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def upload(self, encoded: str, asset_id: int, field_id: int) -> str:
        """
        Store one camera image.

        Returns:
            URL of the stored image

        Raises:
            ImageUploadException: If decoding or the storage write fails
        """
        raw, mime_type = decode_image(encoded)
        path = f"assets/{asset_id}/camera/{field_id}/{uuid4().hex}.{get_extension(mime_type)}"

        try:
            await self.storage.upload_bytes(raw, path, mime_type)
        except StorageException as e:
            raise ImageUploadException(
                f"Failed to store camera image: {e.message}",
                details={"assetId": asset_id, "fieldId": field_id},
            )

        logger.info(f"Uploaded camera image for asset {asset_id} field {field_id}: {path}")
        return self.storage.get_url(path)

    async def upload_many(self, images, asset_id: int, field_id: int) -> list[str]:
        """Upload a single image or a list of images; blanks are skipped."""
        if not isinstance(images, list):
            images = [images] if images else []

        urls = []
        for encoded in images:
            if not encoded:
                continue
            if not isinstance(encoded, str):
                raise ImageUploadException(
                    "Camera answers must be base64 strings or data URIs",
                    details={"assetId": asset_id, "fieldId": field_id},
                )
            urls.append(await self.upload(encoded, asset_id, field_id))
        return urls
