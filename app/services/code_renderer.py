"""
Barcode, QR and code-sheet rasterization.

Pure image work (Pillow, qrcode, python-barcode); nothing here touches
the database or storage. Callers run these in a worker thread.
"""

import io
import json
import logging
from typing import Any

import barcode
import qrcode
from barcode.writer import ImageWriter
from PIL import Image, ImageDraw, ImageFont, ImageOps
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_M

logger = logging.getLogger(__name__)

GUTTER = 24

DEFAULT_QR_WIDTH = 400
QR_BORDER = 2
LOGO_SCALE_DEFAULT = 0.2
LOGO_SCALE_MIN = 0.08
LOGO_SCALE_MAX = 0.35
LOGO_PADDING_RATIO = 0.15
LOGO_PADDING_MIN = 6

SHEET_LOGO_HEIGHT_RATIO = 0.9

BARCODE_OPTIONS = {
    "module_width": 0.3,
    "module_height": 10.0,
    "font_size": 10,
    "text_distance": 4.0,
    "quiet_zone": 3.0,
    "background": "white",
    "foreground": "black",
}


def clamp_logo_scale(scale: float | None) -> float:
    """Portion of the QR width the logo may cover."""
    if not scale:
        scale = LOGO_SCALE_DEFAULT
    return min(max(scale, LOGO_SCALE_MIN), LOGO_SCALE_MAX)


def image_to_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    """Decode image bytes fully so the buffer can be released."""
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


class CodeRenderer:
    """Renders the printable artifacts for an asset."""

    def __init__(
        self,
        qr_width: int = DEFAULT_QR_WIDTH,
        font_path: str | None = None,
        font_size: int = 28,
        gutter: int = GUTTER,
    ):
        self.qr_width = qr_width
        self.font_path = font_path
        self.font_size = font_size
        self.gutter = gutter

    def render_barcode(self, text: str) -> Image.Image:
        """Code 128 barcode with the encoded text printed underneath."""
        if not text or not isinstance(text, str):
            raise ValueError("Barcode text must be a non-empty string")
        if not text.isascii():
            raise ValueError(f"Code 128 cannot encode {text!r}")

        code128 = barcode.get_barcode_class("code128")
        buffer = io.BytesIO()
        code128(text, writer=ImageWriter()).write(buffer, options=BARCODE_OPTIONS)
        buffer.seek(0)
        image = Image.open(buffer)
        image.load()
        return image.convert("RGB")

    def render_qr(
        self,
        payload: str | dict[str, Any],
        logo: Image.Image | None = None,
        logo_scale: float | None = None,
    ) -> Image.Image:
        """
        QR code for a text or JSON payload.

        Error correction is raised to H when a logo is overlaid so the
        covered modules can still be recovered.
        """
        data = payload if isinstance(payload, str) else json.dumps(payload, separators=(",", ":"), default=str)

        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECT_H if logo is not None else ERROR_CORRECT_M,
            box_size=10,
            border=QR_BORDER,
        )
        qr.add_data(data)
        qr.make(fit=True)

        image = qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")
        image = image.resize((self.qr_width, self.qr_width), Image.Resampling.NEAREST)

        if logo is None:
            return image
        return self._overlay_logo(image, logo, clamp_logo_scale(logo_scale))

    @staticmethod
    def _overlay_logo(qr_image: Image.Image, logo: Image.Image, scale: float) -> Image.Image:
        qr_width, qr_height = qr_image.size
        target = max(int(qr_width * scale), 1)

        fitted = ImageOps.contain(logo.convert("RGBA"), (target, target), Image.Resampling.BILINEAR)
        padding = max(int(target * LOGO_PADDING_RATIO), LOGO_PADDING_MIN)
        bg_size = target + padding * 2

        # White backing square keeps the logo readable against the modules
        backing = Image.new("RGBA", (bg_size, bg_size), (255, 255, 255, 255))
        backing.alpha_composite(
            fitted,
            ((bg_size - fitted.width) // 2, (bg_size - fitted.height) // 2),
        )

        result = qr_image.convert("RGBA")
        result.alpha_composite(backing, ((qr_width - bg_size) // 2, (qr_height - bg_size) // 2))
        return result.convert("RGB")

    def load_font(self) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, self.font_size)
            except OSError:
                logger.warning("Code sheet font %s unavailable, using default font", self.font_path)
        return ImageFont.load_default()

    def decode_logo(self, logo: Image.Image | bytes | None) -> Image.Image | None:
        """Accept a decoded logo or raw bytes; unreadable logos become None."""
        if logo is None or isinstance(logo, Image.Image):
            return logo
        try:
            return open_image(logo)
        except Exception as e:
            logger.warning(f"Organization logo could not be decoded, using QR-only layout: {e}")
            return None

    def render_code_sheet(
        self,
        qr_image: Image.Image,
        label: str,
        logo: Image.Image | bytes | None = None,
    ) -> Image.Image:
        """
        Printable sheet: logo and QR side by side with the label centered
        below, or the QR alone above the label when no logo is usable.
        """
        font = self.load_font()
        logo_image = self.decode_logo(logo)
        if logo_image is not None:
            return self._sheet_with_logo(qr_image, logo_image, label, font)
        return self._sheet_qr_only(qr_image, label, font)

    def _sheet_with_logo(self, qr_image, logo, label, font) -> Image.Image:
        g = self.gutter
        qr_width, qr_height = qr_image.size

        target_height = max(int(qr_height * SHEET_LOGO_HEIGHT_RATIO), 1)
        target_width = max(int(logo.width * target_height / logo.height), 1)
        logo = logo.convert("RGBA").resize((target_width, target_height), Image.Resampling.LANCZOS)

        content_height = max(target_height, qr_height)
        width = target_width + qr_width + 3 * g
        height = content_height + 3 * g

        sheet = Image.new("RGB", (width, height), "white")
        sheet.paste(logo, (g, g + (content_height - target_height) // 2), logo)
        sheet.paste(qr_image, (2 * g + target_width, g + (content_height - qr_height) // 2))

        draw = ImageDraw.Draw(sheet)
        left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
        text_width = right - left
        text_y = g + content_height + max((2 * g - (bottom - top)) // 2, 0)
        draw.text(((width - text_width) // 2 - left, text_y - top), label, fill="black", font=font)
        return sheet

    def _sheet_qr_only(self, qr_image, label, font) -> Image.Image:
        g = self.gutter
        qr_width, qr_height = qr_image.size

        measure = ImageDraw.Draw(Image.new("RGB", (1, 1)))
        left, top, right, bottom = measure.textbbox((0, 0), label, font=font)
        text_width, text_height = right - left, bottom - top

        width = max(qr_width, text_width) + 2 * g
        height = qr_height + text_height + 3 * g

        sheet = Image.new("RGB", (width, height), "white")
        sheet.paste(qr_image, ((width - qr_width) // 2, g))

        draw = ImageDraw.Draw(sheet)
        draw.text(((width - text_width) // 2 - left, 2 * g + qr_height - top), label, fill="black", font=font)
        return sheet
