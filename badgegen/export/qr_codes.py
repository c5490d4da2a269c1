"""QR code rasters for badges, with error-correction fallback and caching."""

import logging
from typing import Callable, Optional, Tuple

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image

from badgegen import config

logger = logging.getLogger(__name__)

CORRECTION_LEVELS = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}

# (text, pixel size, correction level) -> RGBA image
QRRasterFn = Callable[[str, int, str], Image.Image]


class QRGenerationError(Exception):
    """The payload could not be encoded at the requested size or level."""


def make_qr_image(text: str, pixel_size: int, level: str = "M") -> Image.Image:
    """Render ``text`` as a black-on-transparent QR code of exactly ``pixel_size`` px."""
    if pixel_size <= 0:
        raise QRGenerationError(f"Invalid QR size: {pixel_size}")
    if level not in CORRECTION_LEVELS:
        raise QRGenerationError(f"Unknown correction level: {level}")

    qr = qrcode.QRCode(
        version=None,
        error_correction=CORRECTION_LEVELS[level],
        box_size=10,
        border=4,
    )
    try:
        qr.add_data(text)
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as e:
        raise QRGenerationError(str(e)) from e

    img = qr.make_image(fill_color="black", back_color="transparent").convert("RGBA")
    # Nearest keeps module edges sharp
    return img.resize((pixel_size, pixel_size), Image.NEAREST)


def generate_qr_with_fallback(
    text: str,
    pixel_size: int,
    generator: QRRasterFn = make_qr_image,
    level: str = "M",
    fallback_text: Optional[str] = None,
) -> Image.Image:
    """Generate a QR code, degrading until one can be produced.

    Tries the requested level, then level L, then the constant fallback URL
    at level M.
    """
    fallback_text = fallback_text or config.FALLBACK_QR_URL
    try:
        return generator(text, pixel_size, level)
    except Exception as e:
        logger.warning("QR generation at level %s failed (%s), retrying at level L", level, e)
    try:
        return generator(text, pixel_size, "L")
    except Exception as e:
        logger.warning("QR generation at level L failed (%s), using fallback URL", e)
    return generator(fallback_text, pixel_size, "M")


class QRCache:
    """Remembers the last generated raster so unchanged re-renders skip QR work.

    A single slot is enough: during zone editing the payload is constant and
    only the pixel size changes.
    """

    def __init__(self, generator: QRRasterFn = make_qr_image):
        self.generator = generator
        self._key: Optional[Tuple[str, int, str]] = None
        self._image: Optional[Image.Image] = None
        self.misses = 0

    def __call__(self, text: str, pixel_size: int, level: str = "M") -> Image.Image:
        key = (text, pixel_size, level)
        if key != self._key or self._image is None:
            image = self.generator(text, pixel_size, level)
            self._key, self._image = key, image
            self.misses += 1
        return self._image

    def clear(self) -> None:
        self._key = None
        self._image = None
