"""Image helpers: display scaling, coordinate conversion, PNG encoding."""

from io import BytesIO
from typing import Optional, Tuple

from PIL import Image


def compute_scale_factor(
    image_width: int,
    image_height: int,
    canvas_width: int,
    canvas_height: int,
) -> float:
    """Uniform scale factor fitting an image inside a display area."""
    if image_width <= 0 or image_height <= 0:
        return 1.0
    return min(canvas_width / image_width, canvas_height / image_height)


def image_to_canvas(
    x: float, y: float, scale: float, offset_x: float = 0, offset_y: float = 0
) -> Tuple[float, float]:
    return (x * scale + offset_x, y * scale + offset_y)


def canvas_to_image(
    cx: float, cy: float, scale: float, offset_x: float = 0, offset_y: float = 0
) -> Tuple[float, float]:
    if scale == 0:
        return (0.0, 0.0)
    return ((cx - offset_x) / scale, (cy - offset_y) / scale)


def pixels_to_percent(dx: float, dy: float, width: int, height: int) -> Tuple[float, float]:
    """Pixel delta on a canvas to a delta in percent of its width and height."""
    if width <= 0 or height <= 0:
        return (0.0, 0.0)
    return (dx / width * 100.0, dy / height * 100.0)


def to_png_bytes(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def from_image_bytes(data: Optional[bytes]) -> Optional[Image.Image]:
    """Decode image bytes to RGBA, or None when there is nothing to decode."""
    if not data:
        return None
    img = Image.open(BytesIO(data))
    img.load()
    return img.convert("RGBA")
