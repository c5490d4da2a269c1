"""Renders a single badge image using Pillow.

The same function backs the editor preview, single PNG downloads and PDF
export, so a badge always looks identical wherever it is produced.
"""

import logging
from typing import Optional

from PIL import Image, ImageDraw

from badgegen.export.qr_codes import QRRasterFn, generate_qr_with_fallback, make_qr_image
from badgegen.export.vcard import build_vcard, capitalize_words
from badgegen.models.fields import FieldResolver, Record
from badgegen.models.zones import FRACTION, QRZone, TextZone, ZoneModel
from badgegen.utils.fonts import load_font
from badgegen.utils.text_layout import draw_lines, measure_with, wrap_text

logger = logging.getLogger(__name__)


def apply_text_transform(text: str, transform: str) -> str:
    if transform == "uppercase":
        return text.upper()
    if transform == "lowercase":
        return text.lower()
    if transform == "capitalize":
        return capitalize_words(text)
    return text


def _draw_text_zone(
    draw: ImageDraw.ImageDraw,
    canvas_size,
    zone: TextZone,
    record: Record,
    resolver: FieldResolver,
    lines_before: int = 0,
) -> int:
    """Draw one text zone and return how many lines it took.

    Zones whose field is empty are skipped and count as zero lines.
    """
    value = resolver.resolve(record, zone.field)
    if not value:
        return 0
    text = apply_text_transform(value, zone.text_transform)

    width, height = canvas_size
    x = width * zone.x
    y = height * zone.y
    max_width = width * zone.width
    font_px = height * zone.font_size
    line_height = font_px * zone.line_height

    font = load_font(zone.font_family, zone.font_weight, round(font_px))
    lines = wrap_text(text, max_width, zone.max_chars_per_line, measure_with(font))
    draw_lines(draw, lines, x, y, line_height, font, zone.color_for(lines_before))
    return len(lines)


def _draw_qr_zone(
    badge: Image.Image,
    qr_zone: QRZone,
    record: Record,
    resolver: FieldResolver,
    qr_raster_fn: QRRasterFn,
    logo: Optional[Image.Image],
) -> None:
    width, height = badge.size
    qr_px = max(1, round(width * qr_zone.size))
    payload = build_vcard(record, resolver)
    # Always M first; correct_level is kept in the model for project files only
    qr_img = generate_qr_with_fallback(payload, qr_px, qr_raster_fn, "M")
    if qr_img.size != (qr_px, qr_px):
        qr_img = qr_img.resize((qr_px, qr_px), Image.NEAREST)
    qr_img = qr_img.convert("RGBA")

    # x is the centre of the QR block, y its top edge
    left = round(width * qr_zone.x - qr_px / 2)
    top = round(height * qr_zone.y)
    # The anchor may sit near an edge, so the block can be clipped by the canvas
    badge.paste(qr_img, (left, top), qr_img)

    if logo is None:
        return
    logo_px = round(qr_px * qr_zone.logo_size)
    if logo_px <= 0:
        return
    logo_img = logo.convert("RGBA").resize((logo_px, logo_px), Image.LANCZOS)
    logo_left = left + (qr_px - logo_px) // 2
    logo_top = top + (qr_px - logo_px) // 2
    badge.paste(logo_img, (logo_left, logo_top), logo_img)


def render_badge(
    template: Optional[Image.Image],
    record: Record,
    zones: ZoneModel,
    qr_raster_fn: QRRasterFn = make_qr_image,
    logo: Optional[Image.Image] = None,
    resolver: Optional[FieldResolver] = None,
) -> Optional[Image.Image]:
    """Render a complete badge for one participant.

    Args:
        template: Background image; the badge has its exact pixel size.
        record: Participant row (header -> value).
        zones: Fraction-scaled zone configuration.
        qr_raster_fn: QR generator, called as ``fn(text, pixel_size, level)``.
        logo: Image centred on the QR code, skipped when None.
        resolver: Field resolver used for text zones and the vCard.

    Returns:
        The composited RGBA image, or None when no template is loaded. The
        QR code is composited before this returns.
    """
    if template is None:
        return None
    if zones.units != FRACTION:
        raise ValueError("render_badge expects a fraction-scaled zone model")
    resolver = resolver or FieldResolver()

    badge = template.convert("RGBA") if template.mode != "RGBA" else template.copy()
    draw = ImageDraw.Draw(badge)

    lines_drawn = 0
    for zone in zones.text_zones:
        lines_drawn += _draw_text_zone(draw, badge.size, zone, record, resolver, lines_drawn)

    if zones.qr_zone.enabled:
        _draw_qr_zone(badge, zones.qr_zone, record, resolver, qr_raster_fn, logo)

    return badge
