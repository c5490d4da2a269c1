"""PDF generation: two badges per A4 page, assembled with ReportLab."""

import logging
from io import BytesIO
from typing import Callable, Iterable, List, Optional, Tuple

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as rl_canvas

logger = logging.getLogger(__name__)

BADGES_PER_PAGE = 2
MARGIN = 20  # points


def badge_slots(
    badge_w: int,
    badge_h: int,
    page_size=A4,
    margin: float = MARGIN,
) -> Tuple[float, float, List[Tuple[float, float]]]:
    """Draw size and the two top-left slot positions for one page.

    Each badge is scaled to fit half the page (aspect preserved) and centred
    horizontally. Positions are measured from the top of the page.
    """
    page_w, page_h = page_size
    avail_w = page_w - 2 * margin
    avail_h = (page_h - 3 * margin) / 2

    scale = min(avail_w / max(badge_w, 1), avail_h / max(badge_h, 1))
    draw_w = badge_w * scale
    draw_h = badge_h * scale

    x = margin + (avail_w - draw_w) / 2
    return draw_w, draw_h, [(x, margin), (x, 2 * margin + draw_h)]


def _image_reader(img: Image.Image) -> ImageReader:
    buf = BytesIO()
    img.convert("RGB").save(buf, format="PNG")
    buf.seek(0)
    return ImageReader(buf)


def export_pdf(
    images: Iterable[Image.Image],
    output,
    on_progress: Optional[Callable[[int], None]] = None,
    is_cancelled: Optional[Callable[[], bool]] = None,
    page_size=A4,
) -> int:
    """Write badge images to a PDF, two per page.

    ``output`` is a path or a binary file object. Images are consumed one at a
    time so a generator can render each badge just before it is placed.
    Returns the number of pages written.
    """
    page_w, page_h = page_size
    c = rl_canvas.Canvas(output, pagesize=page_size)

    count = 0
    for img in images:
        if is_cancelled and is_cancelled():
            logger.info("PDF export cancelled after %d badge(s)", count)
            break
        if img is None:
            continue

        slot = count % BADGES_PER_PAGE
        if slot == 0 and count > 0:
            c.showPage()

        draw_w, draw_h, positions = badge_slots(img.width, img.height, page_size)
        x, top = positions[slot]
        # ReportLab origin is bottom-left, so invert Y
        y = page_h - top - draw_h
        c.drawImage(_image_reader(img), x, y, draw_w, draw_h)

        count += 1
        if on_progress:
            on_progress(count)

    c.save()
    pages = (count + BADGES_PER_PAGE - 1) // BADGES_PER_PAGE
    logger.info("PDF written: %d badge(s) on %d page(s)", count, pages)
    return pages


def export_badges_pdf(
    session,
    output,
    on_progress: Optional[Callable[[int], None]] = None,
    is_cancelled: Optional[Callable[[], bool]] = None,
) -> int:
    """Render every participant of a session and write them to a PDF."""
    return export_pdf(
        session.iter_badges(is_cancelled),
        output,
        on_progress=on_progress,
        is_cancelled=is_cancelled,
    )
