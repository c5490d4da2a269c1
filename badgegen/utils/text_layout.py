"""Greedy word wrapping and multi-line drawing for badge text zones."""

from typing import Callable, List, Optional

from PIL import ImageDraw, ImageFont

Measure = Callable[[str], float]


def measure_with(font: ImageFont.ImageFont) -> Measure:
    """Return a function giving the rendered pixel width of a string."""
    return lambda text: font.getlength(text)


def wrap_text(
    text: str,
    max_width: float,
    max_chars: Optional[int] = None,
    measure: Measure = len,
) -> List[str]:
    """Split text into lines that fit both a pixel width and a character count.

    Whitespace runs collapse to single spaces. A word is appended to the
    current line unless the result would be wider than ``max_width`` or, when
    ``max_chars`` is set, longer than ``max_chars`` characters. Words are
    never split, so a single word over either limit gets a line of its own.
    """
    words = (text or "").split()
    if not words:
        return []

    lines = []
    current = words[0]
    for word in words[1:]:
        candidate = current + " " + word
        too_wide = measure(candidate) > max_width
        too_long = bool(max_chars) and len(candidate) > max_chars
        if too_wide or too_long:
            lines.append(current)
            current = word
        else:
            current = candidate
    lines.append(current)
    return lines


def draw_lines(
    draw: ImageDraw.ImageDraw,
    lines: List[str],
    x: float,
    start_y: float,
    line_height: float,
    font: ImageFont.ImageFont,
    fill: str,
) -> float:
    """Draw lines top-down from ``start_y`` and return the y below the last one."""
    y = start_y
    for line in lines:
        # "la": x is the left edge, y the top of the ascender
        draw.text((x, y), line, font=font, fill=fill, anchor="la")
        y += line_height
    return y
