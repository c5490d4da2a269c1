"""System font lookup for zone font families and weights."""

import logging
import os
import sys
from functools import lru_cache
from typing import Dict, List, Optional

from PIL import ImageFont

logger = logging.getLogger(__name__)

# Symbol and icon fonts are useless for names
_BLOCKED_SUBSTRINGS = ("mdl2", "emoji", "assets", "icons", "symbol", "wingdings", "webdings", "marlett")

_STYLE_SUFFIXES = (" Bold Italic", " Bold", " Italic", " Regular", " Light", " Medium",
                   " Thin", " Black", " SemiBold", " Semibold", " ExtraBold", " ExtraLight",
                   " Condensed", " Oblique", " Book", " Heavy")

# Families tried when the requested one is not installed
FALLBACK_FAMILIES = ("Roboto", "Arial", "Helvetica", "DejaVu Sans", "Liberation Sans")


def _font_dirs() -> List[str]:
    dirs = []
    package_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    bundled = os.path.join(package_root, "fonts")
    if os.path.isdir(bundled):
        dirs.append(bundled)

    if sys.platform == "win32":
        windir = os.environ.get("WINDIR", r"C:\Windows")
        dirs.append(os.path.join(windir, "Fonts"))
        localappdata = os.environ.get("LOCALAPPDATA", "")
        if localappdata:
            dirs.append(os.path.join(localappdata, "Microsoft", "Windows", "Fonts"))
    else:
        roots = ["/usr/share/fonts", "/usr/local/share/fonts",
                 os.path.expanduser("~/.local/share/fonts"), os.path.expanduser("~/.fonts")]
        if sys.platform == "darwin":
            roots += ["/Library/Fonts", "/System/Library/Fonts", os.path.expanduser("~/Library/Fonts")]
        for root_dir in roots:
            if not os.path.isdir(root_dir):
                continue
            # Linux fonts are usually nested by foundry
            for root, _, files in os.walk(root_dir):
                if any(f.lower().endswith((".ttf", ".otf")) for f in files):
                    dirs.append(root)
    return dirs


@lru_cache(maxsize=1)
def discover_fonts() -> Dict[str, str]:
    """Map display names ("Roboto Bold") to font file paths."""
    fonts: Dict[str, str] = {}
    for font_dir in _font_dirs():
        if not os.path.isdir(font_dir):
            continue
        for entry in os.scandir(font_dir):
            if not entry.is_file() or not entry.name.lower().endswith((".ttf", ".otf")):
                continue
            try:
                family, style = ImageFont.truetype(entry.path, size=12).getname()
            except OSError:
                continue
            if not family or any(sub in family.lower() for sub in _BLOCKED_SUBSTRINGS):
                continue
            if style and style.lower() != "regular":
                fonts.setdefault(f"{family} {style}", entry.path)
            else:
                fonts.setdefault(family, entry.path)
    logger.debug("Discovered %d fonts", len(fonts))
    return dict(sorted(fonts.items()))


def is_bold(weight) -> bool:
    """CSS-style weight ("bold", "700", 600...) to a bold flag."""
    text = str(weight or "").strip().lower()
    if text in ("bold", "bolder"):
        return True
    try:
        return int(text) >= 600
    except ValueError:
        return False


def find_font_path(family: str, bold: bool = False) -> Optional[str]:
    """Best matching font file for a family, preferring the requested weight."""
    fonts = discover_fonts()
    family = (family or "").split(",")[0].strip().strip("'\"")
    if not family:
        return None

    candidates = [f"{family} Bold", family] if bold else [family, f"{family} Regular"]
    lowered = {name.lower(): path for name, path in fonts.items()}
    for candidate in candidates:
        if candidate.lower() in lowered:
            return lowered[candidate.lower()]

    prefix = family.lower()
    for name, path in fonts.items():
        if name.lower().startswith(prefix) and (("bold" in name.lower()) == bold):
            return path
    return None


@lru_cache(maxsize=128)
def load_font(family: str, weight: str, size: int) -> ImageFont.FreeTypeFont:
    """Load a zone font at a pixel size, falling back to common sans families."""
    size = max(1, int(size))
    bold = is_bold(weight)
    for name in (family,) + FALLBACK_FAMILIES:
        path = find_font_path(name, bold) or (find_font_path(name) if bold else None)
        if path:
            try:
                return ImageFont.truetype(path, size)
            except OSError:
                continue
    logger.debug("No font found for %r, using Pillow default", family)
    return ImageFont.load_default(size=size)


def get_font_families() -> List[str]:
    """Sorted unique family names for font pickers."""
    families = set()
    for name in discover_fonts():
        base = name
        for suffix in _STYLE_SUFFIXES:
            if base.endswith(suffix):
                base = base[:-len(suffix)]
                break
        if base.strip():
            families.add(base.strip())
    return sorted(families)
