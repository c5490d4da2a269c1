"""Interactive zone editing: selection, drag, 8-handle resize, keyboard nudge.

The editor owns a percent-scaled copy of the zone model and knows nothing
about widgets. A front end feeds it pointer positions in badge pixels and
key names; every mutation is reported through ``on_change`` so the preview
can be re-rendered immediately.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from badgegen.models.zones import TEXT_TRANSFORMS, TextZone, ZoneModel, default_zone_model
from badgegen.utils.image_utils import pixels_to_percent

logger = logging.getLogger(__name__)

QR_ZONE_ID = "qr"

IDLE = "idle"
DRAGGING = "dragging"
RESIZING = "resizing"

HANDLES = ("nw", "ne", "sw", "se", "n", "s", "e", "w")

MIN_ZONE_SIZE = 5.0
MIN_FONT_SIZE = 0.5
MIN_LINE_HEIGHT = 0.5

NUDGE_STEP = 1.0
NUDGE_STEP_LARGE = 10.0

# Key name (Tk keysym or DOM key) -> direction
ARROW_KEYS: Dict[str, Tuple[int, int]] = {
    "Left": (-1, 0), "ArrowLeft": (-1, 0),
    "Right": (1, 0), "ArrowRight": (1, 0),
    "Up": (0, -1), "ArrowUp": (0, -1),
    "Down": (0, 1), "ArrowDown": (0, 1),
}


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass
class Hit:
    """What lies under the pointer: a resize handle or a zone body."""
    zone_id: str
    handle: Optional[str] = None


class ZoneEditor:
    """State machine over one editing session's zone model.

    States are ``idle``, ``dragging`` (target zone) and ``resizing`` (target
    zone and handle). Only one zone is selected at a time; resize handles
    exist only on the selected text zone.
    """

    def __init__(
        self,
        zones: ZoneModel,
        canvas_size: Tuple[int, int],
        on_change: Optional[Callable[["ZoneEditor"], None]] = None,
        on_selection_change: Optional[Callable[[Optional[str]], None]] = None,
    ):
        self.zones = zones.to_percent()
        self.canvas_width, self.canvas_height = canvas_size
        self.on_change = on_change
        self.on_selection_change = on_selection_change

        self.selected_id: Optional[str] = None
        self.state = IDLE
        self.target_id: Optional[str] = None
        self.handle: Optional[str] = None
        self._last_pos = (0.0, 0.0)

        for zone in self.zones.text_zones:
            self._keep_inside(zone)
        qr = self.zones.qr_zone
        qr.x = _clamp(qr.x, 0.0, 100.0)
        qr.y = _clamp(qr.y, 0.0, 100.0)
        qr.size = _clamp(qr.size, 1.0, 100.0)

    # ------------------------------------------------------------------
    # Snapshot / reset
    # ------------------------------------------------------------------

    def snapshot(self) -> ZoneModel:
        """Fraction-scaled copy for rendering and persistence."""
        return self.zones.to_fraction()

    def load_defaults(self) -> None:
        self.zones = default_zone_model().to_percent()
        self.deselect()
        self._changed()

    def set_canvas_size(self, width: int, height: int) -> None:
        self.canvas_width, self.canvas_height = width, height

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, zone_id: Optional[str]) -> None:
        if zone_id is None:
            self.deselect()
            return
        if zone_id != QR_ZONE_ID and self.zones.get_zone(zone_id) is None:
            raise KeyError(zone_id)
        if zone_id == self.selected_id:
            return
        self.selected_id = zone_id
        if self.on_selection_change:
            self.on_selection_change(zone_id)

    def deselect(self) -> None:
        if self.selected_id is None:
            return
        self.selected_id = None
        if self.on_selection_change:
            self.on_selection_change(None)

    # ------------------------------------------------------------------
    # Geometry in badge pixels
    # ------------------------------------------------------------------

    def zone_rect(self, zone_id: str) -> Tuple[float, float, float, float]:
        """(left, top, right, bottom) of a zone in canvas pixels."""
        w, h = self.canvas_width, self.canvas_height
        if zone_id == QR_ZONE_ID:
            qr = self.zones.qr_zone
            size = qr.size / 100 * w
            left = qr.x / 100 * w - size / 2
            top = qr.y / 100 * h
            return (left, top, left + size, top + size)
        zone = self.zones.get_zone(zone_id)
        if zone is None:
            raise KeyError(zone_id)
        left, top = zone.x / 100 * w, zone.y / 100 * h
        return (left, top, left + zone.width / 100 * w, top + zone.height / 100 * h)

    def handle_positions(self, zone_id: str) -> Dict[str, Tuple[float, float]]:
        left, top, right, bottom = self.zone_rect(zone_id)
        cx, cy = (left + right) / 2, (top + bottom) / 2
        return {
            "nw": (left, top), "ne": (right, top),
            "sw": (left, bottom), "se": (right, bottom),
            "n": (cx, top), "s": (cx, bottom),
            "e": (right, cy), "w": (left, cy),
        }

    def hit_test(self, px: float, py: float, tolerance: float = 6.0) -> Optional[Hit]:
        """Find the handle or zone under a point, topmost first."""
        if self.selected_id and self.selected_id != QR_ZONE_ID:
            for name, (hx, hy) in self.handle_positions(self.selected_id).items():
                if abs(px - hx) <= tolerance and abs(py - hy) <= tolerance:
                    return Hit(self.selected_id, name)

        # The QR overlay is drawn last, so it sits on top
        ordered = [QR_ZONE_ID] if self.zones.qr_zone.enabled else []
        ordered += [z.id for z in reversed(self.zones.text_zones)]
        for zone_id in ordered:
            left, top, right, bottom = self.zone_rect(zone_id)
            if left <= px <= right and top <= py <= bottom:
                return Hit(zone_id)
        return None

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------

    def pointer_down(self, px: float, py: float, tolerance: float = 6.0) -> Optional[Hit]:
        hit = self.hit_test(px, py, tolerance)
        self._last_pos = (px, py)
        if hit is None:
            self.state, self.target_id, self.handle = IDLE, None, None
            self.deselect()
            return None
        if hit.handle:
            self.state, self.target_id, self.handle = RESIZING, hit.zone_id, hit.handle
        else:
            self.select(hit.zone_id)
            self.state, self.target_id, self.handle = DRAGGING, hit.zone_id, None
        logger.debug("pointer down -> %s %s %s", self.state, self.target_id, self.handle or "")
        return hit

    def pointer_move(self, px: float, py: float) -> bool:
        """Apply the movement since the last event; False when idle."""
        if self.state == IDLE:
            return False
        dx_px, dy_px = px - self._last_pos[0], py - self._last_pos[1]
        self._last_pos = (px, py)
        dx, dy = pixels_to_percent(dx_px, dy_px, self.canvas_width, self.canvas_height)
        if self.state == DRAGGING:
            self.move_zone(self.target_id, dx, dy)
        else:
            self.resize_zone(self.target_id, self.handle, dx, dy)
        return True

    def pointer_up(self) -> None:
        self.state, self.target_id, self.handle = IDLE, None, None

    def cancel(self) -> None:
        """Abandon any interaction in progress, e.g. when the editor closes."""
        self.pointer_up()

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def nudge(self, key: str, large: bool = False, focus_in_text_input: bool = False) -> bool:
        """Move the selected zone with an arrow key. Returns True if handled."""
        if focus_in_text_input or self.selected_id is None or key not in ARROW_KEYS:
            return False
        step = NUDGE_STEP_LARGE if large else NUDGE_STEP
        dx, dy = ARROW_KEYS[key]
        self.move_zone(self.selected_id, dx * step, dy * step)
        return True

    # ------------------------------------------------------------------
    # Mutations (percent units)
    # ------------------------------------------------------------------

    def move_zone(self, zone_id: str, dx: float, dy: float) -> None:
        if zone_id == QR_ZONE_ID:
            # Only the centre anchor is kept on the canvas
            qr = self.zones.qr_zone
            qr.x = _clamp(qr.x + dx, 0.0, 100.0)
            qr.y = _clamp(qr.y + dy, 0.0, 100.0)
        else:
            zone = self._text_zone(zone_id)
            zone.x = _clamp(zone.x + dx, 0.0, 100.0 - zone.width)
            zone.y = _clamp(zone.y + dy, 0.0, 100.0 - zone.height)
        self._changed()

    def resize_zone(self, zone_id: str, handle: str, dx: float, dy: float) -> None:
        """Move the edges named by ``handle``; the opposite edges stay put."""
        if handle not in HANDLES:
            raise ValueError(f"Unknown resize handle: {handle}")
        zone = self._text_zone(zone_id)
        left, top = zone.x, zone.y
        right, bottom = zone.x + zone.width, zone.y + zone.height

        if "w" in handle:
            left = max(0.0, min(left + dx, right - MIN_ZONE_SIZE))
        if "e" in handle:
            right = min(100.0, max(right + dx, left + MIN_ZONE_SIZE))
        if "n" in handle:
            top = max(0.0, min(top + dy, bottom - MIN_ZONE_SIZE))
        if "s" in handle:
            bottom = min(100.0, max(bottom + dy, top + MIN_ZONE_SIZE))

        zone.x, zone.y = left, top
        zone.width, zone.height = right - left, bottom - top
        self._keep_inside(zone)
        self._changed()

    def add_text_zone(self) -> TextZone:
        zone_id = f"zone_{int(time.time() * 1000)}"
        while self.zones.get_zone(zone_id) is not None:
            zone_id += "_1"
        zone = TextZone(
            id=zone_id, label="Nouvelle zone", field="prenom",
            x=10.0, y=10.0, width=30.0, height=10.0, font_size=5.0,
            font_family="Roboto", font_weight="bold", color="#000000",
            text_transform="none", max_chars_per_line=None, line_height=1.2,
        )
        self.zones.text_zones.append(zone)
        self.select(zone.id)
        self._changed()
        return zone

    def delete_zone(self, zone_id: str, confirm: Callable[[], bool]) -> bool:
        """Remove a text zone permanently once ``confirm()`` agrees."""
        if zone_id == QR_ZONE_ID:
            return False
        self._text_zone(zone_id)
        if not confirm():
            return False
        self.zones.text_zones = [z for z in self.zones.text_zones if z.id != zone_id]
        if self.selected_id == zone_id:
            self.deselect()
        if self.target_id == zone_id:
            self.pointer_up()
        self._changed()
        return True

    def update_text_zone(self, zone_id: str, values: dict) -> TextZone:
        """Apply configuration panel values; unparseable numbers keep the old value."""
        zone = self._text_zone(zone_id)
        for attr in ("label", "field", "font_family", "font_weight", "color"):
            if values.get(attr):
                setattr(zone, attr, str(values[attr]))
        if values.get("text_transform") in TEXT_TRANSFORMS:
            zone.text_transform = values["text_transform"]
        if "sample_text" in values:
            zone.sample_text = values["sample_text"] or None
        if "alt_color" in values:
            zone.alt_color = str(values["alt_color"]) if values["alt_color"] else None
        if "alt_color_min_lines" in values:
            raw = values["alt_color_min_lines"]
            zone.alt_color_min_lines = _parse_int(raw, None) if raw not in (None, "") else None
            if zone.alt_color_min_lines is not None and zone.alt_color_min_lines <= 0:
                zone.alt_color_min_lines = None

        for attr in ("x", "y", "width", "height", "font_size", "line_height"):
            if attr in values:
                setattr(zone, attr, _parse_float(values[attr], getattr(zone, attr)))
        if "max_chars_per_line" in values:
            raw = values["max_chars_per_line"]
            zone.max_chars_per_line = _parse_int(raw, None) if raw not in (None, "") else None
            if zone.max_chars_per_line is not None and zone.max_chars_per_line <= 0:
                zone.max_chars_per_line = None

        zone.font_size = max(MIN_FONT_SIZE, zone.font_size)
        zone.line_height = max(MIN_LINE_HEIGHT, zone.line_height)
        self._keep_inside(zone)
        self._changed()
        return zone

    def update_qr_zone(self, values: dict) -> None:
        qr = self.zones.qr_zone
        if "enabled" in values:
            qr.enabled = bool(values["enabled"])
        for attr in ("x", "y", "size", "logo_size"):
            if attr in values:
                setattr(qr, attr, _parse_float(values[attr], getattr(qr, attr)))
        if values.get("correct_level") in ("L", "M", "Q", "H"):
            qr.correct_level = values["correct_level"]
        if values.get("logo_path"):
            qr.logo_path = str(values["logo_path"])
        qr.x = _clamp(qr.x, 0.0, 100.0)
        qr.y = _clamp(qr.y, 0.0, 100.0)
        qr.size = _clamp(qr.size, 1.0, 100.0)
        qr.logo_size = _clamp(qr.logo_size, 0.0, 1.0)
        if not qr.enabled and self.selected_id == QR_ZONE_ID:
            self.deselect()
        self._changed()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _text_zone(self, zone_id: str) -> TextZone:
        zone = self.zones.get_zone(zone_id)
        if zone is None:
            raise KeyError(zone_id)
        return zone

    def _keep_inside(self, zone: TextZone) -> None:
        zone.width = _clamp(zone.width, MIN_ZONE_SIZE, 100.0)
        zone.height = _clamp(zone.height, MIN_ZONE_SIZE, 100.0)
        zone.x = _clamp(zone.x, 0.0, 100.0 - zone.width)
        zone.y = _clamp(zone.y, 0.0, 100.0 - zone.height)

    def _changed(self) -> None:
        if self.on_change:
            self.on_change(self)


def _parse_float(raw, default: float) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def _parse_int(raw, default):
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return default
