"""Badge zone configuration: text zones, the QR zone, and JSON serialization.

Zone geometry is relative to the badge canvas. Persisted models store
fractions (0-1); the zone editor works on the same model scaled to
percentages (0-100). ``ZoneModel.units`` records which one a model holds.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional
import json

FRACTION = "fraction"
PERCENT = "percent"

TEXT_TRANSFORMS = ("none", "uppercase", "lowercase", "capitalize")

# Text zone attributes scaled between fraction and percent
_TEXT_SCALED = ("x", "y", "width", "height", "font_size")
# QR attributes scaled between fraction and percent (logo_size is a ratio of the QR)
_QR_SCALED = ("x", "y", "size")

# Python attribute name -> JSON key
_TEXT_KEYS = {
    "id": "id",
    "label": "label",
    "field": "field",
    "x": "x",
    "y": "y",
    "width": "width",
    "height": "height",
    "font_size": "fontSize",
    "font_family": "fontFamily",
    "font_weight": "fontWeight",
    "color": "color",
    "text_transform": "textTransform",
    "max_chars_per_line": "maxCharsPerLine",
    "line_height": "lineHeight",
    "sample_text": "sampleText",
    "alt_color": "altColor",
    "alt_color_min_lines": "altColorMinLines",
}
_TEXT_FLOATS = ("x", "y", "width", "height", "font_size", "line_height")
_TEXT_INTS = ("max_chars_per_line", "alt_color_min_lines")
_QR_KEYS = {
    "enabled": "enabled",
    "x": "x",
    "y": "y",
    "size": "size",
    "logo_size": "logoSize",
    "logo_path": "logoPath",
    "correct_level": "correctLevel",
}

DEFAULT_ZONE_HEIGHT = 0.10

# Lower bounds applied to loaded zones (fraction units)
MIN_ZONE_FRACTION = 0.05
MIN_FONT_FRACTION = 0.005
MIN_LINE_HEIGHT = 0.5


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _optional_int(raw) -> Optional[int]:
    """Positive int, or None for blank, zero or negative values."""
    if raw in (None, ""):
        return None
    value = int(float(raw))
    return value if value > 0 else None


@dataclass
class TextZone:
    """One block of text drawn from a participant field.

    ``(x, y)`` is the top-left corner. ``font_size`` scales against the
    canvas height, the other geometry against width or height as named.
    """
    id: str
    label: str = ""
    field: str = ""
    x: float = 0.10
    y: float = 0.10
    width: float = 0.30
    height: float = DEFAULT_ZONE_HEIGHT
    font_size: float = 0.05
    font_family: str = "Roboto"
    font_weight: str = "bold"
    color: str = "#000000"
    text_transform: str = "none"
    max_chars_per_line: Optional[int] = None
    line_height: float = 1.2
    sample_text: Optional[str] = None
    # Drawn in alt_color once the zones before it used alt_color_min_lines lines
    alt_color: Optional[str] = None
    alt_color_min_lines: Optional[int] = None

    def color_for(self, lines_before: int) -> str:
        if self.alt_color and self.alt_color_min_lines and lines_before >= self.alt_color_min_lines:
            return self.alt_color
        return self.color

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in _TEXT_KEYS.items()}

    @classmethod
    def from_dict(cls, d: dict) -> "TextZone":
        """Build a zone from its JSON form.

        Raises ValueError for entries without an id or with non-numeric
        geometry. Sizes below the editor minimums are clamped up and the box
        is pulled back inside the canvas.
        """
        if not isinstance(d, dict):
            raise ValueError(f"Text zone must be an object, got {type(d).__name__}")
        zone_id = d.get("id")
        if not isinstance(zone_id, str) or not zone_id:
            raise ValueError("Text zone without an id")

        kwargs = {attr: d[key] for attr, key in _TEXT_KEYS.items() if key in d}
        if kwargs.get("height") is None:
            kwargs["height"] = DEFAULT_ZONE_HEIGHT
        try:
            for attr in _TEXT_FLOATS:
                if kwargs.get(attr) is not None:
                    kwargs[attr] = float(kwargs[attr])
                else:
                    kwargs.pop(attr, None)
            for attr in _TEXT_INTS:
                if attr in kwargs:
                    kwargs[attr] = _optional_int(kwargs[attr])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid text zone {zone_id!r}: {e}") from e
        for attr in ("label", "field", "font_family", "font_weight", "color", "text_transform", "alt_color"):
            if attr in kwargs and not isinstance(kwargs[attr], str):
                kwargs.pop(attr)

        zone = cls(**kwargs)
        zone.clamp()
        return zone

    def clamp(self) -> None:
        """Enforce minimum sizes and keep the box on a fraction-scaled canvas."""
        self.width = _clamp(self.width, MIN_ZONE_FRACTION, 1.0)
        self.height = _clamp(self.height, MIN_ZONE_FRACTION, 1.0)
        self.x = _clamp(self.x, 0.0, 1.0 - self.width)
        self.y = _clamp(self.y, 0.0, 1.0 - self.height)
        self.font_size = max(MIN_FONT_FRACTION, self.font_size)
        self.line_height = max(MIN_LINE_HEIGHT, self.line_height)
        if self.text_transform not in TEXT_TRANSFORMS:
            self.text_transform = "none"


@dataclass
class QRZone:
    """The contact QR code. ``x`` is the horizontal *centre* of the block,
    ``y`` its top edge; ``size`` is relative to the canvas width."""
    enabled: bool = True
    x: float = 0.75
    y: float = 0.32
    size: float = 0.28
    logo_size: float = 0.30
    logo_path: str = "logo-qr.png"
    correct_level: str = "M"

    def to_dict(self) -> dict:
        return {key: getattr(self, attr) for attr, key in _QR_KEYS.items()}

    @classmethod
    def from_dict(cls, d: dict) -> "QRZone":
        if not isinstance(d, dict):
            raise ValueError(f"QR zone must be an object, got {type(d).__name__}")
        kwargs = {attr: d[key] for attr, key in _QR_KEYS.items() if key in d and d[key] is not None}
        try:
            for attr in ("x", "y", "size", "logo_size"):
                if attr in kwargs:
                    kwargs[attr] = float(kwargs[attr])
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid QR zone: {e}") from e
        if "enabled" in kwargs:
            kwargs["enabled"] = bool(kwargs["enabled"])
        qr = cls(**kwargs)
        qr.x = _clamp(qr.x, 0.0, 1.0)
        qr.y = _clamp(qr.y, 0.0, 1.0)
        qr.size = _clamp(qr.size, 0.01, 1.0)
        qr.logo_size = _clamp(qr.logo_size, 0.0, 1.0)
        return qr


@dataclass
class ZoneModel:
    """Ordered text zones (drawing order) plus the single QR zone."""
    text_zones: List[TextZone] = field(default_factory=list)
    qr_zone: QRZone = field(default_factory=QRZone)
    units: str = FRACTION

    def get_zone(self, zone_id: str) -> Optional[TextZone]:
        for zone in self.text_zones:
            if zone.id == zone_id:
                return zone
        return None

    def copy(self) -> "ZoneModel":
        return ZoneModel(
            text_zones=[replace(z) for z in self.text_zones],
            qr_zone=replace(self.qr_zone),
            units=self.units,
        )

    # ------------------------------------------------------------------
    # Unit conversion
    # ------------------------------------------------------------------

    def to_percent(self) -> "ZoneModel":
        """Return a copy scaled for editing (fraction x 100)."""
        if self.units != FRACTION:
            raise ValueError(f"Zone model is already in {self.units} units")
        return self._scaled(lambda v: v * 100.0, PERCENT)

    def to_fraction(self) -> "ZoneModel":
        """Return a copy scaled for storage and rendering (percent / 100)."""
        if self.units != PERCENT:
            raise ValueError(f"Zone model is already in {self.units} units")
        return self._scaled(lambda v: v / 100.0, FRACTION)

    def _scaled(self, convert: Callable[[float], float], units: str) -> "ZoneModel":
        model = self.copy()
        for zone in model.text_zones:
            for attr in _TEXT_SCALED:
                setattr(zone, attr, convert(getattr(zone, attr)))
        for attr in _QR_SCALED:
            setattr(model.qr_zone, attr, convert(getattr(model.qr_zone, attr)))
        model.units = units
        return model

    # ------------------------------------------------------------------
    # Serialization (fraction units only)
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        if self.units != FRACTION:
            raise ValueError("Only fraction-scaled zone models can be serialized")
        return {
            "textZones": [z.to_dict() for z in self.text_zones],
            "qrZone": self.qr_zone.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ZoneModel":
        raw_zones = d.get("textZones") or []
        if not isinstance(raw_zones, list):
            raise ValueError("textZones must be a list")
        zones = [TextZone.from_dict(z) for z in raw_zones]
        qr_data = d.get("qrZone")
        qr = QRZone.from_dict(qr_data) if qr_data else QRZone()
        return cls(text_zones=zones, qr_zone=qr, units=FRACTION)

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> "ZoneModel":
        return cls.from_dict(json.loads(text))


def default_text_zones() -> List[TextZone]:
    return [
        TextZone(id="prenom", label="Prénom", field="prenom",
                 x=0.05, y=0.44, width=0.45, height=0.10, font_size=0.05,
                 font_weight="bold", color="#000000", text_transform="capitalize",
                 max_chars_per_line=16, line_height=1.2),
        TextZone(id="nom", label="Nom", field="nom",
                 x=0.05, y=0.56, width=0.45, height=0.10, font_size=0.05,
                 font_weight="bold", color="#000000", text_transform="uppercase",
                 max_chars_per_line=12, line_height=1.2),
        TextZone(id="role", label="Rôle", field="role",
                 x=0.05, y=0.68, width=0.45, height=0.08, font_size=0.03,
                 font_weight="normal", color="#3c4043", text_transform="none",
                 line_height=1.3, alt_color="#ffffff", alt_color_min_lines=4),
        TextZone(id="pole", label="Pôle/Organisation", field="pole",
                 x=0.05, y=0.78, width=0.45, height=0.08, font_size=0.03,
                 font_weight="normal", color="#3c4043", text_transform="none",
                 line_height=1.3),
    ]


def default_zone_model() -> ZoneModel:
    """The layout used for new projects: four name/role zones and a QR code."""
    return ZoneModel(text_zones=default_text_zones(), qr_zone=QRZone(), units=FRACTION)
