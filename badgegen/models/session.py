"""One badge-making session: template, participants, zones and the open editor."""

import logging
from typing import Callable, Dict, Iterator, List, Optional

from PIL import Image

from badgegen.export.badge_renderer import render_badge
from badgegen.export.qr_codes import QRCache, make_qr_image
from badgegen.models.csv_data import CSVData
from badgegen.models.fields import FieldResolver
from badgegen.models.project_store import Project
from badgegen.models.zone_editor import ZoneEditor
from badgegen.models.zones import ZoneModel, default_zone_model
from badgegen.utils.image_utils import from_image_bytes, to_png_bytes

logger = logging.getLogger(__name__)

# Shown in the editor preview when no participant data is loaded
SAMPLE_RECORD = {
    "prenom": "Jean-Baptiste",
    "nom": "Rousseau",
    "role": "Speaker",
    "pole": "Organisation",
    "email": "jean-baptiste@example.com",
    "tel": "+241 00 00 00 00",
}


class BadgeSession:
    """Everything the renderer and editor need, owned by one front end."""

    def __init__(self):
        self.template: Optional[Image.Image] = None
        self.logo: Optional[Image.Image] = None
        self.csv_data = CSVData()
        self.resolver = FieldResolver()
        self.zones: ZoneModel = default_zone_model()
        self.editor: Optional[ZoneEditor] = None
        self.qr_cache = QRCache(make_qr_image)
        self.current_row = 0
        self.project_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def set_template(self, img: Optional[Image.Image]) -> None:
        """Use a new background; the badge canvas takes its pixel size."""
        self.template = img.convert("RGBA") if img is not None else None
        if self.editor is not None and self.template is not None:
            self.editor.set_canvas_size(*self.template.size)
        if img is not None:
            logger.info("Template loaded (%dx%d px)", img.width, img.height)

    def set_logo(self, img: Optional[Image.Image]) -> None:
        self.logo = img.convert("RGBA") if img is not None else None

    def load_logo_file(self, path: str) -> bool:
        """Load the QR logo from disk; a missing file just leaves no logo."""
        try:
            with Image.open(path) as img:
                self.set_logo(img)
            return True
        except (OSError, ValueError) as e:
            logger.warning("QR logo %s not loaded: %s", path, e)
            self.set_logo(None)
            return False

    def load_participants(self, csv_data: CSVData) -> None:
        self.csv_data = csv_data
        self.current_row = 0
        logger.info("%d participant(s) loaded", csv_data.row_count)

    @property
    def has_template(self) -> bool:
        return self.template is not None

    @property
    def canvas_size(self):
        return self.template.size if self.template is not None else (1000, 1000)

    # ------------------------------------------------------------------
    # Zone editor
    # ------------------------------------------------------------------

    def open_editor(
        self,
        on_change: Optional[Callable[[ZoneEditor], None]] = None,
        on_selection_change: Optional[Callable[[Optional[str]], None]] = None,
    ) -> ZoneEditor:
        if self.editor is not None:
            self.editor.cancel()
        self.editor = ZoneEditor(self.zones, self.canvas_size, on_change, on_selection_change)
        return self.editor

    def commit_editor(self) -> ZoneModel:
        """Keep the edited layout and close the editor."""
        if self.editor is None:
            return self.zones
        self.editor.cancel()
        self.zones = self.editor.snapshot()
        self.editor = None
        return self.zones

    def discard_editor(self) -> None:
        if self.editor is not None:
            self.editor.cancel()
        self.editor = None

    def active_zones(self) -> ZoneModel:
        """Layout to render: the live editor state while editing."""
        if self.editor is not None:
            return self.editor.snapshot()
        return self.zones

    def copy(self) -> "BadgeSession":
        """Detached copy for a background export (no editor, own QR cache)."""
        other = BadgeSession()
        other.template = self.template.copy() if self.template is not None else None
        other.logo = self.logo.copy() if self.logo is not None else None
        other.csv_data.headers = list(self.csv_data.headers)
        other.csv_data.rows = [dict(r) for r in self.csv_data.rows]
        other.resolver = FieldResolver(self.resolver.overrides)
        other.zones = self.active_zones().copy()
        other.current_row = self.current_row
        other.project_id = self.project_id
        return other

    # ------------------------------------------------------------------
    # Participant editing
    # ------------------------------------------------------------------

    def update_participant(self, row_index: int, values: Dict[str, str]) -> Dict[str, str]:
        """Overwrite some columns of one row. Unknown columns raise KeyError."""
        unknown = [c for c in values if c not in self.csv_data.headers]
        if unknown:
            raise KeyError(", ".join(unknown))
        for column, value in values.items():
            self.csv_data.set_value(row_index, column, value)
        self.qr_cache.clear()
        logger.info("Participant %d updated", row_index + 1)
        return self.csv_data.get_row(row_index)

    def add_participant(self, values: Optional[Dict[str, str]] = None) -> int:
        index = self.csv_data.add_row(values)
        self.current_row = index
        logger.info("Participant %d added", index + 1)
        return index

    def delete_participant(self, row_index: int) -> None:
        self.csv_data.delete_row(row_index)
        self.qr_cache.clear()
        if self.current_row >= self.csv_data.row_count:
            self.current_row = max(0, self.csv_data.row_count - 1)
        logger.info("Participant %d deleted", row_index + 1)

    def find_duplicates(self) -> Dict[str, Dict[str, List[int]]]:
        return self.csv_data.find_duplicates(self.resolver)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def sample_record(self) -> Dict[str, str]:
        """Current participant, or sample values for an empty session."""
        if self.csv_data.row_count:
            return self.csv_data.get_row(self.current_row)
        record = dict(SAMPLE_RECORD)
        for zone in self.active_zones().text_zones:
            if zone.sample_text:
                record[zone.field] = zone.sample_text
        return record

    def render_record(self, record) -> Optional[Image.Image]:
        return render_badge(
            self.template, record, self.active_zones(),
            qr_raster_fn=self.qr_cache, logo=self.logo, resolver=self.resolver,
        )

    def render_row(self, row_index: int) -> Optional[Image.Image]:
        if not 0 <= row_index < self.csv_data.row_count:
            raise IndexError(f"Row index out of range: {row_index}")
        return self.render_record(self.csv_data.get_row(row_index))

    def render_preview(self) -> Optional[Image.Image]:
        return self.render_record(self.sample_record())

    def iter_badges(self, is_cancelled: Optional[Callable[[], bool]] = None) -> Iterator[Image.Image]:
        """Render every participant in order, one at a time."""
        if self.template is None:
            return
        for i in range(self.csv_data.row_count):
            if is_cancelled and is_cancelled():
                logger.info("Badge rendering cancelled after %d badge(s)", i)
                return
            yield self.render_row(i)

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def to_project(self, project: Project) -> Project:
        """Copy the session into a project record (zones as committed or edited)."""
        project.zones = self.active_zones()
        if self.template is not None:
            project.template_png = to_png_bytes(self.template)
            project.template_width, project.template_height = self.template.size
        project.logo_png = to_png_bytes(self.logo) if self.logo is not None else None
        project.csv_headers = list(self.csv_data.headers)
        project.csv_rows = [dict(r) for r in self.csv_data.rows]
        project.column_mappings = dict(self.resolver.overrides)
        return project

    def load_project(self, project: Project) -> None:
        self.discard_editor()
        self.project_id = project.id
        self.zones = project.zones.copy()
        self.set_template(from_image_bytes(project.template_png))
        if project.logo_png:
            self.set_logo(from_image_bytes(project.logo_png))
        csv_data = CSVData()
        csv_data.headers = list(project.csv_headers)
        csv_data.rows = [dict(r) for r in project.csv_rows]
        self.load_participants(csv_data)
        self.resolver = FieldResolver(project.column_mappings)
        self.qr_cache.clear()
        logger.info('Project "%s" opened', project.name)
