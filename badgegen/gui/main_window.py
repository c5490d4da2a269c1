"""Main application window: menu bar, toolbar, two-pane layout, status bar."""

import logging
import os
import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from typing import Optional

from PIL import Image

from badgegen import config
from badgegen.export.pdf_export import export_badges_pdf
from badgegen.gui.canvas_editor import CanvasEditor
from badgegen.gui.dialogs import (
    ColumnMappingDialog, ExportProgressDialog, ParticipantDialog, ProjectDialog,
)
from badgegen.gui.zone_panel import ZonePanel
from badgegen.models.csv_data import CSVData
from badgegen.models.fields import badge_filename, display_name
from badgegen.models.project_store import Project, ProjectNotFound, ProjectStore
from badgegen.models.session import BadgeSession

logger = logging.getLogger(__name__)


class MainWindow:
    """Top-level application window."""

    def __init__(self, root: tk.Tk, store: Optional[ProjectStore] = None):
        self.root = root
        self.root.title("Badge Generator")
        self.root.geometry("1100x680")
        self.root.minsize(820, 520)

        # Core state
        self.session = BadgeSession()
        self.store = store or ProjectStore(config.PROJECTS_DIR)
        self.project: Optional[Project] = None
        if os.path.exists(config.LOGO_PATH):
            self.session.load_logo_file(config.LOGO_PATH)

        self._build_menu()
        self._build_toolbar()
        self._build_main_panes()
        self._build_status_bar()

        self.zone_panel.on_save = self._save_layout
        self.zone_panel.on_discard = self._discard_layout
        self.canvas_editor.on_row_changed = lambda row: self._update_status()

        # Load font list (may take a moment on first run)
        self.root.after(100, self.zone_panel.refresh_fonts)
        self._update_status()

    # ------------------------------------------------------------------
    # UI Construction
    # ------------------------------------------------------------------

    def _build_menu(self):
        menubar = tk.Menu(self.root)
        self.root.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        file_menu.add_command(label="Projects...", command=self._open_projects)
        file_menu.add_command(label="Save Project", command=self._save_project)
        file_menu.add_separator()
        file_menu.add_command(label="Open Badge Template...", command=self._open_template)
        file_menu.add_command(label="Open QR Logo...", command=self._open_logo)
        file_menu.add_command(label="Open Participants CSV...", command=self._open_csv)
        file_menu.add_command(label="Save Participants CSV As...", command=self._save_csv_as)
        file_menu.add_separator()
        file_menu.add_command(label="Export PDF...", command=self._export_pdf)
        file_menu.add_command(label="Save Current Badge as PNG...", command=self._save_png)
        file_menu.add_separator()
        file_menu.add_command(label="Exit", command=self.root.quit)
        menubar.add_cascade(label="File", menu=file_menu)

        edit_menu = tk.Menu(menubar, tearoff=0)
        edit_menu.add_command(label="Edit Zones", command=self._edit_zones)
        edit_menu.add_command(label="Column Mapping...", command=self._column_mapping)
        edit_menu.add_separator()
        edit_menu.add_command(label="Edit Participant...", command=self._edit_participant)
        edit_menu.add_command(label="Add Participant...", command=self._add_participant)
        edit_menu.add_command(label="Delete Participant", command=self._delete_participant)
        edit_menu.add_command(label="Find Duplicates", command=self._find_duplicates)
        menubar.add_cascade(label="Edit", menu=edit_menu)

        help_menu = tk.Menu(menubar, tearoff=0)
        help_menu.add_command(label="About", command=self._show_about)
        menubar.add_cascade(label="Help", menu=help_menu)

    def _build_toolbar(self):
        toolbar = ttk.Frame(self.root, style="Toolbar.TFrame")
        toolbar.pack(fill=tk.X, pady=(0, 1))

        pad = dict(padx=2, pady=4)
        ttk.Button(toolbar, text="Projects", style="Toolbar.TButton",
                   command=self._open_projects).pack(side=tk.LEFT, **pad)
        ttk.Button(toolbar, text="Save Project", style="Toolbar.TButton",
                   command=self._save_project).pack(side=tk.LEFT, **pad)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6, pady=4)

        ttk.Button(toolbar, text="Open Template", style="Toolbar.TButton",
                   command=self._open_template).pack(side=tk.LEFT, **pad)
        ttk.Button(toolbar, text="Open CSV", style="Toolbar.TButton",
                   command=self._open_csv).pack(side=tk.LEFT, **pad)
        ttk.Button(toolbar, text="Columns", style="Toolbar.TButton",
                   command=self._column_mapping).pack(side=tk.LEFT, **pad)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6, pady=4)

        ttk.Button(toolbar, text="Edit Zones", style="Toolbar.TButton",
                   command=self._edit_zones).pack(side=tk.LEFT, **pad)

        ttk.Separator(toolbar, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=6, pady=4)

        ttk.Button(toolbar, text="Export PDF", style="Accent.TButton",
                   command=self._export_pdf).pack(side=tk.LEFT, **pad)
        ttk.Button(toolbar, text="Save PNG", style="Accent.TButton",
                   command=self._save_png).pack(side=tk.LEFT, **pad)

    def _build_main_panes(self):
        container = ttk.Frame(self.root)
        container.pack(fill=tk.BOTH, expand=True)

        # Canvas editor (left)
        self.canvas_editor = CanvasEditor(container, self.session)
        self.canvas_editor.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=(6, 3), pady=6)

        ttk.Separator(container, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, pady=6)

        # Zone panel (right)
        self.zone_panel = ZonePanel(container, self.session)
        self.zone_panel.pack(side=tk.RIGHT, fill=tk.Y, padx=(3, 6), pady=6)

    def _build_status_bar(self):
        status_frame = ttk.Frame(self.root, style="Status.TFrame")
        status_frame.pack(fill=tk.X, side=tk.BOTTOM)
        self.status_bar = ttk.Label(
            status_frame, text="Ready", style="Status.TLabel", padding=(8, 4)
        )
        self.status_bar.pack(fill=tk.X)

    # ------------------------------------------------------------------
    # Zone editing
    # ------------------------------------------------------------------

    def _edit_zones(self):
        if not self.session.has_template:
            messagebox.showwarning("No Template", "Please open a badge template first.")
            return
        if self.session.editor is not None:
            return
        self.session.open_editor(
            on_change=lambda editor: self._on_zones_changed(),
            on_selection_change=lambda zone_id: self._on_zones_changed(),
        )
        self.zone_panel.set_enabled(True)
        self.zone_panel.refresh()
        self.canvas_editor.refresh()
        self.canvas_editor.canvas.focus_set()
        self._set_status("Editing zones: drag to move, handles to resize, arrows to nudge (Shift: x10)")

    def _on_zones_changed(self):
        self.zone_panel.refresh()
        self.canvas_editor.refresh()

    def _save_layout(self):
        self.session.commit_editor()
        self._close_zone_editing()
        self._set_status("Zone layout saved")

    def _discard_layout(self):
        self.session.discard_editor()
        self._close_zone_editing()
        self._set_status("Zone changes discarded")

    def _close_zone_editing(self):
        self.zone_panel.refresh()
        self.zone_panel.set_enabled(False)
        self.canvas_editor.refresh()

    # ------------------------------------------------------------------
    # File actions
    # ------------------------------------------------------------------

    def _ask_image(self, title: str) -> Optional[Image.Image]:
        path = filedialog.askopenfilename(
            title=title,
            filetypes=[
                ("Image files", "*.png *.jpg *.jpeg *.bmp *.gif *.webp"),
                ("All files", "*.*"),
            ],
        )
        if not path:
            return None
        try:
            with Image.open(path) as img:
                return img.convert("RGBA")
        except (OSError, ValueError) as e:
            messagebox.showerror("Error", f"Could not open image:\n{e}")
            return None

    def _open_template(self):
        img = self._ask_image("Select Badge Template")
        if img is None:
            return
        self.session.set_template(img)
        self.canvas_editor.refresh()
        self._update_status()

    def _open_logo(self):
        img = self._ask_image("Select QR Logo")
        if img is None:
            return
        self.session.set_logo(img)
        self.canvas_editor.refresh()

    def _open_csv(self):
        path = filedialog.askopenfilename(
            title="Select Participants CSV",
            filetypes=[("CSV files", "*.csv"), ("All files", "*.*")],
        )
        if not path:
            return
        csv_data = CSVData()
        try:
            csv_data.load(path)
        except (OSError, ValueError) as e:
            messagebox.showerror("Error", f"Could not load CSV:\n{e}")
            return

        self.session.load_participants(csv_data)
        self.canvas_editor.refresh()
        self._update_status()

    def _save_csv_as(self):
        if not self.session.csv_data.is_loaded:
            messagebox.showwarning("No Data", "There is no participant data to save.")
            return
        path = filedialog.asksaveasfilename(
            title="Save Participants CSV As",
            defaultextension=".csv",
            filetypes=[("CSV files", "*.csv"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            self.session.csv_data.save(path)
            self._set_status(f"CSV saved: {path}")
        except OSError as e:
            messagebox.showerror("Error", f"Could not save CSV:\n{e}")

    def _column_mapping(self):
        csv_data = self.session.csv_data
        if not csv_data.is_loaded:
            messagebox.showwarning("No Data", "Please load a participants CSV first.")
            return
        dialog = ColumnMappingDialog(self.root, csv_data.headers, self.session.resolver.overrides)
        self.root.wait_window(dialog)
        if dialog.result is None:
            return
        self.session.resolver.overrides = dict(dialog.result)
        self.session.qr_cache.clear()
        self.canvas_editor.refresh()

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _open_projects(self):
        dialog = ProjectDialog(self.root, self.store)
        self.root.wait_window(dialog)
        if dialog.selected is None:
            return
        self.project = dialog.selected
        self.session.load_project(self.project)
        self._close_zone_editing()
        self._update_status()
        self._set_status(f'Project "{self.project.name}" opened')

    def _save_project(self):
        if self.project is None:
            messagebox.showinfo("Save Project", "Create or open a project first (File > Projects).")
            return
        self.session.to_project(self.project)
        try:
            self.project = self.store.update(
                self.project.id,
                zones=self.project.zones,
                template_png=self.project.template_png,
                template_width=self.project.template_width,
                template_height=self.project.template_height,
                logo_png=self.project.logo_png,
                csv_headers=self.project.csv_headers,
                csv_rows=self.project.csv_rows,
                column_mappings=self.project.column_mappings,
            )
        except ProjectNotFound:
            messagebox.showerror("Save Project", "This project no longer exists.")
            self.project = None
            return
        except OSError as e:
            messagebox.showerror("Save Project", f"Could not save project:\n{e}")
            return
        self._set_status(f'Project "{self.project.name}" saved')

    # ------------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------------

    def _edit_participant(self):
        """Open the current participant row for editing."""
        csv_data = self.session.csv_data
        if not csv_data.row_count:
            messagebox.showwarning("No Data", "Please load a participants CSV first.")
            return
        row_idx = self.session.current_row
        dialog = ParticipantDialog(self.root, csv_data.headers, csv_data.get_row(row_idx),
                                   title=f"Edit Participant - Row {row_idx + 1}")
        self.root.wait_window(dialog)
        if dialog.result is None:
            return
        self.session.update_participant(row_idx, dialog.result)
        self.canvas_editor.refresh()
        self._set_status(f"Participant {row_idx + 1} updated")

    def _add_participant(self):
        csv_data = self.session.csv_data
        if not csv_data.is_loaded:
            messagebox.showwarning("No Data", "Please load a participants CSV first.")
            return
        dialog = ParticipantDialog(self.root, csv_data.headers, title="Add Participant")
        self.root.wait_window(dialog)
        if dialog.result is None:
            return
        row_idx = self.session.add_participant(dialog.result)
        self.canvas_editor.refresh()
        self._update_status()
        self._set_status(f"Participant {row_idx + 1} added")

    def _delete_participant(self):
        csv_data = self.session.csv_data
        if not csv_data.row_count:
            return
        row_idx = self.session.current_row
        name = display_name(csv_data.get_row(row_idx), self.session.resolver, row_idx)
        if not messagebox.askyesno("Delete Participant", f'Delete "{name}" (row {row_idx + 1})?'):
            return
        self.session.delete_participant(row_idx)
        self.canvas_editor.refresh()
        self._update_status()

    def _find_duplicates(self):
        if not self.session.csv_data.row_count:
            messagebox.showwarning("No Data", "Please load a participants CSV first.")
            return
        dups = self.session.find_duplicates()
        lines = []
        for kind, label in (("email", "Email"), ("name", "Name")):
            for key, rows in dups[kind].items():
                lines.append(f"{label} {key}: rows {', '.join(str(i + 1) for i in rows)}")
        if not lines:
            messagebox.showinfo("Find Duplicates", "No duplicate participants found.")
            return
        messagebox.showwarning("Find Duplicates", "\n".join(lines))

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _export_pdf(self):
        if not self.session.has_template:
            messagebox.showwarning("No Template", "Please open a badge template first.")
            return
        if not self.session.csv_data.row_count:
            messagebox.showwarning("No Data", "Please load a participants CSV first.")
            return

        path = filedialog.asksaveasfilename(
            title="Export PDF",
            defaultextension=".pdf",
            initialfile="badges.pdf",
            filetypes=[("PDF files", "*.pdf")],
        )
        if not path:
            return

        session = self.session.copy()

        def do_export(on_progress, is_cancelled):
            export_badges_pdf(session, path, on_progress, is_cancelled)

        dialog = ExportProgressDialog(self.root, session.csv_data.row_count, do_export)
        self.root.wait_window(dialog)

        if dialog.error:
            return
        if dialog.cancelled:
            self._set_status("Export cancelled.")
        else:
            self._set_status(f"PDF exported: {path}")

    def _save_png(self):
        if not self.session.has_template:
            messagebox.showwarning("No Template", "Please open a badge template first.")
            return
        row = self.session.current_row
        record = self.session.sample_record()
        path = filedialog.asksaveasfilename(
            title="Save Badge Image",
            defaultextension=".png",
            initialfile=badge_filename(record, self.session.resolver, row),
            filetypes=[("PNG image", "*.png")],
        )
        if not path:
            return
        try:
            self.session.render_record(record).save(path)
            self._set_status(f"Badge image saved: {path}")
        except OSError as e:
            messagebox.showerror("Error", f"Could not save image:\n{e}")

    def _show_about(self):
        messagebox.showinfo(
            "About",
            "Badge Generator\n\n"
            "Open a badge template and a participants CSV,\n"
            "place the name and QR zones, and export to PDF.",
        )

    # ------------------------------------------------------------------
    # Status bar
    # ------------------------------------------------------------------

    def _update_status(self):
        parts = []
        if self.project is not None:
            parts.append(f"Project: {self.project.name}")
        if self.session.has_template:
            w, h = self.session.canvas_size
            parts.append(f"Template: {w}x{h}")
        if self.session.csv_data.is_loaded:
            parts.append(f"Participants: {self.session.csv_data.row_count}")
        self.status_bar.config(text=" | ".join(parts) if parts else "Ready")

    def _set_status(self, text: str):
        self.status_bar.config(text=text)
