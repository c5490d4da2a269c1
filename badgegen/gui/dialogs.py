"""Export progress, project picker, column mapping and participant dialogs."""

import logging
import threading
import tkinter as tk
from tkinter import filedialog, messagebox, simpledialog, ttk
from typing import Callable, Dict, List, Optional

from badgegen.models.fields import BADGE_FIELDS, detect_mappings
from badgegen.models.project_store import Project, ProjectStore

logger = logging.getLogger(__name__)


def _center_on(dialog: tk.Toplevel, parent, width: int, height: int):
    dialog.geometry(f"{width}x{height}")
    dialog.update_idletasks()
    px = parent.winfo_rootx() + (parent.winfo_width() - width) // 2
    py = parent.winfo_rooty() + (parent.winfo_height() - height) // 2
    dialog.geometry(f"+{px}+{py}")


class ExportProgressDialog(tk.Toplevel):
    """Modal dialog showing PDF export progress with a progress bar."""

    def __init__(self, parent, total: int, export_func: Callable, **kwargs):
        super().__init__(parent, **kwargs)
        self.title("Exporting PDF...")
        self.resizable(False, False)
        self.transient(parent)
        self.grab_set()

        self.total = total
        self.export_func = export_func
        self.cancelled = False
        self.error: Optional[str] = None

        _center_on(self, parent, 360, 130)
        self._build_ui()
        self._start_export()

    def _build_ui(self):
        self.configure(bg="#f0f0f0")
        frame = ttk.Frame(self)
        frame.pack(fill=tk.BOTH, expand=True, padx=16, pady=12)

        ttk.Label(frame, text="Generating badges...", font=("Segoe UI", 10)).pack(pady=(0, 8))

        self.progress_var = tk.DoubleVar(value=0)
        self.progress_bar = ttk.Progressbar(
            frame, variable=self.progress_var, maximum=max(self.total, 1), length=300
        )
        self.progress_bar.pack(fill=tk.X, pady=4)

        self.status_label = ttk.Label(frame, text=f"0 / {self.total}", font=("Segoe UI", 9))
        self.status_label.pack(pady=4)

        self.btn_cancel = ttk.Button(frame, text="Cancel", command=self._cancel)
        self.btn_cancel.pack(pady=(4, 0))

    def _start_export(self):
        """Run the export in a background thread."""
        self._thread = threading.Thread(target=self._run_export, daemon=True)
        self._thread.start()

    def _run_export(self):
        try:
            self.export_func(self._on_progress, self._is_cancelled)
        except Exception as e:
            logger.exception("PDF export failed")
            self.error = str(e)
        finally:
            self.after(0, self._finish)

    def _on_progress(self, current: int):
        """Called from the export thread to update progress."""
        self.after(0, self._update_ui, current)

    def _update_ui(self, current: int):
        self.progress_var.set(current)
        self.status_label.config(text=f"{current} / {self.total}")

    def _is_cancelled(self) -> bool:
        return self.cancelled

    def _cancel(self):
        self.cancelled = True
        self.btn_cancel.config(state="disabled")
        self.btn_cancel.config(text="Cancelling...")

    def _finish(self):
        if self.error:
            messagebox.showerror("Export Error", self.error, parent=self)
        self.grab_release()
        self.destroy()


class ProjectDialog(tk.Toplevel):
    """Lists saved projects; create, open, delete, import and export them.

    After the dialog closes, ``selected`` holds the project to open, if any.
    """

    def __init__(self, parent, store: ProjectStore, **kwargs):
        super().__init__(parent, **kwargs)
        self.title("Projects")
        self.resizable(False, True)
        self.transient(parent)
        self.grab_set()

        self.store = store
        self.selected: Optional[Project] = None
        self._projects: List[Project] = []

        _center_on(self, parent, 460, 360)
        self._build_ui()
        self._reload()
        self.protocol("WM_DELETE_WINDOW", self._close)

    def _build_ui(self):
        self.configure(bg="#f0f0f0")
        outer = ttk.Frame(self)
        outer.pack(fill=tk.BOTH, expand=True, padx=12, pady=10)

        self.tree = ttk.Treeview(outer, columns=("name", "updated", "count"), show="headings", height=10)
        self.tree.heading("name", text="Name")
        self.tree.heading("updated", text="Last modified")
        self.tree.heading("count", text="Participants")
        self.tree.column("name", width=180)
        self.tree.column("updated", width=150)
        self.tree.column("count", width=80, anchor=tk.E)
        self.tree.pack(fill=tk.BOTH, expand=True)
        self.tree.bind("<Double-1>", lambda e: self._open())

        btn_frame = ttk.Frame(outer)
        btn_frame.pack(fill=tk.X, pady=(8, 0))
        ttk.Button(btn_frame, text="Open", style="Accent.TButton", command=self._open).pack(side=tk.LEFT, padx=2)
        ttk.Button(btn_frame, text="New...", command=self._create).pack(side=tk.LEFT, padx=2)
        ttk.Button(btn_frame, text="Delete", command=self._delete).pack(side=tk.LEFT, padx=2)
        ttk.Button(btn_frame, text="Import...", command=self._import).pack(side=tk.LEFT, padx=2)
        ttk.Button(btn_frame, text="Export...", command=self._export).pack(side=tk.LEFT, padx=2)
        ttk.Button(btn_frame, text="Close", command=self._close).pack(side=tk.RIGHT, padx=2)

    def _reload(self):
        self._projects = self.store.list_all()
        self.tree.delete(*self.tree.get_children())
        for project in self._projects:
            updated = project.updated_at[:16].replace("T", " ")
            self.tree.insert("", tk.END, iid=project.id,
                             values=(project.name, updated, len(project.csv_rows)))

    def _current(self) -> Optional[Project]:
        sel = self.tree.selection()
        if not sel:
            return None
        return next((p for p in self._projects if p.id == sel[0]), None)

    def _open(self):
        project = self._current()
        if project is None:
            return
        self.selected = project
        self._close()

    def _create(self):
        name = simpledialog.askstring("New Project", "Project name:", parent=self)
        if name is None:
            return
        try:
            project = self.store.create(name)
        except ValueError as e:
            messagebox.showerror("New Project", str(e), parent=self)
            return
        self._reload()
        self.tree.selection_set(project.id)

    def _delete(self):
        project = self._current()
        if project is None:
            return
        if messagebox.askyesno("Delete Project", f'Delete the project "{project.name}"?', parent=self):
            self.store.delete(project.id)
            self._reload()

    def _import(self):
        path = filedialog.askopenfilename(
            title="Import Project", parent=self,
            filetypes=[("JSON files", "*.json"), ("All files", "*.*")],
        )
        if not path:
            return
        try:
            with open(path, "r", encoding="utf-8-sig") as f:
                project = self.store.import_json(f.read())
        except (OSError, ValueError) as e:
            messagebox.showerror("Import Project", str(e), parent=self)
            return
        self._reload()
        self.tree.selection_set(project.id)

    def _export(self):
        project = self._current()
        if project is None:
            return
        path = filedialog.asksaveasfilename(
            title="Export Project", parent=self,
            defaultextension=".json", initialfile=f"{project.id}.json",
            filetypes=[("JSON files", "*.json")],
        )
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(self.store.export_json(project.id))
        except OSError as e:
            messagebox.showerror("Export Project", str(e), parent=self)

    def _close(self):
        self.grab_release()
        self.destroy()


class ColumnMappingDialog(tk.Toplevel):
    """Pick which CSV column feeds each badge field.

    ``result`` is the override mapping (field -> column) after Apply, or None.
    """

    AUTO = "(automatic)"

    def __init__(self, parent, headers: List[str], overrides: Dict[str, str], **kwargs):
        super().__init__(parent, **kwargs)
        self.title("Column Mapping")
        self.resizable(False, False)
        self.transient(parent)
        self.grab_set()

        self.result: Optional[Dict[str, str]] = None
        self._vars: Dict[str, tk.StringVar] = {}

        detected = detect_mappings(headers)
        frame = ttk.Frame(self)
        frame.pack(fill=tk.BOTH, expand=True, padx=12, pady=10)
        for field, label in BADGE_FIELDS.items():
            row = ttk.Frame(frame)
            row.pack(fill=tk.X, pady=3)
            ttk.Label(row, text=label + ":", width=18, anchor=tk.W).pack(side=tk.LEFT)
            var = tk.StringVar(value=overrides.get(field, self.AUTO))
            ttk.Combobox(row, textvariable=var, values=[self.AUTO] + list(headers),
                         state="readonly", width=26).pack(side=tk.LEFT)
            hint = detected.get(field, "")
            ttk.Label(row, text=hint, foreground="#666666").pack(side=tk.LEFT, padx=6)
            self._vars[field] = var

        btns = ttk.Frame(frame)
        btns.pack(fill=tk.X, pady=(8, 0))
        ttk.Button(btns, text="Apply", style="Accent.TButton", command=self._apply).pack(side=tk.RIGHT, padx=2)
        ttk.Button(btns, text="Cancel", command=self.destroy).pack(side=tk.RIGHT, padx=2)

    def _apply(self):
        self.result = {f: v.get() for f, v in self._vars.items() if v.get() != self.AUTO}
        self.grab_release()
        self.destroy()


class ParticipantDialog(tk.Toplevel):
    """Edit every column of one participant row.

    ``result`` holds the column values after Save, or None when cancelled.
    """

    def __init__(self, parent, headers: List[str], values: Optional[Dict[str, str]] = None,
                 title: str = "Participant", **kwargs):
        super().__init__(parent, **kwargs)
        self.title(title)
        self.resizable(False, True)
        self.transient(parent)
        self.grab_set()

        self.result: Optional[Dict[str, str]] = None
        self._vars: Dict[str, tk.StringVar] = {}
        values = values or {}

        _center_on(self, parent, 400, min(560, 110 + 32 * len(headers)))

        top = ttk.Frame(self)
        top.pack(fill=tk.BOTH, expand=True, padx=10, pady=(10, 4))
        canvas = tk.Canvas(top, highlightthickness=0, bg="#f0f0f0")
        scrollbar = ttk.Scrollbar(top, orient=tk.VERTICAL, command=canvas.yview)
        inner = ttk.Frame(canvas)
        inner.bind("<Configure>", lambda e: canvas.configure(scrollregion=canvas.bbox("all")))
        canvas.create_window((0, 0), window=inner, anchor=tk.NW)
        canvas.configure(yscrollcommand=scrollbar.set)
        canvas.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)
        scrollbar.pack(side=tk.RIGHT, fill=tk.Y)

        for col in headers:
            row = ttk.Frame(inner)
            row.pack(fill=tk.X, pady=3)
            ttk.Label(row, text=col + ":", width=16, anchor=tk.W).pack(side=tk.LEFT)
            var = tk.StringVar(value=values.get(col, ""))
            ttk.Entry(row, textvariable=var, width=30).pack(side=tk.LEFT, fill=tk.X, expand=True)
            self._vars[col] = var

        btns = ttk.Frame(self)
        btns.pack(fill=tk.X, padx=10, pady=(4, 10))
        ttk.Button(btns, text="Save", style="Accent.TButton", command=self._save).pack(side=tk.RIGHT, padx=2)
        ttk.Button(btns, text="Cancel", command=self.destroy).pack(side=tk.RIGHT, padx=2)

    def _save(self):
        self.result = {col: var.get() for col, var in self._vars.items()}
        self.grab_release()
        self.destroy()
