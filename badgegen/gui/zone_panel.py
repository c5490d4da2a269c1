"""Side panel: zone list, text zone properties and QR code settings."""

import tkinter as tk
from tkinter import colorchooser, messagebox, ttk
from typing import Callable, List, Optional

from badgegen.models.fields import BADGE_FIELDS
from badgegen.models.session import BadgeSession
from badgegen.models.zone_editor import QR_ZONE_ID
from badgegen.models.zones import TEXT_TRANSFORMS
from badgegen.utils.fonts import get_font_families

FONT_WEIGHTS = ("normal", "bold")


def _fmt(value: float) -> str:
    return str(round(value, 1))


class ZonePanel(ttk.Frame):
    """Right-side panel editing the zones of the open ZoneEditor.

    Values are in percent of the badge, as the editor holds them. The panel
    is disabled while no editor is open.
    """

    def __init__(self, parent, session: BadgeSession, **kwargs):
        super().__init__(parent, width=300, style="Panel.TFrame", **kwargs)
        self.pack_propagate(False)
        self.session = session

        # Callbacks
        self.on_save: Optional[Callable[[], None]] = None
        self.on_discard: Optional[Callable[[], None]] = None

        self._updating = False  # prevent feedback loops
        self._zone_ids: List[str] = []
        self._build_ui()
        self.set_enabled(False)

    def _make_spinner(self, parent, var: tk.StringVar, step: float, width: int = 6) -> ttk.Frame:
        """Entry with small up/down buttons that step the value."""
        frame = ttk.Frame(parent, style="Panel.TFrame")
        ttk.Entry(frame, textvariable=var, width=width).pack(side=tk.LEFT)

        def _nudge(delta):
            try:
                var.set(_fmt(float(var.get()) + delta))
            except ValueError:
                return
            self._apply_changes()

        btns = ttk.Frame(frame, style="Panel.TFrame")
        btns.pack(side=tk.LEFT, padx=(2, 0))
        tk.Button(btns, text="▲", width=2, padx=0, pady=0, font=("Segoe UI", 5),
                  relief="flat", bg="#e0e0e0", command=lambda: _nudge(step)).pack(side=tk.TOP, pady=(0, 1))
        tk.Button(btns, text="▼", width=2, padx=0, pady=0, font=("Segoe UI", 5),
                  relief="flat", bg="#e0e0e0", command=lambda: _nudge(-step)).pack(side=tk.TOP)
        return frame

    def _labelled(self, parent, text, widget_factory):
        row = ttk.Frame(parent, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        ttk.Label(row, text=text, width=10, style="Panel.TLabel").pack(side=tk.LEFT)
        widget = widget_factory(row)
        widget.pack(side=tk.LEFT, fill=tk.X, expand=True)
        return widget

    def _build_ui(self):
        pad = dict(padx=8, pady=3)

        # --- Zones list ---
        list_frame = ttk.LabelFrame(self, text="Zones", padding=(8, 6))
        list_frame.pack(fill=tk.X, **pad)

        self.zone_listbox = tk.Listbox(list_frame, height=6, exportselection=False,
                                       font=("Segoe UI", 9), relief="flat",
                                       highlightthickness=1, highlightcolor="#0078D4",
                                       selectbackground="#0078D4", selectforeground="white")
        self.zone_listbox.pack(fill=tk.X, pady=(0, 4))
        self.zone_listbox.bind("<<ListboxSelect>>", self._on_listbox_select)

        btns = ttk.Frame(list_frame, style="Panel.TFrame")
        btns.pack(fill=tk.X)
        self.btn_add = ttk.Button(btns, text="Add Zone", command=self._add_zone)
        self.btn_add.pack(side=tk.LEFT, expand=True, fill=tk.X, padx=(0, 2))
        self.btn_delete = ttk.Button(btns, text="Delete Zone", command=self._delete_zone)
        self.btn_delete.pack(side=tk.LEFT, expand=True, fill=tk.X, padx=(2, 0))

        # --- Text zone properties ---
        self.text_frame = ttk.LabelFrame(self, text="Text Zone", padding=(8, 6))
        self.text_frame.pack(fill=tk.X, **pad)

        self.label_var = tk.StringVar()
        self._labelled(self.text_frame, "Label:", lambda p: ttk.Entry(p, textvariable=self.label_var))
        self.field_var = tk.StringVar()
        self._labelled(self.text_frame, "Field:", lambda p: ttk.Combobox(
            p, textvariable=self.field_var, values=list(BADGE_FIELDS), state="readonly"))

        row = ttk.Frame(self.text_frame, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        self.x_var, self.y_var = tk.StringVar(), tk.StringVar()
        ttk.Label(row, text="X %:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        self._make_spinner(row, self.x_var, step=1).pack(side=tk.LEFT, padx=(0, 6))
        ttk.Label(row, text="Y %:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        self._make_spinner(row, self.y_var, step=1).pack(side=tk.LEFT)

        row = ttk.Frame(self.text_frame, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        self.w_var, self.h_var = tk.StringVar(), tk.StringVar()
        ttk.Label(row, text="W %:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        self._make_spinner(row, self.w_var, step=1).pack(side=tk.LEFT, padx=(0, 6))
        ttk.Label(row, text="H %:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        self._make_spinner(row, self.h_var, step=1).pack(side=tk.LEFT)

        self.font_var = tk.StringVar()
        self.font_combo = self._labelled(self.text_frame, "Font:", lambda p: ttk.Combobox(
            p, textvariable=self.font_var))
        self.weight_var = tk.StringVar()
        self._labelled(self.text_frame, "Weight:", lambda p: ttk.Combobox(
            p, textvariable=self.weight_var, values=FONT_WEIGHTS, state="readonly"))

        row = ttk.Frame(self.text_frame, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        self.size_var, self.lh_var = tk.StringVar(), tk.StringVar()
        ttk.Label(row, text="Size %:", width=6, style="Panel.TLabel").pack(side=tk.LEFT)
        self._make_spinner(row, self.size_var, step=0.5, width=5).pack(side=tk.LEFT, padx=(0, 6))
        ttk.Label(row, text="Line:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        self._make_spinner(row, self.lh_var, step=0.1, width=5).pack(side=tk.LEFT)

        self.transform_var = tk.StringVar()
        self._labelled(self.text_frame, "Transform:", lambda p: ttk.Combobox(
            p, textvariable=self.transform_var, values=TEXT_TRANSFORMS, state="readonly"))
        self.max_chars_var = tk.StringVar()
        self._labelled(self.text_frame, "Max chars:", lambda p: ttk.Entry(p, textvariable=self.max_chars_var))

        row = ttk.Frame(self.text_frame, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        ttk.Label(row, text="Color:", width=10, style="Panel.TLabel").pack(side=tk.LEFT)
        self.color_var = tk.StringVar(value="#000000")
        self.color_swatch = tk.Label(row, textvariable=self.color_var, width=10,
                                     bg="#000000", fg="white", relief="flat",
                                     font=("Segoe UI", 8), padx=4, pady=2)
        self.color_swatch.pack(side=tk.LEFT, padx=(0, 4))
        ttk.Button(row, text="...", width=3, command=self._pick_color).pack(side=tk.LEFT)

        # Colour used once the zones above have wrapped to N lines or more
        row = ttk.Frame(self.text_frame, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        self.alt_color_var, self.alt_lines_var = tk.StringVar(), tk.StringVar()
        ttk.Label(row, text="Alt color:", width=10, style="Panel.TLabel").pack(side=tk.LEFT)
        ttk.Entry(row, textvariable=self.alt_color_var, width=9).pack(side=tk.LEFT, padx=(0, 4))
        ttk.Label(row, text="from", style="Panel.TLabel").pack(side=tk.LEFT)
        ttk.Entry(row, textvariable=self.alt_lines_var, width=3).pack(side=tk.LEFT, padx=4)
        ttk.Label(row, text="lines", style="Panel.TLabel").pack(side=tk.LEFT)

        # --- QR code ---
        qr_frame = ttk.LabelFrame(self, text="QR Code", padding=(8, 6))
        qr_frame.pack(fill=tk.X, **pad)

        self.qr_enabled_var = tk.BooleanVar(value=True)
        ttk.Checkbutton(qr_frame, text="Show contact QR code", variable=self.qr_enabled_var,
                        command=self._apply_qr_changes).pack(anchor=tk.W)

        row = ttk.Frame(qr_frame, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        self.qr_x_var, self.qr_y_var = tk.StringVar(), tk.StringVar()
        ttk.Label(row, text="X %:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        ttk.Entry(row, textvariable=self.qr_x_var, width=6).pack(side=tk.LEFT, padx=(0, 6))
        ttk.Label(row, text="Y %:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        ttk.Entry(row, textvariable=self.qr_y_var, width=6).pack(side=tk.LEFT)

        row = ttk.Frame(qr_frame, style="Panel.TFrame")
        row.pack(fill=tk.X, pady=2)
        self.qr_size_var, self.qr_logo_var = tk.StringVar(), tk.StringVar()
        ttk.Label(row, text="Size %:", width=6, style="Panel.TLabel").pack(side=tk.LEFT)
        ttk.Entry(row, textvariable=self.qr_size_var, width=6).pack(side=tk.LEFT, padx=(0, 6))
        ttk.Label(row, text="Logo:", width=5, style="Panel.TLabel").pack(side=tk.LEFT)
        ttk.Entry(row, textvariable=self.qr_logo_var, width=6).pack(side=tk.LEFT)

        # --- Actions ---
        actions = ttk.Frame(self, style="Panel.TFrame")
        actions.pack(fill=tk.X, **pad)
        ttk.Button(actions, text="Apply Changes", command=self._apply_all).pack(fill=tk.X, pady=2)
        ttk.Button(actions, text="Restore Defaults", command=self._load_defaults).pack(fill=tk.X, pady=2)
        ttk.Button(actions, text="Save Layout", style="Accent.TButton",
                   command=self._save).pack(fill=tk.X, pady=2)
        ttk.Button(actions, text="Cancel", command=self._discard).pack(fill=tk.X, pady=2)

        for var in (self.label_var, self.field_var, self.weight_var, self.transform_var, self.font_var):
            var.trace_add("write", lambda *a: self._apply_changes())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def refresh_fonts(self):
        """Load available font families into the font dropdown."""
        self.font_combo["values"] = get_font_families()

    def set_enabled(self, enabled: bool):
        state = "!disabled" if enabled else "disabled"
        for child in self.winfo_children():
            self._set_state(child, state)

    def _set_state(self, widget, state):
        try:
            widget.state([state])
        except (AttributeError, tk.TclError):
            pass
        for child in widget.winfo_children():
            self._set_state(child, state)

    def refresh(self):
        """Reload the zone list and the selected zone's values from the editor."""
        editor = self.session.editor
        self.zone_listbox.delete(0, tk.END)
        self._zone_ids = []
        if editor is None:
            return

        for zone in editor.zones.text_zones:
            self._zone_ids.append(zone.id)
            self.zone_listbox.insert(tk.END, f"{zone.label} ({BADGE_FIELDS.get(zone.field, zone.field)})")
        self._zone_ids.append(QR_ZONE_ID)
        self.zone_listbox.insert(tk.END, "QR code")

        if editor.selected_id in self._zone_ids:
            self.zone_listbox.selection_set(self._zone_ids.index(editor.selected_id))
        self._load_values()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load_values(self):
        editor = self.session.editor
        self._updating = True
        try:
            qr = editor.zones.qr_zone
            self.qr_enabled_var.set(qr.enabled)
            self.qr_x_var.set(_fmt(qr.x))
            self.qr_y_var.set(_fmt(qr.y))
            self.qr_size_var.set(_fmt(qr.size))
            self.qr_logo_var.set(str(round(qr.logo_size, 2)))

            zone = editor.zones.get_zone(editor.selected_id) if editor.selected_id else None
            if zone is None:
                return
            self.label_var.set(zone.label)
            self.field_var.set(zone.field)
            self.x_var.set(_fmt(zone.x))
            self.y_var.set(_fmt(zone.y))
            self.w_var.set(_fmt(zone.width))
            self.h_var.set(_fmt(zone.height))
            self.font_var.set(zone.font_family)
            self.weight_var.set(zone.font_weight)
            self.size_var.set(_fmt(zone.font_size))
            self.lh_var.set(str(round(zone.line_height, 2)))
            self.transform_var.set(zone.text_transform)
            self.max_chars_var.set(str(zone.max_chars_per_line or ""))
            self._set_swatch(zone.color)
            self.alt_color_var.set(zone.alt_color or "")
            self.alt_lines_var.set(str(zone.alt_color_min_lines or ""))
        finally:
            self._updating = False

    def _set_swatch(self, color: str):
        self.color_var.set(color)
        try:
            self.color_swatch.config(bg=color)
            r, g, b = int(color[1:3], 16), int(color[3:5], 16), int(color[5:7], 16)
            fg = "white" if (r * 0.299 + g * 0.587 + b * 0.114) < 128 else "black"
            self.color_swatch.config(fg=fg)
        except (ValueError, IndexError, tk.TclError):
            pass

    def _selected_text_zone_id(self) -> Optional[str]:
        editor = self.session.editor
        if editor is None or editor.selected_id in (None, QR_ZONE_ID):
            return None
        return editor.selected_id

    def _apply_changes(self):
        """Write the text zone form back to the selected zone."""
        if self._updating:
            return
        zone_id = self._selected_text_zone_id()
        if zone_id is None:
            return
        self.session.editor.update_text_zone(zone_id, {
            "label": self.label_var.get(),
            "field": self.field_var.get(),
            "x": self.x_var.get(),
            "y": self.y_var.get(),
            "width": self.w_var.get(),
            "height": self.h_var.get(),
            "font_family": self.font_var.get(),
            "font_weight": self.weight_var.get(),
            "font_size": self.size_var.get(),
            "line_height": self.lh_var.get(),
            "text_transform": self.transform_var.get(),
            "max_chars_per_line": self.max_chars_var.get(),
            "color": self.color_var.get(),
            "alt_color": self.alt_color_var.get().strip(),
            "alt_color_min_lines": self.alt_lines_var.get(),
        })

    def _apply_qr_changes(self):
        if self._updating or self.session.editor is None:
            return
        self.session.editor.update_qr_zone({
            "enabled": self.qr_enabled_var.get(),
            "x": self.qr_x_var.get(),
            "y": self.qr_y_var.get(),
            "size": self.qr_size_var.get(),
            "logo_size": self.qr_logo_var.get(),
        })

    def _apply_all(self):
        self._apply_changes()
        self._apply_qr_changes()

    def _add_zone(self):
        if self.session.editor is not None:
            self.session.editor.add_text_zone()

    def _delete_zone(self):
        zone_id = self._selected_text_zone_id()
        if zone_id is None:
            return
        zone = self.session.editor.zones.get_zone(zone_id)
        self.session.editor.delete_zone(
            zone_id,
            confirm=lambda: messagebox.askyesno(
                "Delete Zone", f'Delete the zone "{zone.label}"?', parent=self),
        )

    def _load_defaults(self):
        if self.session.editor is None:
            return
        if messagebox.askyesno("Restore Defaults", "Replace all zones with the default layout?", parent=self):
            self.session.editor.load_defaults()

    def _pick_color(self):
        color = colorchooser.askcolor(initialcolor=self.color_var.get(), title="Choose text color")
        if color[1]:
            self._set_swatch(color[1])
            self._apply_changes()

    def _on_listbox_select(self, event):
        sel = self.zone_listbox.curselection()
        if sel and self.session.editor is not None:
            self.session.editor.select(self._zone_ids[sel[0]])

    def _save(self):
        if self.on_save:
            self.on_save()

    def _discard(self):
        if self.on_discard:
            self.on_discard()
