"""Badge preview canvas with zone overlays, drag/resize handles and row navigation."""

import tkinter as tk
from tkinter import ttk
from typing import Callable, List, Optional

from PIL import Image, ImageTk

from badgegen.models.fields import display_name
from badgegen.models.session import BadgeSession
from badgegen.models.zone_editor import QR_ZONE_ID
from badgegen.utils.image_utils import canvas_to_image, compute_scale_factor, image_to_canvas

HANDLE_RADIUS = 4
HIT_TOLERANCE = 6


class CanvasEditor(ttk.Frame):
    """Canvas that displays the rendered badge and, while editing, its zones.

    Pointer and arrow-key events are converted to badge pixels and handed to
    the session's ZoneEditor; the preview is re-rendered on every change.
    """

    CANVAS_MAX_W = 700
    CANVAS_MAX_H = 500

    def __init__(self, parent, session: BadgeSession, **kwargs):
        super().__init__(parent, **kwargs)
        self.session = session

        # Callbacks
        self.on_row_changed: Optional[Callable[[int], None]] = None

        # Display state
        self._photo: Optional[ImageTk.PhotoImage] = None
        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0

        self._build_ui()

    def _build_ui(self):
        self.canvas = tk.Canvas(
            self,
            width=self.CANVAS_MAX_W,
            height=self.CANVAS_MAX_H,
            bg="#d6d6d6",
            highlightthickness=0,
            takefocus=1,
        )
        self.canvas.pack(fill=tk.BOTH, expand=True)

        # Row navigation bar
        nav = ttk.Frame(self)
        nav.pack(fill=tk.X, pady=(6, 0))

        self.btn_prev = ttk.Button(nav, text="◀", width=3, command=self._prev_row)
        self.btn_prev.pack(side=tk.LEFT, padx=2)

        self.row_label = ttk.Label(nav, text="Participant 0 of 0", font=("Segoe UI", 9))
        self.row_label.pack(side=tk.LEFT, padx=6)

        self.btn_next = ttk.Button(nav, text="▶", width=3, command=self._next_row)
        self.btn_next.pack(side=tk.LEFT, padx=2)

        # Search bar
        ttk.Separator(nav, orient=tk.VERTICAL).pack(side=tk.LEFT, fill=tk.Y, padx=8, pady=2)
        ttk.Label(nav, text="Search:", font=("Segoe UI", 9)).pack(side=tk.LEFT, padx=(0, 4))
        self._search_var = tk.StringVar()
        self._search_entry = ttk.Entry(nav, textvariable=self._search_var, width=18)
        self._search_entry.pack(side=tk.LEFT, padx=2)
        self._search_entry.bind("<Return>", lambda e: self._search_next())
        ttk.Button(nav, text="Find", width=5, command=self._search_next).pack(side=tk.LEFT, padx=2)

        self._search_label = ttk.Label(nav, text="", font=("Segoe UI", 8))
        self._search_label.pack(side=tk.LEFT, padx=6)

        self.canvas.bind("<ButtonPress-1>", self._on_press)
        self.canvas.bind("<B1-Motion>", self._on_drag)
        self.canvas.bind("<ButtonRelease-1>", self._on_release)
        self.canvas.bind("<Configure>", self._on_canvas_resize)
        for key in ("Left", "Right", "Up", "Down"):
            self.canvas.bind(f"<KeyPress-{key}>", self._on_arrow)
            self.canvas.bind(f"<Shift-KeyPress-{key}>", self._on_arrow)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def refresh(self):
        """Re-render the badge and redraw zone overlays."""
        self.canvas.delete("all")

        cw = self.canvas.winfo_width() or self.CANVAS_MAX_W
        ch = self.canvas.winfo_height() or self.CANVAS_MAX_H
        bw, bh = self.session.canvas_size

        self._scale = compute_scale_factor(bw, bh, cw - 20, ch - 20)
        # Center the badge in the canvas
        self._offset_x = (cw - bw * self._scale) / 2
        self._offset_y = (ch - bh * self._scale) / 2

        badge = self.session.render_preview()
        if badge is not None:
            display_w = max(1, int(bw * self._scale))
            display_h = max(1, int(bh * self._scale))
            resized = badge.resize((display_w, display_h), Image.LANCZOS)
            self._photo = ImageTk.PhotoImage(resized)
            self.canvas.create_image(
                self._offset_x, self._offset_y,
                image=self._photo, anchor=tk.NW, tags="badge"
            )
        else:
            self._photo = None
            x1, y1 = self._offset_x, self._offset_y
            self.canvas.create_rectangle(
                x1, y1, x1 + bw * self._scale, y1 + bh * self._scale,
                fill="white", outline="#999999",
            )
            self.canvas.create_text(
                x1 + bw * self._scale / 2, y1 + bh * self._scale / 2,
                text="Open a badge template to start", fill="#666666",
            )

        if self.session.editor is not None:
            self._draw_zones()

        self._update_row_label()

    def _draw_zones(self):
        editor = self.session.editor
        zone_ids = [z.id for z in editor.zones.text_zones]
        if editor.zones.qr_zone.enabled:
            zone_ids.append(QR_ZONE_ID)

        for zone_id in zone_ids:
            selected = zone_id == editor.selected_id
            left, top, right, bottom = editor.zone_rect(zone_id)
            x1, y1 = self._to_canvas(left, top)
            x2, y2 = self._to_canvas(right, bottom)
            self.canvas.create_rectangle(
                x1, y1, x2, y2,
                outline="#1a73e8" if selected else "#5f6368",
                dash=() if selected else (4, 2),
                width=2 if selected else 1,
                tags="zone",
            )
            zone = editor.zones.get_zone(zone_id)
            label = zone.label if zone is not None else "QR"
            self.canvas.create_text(
                x1 + 2, y1 - 2, text=label, anchor=tk.SW,
                fill="#1a73e8" if selected else "#5f6368",
                font=("Segoe UI", 8), tags="zone",
            )

        if editor.selected_id and editor.selected_id != QR_ZONE_ID:
            for hx, hy in editor.handle_positions(editor.selected_id).values():
                cx, cy = self._to_canvas(hx, hy)
                self.canvas.create_rectangle(
                    cx - HANDLE_RADIUS, cy - HANDLE_RADIUS,
                    cx + HANDLE_RADIUS, cy + HANDLE_RADIUS,
                    fill="white", outline="#1a73e8", tags="handle",
                )

    def _to_canvas(self, x, y):
        return image_to_canvas(x, y, self._scale, self._offset_x, self._offset_y)

    def _to_image(self, event):
        return canvas_to_image(event.x, event.y, self._scale, self._offset_x, self._offset_y)

    # ------------------------------------------------------------------
    # Row navigation
    # ------------------------------------------------------------------

    def _set_row(self, row: int):
        self.session.current_row = row
        self.refresh()
        if self.on_row_changed:
            self.on_row_changed(row)

    def _prev_row(self):
        if self.session.current_row > 0:
            self._set_row(self.session.current_row - 1)

    def _next_row(self):
        if self.session.current_row < self.session.csv_data.row_count - 1:
            self._set_row(self.session.current_row + 1)

    def _build_search_results(self, term: str) -> List[int]:
        """Find all row indices where any column contains the search term."""
        term_lower = term.lower()
        matches = []
        for i, row in enumerate(self.session.csv_data.rows):
            for val in row.values():
                if term_lower in (val or "").lower():
                    matches.append(i)
                    break
        return matches

    def _search_next(self):
        """Jump to the next matching participant, wrapping around."""
        term = self._search_var.get().strip()
        if not term:
            self._search_label.config(text="")
            return
        results = self._build_search_results(term)
        if not results:
            self._search_label.config(text="No matches")
            return
        after = [i for i, row in enumerate(results) if row > self.session.current_row]
        idx = after[0] if after else 0
        self._set_row(results[idx])
        self._search_label.config(text=f"{idx + 1} of {len(results)}")

    def _update_row_label(self):
        csv_data = self.session.csv_data
        total = csv_data.row_count
        if total == 0:
            self.row_label.config(text="Sample preview")
            return
        row = self.session.current_row
        name = display_name(csv_data.get_row(row), self.session.resolver, row)
        self.row_label.config(text=f"Participant {row + 1} of {total}: {name}")

    # ------------------------------------------------------------------
    # Pointer and keyboard
    # ------------------------------------------------------------------

    def _on_press(self, event):
        self.canvas.focus_set()
        editor = self.session.editor
        if editor is None:
            return
        px, py = self._to_image(event)
        tolerance = HIT_TOLERANCE / self._scale if self._scale else HIT_TOLERANCE
        editor.pointer_down(px, py, tolerance)
        self.refresh()

    def _on_drag(self, event):
        editor = self.session.editor
        if editor is None:
            return
        px, py = self._to_image(event)
        # on_change re-renders, so nothing else to do here
        editor.pointer_move(px, py)

    def _on_release(self, event):
        if self.session.editor is not None:
            self.session.editor.pointer_up()

    def _on_arrow(self, event):
        editor = self.session.editor
        if editor is None:
            return None
        large = bool(event.state & 0x0001)
        if editor.nudge(event.keysym, large=large):
            return "break"
        return None

    def _on_canvas_resize(self, event):
        """Redraw when canvas is resized."""
        self.after(50, self.refresh)
