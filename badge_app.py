"""Badge Generator - desktop entry point."""

import logging
import tkinter as tk
from tkinter import ttk

from badgegen import config
from badgegen.gui.main_window import MainWindow
from badgegen.utils.log import setup_logging

logger = logging.getLogger("badgegen.app")

PALETTE = {
    "window": "#f4f6f8",
    "toolbar": "#e8eaed",
    "panel": "#fbfbfc",
    "status": "#e8eaed",
    "line": "#c7cbd1",
    "ink": "#202124",
    "muted": "#5f6368",
    "primary": "#1a73e8",
    "primary_active": "#1765cc",
    "on_primary": "#ffffff",
}

BASE_FONT = ("Segoe UI", 9)
SMALL_FONT = ("Segoe UI", 8)
BOLD_FONT = ("Segoe UI", 9, "bold")


def _style_table(p):
    """Named ttk styles -> configure() options."""
    return {
        ".": dict(font=BASE_FONT, background=p["window"], foreground=p["ink"]),
        "TFrame": dict(background=p["window"]),
        "Toolbar.TFrame": dict(background=p["toolbar"]),
        "Panel.TFrame": dict(background=p["panel"]),
        "Status.TFrame": dict(background=p["status"]),
        "TLabel": dict(background=p["window"], foreground=p["ink"]),
        "Panel.TLabel": dict(background=p["panel"]),
        "Status.TLabel": dict(background=p["status"], foreground=p["muted"], font=SMALL_FONT),
        "TButton": dict(padding=(8, 4)),
        "Toolbar.TButton": dict(padding=(6, 3), font=SMALL_FONT, background=p["toolbar"]),
        "Accent.TButton": dict(padding=(10, 5), font=BOLD_FONT,
                               background=p["primary"], foreground=p["on_primary"]),
        "TLabelframe": dict(background=p["panel"]),
        "TLabelframe.Label": dict(background=p["panel"], foreground=p["primary"], font=BOLD_FONT),
        "TCheckbutton": dict(background=p["panel"]),
        "TEntry": dict(padding=3),
        "TCombobox": dict(padding=3),
        "Treeview": dict(rowheight=22),
        "Treeview.Heading": dict(font=BOLD_FONT),
        "TSeparator": dict(background=p["line"]),
        "TProgressbar": dict(troughcolor=p["window"], background=p["primary"]),
    }


def configure_styles(root: tk.Tk) -> ttk.Style:
    """Flat 'clam' look shared by the main window, zone panel and dialogs."""
    p = PALETTE
    root.configure(bg=p["window"])
    style = ttk.Style(root)
    style.theme_use("clam")
    for name, options in _style_table(p).items():
        style.configure(name, **options)

    flat = [("pressed", "sunken"), ("!pressed", "flat")]
    style.map("TButton", background=[("active", "#dadce0"), ("!active", p["window"])], relief=flat)
    style.map("Toolbar.TButton", background=[("active", "#d2d5da"), ("!active", p["toolbar"])],
              relief=flat)
    style.map("Accent.TButton",
              background=[("disabled", p["line"]), ("active", p["primary_active"]),
                          ("!active", p["primary"])],
              foreground=[("!disabled", p["on_primary"])])
    return style


def main():
    setup_logging(config.DEBUG, config.LOG_FILE or None)
    logger.info("Starting Badge Generator (data dir: %s)", config.DATA_DIR)
    root = tk.Tk()
    configure_styles(root)
    MainWindow(root)
    root.mainloop()


if __name__ == "__main__":
    main()
