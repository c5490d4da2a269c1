"""Runtime settings read from the environment."""

import os

from PIL import Image


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# Project store and logs live here unless overridden
DATA_DIR = os.environ.get("BADGEGEN_DATA_DIR", os.path.join(os.path.expanduser("~"), ".badgegen"))
PROJECTS_DIR = os.path.join(DATA_DIR, "projects")

# Logo composited in the middle of every QR code
LOGO_PATH = os.environ.get("BADGEGEN_LOGO_PATH", "logo-qr.png")

# Payload of the last-resort QR code when the vCard cannot be encoded
FALLBACK_QR_URL = os.environ.get("BADGEGEN_FALLBACK_QR_URL", "https://devfest.gdglibreville.com")

LOG_FILE = os.environ.get("BADGEGEN_LOG_FILE", "")
DEBUG = _env_bool("BADGEGEN_DEBUG")

# Web API
PORT = int(os.environ.get("PORT", 5000))
FLASK_DEBUG = os.environ.get("FLASK_DEBUG", "0") == "1"
MAX_UPLOAD_MB = int(os.environ.get("BADGEGEN_MAX_UPLOAD_MB", 50))

Image.MAX_IMAGE_PIXELS = 25_000_000
