"""
Pytest fixtures for badgegen tests.

The data directory is pointed at a throwaway location before any badgegen
module is imported, so the web state singleton never touches ~/.badgegen.
"""
import os
import tempfile

import pytest
from PIL import Image

os.environ['BADGEGEN_DATA_DIR'] = tempfile.mkdtemp(prefix="badgegen-test-")
os.environ['BADGEGEN_LOGO_PATH'] = ""

from badgegen.models.csv_data import CSVData  # noqa: E402
from badgegen.models.zones import default_zone_model  # noqa: E402


@pytest.fixture
def template():
    """Plain white 1000x1600 badge background."""
    return Image.new("RGBA", (1000, 1600), (255, 255, 255, 255))


@pytest.fixture
def small_template():
    return Image.new("RGBA", (300, 480), (255, 255, 255, 255))


@pytest.fixture
def zones():
    return default_zone_model()


@pytest.fixture
def record():
    return {
        "Prénom": "jean-baptiste",
        "Nom": "Rousseau",
        "Email": "jb@example.com",
        "Téléphone": "+241 01 02 03 04",
        "Rôle": "Speaker",
        "Organisation": "GDG Libreville",
    }


@pytest.fixture
def csv_data():
    data = CSVData()
    data.load_text(
        "Prénom,Nom,Email,Téléphone\n"
        "Awa,Ndong,awa@example.com,+241 1\n"
        "Éric,Mba,,+241 2\n"
        "Lise,Obame,lise@example.com,\n"
    )
    return data


@pytest.fixture
def fake_qr():
    """QR generator drawing an opaque black square."""
    def generate(text, pixel_size, level="M"):
        return Image.new("RGBA", (pixel_size, pixel_size), (0, 0, 0, 255))
    return generate
