"""Badge generator: zone layout, badge rendering and export."""

__version__ = "1.0.0"
