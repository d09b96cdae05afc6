"""paintmix: formula duplicate detection, color matching and pigment renames."""

__version__ = "0.3.0"
