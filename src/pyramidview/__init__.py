"""pyramidview - Deep-zoom IIIF tile pyramid viewer engine."""

__version__ = "0.1.0"
