"""MediaNest: virtual folders for a flat media library."""

__version__ = "1.0.0"
