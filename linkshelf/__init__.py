"""Linkshelf: shared link collections with hierarchical permissions."""

__version__ = "1.0.0"
