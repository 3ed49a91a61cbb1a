"""Qt models for the timeline feature."""

from .trail_table import TrailTableModel

__all__ = ["TrailTableModel"]
