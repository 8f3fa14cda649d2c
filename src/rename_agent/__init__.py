"""Rename Agent - atomic multi-file symbol renaming with rollback and undo."""

__version__ = "2.0.0"
