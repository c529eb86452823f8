"""Local note-storage backend for the notekeeper desktop app."""

__version__ = "0.1.0"
