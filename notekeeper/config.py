"""Host configuration loaded from environment variables.

The store itself only takes a file path; these settings decide where that
path lives when the server is started by the desktop shell.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    return Path.home() / ".local" / "share" / "notekeeper"


class Settings(BaseSettings):
    """Application settings loaded from ``NOTEKEEPER_*`` env vars or .env."""

    model_config = SettingsConfigDict(
        env_prefix="NOTEKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(default_factory=_default_data_dir)
    notes_file: str = "notes.json"
    marker_file: str = ".initialized"
    log_level: str = "INFO"

    @property
    def notes_path(self) -> Path:
        """Full path of the notes data file."""
        return self.data_dir / self.notes_file

    @property
    def marker_path(self) -> Path:
        """Full path of the first-run marker file."""
        return self.data_dir / self.marker_file
