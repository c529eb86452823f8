"""Pydantic models for the note store."""

from datetime import UTC, datetime
from typing import Optional

from pydantic import BaseModel, Field, RootModel

DEFAULT_LIST = "My Notes"


def now_unix() -> int:
    """Current time in whole seconds since the epoch."""
    return int(datetime.now(UTC).timestamp())


class Note(BaseModel):
    """A single note. ``content`` is an opaque serialized document."""

    id: str
    content: str
    created_at: int = Field(..., ge=0, description="Unix creation timestamp")
    updated_at: int = Field(..., ge=0, description="Unix last-edit timestamp")
    pinned: bool = False
    list: str = Field(default=DEFAULT_LIST, description="Category label")
    deleted: bool = False
    deleted_at: Optional[int] = Field(
        default=None, ge=0, description="Unix soft-delete timestamp"
    )


class NoteCollection(RootModel[list[Note]]):
    """Ordered sequence of notes, as written to the data file."""

    root: list[Note] = Field(default_factory=list)
