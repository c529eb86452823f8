"""
notekeeper MCP server

Exposes the note store to the desktop shell via the Model Context Protocol.
The shell spawns this module as a sidecar and talks to it over stdio, so
there is no network listener.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from . import persistence
from .config import Settings
from .errors import NoteStoreError
from .models import DEFAULT_LIST, Note
from .store import NoteStore

logger = logging.getLogger("notekeeper.server")

# ---------------------------------------------------------------------------
# MCP server + store
# ---------------------------------------------------------------------------
mcp = FastMCP("notekeeper")

settings: Optional[Settings] = None
store: Optional[NoteStore] = None


def _settings() -> Settings:
    global settings
    if settings is None:
        settings = Settings()
    return settings


def _store() -> NoteStore:
    """Return the shared store, loading it from the configured path on first use."""
    global store
    if store is None:
        store = NoteStore(_settings().notes_path)
    return store


def _error(exc: NoteStoreError) -> dict:
    return {"status": "error", "error_type": exc.error_type, "error": str(exc)}


def _note_result(note: Note) -> dict:
    return {"status": "success", "note": note.model_dump()}


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool()
def get_notes() -> dict:
    """Return every note in stored order, trashed notes included.

    Returns:
        Dictionary with the list of notes and their count.
    """
    notes = _store().list_notes()
    logger.info("Tool get_notes invoked, found=%d", len(notes))
    return {
        "status": "success",
        "count": len(notes),
        "notes": [n.model_dump() for n in notes],
    }


@mcp.tool()
def create_note(list: str = DEFAULT_LIST) -> dict:
    """Create an empty note in the given list.

    Args:
        list: Category label for the new note.

    Returns:
        Dictionary with the new note.
    """
    logger.info("Tool create_note invoked, list='%s'", list)
    try:
        return _note_result(_store().create_note(list))
    except NoteStoreError as e:
        return _error(e)


@mcp.tool()
def update_note(id: str, content: str) -> dict:
    """Replace a note's content.

    Args:
        id: Id of the note to edit.
        content: Serialized document to store verbatim.

    Returns:
        Dictionary with the updated note, or an error.
    """
    logger.info("Tool update_note invoked, id=%s", id)
    try:
        return _note_result(_store().update_note(id, content))
    except NoteStoreError as e:
        return _error(e)


@mcp.tool()
def update_note_list(old_list: str, new_list: str) -> dict:
    """Move all notes from one list label to another.

    Args:
        old_list: Current list label.
        new_list: Label to apply instead.

    Returns:
        Dictionary with the number of notes moved.
    """
    logger.info("Tool update_note_list invoked, '%s' -> '%s'", old_list, new_list)
    try:
        renamed = _store().rename_list(old_list, new_list)
    except NoteStoreError as e:
        return _error(e)
    return {"status": "success", "renamed": renamed}


@mcp.tool()
def pin_note(id: str, pinned: bool) -> dict:
    """Pin or unpin a note.

    Args:
        id: Id of the note.
        pinned: New pinned state.

    Returns:
        Dictionary with the updated note, or an error.
    """
    logger.info("Tool pin_note invoked, id=%s, pinned=%s", id, pinned)
    try:
        return _note_result(_store().pin_note(id, pinned))
    except NoteStoreError as e:
        return _error(e)


@mcp.tool()
def soft_delete_note(id: str) -> dict:
    """Move a note to the trash. This also unpins it."""
    logger.info("Tool soft_delete_note invoked, id=%s", id)
    try:
        return _note_result(_store().soft_delete_note(id))
    except NoteStoreError as e:
        return _error(e)


@mcp.tool()
def restore_note(id: str) -> dict:
    """Restore a note from the trash."""
    logger.info("Tool restore_note invoked, id=%s", id)
    try:
        return _note_result(_store().restore_note(id))
    except NoteStoreError as e:
        return _error(e)


@mcp.tool()
def delete_note(id: str) -> dict:
    """Permanently delete a note. Unknown ids are ignored."""
    logger.info("Tool delete_note invoked, id=%s", id)
    try:
        _store().delete_note(id)
    except NoteStoreError as e:
        return _error(e)
    return {"status": "success"}


@mcp.tool()
def set_notes(notes: list[dict[str, Any]]) -> dict:
    """Replace the whole collection, e.g. after merging with cloud notes.

    Args:
        notes: Note records; missing optional fields take their defaults.

    Returns:
        Dictionary with the new note count, or an error.
    """
    logger.info("Tool set_notes invoked, count=%d", len(notes))
    try:
        parsed = [Note.model_validate(n) for n in notes]
    except ValueError as e:
        return {"status": "error", "error_type": "invalid", "error": str(e)}
    try:
        count = _store().replace_notes(parsed)
    except NoteStoreError as e:
        return _error(e)
    return {"status": "success", "count": count}


@mcp.tool()
def check_first_run() -> dict:
    """Report whether this data directory has been initialized yet."""
    first_run = persistence.is_first_run(_settings().marker_path)
    logger.info("Tool check_first_run invoked, first_run=%s", first_run)
    return {"status": "success", "first_run": first_run}


@mcp.tool()
def mark_initialized() -> dict:
    """Record that first-run setup has completed."""
    logger.info("Tool mark_initialized invoked")
    try:
        persistence.mark_initialized(_settings().marker_path)
    except NoteStoreError as e:
        return _error(e)
    return {"status": "success"}


@mcp.tool()
def health_check() -> dict:
    """Check whether the notekeeper server is healthy.

    Returns:
        Dictionary with server status, note count, and timestamp.
    """
    logger.info("Tool health_check invoked")
    return {
        "status": "healthy",
        "server": "notekeeper",
        "total_notes": len(_store()),
        "timestamp": datetime.now(UTC).isoformat(),
    }


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    cfg = _settings()
    # logs go to stderr; stdout carries the stdio transport
    logging.basicConfig(
        level=cfg.log_level.upper(),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    )
    cfg.data_dir.mkdir(parents=True, exist_ok=True)
    _store()
    logger.info("Starting notekeeper MCP server (data: %s) ...", cfg.notes_path)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
