"""JSON file persistence for the note collection.

The whole collection is rewritten on every save. Writes go to a temporary
file in the same directory which is then renamed over the target, so a crash
mid-write leaves the previous file intact.
"""

import logging
import os
import shutil
import stat
import tempfile
import time
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from .errors import PersistenceError
from .metrics import SAVE_DURATION
from .models import Note, NoteCollection, now_unix

logger = logging.getLogger("notekeeper.persistence")

CORRUPT_SUFFIX = ".corrupt"


def load_notes(path: Path) -> list[Note]:
    """Load notes from disk. Missing or unparsable files give an empty list."""
    if not path.exists():
        logger.info("No notes file found at %s, starting fresh", path)
        return []

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Failed to read %s: %s, starting fresh", path, exc)
        _keep_corrupt_copy(path)
        return []

    try:
        notes = NoteCollection.model_validate_json(raw).root
    except ValidationError as exc:
        logger.warning(
            "Notes file %s is corrupt (%d errors), starting fresh",
            path,
            exc.error_count(),
        )
        _keep_corrupt_copy(path)
        return []

    logger.info("Loaded %d notes from %s", len(notes), path)
    return notes


def save_notes(path: Path, notes: Iterable[Note]) -> None:
    """Write the full collection to ``path``, replacing its contents."""
    start = time.perf_counter()
    try:
        payload = NoteCollection(list(notes)).model_dump_json(indent=2)
    except (ValueError, TypeError) as exc:
        raise PersistenceError(f"Failed to serialize notes: {exc}") from exc

    tmp_name = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        if path.exists():
            # mkstemp creates 0600; keep whatever mode the data file had
            os.chmod(tmp_name, stat.S_IMODE(path.stat().st_mode))
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as exc:
        logger.error("Failed to save notes to %s: %s", path, exc)
        raise PersistenceError(f"Failed to save notes to {path}: {exc}") from exc
    finally:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        SAVE_DURATION.observe(time.perf_counter() - start)


def is_first_run(marker_path: Path) -> bool:
    """True until :func:`mark_initialized` has been called for this marker."""
    return not marker_path.exists()


def mark_initialized(marker_path: Path) -> None:
    """Create the first-run marker file."""
    try:
        marker_path.touch(exist_ok=True)
    except OSError as exc:
        raise PersistenceError(
            f"Failed to write marker {marker_path}: {exc}"
        ) from exc
    logger.info("Marked data directory initialized (%s)", marker_path)


def _keep_corrupt_copy(path: Path) -> None:
    """Copy an unreadable notes file aside before it gets overwritten.

    Each backup gets its own timestamped name so earlier ones survive.
    """
    stem = f"{path.name}.{now_unix()}"
    backup = path.with_name(stem + CORRUPT_SUFFIX)
    n = 1
    while backup.exists():
        backup = path.with_name(f"{stem}-{n}{CORRUPT_SUFFIX}")
        n += 1
    try:
        shutil.copy2(path, backup)
        logger.warning("Kept a copy of the corrupt notes file at %s", backup)
    except OSError as exc:
        logger.warning("Could not back up corrupt file %s: %s", path, exc)
