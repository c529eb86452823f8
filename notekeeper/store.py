"""In-memory note collection with write-through persistence.

``NoteStore`` is the single owner of the note collection. Every operation
runs under one lock, and mutating operations save the full collection before
the lock is released. A failed save leaves the in-memory change applied; the
file catches up on the next successful save.
"""

import logging
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from . import persistence
from .errors import (
    DuplicateNoteIdError,
    InvalidNoteError,
    NoteNotFoundError,
    NoteStoreError,
    PersistenceError,
)
from .metrics import NOTES_TOTAL, STORE_OPERATIONS
from .models import DEFAULT_LIST, Note, now_unix

__all__ = [
    "DuplicateNoteIdError",
    "InvalidNoteError",
    "NoteNotFoundError",
    "NoteStore",
    "NoteStoreError",
    "PersistenceError",
]

logger = logging.getLogger("notekeeper.store")


class NoteStore:
    """Lock-guarded owner of the note collection backed by one JSON file."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._notes: list[Note] = persistence.load_notes(path)
        # one gauge per process; it follows whichever store mutated last
        NOTES_TOTAL.set(len(self._notes))

    @property
    def path(self) -> Path:
        """Location of the backing data file."""
        return self._path

    def __len__(self) -> int:
        with self._lock:
            return len(self._notes)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_notes(self) -> list[Note]:
        """Return a copy of every note in collection order."""
        with self._operation("list"):
            return [note.model_copy() for note in self._notes]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_note(self, list_name: str = DEFAULT_LIST) -> Note:
        """Append a new empty note to ``list_name`` and return it."""
        with self._operation("create"):
            now = now_unix()
            note = Note(
                id=self._new_id(),
                content="",
                created_at=now,
                updated_at=now,
                list=list_name,
            )
            self._notes.append(note)
            self._flush()
            logger.info("Created note %s in list '%s'", note.id, list_name)
            return note.model_copy()

    def update_note(self, note_id: str, content: str) -> Note:
        """Replace a note's content and stamp ``updated_at``."""
        with self._operation("update"):
            note = self._find(note_id)
            note.content = content
            # never step backwards if the wall clock does
            note.updated_at = max(now_unix(), note.updated_at)
            self._flush()
            logger.info("Updated note %s", note_id)
            return note.model_copy()

    def rename_list(self, old_list: str, new_list: str) -> int:
        """Move every note in ``old_list`` to ``new_list``.

        Returns the number of notes moved; zero matches is not an error.
        """
        with self._operation("rename_list"):
            renamed = 0
            for note in self._notes:
                if note.list == old_list:
                    note.list = new_list
                    renamed += 1
            self._flush()
            logger.info(
                "Renamed list '%s' -> '%s' (%d notes)", old_list, new_list, renamed
            )
            return renamed

    def pin_note(self, note_id: str, pinned: bool) -> Note:
        with self._operation("pin"):
            note = self._find(note_id)
            note.pinned = pinned
            self._flush()
            logger.info("Set pinned=%s on note %s", pinned, note_id)
            return note.model_copy()

    def soft_delete_note(self, note_id: str) -> Note:
        """Move a note to the trash. Trashed notes are never pinned."""
        with self._operation("soft_delete"):
            note = self._find(note_id)
            note.deleted = True
            note.deleted_at = now_unix()
            note.pinned = False
            self._flush()
            logger.info("Soft-deleted note %s", note_id)
            return note.model_copy()

    def restore_note(self, note_id: str) -> Note:
        """Bring a note back from the trash. Active notes are left as they are."""
        with self._operation("restore"):
            note = self._find(note_id)
            note.deleted = False
            note.deleted_at = None
            self._flush()
            logger.info("Restored note %s", note_id)
            return note.model_copy()

    def delete_note(self, note_id: str) -> None:
        """Permanently remove a note. Unknown ids are ignored."""
        with self._operation("delete"):
            before = len(self._notes)
            self._notes = [n for n in self._notes if n.id != note_id]
            self._flush()
            if len(self._notes) < before:
                logger.info("Deleted note %s", note_id)
            else:
                logger.info("Delete of unknown note %s ignored", note_id)

    def replace_notes(self, notes: Iterable[Note]) -> int:
        """Swap in a whole new collection, e.g. after merging with a sync peer."""
        with self._operation("replace"):
            replacement = [note.model_copy() for note in notes]
            seen: set[str] = set()
            for note in replacement:
                if note.id in seen:
                    raise DuplicateNoteIdError(note.id)
                seen.add(note.id)
                _check_invariants(note)
            self._notes = replacement
            self._flush()
            logger.info("Replaced collection with %d notes", len(replacement))
            return len(replacement)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Hold the lock for one operation and record its outcome."""
        with self._lock:
            try:
                yield
            except NoteStoreError as exc:
                STORE_OPERATIONS.labels(operation=name, status=exc.error_type).inc()
                raise
            else:
                STORE_OPERATIONS.labels(operation=name, status="success").inc()
            finally:
                NOTES_TOTAL.set(len(self._notes))

    def _find(self, note_id: str) -> Note:
        for note in self._notes:
            if note.id == note_id:
                return note
        raise NoteNotFoundError(note_id)

    def _new_id(self) -> str:
        existing = {note.id for note in self._notes}
        while True:
            candidate = str(uuid.uuid4())
            if candidate not in existing:
                return candidate

    def _flush(self) -> None:
        persistence.save_notes(self._path, self._notes)


def _check_invariants(note: Note) -> None:
    if note.deleted != (note.deleted_at is not None):
        raise InvalidNoteError(note.id, "deleted and deleted_at disagree")
    if note.deleted and note.pinned:
        raise InvalidNoteError(note.id, "a deleted note cannot be pinned")
    if note.created_at > note.updated_at:
        raise InvalidNoteError(note.id, "created_at is after updated_at")
