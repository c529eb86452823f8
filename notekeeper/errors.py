"""Error types raised by the note store."""


class NoteStoreError(Exception):
    """Base class for note store failures."""

    error_type = "error"


class NoteNotFoundError(NoteStoreError):
    """No note with the requested id exists."""

    error_type = "not_found"

    def __init__(self, note_id: str) -> None:
        super().__init__(f"Note {note_id} not found")
        self.note_id = note_id


class PersistenceError(NoteStoreError):
    """Writing to durable storage failed; the on-disk copy is stale."""

    error_type = "persistence"


class DuplicateNoteIdError(NoteStoreError):
    """A replacement collection contains the same id twice."""

    error_type = "invalid"

    def __init__(self, note_id: str) -> None:
        super().__init__(f"Duplicate note id {note_id}")
        self.note_id = note_id


class InvalidNoteError(NoteStoreError):
    """A replacement note breaks a collection invariant."""

    error_type = "invalid"

    def __init__(self, note_id: str, reason: str) -> None:
        super().__init__(f"Note {note_id} is invalid: {reason}")
        self.note_id = note_id
        self.reason = reason
