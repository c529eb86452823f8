"""Tests for the notekeeper MCP server.

Unit tests call the tool functions directly against a temp-backed store,
plus one integration test that starts the server as a subprocess and
exercises it over stdio via the MCP client SDK.
"""

import json
import os
import sys
from pathlib import Path
from unittest.mock import patch

import anyio
import pytest
from mcp import ClientSession
from mcp.client.stdio import StdioServerParameters, stdio_client

from notekeeper import server
from notekeeper.config import Settings
from notekeeper.store import NoteStore

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture()
def live_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> NoteStore:
    """Point the server module at a store and settings under tmp_path."""
    cfg = Settings(data_dir=tmp_path)
    store = NoteStore(cfg.notes_path)
    monkeypatch.setattr(server, "settings", cfg)
    monkeypatch.setattr(server, "store", store)
    return store


# ===================================================================
# UNIT TESTS: tool functions
# ===================================================================


class TestNoteTools:
    def test_create_and_get(self, live_store: NoteStore) -> None:
        created = server.create_note("Work")
        assert created["status"] == "success"
        assert created["note"]["list"] == "Work"
        assert created["note"]["content"] == ""

        listed = server.get_notes()
        assert listed["count"] == 1
        assert listed["notes"][0]["id"] == created["note"]["id"]

    def test_create_default_list(self, live_store: NoteStore) -> None:
        assert server.create_note()["note"]["list"] == "My Notes"

    def test_update_note(self, live_store: NoteStore) -> None:
        note_id = server.create_note("Work")["note"]["id"]
        result = server.update_note(note_id, "Hello")
        assert result["status"] == "success"
        assert result["note"]["content"] == "Hello"

    def test_update_missing_returns_error(self, live_store: NoteStore) -> None:
        result = server.update_note("nope", "x")
        assert result["status"] == "error"
        assert result["error_type"] == "not_found"
        assert "nope" in result["error"]

    def test_update_note_list(self, live_store: NoteStore) -> None:
        server.create_note("Work")
        server.create_note("Work")
        server.create_note("Personal")
        result = server.update_note_list("Work", "Archive")
        assert result == {"status": "success", "renamed": 2}
        lists = sorted(n["list"] for n in server.get_notes()["notes"])
        assert lists == ["Archive", "Archive", "Personal"]

    def test_pin_delete_restore(self, live_store: NoteStore) -> None:
        note_id = server.create_note("L")["note"]["id"]
        assert server.pin_note(note_id, True)["note"]["pinned"] is True

        trashed = server.soft_delete_note(note_id)["note"]
        assert trashed["deleted"] is True
        assert trashed["pinned"] is False
        assert trashed["deleted_at"] is not None

        restored = server.restore_note(note_id)["note"]
        assert restored["deleted"] is False
        assert restored["deleted_at"] is None

    def test_not_found_on_single_note_tools(self, live_store: NoteStore) -> None:
        for result in (
            server.pin_note("nope", True),
            server.soft_delete_note("nope"),
            server.restore_note("nope"),
        ):
            assert result["status"] == "error"
            assert result["error_type"] == "not_found"

    def test_delete_note(self, live_store: NoteStore) -> None:
        note_id = server.create_note("L")["note"]["id"]
        assert server.delete_note(note_id) == {"status": "success"}
        assert server.delete_note(note_id) == {"status": "success"}
        assert server.get_notes()["count"] == 0

    def test_persistence_error_reported(self, live_store: NoteStore) -> None:
        with patch(
            "notekeeper.persistence.os.replace", side_effect=OSError("disk full")
        ):
            result = server.create_note("L")
        assert result["status"] == "error"
        assert result["error_type"] == "persistence"
        assert "disk full" in result["error"]


class TestSetNotes:
    def test_replaces_with_defaults(self, live_store: NoteStore) -> None:
        server.create_note("Old")
        result = server.set_notes(
            [
                {"id": "a", "content": "", "created_at": 1, "updated_at": 1},
                {
                    "id": "b",
                    "content": "x",
                    "created_at": 2,
                    "updated_at": 3,
                    "deleted": True,
                    "deleted_at": 4,
                },
            ]
        )
        assert result == {"status": "success", "count": 2}
        notes = server.get_notes()["notes"]
        assert [n["id"] for n in notes] == ["a", "b"]
        assert notes[0]["list"] == "My Notes"

    def test_invalid_record(self, live_store: NoteStore) -> None:
        result = server.set_notes([{"content": "no id"}])
        assert result["status"] == "error"
        assert result["error_type"] == "invalid"

    def test_duplicate_ids(self, live_store: NoteStore) -> None:
        record = {"id": "a", "content": "", "created_at": 1, "updated_at": 1}
        result = server.set_notes([record, record])
        assert result["status"] == "error"
        assert result["error_type"] == "invalid"

    def test_inconsistent_records(self, live_store: NoteStore) -> None:
        base = {"id": "a", "content": "", "created_at": 1, "updated_at": 1}
        for extra in (
            {"deleted": True},
            {"deleted": True, "deleted_at": 2, "pinned": True},
            {"created_at": 9},
        ):
            result = server.set_notes([{**base, **extra}])
            assert result["status"] == "error"
            assert result["error_type"] == "invalid"
        assert server.get_notes()["count"] == 0


class TestFirstRun:
    def test_first_run_flow(self, live_store: NoteStore) -> None:
        assert server.check_first_run()["first_run"] is True
        assert server.mark_initialized() == {"status": "success"}
        assert server.check_first_run()["first_run"] is False


class TestHealthCheck:
    def test_returns_healthy(self, live_store: NoteStore) -> None:
        server.create_note("L")
        result = server.health_check()
        assert result["status"] == "healthy"
        assert result["server"] == "notekeeper"
        assert result["total_notes"] == 1
        assert "timestamp" in result


# ===================================================================
# INTEGRATION TEST: MCP client ↔ server over stdio
# ===================================================================


def _parse_tool_response(result) -> dict:
    """Extract the JSON dict from a CallToolResult."""
    return json.loads(result.content[0].text)


@pytest.mark.integration
def test_stdio_roundtrip(tmp_path: Path) -> None:
    """Create, edit and reload a note through a live server process."""
    params = StdioServerParameters(
        command=sys.executable,
        args=["-m", "notekeeper.server"],
        env={**os.environ, "NOTEKEEPER_DATA_DIR": str(tmp_path)},
        cwd=str(PROJECT_ROOT),
    )

    async def _run() -> dict:
        with open(tmp_path / "server.log", "w", encoding="utf-8") as errlog:
            return await _session(errlog)

    async def _session(errlog) -> dict:
        async with stdio_client(params, errlog=errlog) as (read, write):
            async with ClientSession(read, write) as session:
                await session.initialize()
                created = _parse_tool_response(
                    await session.call_tool("create_note", {"list": "Work"})
                )
                note_id = created["note"]["id"]
                await session.call_tool(
                    "update_note", {"id": note_id, "content": "Hello"}
                )
                r = await session.call_tool("get_notes", {})
                return _parse_tool_response(r)

    data = anyio.run(_run)
    assert data["count"] == 1
    assert data["notes"][0]["content"] == "Hello"
    assert data["notes"][0]["list"] == "Work"

    on_disk = json.loads((tmp_path / "notes.json").read_text(encoding="utf-8"))
    assert on_disk[0]["content"] == "Hello"
