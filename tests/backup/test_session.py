"""Tests for backup session records."""

import pathlib as _pathlib
import re as _re

import agentlinker.backup as backup


class TestGenerateSessionId:
    """Tests for session id generation."""

    def test_format(self) -> None:
        """Ids are compact UTC timestamps."""
        assert _re.fullmatch(r"\d{8}T\d{12}Z", backup.generate_session_id())

    def test_sortable(self) -> None:
        """Later ids sort after earlier ones."""
        first = backup.generate_session_id()
        second = backup.generate_session_id()
        assert first <= second


class TestBackupSession:
    """Tests for BackupSession persistence."""

    def _session(self, directory: _pathlib.Path) -> backup.BackupSession:
        return backup.BackupSession(
            id="20250101T000000000000Z",
            directory=directory,
            scope_root="/scope/.agents",
            operation="apply",
            created_at="2025-01-01T00:00:00+00:00",
        )

    def test_save_and_load(self, tmp_path: _pathlib.Path) -> None:
        """A saved session loads back with its entries."""
        session = self._session(tmp_path / "s1")
        session.entries.append(backup.BackupEntry(path="/a", kind="created"))
        session.entries.append(backup.BackupEntry(path="/b", kind="symlink", link_target="../x"))
        session.entries.append(backup.BackupEntry(path="/c", kind="file", backup="c"))
        session.status = "finalized"
        session.save()

        loaded = backup.BackupSession.load(tmp_path / "s1")

        assert loaded is not None
        assert loaded.status == "finalized"
        assert [(e.path, e.kind) for e in loaded.entries] == [
            ("/a", "created"),
            ("/b", "symlink"),
            ("/c", "file"),
        ]
        assert loaded.entries[1].link_target == "../x"
        assert loaded.entries[2].backup == "c"

    def test_load_without_manifest(self, tmp_path: _pathlib.Path) -> None:
        """A folder without session.json is not a session."""
        assert backup.BackupSession.load(tmp_path) is None

    def test_load_corrupt_manifest(self, tmp_path: _pathlib.Path) -> None:
        """An unreadable manifest is skipped."""
        (tmp_path / "session.json").write_text("{not json")
        assert backup.BackupSession.load(tmp_path) is None

    def test_entry_for(self, tmp_path: _pathlib.Path) -> None:
        """entry_for finds the entry recorded for a path."""
        session = self._session(tmp_path)
        session.entries.append(backup.BackupEntry(path="/a", kind="created"))
        assert session.entry_for(_pathlib.Path("/a")) is session.entries[0]
        assert session.entry_for(_pathlib.Path("/b")) is None

    def test_reverts_serialized_only_when_set(self, tmp_path: _pathlib.Path) -> None:
        """Only undo sessions carry a reverts field."""
        session = self._session(tmp_path)
        assert "reverts" not in session.to_dict()
        session.reverts = "20240101T000000000000Z"
        assert session.to_dict()["reverts"] == "20240101T000000000000Z"
