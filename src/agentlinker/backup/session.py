"""
Backup session records.

A session is one timestamped folder under <scope>/.agents/backup/ holding
a session.json manifest and a files/ tree with the pre-images of
everything the run overwrote. Each entry records what the path was
before the change, so undo never has to infer it:

- created: nothing existed; undo deletes the path (an empty folder only)
- copied: nothing existed and a copy was placed there; undo deletes the
  copy with its contents
- file / directory: a copy is kept in files/; undo copies it back
- symlink: the previous link text is recorded; undo re-creates the link
"""

from __future__ import annotations

import dataclasses as _dataclasses
import datetime as _datetime
import json as _json
import pathlib as _pathlib
import typing as _typing

import agentlinker.constants as constants

EntryKind = _typing.Literal["created", "copied", "file", "directory", "symlink"]
SessionStatus = _typing.Literal["open", "finalized", "undone", "discarded"]


def generate_session_id() -> str:
    """Generate a sortable timestamp session ID.

    Format: YYYYMMDDTHHMMSSffffffZ
    """
    now = _datetime.datetime.now(_datetime.UTC)
    return now.strftime("%Y%m%dT%H%M%S%fZ")


def now_iso() -> str:
    """Current UTC time in ISO format."""
    return _datetime.datetime.now(_datetime.UTC).isoformat()


@_dataclasses.dataclass
class BackupEntry:
    """Pre-image of one path, captured before a destructive change."""

    path: str
    kind: EntryKind
    backup: str | None = None
    """Copy location relative to the session's files/ folder (file/directory)."""

    link_target: str | None = None
    """Previous link text (symlink)."""

    timestamp: str = _dataclasses.field(default_factory=now_iso)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for serialization."""
        d: dict[str, _typing.Any] = {
            "path": self.path,
            "kind": self.kind,
            "timestamp": self.timestamp,
        }
        if self.backup is not None:
            d["backup"] = self.backup
        if self.link_target is not None:
            d["link_target"] = self.link_target
        return d

    @classmethod
    def from_dict(cls, data: dict[str, _typing.Any]) -> BackupEntry:
        """Create from dictionary."""
        return cls(
            path=data["path"],
            kind=data["kind"],
            backup=data.get("backup"),
            link_target=data.get("link_target"),
            timestamp=data.get("timestamp", now_iso()),
        )


@_dataclasses.dataclass
class BackupSession:
    """
    One backup transaction.

    Attributes:
        id: Timestamp identifier (sorts chronologically)
        directory: Session folder on disk
        scope_root: Canonical folder the session belongs to
        operation: What created the session (apply, undo, ...)
        status: open until finalized; undone once reverted
        entries: Pre-images in capture order
        reverts: For undo sessions, the id of the session they reverted
    """

    id: str
    directory: _pathlib.Path
    scope_root: str
    operation: str
    created_at: str
    status: SessionStatus = "open"
    entries: list[BackupEntry] = _dataclasses.field(default_factory=list)
    reverts: str | None = None

    @property
    def manifest_path(self) -> _pathlib.Path:
        """Path to session.json."""
        return self.directory / constants.SESSION_MANIFEST

    @property
    def files_dir(self) -> _pathlib.Path:
        """Folder holding copied pre-images."""
        return self.directory / "files"

    def entry_for(self, path: _pathlib.Path) -> BackupEntry | None:
        """The entry already recorded for a path, if any."""
        key = str(path)
        for entry in self.entries:
            if entry.path == key:
                return entry
        return None

    def count(self, kind: EntryKind) -> int:
        """Number of entries of a kind."""
        return sum(1 for entry in self.entries if entry.kind == kind)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        d: dict[str, _typing.Any] = {
            "id": self.id,
            "scope_root": self.scope_root,
            "operation": self.operation,
            "created_at": self.created_at,
            "status": self.status,
            "entries": [entry.to_dict() for entry in self.entries],
        }
        if self.reverts:
            d["reverts"] = self.reverts
        return d

    @classmethod
    def from_dict(cls, data: dict[str, _typing.Any], directory: _pathlib.Path) -> BackupSession:
        """Create from dictionary."""
        return cls(
            id=data["id"],
            directory=directory,
            scope_root=data.get("scope_root", ""),
            operation=data.get("operation", ""),
            created_at=data.get("created_at", ""),
            status=data.get("status", "open"),
            entries=[BackupEntry.from_dict(e) for e in data.get("entries", [])],
            reverts=data.get("reverts"),
        )

    def save(self) -> None:
        """Write the manifest."""
        self.directory.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(
            _json.dumps(self.to_dict(), indent=2) + "\n",
            encoding="utf-8",
        )

    @classmethod
    def load(cls, directory: _pathlib.Path) -> BackupSession | None:
        """Load a session folder, or None if it has no readable manifest."""
        manifest = directory / constants.SESSION_MANIFEST
        if not manifest.is_file():
            return None
        try:
            data = _json.loads(manifest.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        return cls.from_dict(data, directory)
