"""
Transactional application of link plans, with undo.

Every destructive write goes through capture() first, which records the
path's pre-image in the open session and rewrites the manifest. A crash
mid-apply therefore leaves a session that still describes everything
changed so far. undo() reverts the newest finalized session in reverse
capture order and records its own pre-images in a new session, so an undo
can itself be undone.

migrate() copies client content into the canonical folder inside the same
session as the link pass, so one undo reverts both.
"""

from __future__ import annotations

import contextlib as _contextlib
import dataclasses as _dataclasses
import logging as _logging
import os as _os
import pathlib as _pathlib
import shutil as _shutil
import typing as _typing

import agentlinker.backup.session as session_module
import agentlinker.constants as constants
import agentlinker.linking.migrate as migrate_module
import agentlinker.linking.plan as plan_module

_logger = _logging.getLogger(__name__)

_TMP_SUFFIX = ".agentlinker-tmp"


class NoSessionError(Exception):
    """Raised when undo finds no finalized session to revert."""

    pass


@_dataclasses.dataclass(frozen=True)
class TaskFailure:
    """A task (or undo entry) that could not be carried out."""

    path: _pathlib.Path
    error: str
    action: str

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {"path": str(self.path), "error": self.error, "action": self.action}


@_dataclasses.dataclass
class ApplyResult:
    """Summary of one apply run."""

    session_id: str | None = None
    migrated: int = 0
    linked: int = 0
    removed: int = 0
    written: int = 0
    overwritten: int = 0
    skipped: int = 0
    failures: list[TaskFailure] = _dataclasses.field(default_factory=list)

    @property
    def applied(self) -> int:
        """Total successful changes."""
        return self.migrated + self.linked + self.removed + self.written

    @property
    def ok(self) -> bool:
        """Whether every attempted change succeeded."""
        return not self.failures

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session": self.session_id,
            "applied": self.applied,
            "migrated": self.migrated,
            "linked": self.linked,
            "removed": self.removed,
            "written": self.written,
            "overwritten": self.overwritten,
            "skipped": self.skipped,
            "failures": [failure.to_dict() for failure in self.failures],
        }


@_dataclasses.dataclass
class UndoResult:
    """Summary of one undo run."""

    undone_session: str
    backup_session: str | None = None
    restored: int = 0
    removed: int = 0
    failures: list[TaskFailure] = _dataclasses.field(default_factory=list)

    @property
    def ok(self) -> bool:
        """Whether every entry was reverted."""
        return not self.failures

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "undone_session": self.undone_session,
            "backup_session": self.backup_session,
            "restored": self.restored,
            "removed": self.removed,
            "failures": [failure.to_dict() for failure in self.failures],
        }


# =============================================================================
# Filesystem primitives
# =============================================================================


def _remove_path(path: _pathlib.Path) -> None:
    """Remove a link, file or directory tree."""
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        _shutil.rmtree(path)


def _atomic_symlink(source: _pathlib.Path | str, target: _pathlib.Path) -> None:
    """Point target at source, swapping in a temporary link."""
    tmp = target.with_name(f".{target.name}{_TMP_SUFFIX}")
    if _os.path.lexists(tmp):
        tmp.unlink()
    _os.symlink(source, tmp)
    try:
        _os.replace(tmp, target)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def _atomic_write(path: _pathlib.Path, content: str) -> None:
    """Write text through a temporary file and rename it into place."""
    tmp = path.with_name(f".{path.name}{_TMP_SUFFIX}")
    tmp.write_text(content, encoding="utf-8")
    try:
        _os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def _copy_path(source: _pathlib.Path, destination: _pathlib.Path) -> None:
    """Copy a file or directory tree, preserving links and metadata."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir() and not source.is_symlink():
        _shutil.copytree(source, destination, symlinks=True)
    else:
        _shutil.copy2(source, destination, follow_symlinks=False)


class TransactionManager:
    """
    Backup sessions for one scope.

    Sessions live in <scope_root>/<backup_dir_name>/<id>/.
    """

    def __init__(
        self,
        scope_root: _pathlib.Path,
        *,
        backup_dir_name: str = constants.BACKUP_DIR_NAME,
        home: _pathlib.Path | None = None,
    ) -> None:
        """
        Args:
            scope_root: Canonical folder of the scope (e.g. ~/.agents).
            backup_dir_name: Folder name for sessions inside scope_root.
            home: Home directory, used to keep backup paths short.
        """
        self.scope_root = scope_root
        self.backups_dir = scope_root / backup_dir_name
        self.home = home if home is not None else _pathlib.Path.home()

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def begin(self, operation: str) -> session_module.BackupSession:
        """Open a new session and write its manifest."""
        session_id = session_module.generate_session_id()
        directory = self.backups_dir / session_id
        suffix = 1
        while directory.exists():
            directory = self.backups_dir / f"{session_id}-{suffix}"
            suffix += 1

        session = session_module.BackupSession(
            id=directory.name,
            directory=directory,
            scope_root=str(self.scope_root),
            operation=operation,
            created_at=session_module.now_iso(),
        )
        session.save()
        _logger.debug("Opened backup session %s (%s)", session.id, operation)
        return session

    def finalize(self, session: session_module.BackupSession) -> session_module.BackupSession:
        """Close a session. Sessions that captured nothing are discarded."""
        if not session.entries:
            _shutil.rmtree(session.directory, ignore_errors=True)
            session.status = "discarded"
            _logger.debug("Discarded empty backup session %s", session.id)
            return session
        session.status = "finalized"
        session.save()
        _logger.info("Backup session %s: %d entr(ies)", session.id, len(session.entries))
        return session

    @_contextlib.contextmanager
    def transaction(self, operation: str) -> _typing.Iterator[session_module.BackupSession]:
        """Open a session and finalize it on exit, even when the body raises."""
        session = self.begin(operation)
        try:
            yield session
        finally:
            self.finalize(session)

    def list_sessions(self) -> list[session_module.BackupSession]:
        """All readable sessions, newest first."""
        if not self.backups_dir.is_dir():
            return []
        sessions = []
        for directory in self.backups_dir.iterdir():
            if not directory.is_dir():
                continue
            session = session_module.BackupSession.load(directory)
            if session is not None:
                sessions.append(session)
        return sorted(sessions, key=lambda s: s.id, reverse=True)

    def latest_session(self) -> session_module.BackupSession | None:
        """Newest finalized session, the one undo would revert."""
        for session in self.list_sessions():
            if session.status == "finalized":
                return session
        return None

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    def _backup_name(self, session: session_module.BackupSession, path: _pathlib.Path) -> str:
        """
        Location of a pre-image inside files/.

        Each entry gets its own numbered folder mirroring the original
        path, so a directory captured after one of its children does not
        collide with the child's copy.
        """
        try:
            relative = str(path.relative_to(self.home))
        except ValueError:
            relative = str(path).lstrip("/")
        return f"{len(session.entries):04d}/{relative}"

    def capture(
        self,
        session: session_module.BackupSession,
        path: _pathlib.Path,
        *,
        copied: bool = False,
    ) -> session_module.BackupEntry:
        """
        Record a path's current state before it is changed.

        The first capture of a path in a session wins; later captures of
        the same path return the existing entry.

        Args:
            session: Open session receiving the entry.
            path: Path about to change.
            copied: An absent path is about to receive a copied tree,
                which undo removes with its contents.
        """
        existing = session.entry_for(path)
        if existing is not None:
            return existing

        if not _os.path.lexists(path):
            kind: session_module.EntryKind = "copied" if copied else "created"
            entry = session_module.BackupEntry(path=str(path), kind=kind)
        elif path.is_symlink():
            entry = session_module.BackupEntry(
                path=str(path), kind="symlink", link_target=_os.readlink(path)
            )
        else:
            name = self._backup_name(session, path)
            _copy_path(path, session.files_dir / name)
            kind = "directory" if path.is_dir() else "file"
            entry = session_module.BackupEntry(path=str(path), kind=kind, backup=name)

        session.entries.append(entry)
        session.save()
        return entry

    def _ensure_directory(
        self,
        session: session_module.BackupSession,
        directory: _pathlib.Path,
    ) -> None:
        """Create a directory, recording every folder level that did not exist."""
        if directory.is_dir():
            return
        missing = [directory]
        while not _os.path.lexists(missing[-1].parent) and missing[-1].parent != missing[-1]:
            missing.append(missing[-1].parent)
        # Outermost first, so undo removes the innermost first
        for path in reversed(missing):
            self.capture(session, path)
        directory.mkdir(parents=True, exist_ok=True)

    # -------------------------------------------------------------------------
    # Apply
    # -------------------------------------------------------------------------

    def _detach_parent(
        self,
        session: session_module.BackupSession,
        target: _pathlib.Path,
    ) -> None:
        """Turn a legacy whole-folder link into a real directory."""
        parent = target.parent
        if not parent.is_symlink():
            return
        _logger.info("Replacing legacy folder link %s with a directory", parent)
        self.capture(session, parent)
        parent.unlink()
        parent.mkdir()

    def _execute(
        self,
        task: plan_module.LinkTask,
        session: session_module.BackupSession,
    ) -> None:
        if task.detach_parent:
            self._detach_parent(session, task.target)

        if task.action is plan_module.LinkAction.REMOVE:
            if _os.path.lexists(task.target):
                self.capture(session, task.target)
                _remove_path(task.target)
                _logger.debug("Removed %s", task.target)
            return

        if task.source is None:
            raise ValueError(f"Task for {task.target} has no source")

        self._ensure_directory(session, task.target.parent)
        self.capture(session, task.target)
        if _os.path.lexists(task.target) and not task.target.is_symlink():
            _remove_path(task.target)
        _atomic_symlink(task.source.absolute(), task.target)
        _logger.debug("Linked %s -> %s", task.target, task.source)

    def migrate(
        self,
        migration: migrate_module.MigrationPlan,
        session: session_module.BackupSession,
        result: ApplyResult,
    ) -> None:
        """
        Copy client content into the canonical folder inside an open session.

        Destinations are captured as copied paths, so undo removes the
        copies even when they are folders. Client originals are left in
        place for the link pass.
        """
        for move in migration.moves:
            try:
                self._ensure_directory(session, move.target.parent)
                self.capture(session, move.target, copied=True)
                _copy_path(move.source, move.target)
                result.migrated += 1
                _logger.info("Migrated %s -> %s", move.source, move.target)
            except OSError as e:
                _logger.error("Failed to migrate %s: %s", move.source, e)
                result.failures.append(TaskFailure(move.target, str(e), "migrate"))

    def apply(
        self,
        plan: plan_module.LinkPlan,
        session: session_module.BackupSession,
        *,
        force: bool = False,
        replace: _typing.Collection[_pathlib.Path] = (),
        result: ApplyResult | None = None,
    ) -> ApplyResult:
        """
        Carry out a plan inside an open session.

        Generated documents are written first, then tasks run in plan
        order. A failing task is recorded and the rest still run.

        Args:
            plan: Plan from build_plan().
            session: Open session receiving the pre-images.
            force: Replace conflicting files and directories (after
                backing them up) instead of skipping them.
            replace: Conflict targets replaced even without force, such
                as client files whose content was just migrated.
            result: Result to add to (e.g. after migrate()); a new one
                when None.
        """
        if result is None:
            result = ApplyResult(session_id=session.id)

        for document in plan.pending_writes:
            try:
                self._ensure_directory(session, document.path.parent)
                self.capture(session, document.path)
                _atomic_write(document.path, document.content)
                result.written += 1
                _logger.debug("Wrote %s", document.path)
            except OSError as e:
                _logger.error("Failed to write %s: %s", document.path, e)
                result.failures.append(TaskFailure(document.path, str(e), "write"))

        forced: list[plan_module.LinkTask] = []
        for conflict in plan.conflicts:
            if force or conflict.target in replace:
                forced.append(conflict.as_forced_task())
            else:
                result.skipped += 1
                _logger.warning("Skipping %s: %s", conflict.target, conflict.reason)

        for task in plan.tasks:
            if self._run_task(task, session, result):
                if task.action is plan_module.LinkAction.REMOVE:
                    result.removed += 1
                else:
                    result.linked += 1

        for task in forced:
            if self._run_task(task, session, result):
                result.linked += 1
                result.overwritten += 1

        return result

    def _run_task(
        self,
        task: plan_module.LinkTask,
        session: session_module.BackupSession,
        result: ApplyResult,
    ) -> bool:
        try:
            self._execute(task, session)
        except OSError as e:
            _logger.error("Failed to %s %s: %s", task.action.value, task.target, e)
            result.failures.append(TaskFailure(task.target, str(e), task.action.value))
            return False
        return True

    # -------------------------------------------------------------------------
    # Undo
    # -------------------------------------------------------------------------

    def _revert(
        self,
        entry: session_module.BackupEntry,
        source_session: session_module.BackupSession,
        undo_session: session_module.BackupSession,
        result: UndoResult,
    ) -> None:
        path = _pathlib.Path(entry.path)

        if entry.kind in ("created", "copied"):
            if not _os.path.lexists(path):
                return
            is_folder = path.is_dir() and not path.is_symlink()
            if entry.kind == "created" and is_folder and any(path.iterdir()):
                raise OSError(f"Directory not empty: {path}")
            self.capture(undo_session, path)
            _remove_path(path)
            result.removed += 1
            return

        if entry.kind == "symlink":
            if entry.link_target is None:
                raise ValueError(f"Symlink entry for {path} has no link target")
            self.capture(undo_session, path)
            if _os.path.lexists(path) and not path.is_symlink():
                _remove_path(path)
            path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_symlink(entry.link_target, path)
            result.restored += 1
            return

        if entry.backup is None:
            raise ValueError(f"{entry.kind} entry for {path} has no backup copy")
        copy = source_session.files_dir / entry.backup
        if not _os.path.lexists(copy):
            raise FileNotFoundError(f"Backup copy missing: {copy}")
        self.capture(undo_session, path)
        if _os.path.lexists(path):
            _remove_path(path)
        _copy_path(copy, path)
        result.restored += 1

    def undo(self) -> UndoResult:
        """
        Revert the newest finalized session.

        Raises:
            NoSessionError: If there is nothing to undo.
        """
        target = self.latest_session()
        if target is None:
            raise NoSessionError(f"No backup session to undo in {self.backups_dir}")

        _logger.info("Undoing backup session %s (%s)", target.id, target.operation)
        result = UndoResult(undone_session=target.id)

        undo_session = self.begin("undo")
        undo_session.reverts = target.id
        try:
            for entry in reversed(target.entries):
                try:
                    self._revert(entry, target, undo_session, result)
                except (OSError, ValueError) as e:
                    _logger.error("Failed to restore %s: %s", entry.path, e)
                    result.failures.append(TaskFailure(_pathlib.Path(entry.path), str(e), "undo"))
        finally:
            self.finalize(undo_session)

        target.status = "undone"
        target.save()
        if undo_session.status == "finalized":
            result.backup_session = undo_session.id
        return result
