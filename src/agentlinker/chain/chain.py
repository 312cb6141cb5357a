"""
Inheritance chain discovery.

Walks from a start directory toward the filesystem root collecting every
directory that hosts a canonical folder (.agents/). The global root
(~/.agents by default) is always the most distant level when it exists,
whether or not the walk passes through it.

Levels are returned root-first: rank 0 is the global (or most distant)
level and the start directory, when it hosts a canonical folder, is the
current level with the highest rank.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import pathlib as _pathlib
import typing as _typing

import agentlinker.constants as constants


@_dataclasses.dataclass(frozen=True)
class ChainLevel:
    """One configuration root in an inheritance chain."""

    path: _pathlib.Path
    """Directory hosting the canonical folder."""

    root: _pathlib.Path
    """The canonical folder itself (path / .agents)."""

    rank: int
    """0 = most distant; increases toward the current level."""

    is_current: bool = False
    """Whether this is the level being resolved."""

    is_global: bool = False
    """Whether this is the user's global root."""

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": str(self.path),
            "root": str(self.root),
            "rank": self.rank,
            "is_current": self.is_current,
            "is_global": self.is_global,
        }


@_dataclasses.dataclass(frozen=True)
class InheritanceChain:
    """Ordered chain of levels, most distant first."""

    levels: tuple[ChainLevel, ...]
    start_dir: _pathlib.Path

    @property
    def current(self) -> ChainLevel | None:
        """The level matching the start directory, if it has a canonical folder."""
        for level in self.levels:
            if level.is_current:
                return level
        return None

    @property
    def ancestors(self) -> tuple[ChainLevel, ...]:
        """Every level except the current one, most distant first."""
        return tuple(level for level in self.levels if not level.is_current)

    @property
    def parent(self) -> ChainLevel | None:
        """The nearest ancestor, if any."""
        ancestors = self.ancestors
        return ancestors[-1] if ancestors else None

    @property
    def global_level(self) -> ChainLevel | None:
        """The global level, if present in the chain."""
        for level in self.levels:
            if level.is_global:
                return level
        return None

    @property
    def has_parent(self) -> bool:
        """Whether there is anything to inherit from."""
        return bool(self.ancestors)

    def standalone(self) -> InheritanceChain:
        """A chain holding only the current level (rank 0), for standalone projects."""
        current = self.current
        if current is None:
            return InheritanceChain(levels=(), start_dir=self.start_dir)
        return InheritanceChain(
            levels=(_dataclasses.replace(current, rank=0),),
            start_dir=self.start_dir,
        )

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "start_dir": str(self.start_dir),
            "levels": [level.to_dict() for level in self.levels],
            "current": str(self.current.path) if self.current else None,
            "has_parent": self.has_parent,
        }


def _resolve_existing(path: _pathlib.Path | None) -> _pathlib.Path | None:
    """Resolve a canonical folder path, or None if it is not a directory."""
    if path is None:
        return None
    expanded = path.expanduser()
    if not expanded.is_dir():
        return None
    return expanded.resolve()


def resolve_chain(
    start_dir: _pathlib.Path,
    *,
    global_root: _pathlib.Path | None = None,
    canonical_name: str = constants.CANONICAL_DIR_NAME,
) -> InheritanceChain:
    """
    Build the inheritance chain for a start directory.

    Walks up from start_dir until the filesystem root or the directory
    hosting the global root. Directories without a canonical folder are
    skipped rather than inserted as empty levels.

    Args:
        start_dir: Directory to resolve (passed explicitly; cwd is never read).
        global_root: The user's global canonical folder (e.g. ~/.agents).
        canonical_name: Name of the canonical folder at each level.

    Returns:
        The chain; possibly empty, and `current` may be None.
    """
    start = start_dir.expanduser().resolve()
    global_resolved = _resolve_existing(global_root)
    global_host = global_resolved.parent if global_resolved else None

    # Collect all directories from start up to the stop point
    walked: list[_pathlib.Path] = []
    current = start
    while True:
        walked.append(current)
        if global_host is not None and current == global_host:
            break
        if current == current.parent:
            # Reached filesystem root
            break
        current = current.parent

    # Reverse so we go root-first
    walked.reverse()

    found: list[tuple[_pathlib.Path, _pathlib.Path, bool]] = []
    if global_resolved is not None:
        found.append((global_host or global_resolved.parent, global_resolved, True))

    for dir_path in walked:
        root = dir_path / canonical_name
        if not root.is_dir():
            continue
        if global_resolved is not None and root.resolve() == global_resolved:
            continue
        found.append((dir_path, root.resolve(), False))

    levels = tuple(
        ChainLevel(
            path=path,
            root=root,
            rank=rank,
            is_current=path == start,
            is_global=is_global,
        )
        for rank, (path, root, is_global) in enumerate(found)
    )
    return InheritanceChain(levels=levels, start_dir=start)
