"""
Discovered resource items.

A DiscoveredItem is one concrete command, skill, hook or document found
at one chain level. Items carry their level rank explicitly: merge
precedence is decided by rank, never by insertion order.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import pathlib as _pathlib
import typing as _typing

import agentlinker.config.types as config_types


@_dataclasses.dataclass(frozen=True)
class DiscoveredItem:
    """A resource item found at one chain level."""

    resource: config_types.ResourceType
    """Which resource category the item belongs to."""

    name: str
    """Logical name (command file stem, skill/hook entry name, or AGENTS.md)."""

    path: _pathlib.Path
    """Absolute path of the item's source file or directory."""

    rank: int
    """Rank of the originating chain level."""

    level_root: _pathlib.Path
    """Canonical folder of the originating level."""

    @property
    def logical_path(self) -> str:
        """Path used by exclude patterns, e.g. 'commands/build' or 'AGENTS.md'."""
        if not self.resource.is_collection:
            return self.resource.value
        return f"{self.resource.value}/{self.name}"

    @property
    def link_name(self) -> str:
        """File name the item is linked under in a client directory."""
        return self.path.name

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "resource": self.resource.value,
            "name": self.name,
            "path": str(self.path),
            "rank": self.rank,
            "level_root": str(self.level_root),
        }


@_dataclasses.dataclass(frozen=True)
class InvalidItem:
    """An entry that failed its structural requirement and was skipped."""

    resource: config_types.ResourceType
    path: _pathlib.Path
    reason: str

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "resource": self.resource.value,
            "path": str(self.path),
            "reason": self.reason,
        }


def sort_key(item: DiscoveredItem) -> tuple[int, str]:
    """Ordering invariant: most distant level first, then by name."""
    return (item.rank, item.name)
