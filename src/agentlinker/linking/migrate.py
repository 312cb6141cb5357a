"""
Migration of existing client configuration into a canonical folder.

Before a project (or the global scope) is linked for the first time its
clients usually hold real files: a CLAUDE.md, commands under
.claude/commands and so on. scan_migration() finds them and proposes
copying each one into the canonical folder, so the link pass that follows
can replace the originals with links to the copies.

- a document target (CLAUDE.md, AGENTS.md, ...) maps to <canonical>/AGENTS.md
- an entry of a collection target directory maps to <canonical>/<type>/<entry>

A destination that already exists in the canonical folder is never
overwritten. When several clients hold a candidate for the same
destination, they migrate together if their contents are identical and
are reported as a MigrationConflict otherwise. Only real files and
directories are candidates; links are left to the planner.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import filecmp as _filecmp
import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

import agentlinker.config.types as config_types
import agentlinker.constants as constants
import agentlinker.linking.clients as clients
import agentlinker.resources.discovery as discovery

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass(frozen=True)
class MigrationCandidate:
    """A real client file or directory that could seed the canonical folder."""

    source: _pathlib.Path
    resource: config_types.ResourceType
    consumers: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "source": str(self.source),
            "resource": self.resource.value,
            "consumers": list(self.consumers),
        }


@_dataclasses.dataclass(frozen=True)
class MigrationMove:
    """Copy one candidate into the canonical folder."""

    target: _pathlib.Path
    """Destination inside the canonical folder."""

    candidate: MigrationCandidate
    duplicates: tuple[MigrationCandidate, ...] = ()
    """Other candidates with identical content; they are replaced by links too."""

    @property
    def source(self) -> _pathlib.Path:
        return self.candidate.source

    @property
    def resource(self) -> config_types.ResourceType:
        return self.candidate.resource

    @property
    def sources(self) -> tuple[_pathlib.Path, ...]:
        """Every client path whose content this move carries over."""
        return (self.candidate.source, *(dup.source for dup in self.duplicates))

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": str(self.target),
            "source": str(self.source),
            "resource": self.resource.value,
            "duplicates": [str(dup.source) for dup in self.duplicates],
        }


@_dataclasses.dataclass(frozen=True)
class MigrationConflict:
    """Several differing candidates for one destination; none is migrated."""

    target: _pathlib.Path
    resource: config_types.ResourceType
    candidates: tuple[MigrationCandidate, ...]

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": str(self.target),
            "resource": self.resource.value,
            "candidates": [candidate.to_dict() for candidate in self.candidates],
        }


@_dataclasses.dataclass
class MigrationPlan:
    """Result of scanning client locations for content to migrate."""

    moves: list[MigrationMove] = _dataclasses.field(default_factory=list)
    conflicts: list[MigrationConflict] = _dataclasses.field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.moves and not self.conflicts

    @property
    def migrated_sources(self) -> frozenset[_pathlib.Path]:
        """Client paths whose content ends up in the canonical folder."""
        return frozenset(path for move in self.moves for path in move.sources)

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "moves": [move.to_dict() for move in self.moves],
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
        }


def _same_tree(comparison: _filecmp.dircmp[str]) -> bool:
    if comparison.left_only or comparison.right_only or comparison.funny_files:
        return False
    _match, mismatch, errors = _filecmp.cmpfiles(
        comparison.left, comparison.right, comparison.common_files, shallow=False
    )
    if mismatch or errors:
        return False
    return all(_same_tree(sub) for sub in comparison.subdirs.values())


def same_content(first: _pathlib.Path, second: _pathlib.Path) -> bool:
    """Whether two files (or directory trees) hold identical bytes."""
    if first.is_dir() != second.is_dir():
        return False
    if first.is_dir():
        return _same_tree(_filecmp.dircmp(first, second))
    return _filecmp.cmp(first, second, shallow=False)


class _Collector:
    """Candidates grouped by canonical destination, one per client path."""

    def __init__(self) -> None:
        self.by_target: dict[_pathlib.Path, dict[_pathlib.Path, MigrationCandidate]] = {}

    def add(
        self,
        target: _pathlib.Path,
        source: _pathlib.Path,
        resource: config_types.ResourceType,
        consumer: str,
    ) -> None:
        found = self.by_target.setdefault(target, {})
        existing = found.get(source)
        consumers = (*existing.consumers, consumer) if existing else (consumer,)
        found[source] = MigrationCandidate(source=source, resource=resource, consumers=consumers)


def _document_candidates(
    collector: _Collector,
    target: _pathlib.Path,
    canonical_root: _pathlib.Path,
    consumer: str,
) -> None:
    if not target.is_file() or target.is_symlink():
        return
    try:
        discovery.read_document(target)
    except discovery.UnreadableDocumentError as e:
        _logger.info("Not migrating %s: %s", target, e.reason)
        return
    collector.add(
        canonical_root / constants.DOCUMENT_FILE,
        target,
        config_types.ResourceType.DOCUMENT,
        consumer,
    )


def _collection_candidates(
    collector: _Collector,
    directory: _pathlib.Path,
    resource: config_types.ResourceType,
    canonical_root: _pathlib.Path,
    consumer: str,
) -> None:
    if directory.is_symlink() or not directory.is_dir():
        return
    destination_dir = canonical_root / discovery.COLLECTION_DIRS[resource]
    for entry in sorted(directory.iterdir()):
        if entry.name.startswith(".") or entry.is_symlink():
            continue
        try:
            discovery.validate_entry(resource, entry)
        except (FileNotFoundError, ValueError, OSError) as e:
            _logger.debug("Not migrating %s: %s", entry, e)
            continue
        collector.add(destination_dir / entry.name, entry, resource, consumer)


def scan_migration(
    consumers: _typing.Sequence[clients.ConsumerSpec],
    *,
    base_dir: _pathlib.Path,
    scope: clients.Scope,
    canonical_root: _pathlib.Path,
) -> MigrationPlan:
    """
    Find client content that the canonical folder does not hold yet.

    Args:
        consumers: Active clients.
        base_dir: Home (global scope) or project directory.
        scope: Which target table to use.
        canonical_root: The canonical folder receiving the copies.

    Returns:
        MigrationPlan with one move per destination, or a conflict when
        the candidates for a destination differ.
    """
    collector = _Collector()
    for consumer in consumers:
        for resource, template in consumer.targets(scope).items():
            target = base_dir / template
            if resource.is_collection:
                _collection_candidates(collector, target, resource, canonical_root, consumer.name)
            else:
                _document_candidates(collector, target, canonical_root, consumer.name)

    plan = MigrationPlan()
    for destination, found in collector.by_target.items():
        if _os.path.lexists(destination):
            _logger.debug("Not migrating into %s: already present", destination)
            continue
        candidates = list(found.values())
        first, rest = candidates[0], candidates[1:]
        if all(same_content(first.source, other.source) for other in rest):
            plan.moves.append(
                MigrationMove(target=destination, candidate=first, duplicates=tuple(rest))
            )
        else:
            _logger.info(
                "Not migrating %s: %d differing candidates", destination, len(candidates)
            )
            plan.conflicts.append(
                MigrationConflict(
                    target=destination, resource=first.resource, candidates=tuple(candidates)
                )
            )

    _logger.debug(
        "Migration scan: %d move(s), %d conflict(s)", len(plan.moves), len(plan.conflicts)
    )
    return plan
