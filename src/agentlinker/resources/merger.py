"""
Merging discovered items across a chain into one resolved resource set.

Per resource type, with the current level's ResolvedConfig:

- inherit: items of the nearest ancestor that has any; current ignored
- override: current level only
- extend: union of every ancestor (closer wins) overlaid by the current
  level (current wins); for AGENTS.md the nearest ancestor body and the
  current body are concatenated, ancestor first
- compose: current level plus the include-listed names, each taken from
  the nearest ancestor defining it; names the current level already has
  are skipped; for AGENTS.md compose behaves like extend

Exclude patterns are applied last and remove items regardless of which
behavior produced them.

Precedence relies on each item's rank, not on list order.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import fnmatch as _fnmatch
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import agentlinker.config.types as config_types
import agentlinker.constants as constants
import agentlinker.resources.discovery as discovery
import agentlinker.resources.items as items

_logger = _logging.getLogger(__name__)

Behavior = config_types.ExtendBehavior
Resource = config_types.ResourceType


@_dataclasses.dataclass(frozen=True)
class ResolvedDocument:
    """
    The resolved instructions document.

    A single part is a reference to the one file supplying the document
    (it can be linked directly); several parts are concatenated in order.
    """

    parts: tuple[items.DiscoveredItem, ...]

    @property
    def single_source(self) -> _pathlib.Path | None:
        """The supplying file when the document comes from exactly one level."""
        if len(self.parts) == 1:
            return self.parts[0].path
        return None

    @property
    def is_composite(self) -> bool:
        """Whether the document is a concatenation of several levels."""
        return len(self.parts) > 1

    def render(self) -> str:
        """Concatenated content of the generic parts."""
        return render_document([part.path for part in self.parts])

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "parts": [part.to_dict() for part in self.parts],
            "composite": self.is_composite,
        }


@_dataclasses.dataclass
class ResolvedResourceSet:
    """Final merge output for the current level. Never cached across runs."""

    document: ResolvedDocument | None
    collections: dict[Resource, dict[str, items.DiscoveredItem]]
    config: config_types.ResolvedConfig
    dropped_includes: dict[Resource, list[str]] = _dataclasses.field(default_factory=dict)
    """Include names that no ancestor defines."""

    excluded: list[items.DiscoveredItem] = _dataclasses.field(default_factory=list)
    """Items removed by exclude patterns."""

    def items_for(self, resource: Resource) -> list[items.DiscoveredItem]:
        """Winning items of a collection type, ordered by name."""
        return list(self.collections.get(resource, {}).values())

    def names_for(self, resource: Resource) -> list[str]:
        """Names of the winning items of a collection type."""
        return list(self.collections.get(resource, {}).keys())

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "document": self.document.to_dict() if self.document else None,
            "collections": {
                r.value: {name: item.to_dict() for name, item in found.items()}
                for r, found in self.collections.items()
            },
            "config": self.config.to_dict(),
            "dropped_includes": {r.value: names for r, names in self.dropped_includes.items()},
            "excluded": [item.logical_path for item in self.excluded],
        }


def render_document(paths: _typing.Sequence[_pathlib.Path]) -> str:
    """
    Concatenate document files in order.

    Every part but the last loses its trailing newlines so parts are
    separated by exactly one blank line ("A" + "B" -> "A\\n\\nB").

    Raises:
        UnreadableDocumentError: If a part cannot be read as UTF-8 text.
    """
    texts = [discovery.read_document(path) for path in paths]
    if not texts:
        return ""
    head = [text.rstrip("\n") for text in texts[:-1]]
    return constants.DOCUMENT_SEPARATOR.join([*head, texts[-1]])


def matches_exclude(logical_path: str, patterns: _typing.Iterable[str]) -> bool:
    """Whether a logical path matches any exclude glob (full or path-suffix match)."""
    for pattern in patterns:
        if _fnmatch.fnmatchcase(logical_path, pattern):
            return True
        if _fnmatch.fnmatchcase(logical_path, f"*/{pattern}"):
            return True
    return False


def _split_by_rank(
    found: list[items.DiscoveredItem],
    current_rank: int,
) -> tuple[list[items.DiscoveredItem], list[items.DiscoveredItem]]:
    """Split items into (ancestor items, current-level items), each rank-ordered."""
    ancestors = sorted((i for i in found if i.rank < current_rank), key=items.sort_key)
    current = sorted((i for i in found if i.rank == current_rank), key=items.sort_key)
    return ancestors, current


def _nearest_ancestor_items(
    ancestors: list[items.DiscoveredItem],
) -> list[items.DiscoveredItem]:
    """Items of the closest ancestor level that has any."""
    if not ancestors:
        return []
    nearest = max(item.rank for item in ancestors)
    return [item for item in ancestors if item.rank == nearest]


def _by_name(found: _typing.Iterable[items.DiscoveredItem]) -> dict[str, items.DiscoveredItem]:
    """Name -> item, with higher ranks replacing lower ones."""
    result: dict[str, items.DiscoveredItem] = {}
    for item in sorted(found, key=items.sort_key):
        previous = result.get(item.name)
        if previous is None or previous.rank <= item.rank:
            result[item.name] = item
    return result


def _merge_collection(
    resource: Resource,
    behavior: Behavior,
    include: frozenset[str],
    ancestors: list[items.DiscoveredItem],
    current: list[items.DiscoveredItem],
    dropped: list[str],
) -> dict[str, items.DiscoveredItem]:
    """Resolve one collection type."""
    if behavior is Behavior.INHERIT:
        merged = _by_name(_nearest_ancestor_items(ancestors))
    elif behavior is Behavior.OVERRIDE:
        merged = _by_name(current)
    elif behavior is Behavior.EXTEND:
        merged = _by_name(ancestors)
        merged.update(_by_name(current))
    else:
        merged = _by_name(current)
        for name in sorted(include):
            if name in merged:
                _logger.debug("Include %s/%s already defined locally", resource.value, name)
                continue
            candidates = [item for item in ancestors if item.name == name]
            if not candidates:
                _logger.warning(
                    "Included %s %r not found in any parent level, skipping",
                    resource.value,
                    name,
                )
                dropped.append(name)
                continue
            merged[name] = max(candidates, key=lambda item: item.rank)

    return dict(sorted(merged.items()))


def _merge_document(
    behavior: Behavior,
    ancestors: list[items.DiscoveredItem],
    current: list[items.DiscoveredItem],
) -> ResolvedDocument | None:
    """Resolve the AGENTS.md document."""
    nearest = max(ancestors, key=lambda item: item.rank) if ancestors else None
    own = current[-1] if current else None

    if behavior is Behavior.INHERIT:
        parts = [nearest]
    elif behavior is Behavior.OVERRIDE:
        parts = [own]
    else:
        parts = [nearest, own]

    present = tuple(part for part in parts if part is not None)
    return ResolvedDocument(parts=present) if present else None


def merge(
    discovered: discovery.DiscoveryResult,
    config: config_types.ResolvedConfig,
) -> ResolvedResourceSet:
    """
    Combine discovered items according to the resolved behaviors.

    Args:
        discovered: Output of discover(), ordered by (rank, name).
        config: The current level's ResolvedConfig.

    Returns:
        ResolvedResourceSet for the current level.
    """
    current_rank = discovered.current_rank
    if current_rank is None:
        # No current level: everything found is an ancestor
        all_ranks = [item.rank for found in discovered.items.values() for item in found]
        current_rank = max(all_ranks, default=-1) + 1

    dropped: dict[Resource, list[str]] = {}
    collections: dict[Resource, dict[str, items.DiscoveredItem]] = {}

    for resource in Resource.collections():
        ancestors, current = _split_by_rank(discovered.items_for(resource), current_rank)
        names: list[str] = []
        collections[resource] = _merge_collection(
            resource,
            config.behavior(resource),
            config.include_for(resource),
            ancestors,
            current,
            names,
        )
        if names:
            dropped[resource] = names

    ancestors, current = _split_by_rank(discovered.items_for(Resource.DOCUMENT), current_rank)
    document = _merge_document(config.behavior(Resource.DOCUMENT), ancestors, current)

    excluded: list[items.DiscoveredItem] = []
    if config.exclude:
        for resource, found in collections.items():
            for name, item in list(found.items()):
                if matches_exclude(item.logical_path, config.exclude):
                    excluded.append(item)
                    del found[name]
        if document is not None and matches_exclude(constants.DOCUMENT_FILE, config.exclude):
            excluded.extend(document.parts)
            document = None

    for item in excluded:
        _logger.info("Excluded %s", item.logical_path)

    return ResolvedResourceSet(
        document=document,
        collections=collections,
        config=config,
        dropped_includes=dropped,
        excluded=excluded,
    )
