"""
Resource discovery across an inheritance chain.

For every level (ancestors and current) the discoverer lists the entries
directly under commands/, skills/ and hooks/, and records the level's
AGENTS.md if present. Items are validated structurally only:

- commands: *.md files with well-formed (optional) frontmatter
- skills: directories whose SKILL.md has a name and description
- hooks: existing files or directories

AGENTS.md must be readable UTF-8 text. Invalid entries are skipped and
reported as InvalidItem warnings; hidden entries (dot-prefixed) are
ignored. Results are ordered most distant level first, current level last,
which lets later stages treat the last item of a name as the most specific
one.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import agentlinker.chain as chain
import agentlinker.config.types as config_types
import agentlinker.constants as constants
import agentlinker.resources.commands as commands
import agentlinker.resources.hooks as hooks
import agentlinker.resources.items as items
import agentlinker.resources.skills as skills

_logger = _logging.getLogger(__name__)

COLLECTION_DIRS: dict[config_types.ResourceType, str] = {
    config_types.ResourceType.COMMANDS: constants.COMMANDS_DIR,
    config_types.ResourceType.SKILLS: constants.SKILLS_DIR,
    config_types.ResourceType.HOOKS: constants.HOOKS_DIR,
}


@_dataclasses.dataclass
class DiscoveryResult:
    """Everything discovered across a chain."""

    items: dict[config_types.ResourceType, list[items.DiscoveredItem]] = _dataclasses.field(
        default_factory=lambda: {r: [] for r in config_types.ResourceType}
    )
    """Items per resource type, ordered by (rank, name)."""

    invalid: list[items.InvalidItem] = _dataclasses.field(default_factory=list)
    """Entries skipped because they failed validation."""

    current_rank: int | None = None
    """Rank of the current level, or None if the chain has no current level."""

    def items_for(self, resource: config_types.ResourceType) -> list[items.DiscoveredItem]:
        """All items of a type, most distant level first."""
        return self.items.get(resource, [])

    def at_rank(
        self,
        resource: config_types.ResourceType,
        rank: int,
    ) -> list[items.DiscoveredItem]:
        """Items of a type found at one level."""
        return [item for item in self.items_for(resource) if item.rank == rank]

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "items": {
                r.value: [item.to_dict() for item in found] for r, found in self.items.items()
            },
            "invalid": [item.to_dict() for item in self.invalid],
            "current_rank": self.current_rank,
        }


def _visible_entries(directory: _pathlib.Path) -> list[_pathlib.Path]:
    """Non-hidden entries directly under a directory, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(
        (entry for entry in directory.iterdir() if not entry.name.startswith(".")),
        key=lambda entry: entry.name,
    )


class UnreadableDocumentError(ValueError):
    """Raised when a document file cannot be read as UTF-8 text."""

    def __init__(self, path: _pathlib.Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read document {path}: {reason}")


def read_document(path: _pathlib.Path) -> str:
    """
    Read an AGENTS.md (or client variant) as text.

    Raises:
        UnreadableDocumentError: If the file is missing, unreadable or not UTF-8.
    """
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise UnreadableDocumentError(path, "not UTF-8 text") from e
    except OSError as e:
        raise UnreadableDocumentError(path, e.strerror or str(e)) from e


def validate_entry(
    resource: config_types.ResourceType,
    entry: _pathlib.Path,
) -> str:
    """
    Validate one collection entry and return its logical name.

    Raises:
        FileNotFoundError, ValueError: If the entry is not a valid item.
    """
    if resource is config_types.ResourceType.COMMANDS:
        return commands.load_command(entry).name
    if resource is config_types.ResourceType.SKILLS:
        if not entry.is_dir():
            raise ValueError("skills must be directories")
        skills.load_skill(entry)
        return entry.name
    return hooks.load_hook(entry).name


def discover_level(
    level: chain.ChainLevel,
    result: DiscoveryResult,
) -> None:
    """Discover one level's items into result (appending in name order)."""
    document = level.root / constants.DOCUMENT_FILE
    if document.is_file():
        try:
            read_document(document)
        except UnreadableDocumentError as e:
            _logger.warning("Skipping invalid document %s: %s", document, e.reason)
            result.invalid.append(
                items.InvalidItem(
                    resource=config_types.ResourceType.DOCUMENT, path=document, reason=e.reason
                )
            )
        else:
            result.items[config_types.ResourceType.DOCUMENT].append(
                items.DiscoveredItem(
                    resource=config_types.ResourceType.DOCUMENT,
                    name=constants.DOCUMENT_FILE,
                    path=document,
                    rank=level.rank,
                    level_root=level.root,
                )
            )

    for resource, dir_name in COLLECTION_DIRS.items():
        seen: set[str] = set()
        for entry in _visible_entries(level.root / dir_name):
            try:
                name = validate_entry(resource, entry)
            except (FileNotFoundError, ValueError, OSError) as e:
                _logger.warning("Skipping invalid %s item %s: %s", resource.value, entry, e)
                result.invalid.append(
                    items.InvalidItem(resource=resource, path=entry, reason=str(e))
                )
                continue

            if name in seen:
                reason = f"duplicate {resource.value} name {name!r} in {level.root}"
                _logger.warning("Skipping %s: %s", entry, reason)
                result.invalid.append(items.InvalidItem(resource=resource, path=entry, reason=reason))
                continue
            seen.add(name)

            result.items[resource].append(
                items.DiscoveredItem(
                    resource=resource,
                    name=name,
                    path=entry,
                    rank=level.rank,
                    level_root=level.root,
                )
            )


def discover(inheritance_chain: chain.InheritanceChain) -> DiscoveryResult:
    """
    Discover items at every level of a chain.

    Args:
        inheritance_chain: Chain from resolve_chain().

    Returns:
        DiscoveryResult with items ordered by (rank, name).
    """
    result = DiscoveryResult()
    current = inheritance_chain.current
    result.current_rank = current.rank if current is not None else None

    for level in sorted(inheritance_chain.levels, key=lambda lvl: lvl.rank):
        discover_level(level, result)

    for resource in result.items:
        result.items[resource].sort(key=items.sort_key)

    return result
