"""
Link planning.

Maps a ResolvedResourceSet onto every active client's target paths and
compares the result with what is on disk. The plan holds:

- tasks: create / replace / remove operations that change something
- satisfied: targets already linked correctly (no-ops)
- conflicts: targets holding a real file or a non-empty directory, which
  are never touched without an explicit force
- generated: concatenated documents that links point at

Planning only reads the filesystem. Running it twice with nothing
changed in between gives the same plan; after a successful apply it gives
an empty one.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import logging as _logging
import os as _os
import pathlib as _pathlib
import typing as _typing

import agentlinker.config.types as config_types
import agentlinker.constants as constants
import agentlinker.linking.clients as clients
import agentlinker.resources.merger as merger

_logger = _logging.getLogger(__name__)


class LinkAction(str, _enum.Enum):
    """What a task does to its target."""

    CREATE = "create"
    REPLACE = "replace"
    REMOVE = "remove"
    NOOP = "noop"


@_dataclasses.dataclass(frozen=True)
class LinkTask:
    """One planned filesystem action on one target path."""

    target: _pathlib.Path
    source: _pathlib.Path | None
    """Desired link destination (None for remove)."""

    action: LinkAction
    resource: config_types.ResourceType
    consumers: tuple[str, ...] = ()
    """Clients served by this target."""

    reason: str | None = None
    """Why the task exists beyond the obvious (e.g. a forced conflict)."""

    detach_parent: bool = False
    """The parent directory is a legacy link into .agents and must become a real directory."""

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": str(self.target),
            "source": str(self.source) if self.source else None,
            "action": self.action.value,
            "resource": self.resource.value,
            "consumers": list(self.consumers),
            "reason": self.reason,
        }


@_dataclasses.dataclass(frozen=True)
class Conflict:
    """A target that cannot be replaced without explicit consent."""

    target: _pathlib.Path
    source: _pathlib.Path
    reason: str
    kind: _typing.Literal["file", "directory", "other"]
    resource: config_types.ResourceType
    consumers: tuple[str, ...] = ()

    def as_forced_task(self) -> LinkTask:
        """The replace task this conflict becomes under force."""
        return LinkTask(
            target=self.target,
            source=self.source,
            action=LinkAction.REPLACE,
            resource=self.resource,
            consumers=self.consumers,
            reason=self.reason,
        )

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": str(self.target),
            "source": str(self.source),
            "reason": self.reason,
            "kind": self.kind,
            "resource": self.resource.value,
            "consumers": list(self.consumers),
        }


@_dataclasses.dataclass(frozen=True)
class GeneratedDocument:
    """A concatenated AGENTS.md that must be written before it is linked."""

    path: _pathlib.Path
    content: str
    needs_write: bool

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {"path": str(self.path), "needs_write": self.needs_write}


@_dataclasses.dataclass
class LinkPlan:
    """Result of planning: disjoint tasks, no-ops and conflicts."""

    tasks: list[LinkTask] = _dataclasses.field(default_factory=list)
    satisfied: list[LinkTask] = _dataclasses.field(default_factory=list)
    conflicts: list[Conflict] = _dataclasses.field(default_factory=list)
    generated: list[GeneratedDocument] = _dataclasses.field(default_factory=list)

    @property
    def pending_writes(self) -> list[GeneratedDocument]:
        """Generated documents whose content on disk is missing or stale."""
        return [doc for doc in self.generated if doc.needs_write]

    @property
    def change_count(self) -> int:
        """Number of filesystem changes the plan makes without force."""
        return len(self.tasks) + len(self.pending_writes)

    @property
    def is_empty(self) -> bool:
        """Whether applying the plan (without force) would change nothing."""
        return self.change_count == 0 and not self.conflicts

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "tasks": [task.to_dict() for task in self.tasks],
            "satisfied": [task.to_dict() for task in self.satisfied],
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
            "generated": [doc.to_dict() for doc in self.generated],
        }


@_dataclasses.dataclass
class _Desired:
    source: _pathlib.Path
    resource: config_types.ResourceType
    consumers: list[str]


# =============================================================================
# Filesystem inspection helpers
# =============================================================================


def link_destination(link: _pathlib.Path) -> _pathlib.Path:
    """Absolute, normalized destination of a symlink (without resolving it)."""
    raw = _pathlib.Path(_os.readlink(link))
    if not raw.is_absolute():
        raw = link.parent / raw
    return _pathlib.Path(_os.path.normpath(raw))


def points_to(link: _pathlib.Path, source: _pathlib.Path) -> bool:
    """Whether a symlink already points at source."""
    try:
        destination = link_destination(link)
    except OSError:
        return False
    if destination == _pathlib.Path(_os.path.normpath(source)):
        return True
    if destination.exists() and source.exists():
        return destination.resolve() == source.resolve()
    return False


def is_within(path: _pathlib.Path, roots: _typing.Iterable[_pathlib.Path]) -> bool:
    """Whether path lies inside (or is) one of the roots."""
    for root in roots:
        try:
            path.relative_to(root)
            return True
        except ValueError:
            continue
    return False


def _is_detachable_parent(
    target: _pathlib.Path,
    managed_roots: _typing.Sequence[_pathlib.Path],
) -> bool:
    """Whether the target's parent is a legacy whole-folder link into a canonical folder."""
    parent = target.parent
    if not parent.is_symlink():
        return False
    try:
        return is_within(link_destination(parent), managed_roots)
    except OSError:
        return False


# =============================================================================
# Desired state
# =============================================================================


def _document_sources(
    document: merger.ResolvedDocument,
    consumer: clients.ConsumerSpec,
    generated_dir: _pathlib.Path,
    generated: dict[_pathlib.Path, str],
) -> _pathlib.Path:
    """Source path the consumer's document target should point at."""
    paths: list[_pathlib.Path] = []
    substituted = False
    for part in document.parts:
        variant = (
            part.level_root / consumer.document_variant if consumer.document_variant else None
        )
        if variant is not None and variant.is_file():
            paths.append(variant)
            substituted = True
        else:
            paths.append(part.path)

    if len(paths) == 1:
        return paths[0]

    name = (
        f"AGENTS.{consumer.name}.md" if substituted else constants.DOCUMENT_FILE
    )
    output = generated_dir / name
    if output not in generated:
        generated[output] = merger.render_document(paths)
    return output


def _add_desired(
    desired: dict[_pathlib.Path, _Desired],
    target: _pathlib.Path,
    source: _pathlib.Path,
    resource: config_types.ResourceType,
    consumer: str,
) -> None:
    """Record a desired link, collapsing consumers that share a target."""
    existing = desired.get(target)
    if existing is None:
        desired[target] = _Desired(source=source, resource=resource, consumers=[consumer])
        return
    if existing.source != source:
        _logger.warning(
            "Target %s wanted by %s and %s with different sources; keeping %s",
            target,
            ", ".join(existing.consumers),
            consumer,
            existing.source,
        )
        return
    existing.consumers.append(consumer)


def _classify(
    target: _pathlib.Path,
    wanted: _Desired,
    managed_roots: _typing.Sequence[_pathlib.Path],
) -> LinkTask | Conflict:
    """Compare one target's live state with the desired link."""
    consumers = tuple(wanted.consumers)

    def task(action: LinkAction, detach: bool = False) -> LinkTask:
        return LinkTask(
            target=target,
            source=wanted.source,
            action=action,
            resource=wanted.resource,
            consumers=consumers,
            detach_parent=detach,
        )

    if _is_detachable_parent(target, managed_roots):
        return task(LinkAction.CREATE, detach=True)

    if not _os.path.lexists(target):
        return task(LinkAction.CREATE)

    if target.is_symlink():
        if points_to(target, wanted.source):
            return task(LinkAction.NOOP)
        return task(LinkAction.REPLACE)

    if target.is_dir():
        if not any(target.iterdir()):
            return task(LinkAction.REPLACE)
        kind: _typing.Literal["file", "directory", "other"] = "directory"
        reason = "existing directory"
    elif target.is_file():
        kind = "file"
        reason = "existing file"
    else:
        kind = "other"
        reason = "existing path"

    return Conflict(
        target=target,
        source=wanted.source,
        reason=reason,
        kind=kind,
        resource=wanted.resource,
        consumers=consumers,
    )


def _stale_links(
    directory: _pathlib.Path,
    desired: _typing.Mapping[_pathlib.Path, _Desired],
    managed_roots: _typing.Sequence[_pathlib.Path],
    resource: config_types.ResourceType,
    consumers: _typing.Sequence[str],
) -> list[LinkTask]:
    """Links in a client directory that point into a canonical folder but are no longer wanted."""
    if directory.is_symlink() or not directory.is_dir():
        return []

    stale: list[LinkTask] = []
    for entry in sorted(directory.iterdir()):
        if entry in desired or not entry.is_symlink():
            continue
        try:
            destination = link_destination(entry)
        except OSError:
            continue
        if is_within(destination, managed_roots):
            stale.append(
                LinkTask(
                    target=entry,
                    source=None,
                    action=LinkAction.REMOVE,
                    resource=resource,
                    consumers=tuple(consumers),
                    reason="no longer provided",
                )
            )
    return stale


def _generated_documents(generated: _typing.Mapping[_pathlib.Path, str]) -> list[GeneratedDocument]:
    """Wrap generated contents, marking the ones that differ from disk."""
    documents: list[GeneratedDocument] = []
    for path, content in sorted(generated.items()):
        needs_write = True
        if path.is_file() and not path.is_symlink():
            try:
                needs_write = path.read_text(encoding="utf-8") != content
            except (OSError, UnicodeDecodeError):
                needs_write = True
        documents.append(GeneratedDocument(path=path, content=content, needs_write=needs_write))
    return documents


def build_plan(
    resource_set: merger.ResolvedResourceSet,
    consumers: _typing.Sequence[clients.ConsumerSpec],
    *,
    base_dir: _pathlib.Path,
    scope: clients.Scope,
    generated_dir: _pathlib.Path,
    managed_roots: _typing.Sequence[_pathlib.Path],
) -> LinkPlan:
    """
    Plan the links for a resolved resource set.

    Args:
        resource_set: Output of merge().
        consumers: Active clients.
        base_dir: Home (global scope) or project directory.
        scope: Which target table to use.
        generated_dir: Where concatenated documents are written.
        managed_roots: Canonical folders of the chain; links pointing into
            them are owned by agentlinker and may be repointed or removed.

    Returns:
        LinkPlan with disjoint tasks, no-ops and conflicts.
    """
    roots = [_pathlib.Path(_os.path.normpath(root)) for root in managed_roots]
    desired: dict[_pathlib.Path, _Desired] = {}
    generated: dict[_pathlib.Path, str] = {}
    # Collection target directories -> (resource, consumer names)
    managed_dirs: dict[_pathlib.Path, tuple[config_types.ResourceType, list[str]]] = {}
    document_targets: dict[_pathlib.Path, list[str]] = {}

    for consumer in consumers:
        for resource, template in consumer.targets(scope).items():
            target = base_dir / template

            if not resource.is_collection:
                document_targets.setdefault(target, []).append(consumer.name)
                if resource_set.document is None:
                    continue
                source = _document_sources(
                    resource_set.document, consumer, generated_dir, generated
                )
                _add_desired(desired, target, source, resource, consumer.name)
                continue

            managed_dirs.setdefault(target, (resource, []))[1].append(consumer.name)
            for item in resource_set.items_for(resource):
                _add_desired(desired, target / item.link_name, item.path, resource, consumer.name)

    plan = LinkPlan(generated=_generated_documents(generated))

    for target, wanted in desired.items():
        outcome = _classify(target, wanted, roots)
        if isinstance(outcome, Conflict):
            plan.conflicts.append(outcome)
        elif outcome.action is LinkAction.NOOP:
            plan.satisfied.append(outcome)
        else:
            plan.tasks.append(outcome)

    for directory, (resource, names) in managed_dirs.items():
        plan.tasks.extend(_stale_links(directory, desired, roots, resource, names))

    for target, names in document_targets.items():
        if target in desired or not target.is_symlink():
            continue
        try:
            destination = link_destination(target)
        except OSError:
            continue
        if is_within(destination, roots):
            plan.tasks.append(
                LinkTask(
                    target=target,
                    source=None,
                    action=LinkAction.REMOVE,
                    resource=config_types.ResourceType.DOCUMENT,
                    consumers=tuple(names),
                    reason="no longer provided",
                )
            )

    _logger.debug(
        "Planned %d task(s), %d satisfied, %d conflict(s), %d generated document(s)",
        len(plan.tasks),
        len(plan.satisfied),
        len(plan.conflicts),
        len(plan.generated),
    )
    return plan
