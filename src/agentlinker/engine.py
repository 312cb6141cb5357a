"""
The Linker facade: one object tying chain, config, discovery, merge,
planning and transactions together for a start directory and scope.

Scopes:
- global: the current level is the global root, targets live under home
- project: the chain is limited to the current level, targets live in the
  project directory
- monorepo: the full chain is resolved, targets live in the project
  directory (default when the current level has a non-global ancestor)

Every operation walks the directory tree once and passes the resulting
chains down, so a single plan() sees one consistent picture of the tree.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib
import typing as _typing

import agentlinker.backup as backup
import agentlinker.chain as chain
import agentlinker.config as config
import agentlinker.constants as constants
import agentlinker.linking as linking
import agentlinker.resources as resources

_logger = _logging.getLogger(__name__)

LinkScope = _typing.Literal["global", "project", "monorepo"]
SCOPES: tuple[LinkScope, ...] = ("global", "project", "monorepo")

_R = config.ResourceType
_B = config.ExtendBehavior


class NoCurrentLevelError(Exception):
    """Raised when the start directory hosts no canonical folder."""

    def __init__(self, start_dir: _pathlib.Path, canonical_name: str) -> None:
        self.start_dir = start_dir
        super().__init__(
            f"No {canonical_name}/ folder in {start_dir}. "
            f"Create one (or use --scope global) first."
        )


class NoParentLevelError(Exception):
    """Raised when an operation needs a level to inherit from and there is none."""

    def __init__(self, start_dir: _pathlib.Path, canonical_name: str) -> None:
        self.start_dir = start_dir
        super().__init__(
            f"No parent {canonical_name}/ folder above {start_dir}. "
            f"compose requires a monorepo setup."
        )


@_dataclasses.dataclass(frozen=True)
class _Resolution:
    """Chains of one tree walk."""

    scope: LinkScope
    full: chain.InheritanceChain
    scoped: chain.InheritanceChain


@_dataclasses.dataclass
class ComposeResult:
    """Outcome of writing a compose declaration."""

    path: _pathlib.Path
    declaration: config.PerResourceDeclaration
    selected: dict[config.ResourceType, list[str]]
    skipped: dict[config.ResourceType, list[str]]
    document: config.ExtendBehavior

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": str(self.path),
            "declaration": self.declaration.to_yaml_data(),
            "selected": {r.value: names for r, names in self.selected.items()},
            "skipped": {r.value: names for r, names in self.skipped.items() if names},
            constants.DOCUMENT_FILE: self.document.value,
        }


class Linker:
    """
    Resolve and link the configuration for one start directory.

    Example:
        linker = Linker(pathlib.Path("repo/packages/api"), settings=settings)
        plan = linker.plan()
        result = linker.apply(plan)
    """

    def __init__(
        self,
        start_dir: _pathlib.Path,
        *,
        settings: config.Settings | None = None,
        scope: LinkScope | None = None,
        registry: _typing.Mapping[str, linking.ConsumerSpec] | None = None,
    ) -> None:
        """
        Args:
            start_dir: Directory to resolve. Never inferred from the cwd.
            settings: Tool settings (defaults to Settings()).
            scope: Link scope; None picks monorepo or project automatically.
            registry: Client registry (defaults to the built-in one).
        """
        self.settings = settings if settings is not None else config.Settings()
        self.start_dir = start_dir.expanduser().resolve()
        self.registry = registry if registry is not None else linking.DEFAULT_CONSUMERS
        self._requested_scope = scope

    # -------------------------------------------------------------------------
    # Chain and scope
    # -------------------------------------------------------------------------

    def full_chain(self) -> chain.InheritanceChain:
        """The unrestricted chain for the start directory."""
        return chain.resolve_chain(
            self.start_dir,
            global_root=self.settings.effective_global_root,
            canonical_name=self.settings.canonical_name,
        )

    def _resolve(self) -> _Resolution:
        """Walk the tree once: effective scope, full chain and scoped chain."""
        full = self.full_chain()
        scope = self._requested_scope
        if scope is None:
            scope = "monorepo" if any(not lvl.is_global for lvl in full.ancestors) else "project"

        if scope == "global":
            global_root = self.settings.effective_global_root
            scoped = chain.resolve_chain(
                global_root.parent,
                global_root=global_root,
                canonical_name=self.settings.canonical_name,
            )
        elif scope == "project":
            scoped = full.standalone()
        else:
            scoped = full
        return _Resolution(scope=scope, full=full, scoped=scoped)

    @property
    def scope(self) -> LinkScope:
        """Effective scope."""
        if self._requested_scope is not None:
            return self._requested_scope
        return self._resolve().scope

    def chain(self) -> chain.InheritanceChain:
        """The chain as the current scope sees it."""
        return self._resolve().scoped

    def _current(self, resolution: _Resolution) -> chain.ChainLevel:
        current = resolution.scoped.current
        if current is None:
            start = (
                self.settings.effective_global_root.parent
                if resolution.scope == "global"
                else self.start_dir
            )
            raise NoCurrentLevelError(start, self.settings.canonical_name)
        return current

    def current_level(self) -> chain.ChainLevel:
        """
        The level being linked.

        Raises:
            NoCurrentLevelError: If the scope's start directory has no canonical folder.
        """
        return self._current(self._resolve())

    def _base_dir(self, resolution: _Resolution) -> _pathlib.Path:
        """Directory client target templates are relative to."""
        return self.settings.home if resolution.scope == "global" else self.start_dir

    @staticmethod
    def _target_scope(resolution: _Resolution) -> linking.Scope:
        """Which client target table applies."""
        return "global" if resolution.scope == "global" else "project"

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def _config(self, resolution: _Resolution) -> config.ResolvedConfig:
        current = self._current(resolution)
        declaration = config.load_declaration(current.root)
        return config.resolve_config(declaration, has_parent=resolution.scoped.has_parent)

    def config(self) -> config.ResolvedConfig:
        """
        Resolved inheritance settings of the current level.

        Raises:
            MalformedConfigError: If the current level's config.yaml is invalid.
        """
        return self._config(self._resolve())

    def discover(self) -> resources.DiscoveryResult:
        """Items at every level of the chain."""
        return resources.discover(self.chain())

    def _resource_set(self, resolution: _Resolution) -> resources.ResolvedResourceSet:
        resolved = self._config(resolution)
        return resources.merge(resources.discover(resolution.scoped), resolved)

    def resolve(self) -> resources.ResolvedResourceSet:
        """The merged resource set for the current level."""
        return self._resource_set(self._resolve())

    # -------------------------------------------------------------------------
    # Planning and application
    # -------------------------------------------------------------------------

    def consumers(self, names: _typing.Iterable[str] | None = None) -> list[linking.ConsumerSpec]:
        """
        Active clients.

        Raises:
            UnknownClientError: If a name is not registered.
        """
        wanted = list(names or []) or self.settings.clients
        return linking.select_consumers(wanted, self.registry)

    def plan(self, consumers: _typing.Iterable[str] | None = None) -> linking.LinkPlan:
        """Plan links for the selected clients (all by default)."""
        resolution = self._resolve()
        current = self._current(resolution)
        resource_set = self._resource_set(resolution)
        managed_roots = [level.root for level in resolution.full.levels]
        if current.root not in managed_roots:
            managed_roots.append(current.root)
        return linking.build_plan(
            resource_set,
            self.consumers(consumers),
            base_dir=self._base_dir(resolution),
            scope=self._target_scope(resolution),
            generated_dir=current.root / constants.GENERATED_DIR_NAME,
            managed_roots=managed_roots,
        )

    def migration(self, consumers: _typing.Iterable[str] | None = None) -> linking.MigrationPlan:
        """
        Client content to copy into the canonical folder before linking.

        Only the project and global scopes migrate; in a monorepo the
        packages inherit their content from the levels above instead.
        """
        resolution = self._resolve()
        if resolution.scope == "monorepo":
            return linking.MigrationPlan()
        current = self._current(resolution)
        return linking.scan_migration(
            self.consumers(consumers),
            base_dir=self._base_dir(resolution),
            scope=self._target_scope(resolution),
            canonical_root=current.root,
        )

    def transactions(self) -> backup.TransactionManager:
        """Backup sessions of the current scope."""
        return backup.TransactionManager(
            self.current_level().root,
            backup_dir_name=self.settings.backup_dir_name,
            home=self.settings.home,
        )

    def apply(
        self,
        plan: linking.LinkPlan | None = None,
        *,
        force: bool = False,
        consumers: _typing.Iterable[str] | None = None,
        migration: linking.MigrationPlan | None = None,
    ) -> backup.ApplyResult:
        """
        Apply a plan inside a backup session.

        Args:
            plan: Plan to apply; planned now when None.
            force: Replace conflicting files and directories after backing them up.
            consumers: Clients to plan for when plan is None or a migration runs.
            migration: Moves to run first, from migration(). The plan is then
                rebuilt, and the client paths whose content moved are
                replaced by links even without force.
        """
        manager = self.transactions()
        with manager.transaction("apply") as session:
            result = backup.ApplyResult(session_id=session.id)
            replace: frozenset[_pathlib.Path] = frozenset()
            if migration is not None and migration.moves:
                manager.migrate(migration, session, result)
                replace = migration.migrated_sources
                plan = self.plan(consumers)
            elif plan is None:
                plan = self.plan(consumers)
            manager.apply(plan, session, force=force, replace=replace, result=result)
        if session.status == "discarded":
            result.session_id = None
        _logger.info(
            "Applied %d change(s), %d failure(s)", result.applied, len(result.failures)
        )
        return result

    def undo(self) -> backup.UndoResult:
        """
        Revert the last finalized session of this scope.

        Raises:
            NoSessionError: If there is nothing to undo.
        """
        return self.transactions().undo()

    def status(
        self,
        consumers: _typing.Iterable[str] | None = None,
    ) -> list[linking.ResourceStatus]:
        """Link status per resource type."""
        return linking.link_status(self.plan(consumers))

    # -------------------------------------------------------------------------
    # Compose
    # -------------------------------------------------------------------------

    def compose(
        self,
        include: _typing.Mapping[config.ResourceType, _typing.Sequence[str] | None],
        *,
        document: config.ExtendBehavior | None = None,
    ) -> ComposeResult:
        """
        Write a compose declaration for the current level of the full chain.

        A collection without a given include list keeps the names its
        existing declaration includes; AGENTS.md keeps its declared
        behavior when document is None. Names no parent level provides
        are skipped. Collections left with names compose; the others
        override (commands, skills) or inherit (hooks). Exclude patterns
        of the existing declaration are kept.

        Raises:
            NoParentLevelError: If there is no level above to compose from.
            NoCurrentLevelError: If the start directory has no canonical folder.
            MalformedConfigError: If the existing config.yaml is invalid.
        """
        full = self.full_chain()
        if not full.has_parent:
            raise NoParentLevelError(self.start_dir, self.settings.canonical_name)
        current = full.current
        if current is None:
            raise NoCurrentLevelError(self.start_dir, self.settings.canonical_name)

        existing = config.load_declaration(current.root)
        existing_include = (
            existing.include if isinstance(existing, config.PerResourceDeclaration) else None
        )
        exclude = existing.exclude if isinstance(existing, config.PerResourceDeclaration) else []
        if document is None:
            document = config.declared_behaviors(existing)[_R.DOCUMENT]

        discovered = resources.discover(full)
        behaviors: dict[config.ResourceType, config.ExtendBehavior] = {_R.DOCUMENT: document}
        selected: dict[config.ResourceType, list[str]] = {}
        skipped: dict[config.ResourceType, list[str]] = {}
        for resource in config.ResourceType.collections():
            names = include.get(resource)
            if names is None:
                names = existing_include.names_for(resource) if existing_include else []
            available = {
                item.name for item in discovered.items_for(resource) if item.rank < current.rank
            }
            selected[resource] = [name for name in dict.fromkeys(names) if name in available]
            skipped[resource] = [name for name in names if name not in available]
            for name in skipped[resource]:
                _logger.debug("%s %r not found in parent, skipping", resource.value, name)

            if selected[resource]:
                behaviors[resource] = _B.COMPOSE
            elif resource is _R.HOOKS:
                behaviors[resource] = _B.INHERIT
            else:
                behaviors[resource] = _B.OVERRIDE

        declaration = config.compose_declaration(behaviors, selected, exclude)
        path = config.save_declaration(current.root, declaration)
        _logger.info("Wrote compose declaration %s", path)
        return ComposeResult(
            path=path,
            declaration=declaration,
            selected=selected,
            skipped=skipped,
            document=document,
        )
