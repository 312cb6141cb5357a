"""
Client (consumer) registry.

Each client reads its configuration from fixed locations. Targets are
templates relative to a base directory: the user's home for the global
scope, the project directory for project and monorepo scopes. Collection
targets are directories that receive one link per item; the document
target is the file that receives the AGENTS.md link.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import pathlib as _pathlib
import typing as _typing

import agentlinker.config.types as config_types

Scope = _typing.Literal["global", "project"]

_R = config_types.ResourceType


@_dataclasses.dataclass(frozen=True)
class ConsumerSpec:
    """Where one client expects each resource."""

    name: str
    """Registry key (e.g. 'claude')."""

    label: str
    """Display name."""

    global_targets: _typing.Mapping[config_types.ResourceType, str]
    """Target templates relative to the home directory."""

    project_targets: _typing.Mapping[config_types.ResourceType, str]
    """Target templates relative to the project directory."""

    document_variant: str | None = None
    """Client-specific document file name that replaces AGENTS.md for this client."""

    def targets(self, scope: Scope) -> _typing.Mapping[config_types.ResourceType, str]:
        """Target templates for a scope."""
        return self.global_targets if scope == "global" else self.project_targets

    def target_for(
        self,
        resource: config_types.ResourceType,
        scope: Scope,
        base_dir: _pathlib.Path,
    ) -> _pathlib.Path | None:
        """Absolute target for a resource, or None if the client does not take it."""
        template = self.targets(scope).get(resource)
        if template is None:
            return None
        return base_dir / template


DEFAULT_CONSUMERS: dict[str, ConsumerSpec] = {
    "claude": ConsumerSpec(
        name="claude",
        label="Claude",
        global_targets={
            _R.DOCUMENT: ".claude/CLAUDE.md",
            _R.COMMANDS: ".claude/commands",
            _R.SKILLS: ".claude/skills",
            _R.HOOKS: ".claude/hooks",
        },
        project_targets={
            _R.DOCUMENT: "CLAUDE.md",
            _R.COMMANDS: ".claude/commands",
            _R.SKILLS: ".claude/skills",
            _R.HOOKS: ".claude/hooks",
        },
        document_variant="CLAUDE.md",
    ),
    "factory": ConsumerSpec(
        name="factory",
        label="Factory",
        global_targets={
            _R.DOCUMENT: ".factory/AGENTS.md",
            _R.COMMANDS: ".factory/commands",
            _R.SKILLS: ".factory/skills",
            _R.HOOKS: ".factory/hooks",
        },
        project_targets={
            _R.DOCUMENT: "AGENTS.md",
            _R.COMMANDS: ".factory/commands",
            _R.SKILLS: ".factory/skills",
            _R.HOOKS: ".factory/hooks",
        },
    ),
    "codex": ConsumerSpec(
        name="codex",
        label="Codex",
        global_targets={
            _R.DOCUMENT: ".codex/AGENTS.md",
            _R.COMMANDS: ".codex/prompts",
            _R.SKILLS: ".codex/skills",
        },
        project_targets={
            _R.DOCUMENT: "AGENTS.md",
            _R.COMMANDS: ".codex/prompts",
            _R.SKILLS: ".codex/skills",
        },
    ),
    "cursor": ConsumerSpec(
        name="cursor",
        label="Cursor",
        global_targets={
            _R.COMMANDS: ".cursor/commands",
            _R.SKILLS: ".cursor/skills",
        },
        project_targets={
            _R.DOCUMENT: "AGENTS.md",
            _R.COMMANDS: ".cursor/commands",
            _R.SKILLS: ".cursor/skills",
        },
    ),
    "opencode": ConsumerSpec(
        name="opencode",
        label="OpenCode",
        global_targets={
            _R.DOCUMENT: ".config/opencode/AGENTS.md",
            _R.COMMANDS: ".config/opencode/commands",
            _R.SKILLS: ".config/opencode/skills",
        },
        project_targets={
            _R.DOCUMENT: "AGENTS.md",
            _R.COMMANDS: ".opencode/commands",
            _R.SKILLS: ".opencode/skills",
        },
    ),
}
"""Built-in client registry, in display order."""


class UnknownClientError(ValueError):
    """Raised when a requested client is not in the registry."""

    pass


def select_consumers(
    names: _typing.Iterable[str] | None,
    registry: _typing.Mapping[str, ConsumerSpec] | None = None,
) -> list[ConsumerSpec]:
    """
    Pick active consumers from a registry.

    Args:
        names: Client names to activate; None or empty selects all.
        registry: Registry to pick from (defaults to DEFAULT_CONSUMERS).

    Raises:
        UnknownClientError: If a name is not registered.
    """
    registry = registry if registry is not None else DEFAULT_CONSUMERS
    wanted = list(names or [])
    if not wanted:
        return list(registry.values())

    unknown = [name for name in wanted if name not in registry]
    if unknown:
        raise UnknownClientError(
            f"Unknown client(s): {', '.join(unknown)}. "
            f"Available: {', '.join(registry)}"
        )
    return [registry[name] for name in dict.fromkeys(wanted)]
