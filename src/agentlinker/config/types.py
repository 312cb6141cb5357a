"""Configuration type definitions for agentlinker.

This module defines the vocabulary shared by every stage of resolution:

- ResourceType: the four manageable resource categories
- ExtendBehavior: the per-resource merge policy
- Declaration: the tagged variant parsed from a level's config.yaml
  (BoolDeclaration | PerResourceDeclaration)
- ResolvedConfig: the normalized behavior table for one level

Declarations are validated with pydantic; ResolvedConfig is a plain frozen
dataclass because it is computed, never parsed.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import enum as _enum
import typing as _typing

import pydantic as _pydantic

# =============================================================================
# Resource and behavior enumerations
# =============================================================================


class ResourceType(str, _enum.Enum):
    """A category of manageable content in a canonical folder."""

    DOCUMENT = "AGENTS.md"
    COMMANDS = "commands"
    SKILLS = "skills"
    HOOKS = "hooks"

    @property
    def is_collection(self) -> bool:
        """Whether this resource holds named items (everything but the document)."""
        return self is not ResourceType.DOCUMENT

    @classmethod
    def collections(cls) -> tuple[ResourceType, ...]:
        """The collection resource types, in display order."""
        return (cls.COMMANDS, cls.SKILLS, cls.HOOKS)


class ExtendBehavior(str, _enum.Enum):
    """How a level combines its own resource with its ancestors'."""

    INHERIT = "inherit"
    """Use the parent's resource verbatim, ignore the child's."""

    EXTEND = "extend"
    """Parent plus child; child wins on name collisions."""

    OVERRIDE = "override"
    """Child only; parent ignored."""

    COMPOSE = "compose"
    """Child only, plus explicitly included parent items."""


# =============================================================================
# Declaration (config.yaml) models
# =============================================================================


class ExtendsMap(_pydantic.BaseModel):
    """
    Per-resource `extends` block.

    YAML section: extends.*

    ```yaml
    extends:
      default: inherit
      AGENTS.md: extend
      commands: compose
    ```
    """

    model_config = _pydantic.ConfigDict(extra="forbid", populate_by_name=True)

    default: ExtendBehavior | None = None
    document: ExtendBehavior | None = _pydantic.Field(default=None, alias="AGENTS.md")
    commands: ExtendBehavior | None = None
    skills: ExtendBehavior | None = None
    hooks: ExtendBehavior | None = None

    def behavior_for(self, resource: ResourceType) -> ExtendBehavior | None:
        """Explicit behavior for a resource, or None when not listed."""
        if resource is ResourceType.DOCUMENT:
            return self.document
        return _typing.cast(ExtendBehavior | None, getattr(self, resource.value))


class IncludeMap(_pydantic.BaseModel):
    """
    Per-collection include lists used by `compose`.

    YAML section: include.*
    """

    model_config = _pydantic.ConfigDict(extra="forbid")

    commands: list[str] = _pydantic.Field(default_factory=list)
    skills: list[str] = _pydantic.Field(default_factory=list)
    hooks: list[str] = _pydantic.Field(default_factory=list)

    def names_for(self, resource: ResourceType) -> list[str]:
        """Include names for a collection resource (empty for the document)."""
        if not resource.is_collection:
            return []
        return list(getattr(self, resource.value))


class BoolDeclaration(_pydantic.BaseModel):
    """A declaration that is just `true` (inherit all) or `false` (standalone)."""

    model_config = _pydantic.ConfigDict(frozen=True)

    kind: _typing.Literal["bool"] = "bool"
    value: bool


class PerResourceDeclaration(_pydantic.BaseModel):
    """
    A mapping declaration.

    `extends` may itself be a boolean (shorthand for every resource) or an
    ExtendsMap. `include` and `exclude` are optional.
    """

    model_config = _pydantic.ConfigDict(extra="forbid")

    kind: _typing.Literal["per_resource"] = "per_resource"
    extends: bool | ExtendsMap = True
    include: IncludeMap = _pydantic.Field(default_factory=IncludeMap)
    exclude: list[str] = _pydantic.Field(default_factory=list)

    def to_yaml_data(self) -> dict[str, _typing.Any]:
        """Plain data suitable for yaml.safe_dump (no `kind` tag, no empty blocks)."""
        data: dict[str, _typing.Any] = {}
        if isinstance(self.extends, ExtendsMap):
            data["extends"] = {
                key: value.value
                for key, value in self.extends.model_dump(by_alias=True).items()
                if value is not None
            }
        else:
            data["extends"] = self.extends
        include = {key: names for key, names in self.include.model_dump().items() if names}
        if include:
            data["include"] = include
        if self.exclude:
            data["exclude"] = list(self.exclude)
        return data


Declaration = _typing.Annotated[
    BoolDeclaration | PerResourceDeclaration,
    _pydantic.Field(discriminator="kind"),
]
"""Tagged variant for a parsed config.yaml."""


# =============================================================================
# Resolved configuration
# =============================================================================


@_dataclasses.dataclass(frozen=True)
class ResolvedConfig:
    """
    Effective inheritance settings for one level.

    Recomputed on every run from the level's declaration; never persisted.
    """

    behaviors: _typing.Mapping[ResourceType, ExtendBehavior]
    """Behavior per resource type (always contains every ResourceType)."""

    include: _typing.Mapping[ResourceType, frozenset[str]] = _dataclasses.field(
        default_factory=dict
    )
    """Ancestor item names pulled in under compose, per collection type."""

    exclude: tuple[str, ...] = ()
    """Glob patterns removing items after merge."""

    has_parent: bool = False
    """Whether the level had anything to inherit from."""

    def behavior(self, resource: ResourceType) -> ExtendBehavior:
        """Behavior for a resource type."""
        return self.behaviors[resource]

    def include_for(self, resource: ResourceType) -> frozenset[str]:
        """Include names for a resource type (empty when not composing)."""
        return self.include.get(resource, frozenset())

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "behaviors": {r.value: b.value for r, b in self.behaviors.items()},
            "include": {r.value: sorted(names) for r, names in self.include.items()},
            "exclude": list(self.exclude),
            "has_parent": self.has_parent,
        }
