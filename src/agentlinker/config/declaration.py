"""Loading and saving per-level declarations (.agents/config.yaml).

A declaration is one of:

- a YAML boolean: `true` inherits everything, `false` is standalone
- a mapping with optional keys `extends`, `include`, `exclude`

Anything else is a MalformedConfigError. Errors carry the file path and,
where it can be recovered, the 1-indexed line of the offending key.
"""

from __future__ import annotations

import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

import agentlinker.config.types as types
import agentlinker.constants as constants

# Maps key paths to (line, column) tuples; 1-indexed to match editor conventions
LineRegistry = dict[tuple[str, ...], tuple[int, int]]


class MalformedConfigError(Exception):
    """A declaration file could not be parsed as any supported shape."""

    def __init__(
        self,
        path: _pathlib.Path,
        message: str,
        line: int | None = None,
    ) -> None:
        self.path = path
        self.line = line
        self.message = message
        location = f"{path}:{line}" if line is not None else str(path)
        super().__init__(f"Malformed config {location}: {message}")


class _LineTrackingLoader(_yaml.SafeLoader):
    """YAML loader that records the line/column of every mapping key."""

    def __init__(self, stream: _typing.Any) -> None:
        super().__init__(stream)
        self._line_registry: LineRegistry = {}
        self._path_stack: list[str] = []

    def construct_mapping(
        self, node: _yaml.MappingNode, deep: bool = False
    ) -> dict[_typing.Any, _typing.Any]:
        """Override to track line numbers for each key."""
        if not self._path_stack:
            self._line_registry[()] = (node.start_mark.line + 1, node.start_mark.column + 1)

        result: dict[_typing.Any, _typing.Any] = {}
        for key_node, value_node in node.value:
            key = self.construct_object(key_node, deep=True)

            self._path_stack.append(str(key))
            self._line_registry[tuple(self._path_stack)] = (
                key_node.start_mark.line + 1,
                key_node.start_mark.column + 1,
            )

            # deep=True so nested mappings are built while the path stack has our prefix
            value = self.construct_object(value_node, deep=True)
            self._path_stack.pop()

            result[key] = value

        return result


def _load_yaml_with_lines(content: str) -> tuple[_typing.Any, LineRegistry]:
    """
    Load YAML content and track line numbers for all keys.

    Raises:
        yaml.YAMLError: If YAML is malformed.
    """
    loader = _LineTrackingLoader(content)
    try:
        data = loader.get_single_data()
    finally:
        loader.dispose()
    return data, loader._line_registry


def _line_for(loc: tuple[_typing.Any, ...], registry: LineRegistry) -> int | None:
    """Best-effort line for a pydantic error location (skips union tags and indices)."""
    path: tuple[str, ...] = ()
    line: int | None = registry.get((), (None, None))[0]
    for part in loc:
        candidate = (*path, str(part))
        if candidate in registry:
            path = candidate
            line = registry[candidate][0]
    return line


def declaration_path(level_root: _pathlib.Path) -> _pathlib.Path:
    """Path of the declaration file inside a canonical folder."""
    return level_root / constants.DECLARATION_FILE


def parse_declaration(
    content: str,
    path: _pathlib.Path,
) -> types.BoolDeclaration | types.PerResourceDeclaration | None:
    """
    Parse declaration text.

    Args:
        content: Raw YAML text.
        path: File the text came from (for error messages).

    Returns:
        The parsed declaration, or None for an empty document.

    Raises:
        MalformedConfigError: If the text is not one of the supported shapes.
    """
    try:
        data, registry = _load_yaml_with_lines(content)
    except _yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        line = mark.line + 1 if mark is not None else None
        raise MalformedConfigError(path, f"invalid YAML: {e}", line) from e

    if data is None:
        return None

    if isinstance(data, bool):
        return types.BoolDeclaration(value=data)

    if not isinstance(data, dict):
        raise MalformedConfigError(
            path,
            f"expected a boolean or a mapping, got {type(data).__name__}",
            registry.get((), (None, None))[0],
        )

    try:
        return types.PerResourceDeclaration.model_validate(data)
    except _pydantic.ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(part) for part in first["loc"])
        raise MalformedConfigError(
            path,
            f"{loc}: {first['msg']}" if loc else first["msg"],
            _line_for(tuple(first["loc"]), registry),
        ) from e


def load_declaration(
    level_root: _pathlib.Path,
) -> types.BoolDeclaration | types.PerResourceDeclaration | None:
    """
    Load a level's declaration.

    Args:
        level_root: The level's canonical folder (e.g. /repo/pkg/.agents).

    Returns:
        The declaration, or None if the level has no config.yaml.

    Raises:
        MalformedConfigError: If config.yaml exists but cannot be parsed.
    """
    path = declaration_path(level_root)
    if not path.is_file():
        return None

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MalformedConfigError(path, f"cannot read file: {e}") from e

    return parse_declaration(content, path)


def save_declaration(
    level_root: _pathlib.Path,
    declaration: types.BoolDeclaration | types.PerResourceDeclaration,
) -> _pathlib.Path:
    """
    Write a declaration to the level's config.yaml.

    Returns:
        Path of the written file.
    """
    path = declaration_path(level_root)
    if isinstance(declaration, types.BoolDeclaration):
        data: _typing.Any = declaration.value
    else:
        data = declaration.to_yaml_data()

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        _yaml.safe_dump(data, sort_keys=False, default_flow_style=False),
        encoding="utf-8",
    )
    return path


def compose_declaration(
    behaviors: _typing.Mapping[types.ResourceType, types.ExtendBehavior],
    include: _typing.Mapping[types.ResourceType, _typing.Sequence[str]],
    exclude: _typing.Sequence[str] = (),
) -> types.PerResourceDeclaration:
    """
    Build a per-resource declaration from explicit behaviors and include lists.

    Include lists are only kept for resources whose behavior is compose.
    """
    extends = types.ExtendsMap.model_validate(
        {resource.value: behavior for resource, behavior in behaviors.items()}
    )
    include_data = {
        resource.value: list(names)
        for resource, names in include.items()
        if resource.is_collection and names and behaviors.get(resource) is types.ExtendBehavior.COMPOSE
    }
    return types.PerResourceDeclaration(
        extends=extends,
        include=types.IncludeMap.model_validate(include_data),
        exclude=list(exclude),
    )
