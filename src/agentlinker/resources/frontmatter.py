"""
YAML frontmatter shared by command files and SKILL.md descriptors.

A frontmatter block opens on the very first line with `---` and closes on
a later line holding only `---`. Whatever follows is the body.
"""

from __future__ import annotations

import typing as _typing

import pydantic as _pydantic
import yaml as _yaml

_FENCE = "---"

ModelT = _typing.TypeVar("ModelT", bound=_pydantic.BaseModel)


def has_frontmatter(content: str) -> bool:
    """Whether the text opens a frontmatter block."""
    first_line = content.split("\n", 1)[0]
    return first_line.rstrip() == _FENCE


def split_frontmatter(content: str) -> tuple[dict[str, _typing.Any], str]:
    """
    Split text into its frontmatter mapping and body.

    Returns:
        ({}, content) when there is no frontmatter block.

    Raises:
        ValueError: If the block is unterminated, not YAML, or not a mapping.
    """
    if not has_frontmatter(content):
        return {}, content

    lines = content.split("\n")
    for index in range(1, len(lines)):
        if lines[index].rstrip() == _FENCE:
            break
    else:
        raise ValueError("unterminated frontmatter block (missing closing ---)")

    header = "\n".join(lines[1:index])
    body = "\n".join(lines[index + 1 :])
    try:
        data = _yaml.safe_load(header)
    except _yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in frontmatter: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError("frontmatter must be a mapping")
    return data, body


def validate(model: type[ModelT], data: dict[str, _typing.Any], what: str) -> ModelT:
    """Validate frontmatter data, reporting pydantic errors as ValueError."""
    try:
        return model.model_validate(data)
    except _pydantic.ValidationError as e:
        raise ValueError(f"Invalid {what} frontmatter: {e}") from e
