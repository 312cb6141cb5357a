"""
Command file validation.

Commands are markdown files in a level's commands/ folder; the file stem
is the name typed after `/`. Frontmatter is optional since most clients
send the whole file as the prompt, but an opened block must be valid.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic

import agentlinker.resources.frontmatter as frontmatter

COMMAND_SUFFIX = ".md"


class CommandFrontmatter(_pydantic.BaseModel):
    """Optional command metadata. Client-specific keys stay as extras."""

    model_config = _pydantic.ConfigDict(extra="allow", populate_by_name=True)

    description: str = _pydantic.Field(default="", max_length=1024)
    argument_hint: str | None = _pydantic.Field(default=None, alias="argument-hint")


@_dataclasses.dataclass
class Command:
    """A command file that passed validation."""

    name: str
    meta: CommandFrontmatter
    body: str
    path: _pathlib.Path

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "description": self.meta.description,
            "path": str(self.path),
        }


def parse_command_markdown(content: str) -> tuple[CommandFrontmatter, str]:
    """
    Split a command file into metadata and prompt body.

    Raises:
        ValueError: If the file opens a frontmatter block that is invalid.
    """
    data, body = frontmatter.split_frontmatter(content)
    meta = frontmatter.validate(CommandFrontmatter, data, "command")
    return meta, body.strip()


def load_command(path: _pathlib.Path) -> Command:
    """
    Validate one entry of a commands/ folder.

    Raises:
        FileNotFoundError: If the entry is missing or not a file.
        ValueError: If it is not UTF-8 markdown with valid frontmatter.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Command file not found: {path}")
    if path.suffix != COMMAND_SUFFIX:
        raise ValueError(f"command files must end in {COMMAND_SUFFIX}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"command file is not UTF-8 text: {e}") from e

    meta, body = parse_command_markdown(content)
    return Command(name=path.stem, meta=meta, body=body, path=path)
