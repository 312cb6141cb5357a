"""
Skill bundle validation.

A skill is a folder whose SKILL.md opens with frontmatter naming the
skill and describing it. Only that descriptor is read. Scripts and
references inside the bundle are linked along with the folder.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import pathlib as _pathlib

import pydantic as _pydantic

import agentlinker.constants as constants
import agentlinker.resources.frontmatter as frontmatter

_logger = _logging.getLogger(__name__)

SKILL_NAME_PATTERN = r"^[a-z0-9]+(-[a-z0-9]+)*$"


class SkillFrontmatter(_pydantic.BaseModel):
    """Required SKILL.md fields; anything else is client metadata."""

    model_config = _pydantic.ConfigDict(extra="allow")

    name: str = _pydantic.Field(min_length=1, max_length=64, pattern=SKILL_NAME_PATTERN)
    description: str = _pydantic.Field(min_length=1, max_length=1024)


@_dataclasses.dataclass
class Skill:
    """A skill folder that passed validation."""

    meta: SkillFrontmatter
    path: _pathlib.Path

    @property
    def name(self) -> str:
        return self.meta.name

    @property
    def description(self) -> str:
        return self.meta.description

    @property
    def skill_file(self) -> _pathlib.Path:
        return self.path / constants.SKILL_FILE


def parse_skill_frontmatter(content: str) -> SkillFrontmatter:
    """
    Validate the frontmatter of a SKILL.md.

    Raises:
        ValueError: If the block is missing or lacks a valid name and description.
    """
    if not frontmatter.has_frontmatter(content):
        raise ValueError(f"{constants.SKILL_FILE} must open with a frontmatter block (---)")
    data, _body = frontmatter.split_frontmatter(content)
    return frontmatter.validate(SkillFrontmatter, data, "skill")


def load_skill(skill_dir: _pathlib.Path) -> Skill:
    """
    Validate one entry of a skills/ folder.

    Raises:
        FileNotFoundError: If the folder has no SKILL.md.
        ValueError: If SKILL.md is unreadable or its frontmatter is invalid.
    """
    descriptor = skill_dir / constants.SKILL_FILE
    if not descriptor.is_file():
        raise FileNotFoundError(f"{constants.SKILL_FILE} not found: {descriptor}")

    try:
        content = descriptor.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"{constants.SKILL_FILE} is not UTF-8 text: {e}") from e

    meta = parse_skill_frontmatter(content)
    if meta.name != skill_dir.name:
        # Clients key skills by folder name, which is what gets linked
        _logger.debug("Skill folder %s declares name %r", skill_dir.name, meta.name)
    return Skill(meta=meta, path=skill_dir)
