"""
Resources held in a canonical .agents folder.

- AGENTS.md: the instructions document (singleton)
- commands/*.md: slash commands
- skills/<name>/SKILL.md: skill bundles
- hooks/*: hook scripts

Discovery finds them at every chain level; merge combines them into the
set the current level links.
"""

from agentlinker.resources.commands import (
    Command,
    CommandFrontmatter,
    load_command,
    parse_command_markdown,
)
from agentlinker.resources.discovery import (
    DiscoveryResult,
    UnreadableDocumentError,
    discover,
    discover_level,
    read_document,
    validate_entry,
)
from agentlinker.resources.frontmatter import split_frontmatter
from agentlinker.resources.hooks import Hook, load_hook
from agentlinker.resources.items import DiscoveredItem, InvalidItem
from agentlinker.resources.merger import (
    ResolvedDocument,
    ResolvedResourceSet,
    matches_exclude,
    merge,
    render_document,
)
from agentlinker.resources.skills import Skill, SkillFrontmatter, load_skill, parse_skill_frontmatter

__all__ = [
    # Items
    "DiscoveredItem",
    "InvalidItem",
    # Validators
    "Command",
    "CommandFrontmatter",
    "Hook",
    "Skill",
    "SkillFrontmatter",
    "load_command",
    "load_hook",
    "load_skill",
    "parse_command_markdown",
    "parse_skill_frontmatter",
    "split_frontmatter",
    # Discovery
    "DiscoveryResult",
    "UnreadableDocumentError",
    "discover",
    "discover_level",
    "read_document",
    "validate_entry",
    # Merge
    "ResolvedDocument",
    "ResolvedResourceSet",
    "matches_exclude",
    "merge",
    "render_document",
]
