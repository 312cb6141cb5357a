"""
Shared constants for agentlinker.

This module provides a single source of truth for file and folder names
that are used across multiple modules.
"""

# Canonical tree layout
CANONICAL_DIR_NAME = ".agents"
"""Name of the canonical configuration folder at each chain level."""

DECLARATION_FILE = "config.yaml"
"""Per-level inheritance declaration, inside the canonical folder."""

DOCUMENT_FILE = "AGENTS.md"
"""Generic instructions document shared by every client."""

COMMANDS_DIR = "commands"
SKILLS_DIR = "skills"
HOOKS_DIR = "hooks"

SKILL_FILE = "SKILL.md"
"""Descriptor file every skill directory must contain."""

GENERATED_DIR_NAME = ".generated"
"""Folder (inside the current level's canonical folder) for concatenated documents."""

# Backups
BACKUP_DIR_NAME = "backup"
"""Folder (inside the scope's canonical folder) holding backup sessions."""

SESSION_MANIFEST = "session.json"
"""Per-session manifest file name."""

DOCUMENT_SEPARATOR = "\n\n"
"""Separator placed between an ancestor document and a child document."""
