"""
Configuration module for agentlinker.

Two kinds of configuration live here:
- Settings: tool settings loaded with pydantic-settings (AGENTLINKER_*)
- Declarations: per-level inheritance settings in .agents/config.yaml,
  normalized into a ResolvedConfig
"""

from agentlinker.config.declaration import (
    MalformedConfigError,
    compose_declaration,
    declaration_path,
    load_declaration,
    parse_declaration,
    save_declaration,
)
from agentlinker.config.resolver import declared_behaviors, resolve_config
from agentlinker.config.settings import Settings
from agentlinker.config.types import (
    BoolDeclaration,
    Declaration,
    ExtendBehavior,
    ExtendsMap,
    IncludeMap,
    PerResourceDeclaration,
    ResolvedConfig,
    ResourceType,
)

__all__ = [
    # Settings
    "Settings",
    # Types
    "BoolDeclaration",
    "Declaration",
    "ExtendBehavior",
    "ExtendsMap",
    "IncludeMap",
    "PerResourceDeclaration",
    "ResolvedConfig",
    "ResourceType",
    # Declarations
    "MalformedConfigError",
    "compose_declaration",
    "declaration_path",
    "load_declaration",
    "parse_declaration",
    "save_declaration",
    # Resolution
    "declared_behaviors",
    "resolve_config",
]
