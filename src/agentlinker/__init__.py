"""
agentlinker - one canonical .agents folder for every AI coding client.

Symlinks a canonical configuration tree (AGENTS.md, commands, skills,
hooks) into the directories each client reads, and resolves monorepo
inheritance chains of .agents folders into one effective configuration.
"""

import importlib.metadata as _metadata

# Version is defined in pyproject.toml - read it and parse into tuple (primary representation)
_raw_version = _metadata.version("agentlinker")
__version_info__: tuple[int, int, int] = tuple(int(x) for x in _raw_version.split(".")[:3])  # type: ignore[assignment]
__version__: str = ".".join(str(x) for x in __version_info__)

from agentlinker.config import Settings  # noqa: E402
from agentlinker.engine import Linker  # noqa: E402

__all__ = ["__version__", "__version_info__", "Linker", "Settings"]
