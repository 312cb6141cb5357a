"""
Hook entry validation.

Hooks are the scripts (or script folders) under a level's hooks/ folder.
Clients wire them up from their own settings files; agentlinker only
needs them to exist so the links resolve. A hook's name is its entry name
including any extension.
"""

from __future__ import annotations

import dataclasses as _dataclasses
import logging as _logging
import os as _os
import pathlib as _pathlib

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass
class Hook:
    """A validated hook entry."""

    name: str
    path: _pathlib.Path
    is_directory: bool = False


def load_hook(path: _pathlib.Path) -> Hook:
    """
    Validate a hook entry.

    Raises:
        FileNotFoundError: If the entry is missing or a dangling symlink.
        ValueError: If the entry is neither a file nor a directory.
    """
    if not path.exists():
        raise FileNotFoundError(f"hook target does not exist: {path}")

    if path.is_dir():
        return Hook(name=path.name, path=path, is_directory=True)

    if not path.is_file():
        raise ValueError("hooks must be files or directories")

    if not _os.access(path, _os.X_OK):
        _logger.debug("Hook %s is not executable", path)

    return Hook(name=path.name, path=path)
