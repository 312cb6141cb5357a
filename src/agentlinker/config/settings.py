"""
Settings configuration using pydantic-settings.

Loads configuration from:
1. Constructor arguments (highest precedence)
2. Environment variables with AGENTLINKER_ prefix
3. .env file (if AGENTLINKER_ENV_FILE points at one)
4. Field defaults

Examples:
  AGENTLINKER_HOME=/tmp/fakehome
  AGENTLINKER_GLOBAL_ROOT=~/dotfiles/.agents
  AGENTLINKER_CLIENTS='["claude", "codex"]'
"""

import os as _os
import pathlib as _pathlib
import typing as _typing

import pydantic as _pydantic
import pydantic_settings as _pydantic_settings

import agentlinker.constants as constants


def _get_env_file() -> str | None:
    """Determine which .env file to load.

    Only an explicit AGENTLINKER_ENV_FILE is honored; a missing file is not
    silently replaced by another one.
    """
    if env_file := _os.environ.get("AGENTLINKER_ENV_FILE"):
        if _pathlib.Path(env_file).exists():
            return env_file
    return None


class Settings(_pydantic_settings.BaseSettings):
    """
    agentlinker configuration settings.

    All settings can be overridden via environment variables with the
    AGENTLINKER_ prefix.
    """

    model_config = _pydantic_settings.SettingsConfigDict(
        env_prefix="AGENTLINKER_",
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def construct_without_dotenv(cls, **kwargs: _typing.Any) -> "Settings":
        """Create Settings from environment variables only, without loading .env file.

        Useful for test isolation and for reproducing issues without
        .env interference.
        """
        return cls(_env_file=None, **kwargs)  # type: ignore[call-arg]

    home: _pathlib.Path = _pydantic.Field(default_factory=_pathlib.Path.home)
    """Base directory for global-scope targets (~/.claude, ~/.codex, ...)."""

    global_root: _pathlib.Path | None = None
    """Global canonical folder. None = <home>/.agents."""

    canonical_name: str = constants.CANONICAL_DIR_NAME
    """Name of the canonical folder at each level."""

    backup_dir_name: str = constants.BACKUP_DIR_NAME
    """Backup folder name inside the scope's canonical folder."""

    log_level: _typing.Literal["debug", "info", "warning", "error"] = "warning"
    """Log level for the CLI."""

    clients: list[str] | None = None
    """Default active clients. None = every registered client."""

    @_pydantic.field_validator("home", "global_root", mode="after")
    @classmethod
    def _expand_user(cls, value: _pathlib.Path | None) -> _pathlib.Path | None:
        """Expand ~ so env values like ~/dotfiles work."""
        return value.expanduser() if value is not None else None

    @property
    def effective_global_root(self) -> _pathlib.Path:
        """The global canonical folder, defaulting to <home>/<canonical_name>."""
        if self.global_root is not None:
            return self.global_root
        return self.home / self.canonical_name

    def to_dict(self) -> dict[str, _typing.Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "home": str(self.home),
            "global_root": str(self.effective_global_root),
            "canonical_name": self.canonical_name,
            "backup_dir_name": self.backup_dir_name,
            "log_level": self.log_level,
            "clients": self.clients,
        }
