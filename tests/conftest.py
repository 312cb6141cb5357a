"""
Shared pytest fixtures for agentlinker tests.

This file is automatically loaded by pytest. Fixtures defined here are
available to all test files without explicit imports.
"""

import os as _os
import pathlib as _pathlib
import typing as _typing
import unittest.mock as _mock

import pytest as _pytest

import agentlinker.config as config

LevelBuilder = _typing.Callable[..., _pathlib.Path]


@_pytest.fixture
def clean_env() -> dict[str, str]:
    """
    Return environment dict with agentlinker settings removed.

    Use with mock.patch.dict to isolate tests from the actual environment.
    """
    return {k: v for k, v in _os.environ.items() if not k.startswith("AGENTLINKER_")}


@_pytest.fixture
def isolated_env(clean_env: dict[str, str]):
    """
    Context manager that isolates tests from environment variables.

    Usage:
        def test_something(isolated_env):
            with isolated_env:
                settings = config.Settings.construct_without_dotenv()
    """
    return _mock.patch.dict(_os.environ, clean_env, clear=True)


@_pytest.fixture
def home(tmp_path: _pathlib.Path) -> _pathlib.Path:
    """A fake home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@_pytest.fixture
def settings(isolated_env, home: _pathlib.Path) -> config.Settings:
    """
    Settings pointing at the fake home, isolated from environment and .env file.
    """
    with isolated_env:
        return config.Settings.construct_without_dotenv(home=home)


def _write_skill(skills_dir: _pathlib.Path, name: str) -> None:
    skill_dir = skills_dir / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(
        f"---\nname: {name}\ndescription: Test skill {name}\n---\n\n# {name}\n"
    )


@_pytest.fixture
def make_level() -> LevelBuilder:
    """
    Builder for canonical folders.

    Usage:
        root = make_level(
            tmp_path / "repo",
            agents_md="# Repo",
            commands=["build"],
            skills=["lint"],
            hooks=["pre.sh"],
            declaration="extends: false",
        )
    """

    def build(
        directory: _pathlib.Path,
        *,
        agents_md: str | None = None,
        commands: _typing.Iterable[str] = (),
        skills: _typing.Iterable[str] = (),
        hooks: _typing.Iterable[str] = (),
        declaration: str | None = None,
    ) -> _pathlib.Path:
        root = directory / ".agents"
        root.mkdir(parents=True, exist_ok=True)
        if agents_md is not None:
            (root / "AGENTS.md").write_text(agents_md)
        for name in commands:
            command_dir = root / "commands"
            command_dir.mkdir(exist_ok=True)
            (command_dir / f"{name}.md").write_text(f"Run {name} from {directory.name}\n")
        for name in skills:
            _write_skill(root / "skills", name)
        for name in hooks:
            hook_dir = root / "hooks"
            hook_dir.mkdir(exist_ok=True)
            hook = hook_dir / name
            hook.write_text("#!/bin/sh\nexit 0\n")
            hook.chmod(0o755)
        if declaration is not None:
            (root / "config.yaml").write_text(declaration)
        return root

    return build


@_pytest.fixture
def monorepo(tmp_path: _pathlib.Path, home: _pathlib.Path, make_level: LevelBuilder) -> _pathlib.Path:
    """
    A two-level monorepo under the fake home, plus a global root.

    Layout:
        home/.agents                 AGENTS.md "Global", commands: hello
        home/repo/.agents            AGENTS.md "Repo", commands: build, test; skills: lint
        home/repo/packages/api/.agents  AGENTS.md "API", commands: deploy

    Returns the package directory (home/repo/packages/api).
    """
    make_level(home, agents_md="Global\n", commands=["hello"])
    repo = home / "repo"
    make_level(repo, agents_md="Repo\n", commands=["build", "test"], skills=["lint"])
    package = repo / "packages" / "api"
    make_level(package, agents_md="API\n", commands=["deploy"])
    return package


def snapshot(directory: _pathlib.Path, *, skip: _typing.Iterable[str] = ()) -> dict[str, _typing.Any]:
    """
    Byte-level picture of a tree: files -> bytes, links -> link text, dirs -> None.

    Paths whose relative form starts with any of `skip` are left out.
    """
    skipped = tuple(skip)
    state: dict[str, _typing.Any] = {}
    for dirpath, dirnames, filenames in _os.walk(directory):
        base = _pathlib.Path(dirpath)
        for name in [*dirnames, *filenames]:
            path = base / name
            rel = str(path.relative_to(directory))
            if skipped and rel.startswith(skipped):
                continue
            if path.is_symlink():
                state[rel] = ("link", _os.readlink(path))
            elif path.is_dir():
                state[rel] = ("dir", None)
            else:
                state[rel] = ("file", path.read_bytes())
    return state


@_pytest.fixture
def tree_snapshot() -> _typing.Callable[..., dict[str, _typing.Any]]:
    """The snapshot() helper as a fixture."""
    return snapshot
