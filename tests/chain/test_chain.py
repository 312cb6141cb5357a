"""
Tests for inheritance chain resolution.

Tests verify that:
- Levels are ordered root-first with the global root at rank 0
- Directories without a canonical folder are skipped
- The walk stops at the directory hosting the global root
- The current level is flagged only when the start directory hosts one
"""

import pathlib as _pathlib

import agentlinker.chain as chain


def _mkroot(directory: _pathlib.Path) -> _pathlib.Path:
    root = directory / ".agents"
    root.mkdir(parents=True)
    return root


class TestResolveChain:
    """Tests for resolve_chain."""

    def test_orders_levels_root_first(self, tmp_path: _pathlib.Path) -> None:
        """Global first, then ancestors, current last."""
        home = tmp_path / "home"
        _mkroot(home)
        repo = home / "repo"
        _mkroot(repo)
        package = repo / "packages" / "api"
        _mkroot(package)

        result = chain.resolve_chain(package, global_root=home / ".agents")

        assert [level.path for level in result.levels] == [
            home.resolve(),
            repo.resolve(),
            package.resolve(),
        ]
        assert [level.rank for level in result.levels] == [0, 1, 2]
        assert result.levels[0].is_global
        assert result.current == result.levels[-1]
        assert result.parent == result.levels[1]

    def test_skips_directories_without_canonical_folder(self, tmp_path: _pathlib.Path) -> None:
        """Intermediate directories are not inserted as empty levels."""
        repo = tmp_path / "repo"
        _mkroot(repo)
        package = repo / "packages" / "api"
        _mkroot(package)

        result = chain.resolve_chain(package)

        paths = [level.path for level in result.levels]
        assert (repo / "packages").resolve() not in paths
        assert paths[-2:] == [repo.resolve(), package.resolve()]

    def test_current_is_none_without_canonical_folder(self, tmp_path: _pathlib.Path) -> None:
        """A start directory without .agents has no current level."""
        repo = tmp_path / "repo"
        _mkroot(repo)
        package = repo / "api"
        package.mkdir()

        result = chain.resolve_chain(package)

        assert result.current is None
        assert repo.resolve() in [level.path for level in result.ancestors]

    def test_global_root_outside_walk_is_rank_zero(self, tmp_path: _pathlib.Path) -> None:
        """The global root heads the chain even when the walk never passes it."""
        home = tmp_path / "home"
        global_root = _mkroot(home)
        project = tmp_path / "work" / "project"
        _mkroot(project)

        result = chain.resolve_chain(project, global_root=global_root)

        assert result.levels[0].root == global_root.resolve()
        assert result.levels[0].is_global
        assert result.current is not None
        assert result.current.path == project.resolve()

    def test_walk_stops_at_global_host(self, tmp_path: _pathlib.Path) -> None:
        """Canonical folders above the global root's host are not part of the chain."""
        _mkroot(tmp_path)
        home = tmp_path / "home"
        global_root = _mkroot(home)
        project = home / "project"
        _mkroot(project)

        result = chain.resolve_chain(project, global_root=global_root)

        assert tmp_path.resolve() not in [level.path for level in result.levels]
        assert len(result.levels) == 2

    def test_global_root_not_duplicated(self, tmp_path: _pathlib.Path) -> None:
        """Starting at the global host yields one level that is both global and current."""
        home = tmp_path / "home"
        global_root = _mkroot(home)

        result = chain.resolve_chain(home, global_root=global_root)

        assert len(result.levels) == 1
        assert result.levels[0].is_global
        assert result.levels[0].is_current
        assert not result.has_parent

    def test_missing_global_root_is_ignored(self, tmp_path: _pathlib.Path) -> None:
        """A configured but absent global root adds no level."""
        project = tmp_path / "project"
        _mkroot(project)

        result = chain.resolve_chain(project, global_root=tmp_path / "home" / ".agents")

        assert result.global_level is None
        assert result.current is not None

    def test_custom_canonical_name(self, tmp_path: _pathlib.Path) -> None:
        """The canonical folder name is configurable."""
        project = tmp_path / "project"
        (project / ".ai").mkdir(parents=True)

        result = chain.resolve_chain(project, canonical_name=".ai")

        assert result.current is not None
        assert result.current.root == (project / ".ai").resolve()


class TestInheritanceChain:
    """Tests for InheritanceChain helpers."""

    def test_standalone_keeps_only_current(self, tmp_path: _pathlib.Path) -> None:
        """standalone() drops every ancestor and re-ranks the current level."""
        repo = tmp_path / "repo"
        _mkroot(repo)
        package = repo / "api"
        _mkroot(package)

        result = chain.resolve_chain(package).standalone()

        assert len(result.levels) == 1
        assert result.current is not None
        assert result.current.rank == 0
        assert not result.has_parent

    def test_to_dict(self, tmp_path: _pathlib.Path) -> None:
        """to_dict lists levels and the current path."""
        project = tmp_path / "project"
        _mkroot(project)

        data = chain.resolve_chain(project).to_dict()

        assert data["current"] == str(project.resolve())
        assert data["levels"][-1]["is_current"] is True
