"""
Tests for merging discovered items.

Tests verify that:
- inherit takes the nearest ancestor's items, override the current level's
- extend unions every level with the closer level winning
- compose adds only included names, each from its nearest ancestor
- exclude runs last, whatever produced the item
- AGENTS.md under extend is "A\\n\\nB"
"""

import pathlib as _pathlib

import agentlinker.chain as chain
import agentlinker.config as config
import agentlinker.resources as resources

R = config.ResourceType


def _resolve(start: _pathlib.Path, home: _pathlib.Path, declaration: str | None) -> resources.ResolvedResourceSet:
    inheritance_chain = chain.resolve_chain(start, global_root=home / ".agents")
    parsed = (
        config.parse_declaration(declaration, start / ".agents" / "config.yaml")
        if declaration is not None
        else None
    )
    resolved = config.resolve_config(parsed, has_parent=inheritance_chain.has_parent)
    return resources.merge(resources.discover(inheritance_chain), resolved)


def _sources(resource_set: resources.ResolvedResourceSet, resource: config.ResourceType) -> dict[str, str]:
    """name -> name of the directory hosting the winning level."""
    return {item.name: item.level_root.parent.name for item in resource_set.items_for(resource)}


class TestCollectionMerge:
    """Tests for collection behaviors."""

    def test_inherit_uses_nearest_ancestor_only(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Inherit takes the parent's items and ignores the child's and the global ones."""
        resource_set = _resolve(monorepo, home, None)
        assert _sources(resource_set, R.COMMANDS) == {"build": "repo", "test": "repo"}

    def test_inherit_skips_ancestors_without_items(
        self, monorepo: _pathlib.Path, home: _pathlib.Path, make_level
    ) -> None:
        """The nearest ancestor that has any items supplies them."""
        resource_set = _resolve(monorepo, home, None)
        # Only the repo level has skills
        assert _sources(resource_set, R.SKILLS) == {"lint": "repo"}
        # Hooks exist nowhere
        assert resource_set.items_for(R.HOOKS) == []

    def test_override_uses_current_only(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Override links only the current level's items."""
        resource_set = _resolve(monorepo, home, "false")
        assert _sources(resource_set, R.COMMANDS) == {"deploy": "api"}
        assert resource_set.items_for(R.SKILLS) == []

    def test_extend_unions_every_level(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Extend unions global, ancestors and current."""
        resource_set = _resolve(monorepo, home, "extends:\n  default: extend\n")
        assert _sources(resource_set, R.COMMANDS) == {
            "build": "repo",
            "deploy": "api",
            "hello": "home",
            "test": "repo",
        }

    def test_extend_current_wins_on_collision(
        self, monorepo: _pathlib.Path, home: _pathlib.Path, make_level
    ) -> None:
        """A child item shadows a parent item with the same name."""
        make_level(monorepo, commands=["build"])
        resource_set = _resolve(monorepo, home, "extends:\n  commands: extend\n")
        assert _sources(resource_set, R.COMMANDS)["build"] == "api"

    def test_extend_closer_ancestor_wins(
        self, monorepo: _pathlib.Path, home: _pathlib.Path, make_level
    ) -> None:
        """Between ancestors, the closer one wins."""
        make_level(home, commands=["build"])
        resource_set = _resolve(monorepo, home, "extends:\n  commands: extend\n")
        assert _sources(resource_set, R.COMMANDS)["build"] == "repo"

    def test_compose_adds_included_names(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Compose is the child's items plus the included parent items."""
        resource_set = _resolve(
            monorepo,
            home,
            "extends:\n  commands: compose\ninclude:\n  commands: [test, hello]\n",
        )
        assert _sources(resource_set, R.COMMANDS) == {
            "deploy": "api",
            "hello": "home",
            "test": "repo",
        }

    def test_compose_child_wins_over_include(
        self, monorepo: _pathlib.Path, home: _pathlib.Path, make_level
    ) -> None:
        """An included name the child defines itself stays the child's."""
        make_level(monorepo, commands=["test"])
        resource_set = _resolve(
            monorepo,
            home,
            "extends:\n  commands: compose\ninclude:\n  commands: [test]\n",
        )
        assert _sources(resource_set, R.COMMANDS) == {"deploy": "api", "test": "api"}

    def test_compose_takes_nearest_definition(
        self, monorepo: _pathlib.Path, home: _pathlib.Path, make_level
    ) -> None:
        """An included name defined at several ancestors comes from the nearest."""
        make_level(home, commands=["build"])
        resource_set = _resolve(
            monorepo,
            home,
            "extends:\n  commands: compose\ninclude:\n  commands: [build]\n",
        )
        assert _sources(resource_set, R.COMMANDS)["build"] == "repo"

    def test_compose_unknown_name_is_dropped(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Include names no ancestor defines are reported, not fatal."""
        resource_set = _resolve(
            monorepo,
            home,
            "extends:\n  commands: compose\ninclude:\n  commands: [nope]\n",
        )
        assert _sources(resource_set, R.COMMANDS) == {"deploy": "api"}
        assert resource_set.dropped_includes[R.COMMANDS] == ["nope"]

    def test_exclude_applies_after_merge(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Excluded items disappear whichever behavior produced them."""
        resource_set = _resolve(
            monorepo,
            home,
            "extends:\n  default: extend\nexclude:\n  - 'commands/h*'\n  - deploy\n",
        )
        assert set(_sources(resource_set, R.COMMANDS)) == {"build", "test"}
        assert {item.name for item in resource_set.excluded} == {"hello", "deploy"}

    def test_no_parent_behaves_as_override(self, tmp_path: _pathlib.Path, make_level) -> None:
        """A root level links exactly its own items."""
        project = tmp_path / "project"
        make_level(project, commands=["a", "b"])
        resource_set = _resolve(project, tmp_path / "nohome", "extends:\n  default: extend\n")
        assert resource_set.names_for(R.COMMANDS) == ["a", "b"]


class TestDocumentMerge:
    """Tests for AGENTS.md resolution."""

    def test_inherit_uses_parent_document(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Inherit links the nearest ancestor's document directly."""
        resource_set = _resolve(monorepo, home, None)
        assert resource_set.document is not None
        assert resource_set.document.single_source == (home / "repo" / ".agents" / "AGENTS.md").resolve()

    def test_override_uses_own_document(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """Override links the current document."""
        resource_set = _resolve(monorepo, home, "false")
        assert resource_set.document is not None
        assert resource_set.document.single_source == (monorepo / ".agents" / "AGENTS.md").resolve()

    def test_extend_concatenates_parent_then_child(
        self, tmp_path: _pathlib.Path, make_level
    ) -> None:
        """Parent "A" extended by child "B" renders as "A\\n\\nB"."""
        parent = tmp_path / "repo"
        make_level(parent, agents_md="A")
        child = parent / "pkg"
        make_level(child, agents_md="B")

        resource_set = _resolve(child, tmp_path / "nohome", "extends:\n  AGENTS.md: extend\n")

        assert resource_set.document is not None
        assert resource_set.document.is_composite
        assert resource_set.document.render() == "A\n\nB"

    def test_extend_strips_parent_trailing_newlines(
        self, monorepo: _pathlib.Path, home: _pathlib.Path
    ) -> None:
        """Parts are separated by exactly one blank line."""
        resource_set = _resolve(monorepo, home, "extends:\n  AGENTS.md: extend\n")
        assert resource_set.document is not None
        assert resource_set.document.render() == "Repo\n\nAPI\n"

    def test_extend_without_child_document(
        self, tmp_path: _pathlib.Path, make_level
    ) -> None:
        """With no child document, extend falls back to the parent's."""
        parent = tmp_path / "repo"
        make_level(parent, agents_md="A")
        child = parent / "pkg"
        make_level(child)

        resource_set = _resolve(child, tmp_path / "nohome", "extends:\n  AGENTS.md: extend\n")

        assert resource_set.document is not None
        assert not resource_set.document.is_composite

    def test_exclude_document(self, monorepo: _pathlib.Path, home: _pathlib.Path) -> None:
        """AGENTS.md itself can be excluded."""
        resource_set = _resolve(monorepo, home, "exclude:\n  - AGENTS.md\n")
        assert resource_set.document is None


class TestMatchesExclude:
    """Tests for the exclude matcher."""

    def test_full_path_pattern(self) -> None:
        """Patterns may name the resource folder."""
        assert resources.matches_exclude("commands/build", ["commands/*"])

    def test_bare_name_pattern(self) -> None:
        """Bare patterns match the item name under any resource."""
        assert resources.matches_exclude("skills/lint", ["lint"])

    def test_no_match(self) -> None:
        """Unrelated patterns do not match."""
        assert not resources.matches_exclude("skills/lint", ["commands/*", "build"])
