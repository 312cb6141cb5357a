"""
Tests that enforce coding standards.

- Modules import with `import x as _x` (external) or `import x as x`
  (internal); `from X import Y` is reserved for package __init__ re-exports,
  `from __future__` and TYPE_CHECKING blocks.
- Library code reports through loggers, the CLI through click or rich;
  nothing calls print() directly.
"""

import ast as _ast
import pathlib as _pathlib

import pytest as _pytest

ROOT = _pathlib.Path(__file__).parent.parent
SRC_DIR = ROOT / "src" / "agentlinker"
TESTS_DIR = ROOT / "tests"


def _python_files(directory: _pathlib.Path) -> list[_pathlib.Path]:
    return sorted(path for path in directory.rglob("*.py") if path.name != "__init__.py")


def _is_type_checking(node: _ast.If) -> bool:
    test = node.test
    if isinstance(test, _ast.Name):
        return test.id == "TYPE_CHECKING"
    return isinstance(test, _ast.Attribute) and test.attr == "TYPE_CHECKING"


def from_imports(source: str) -> list[tuple[int, str]]:
    """(line, module) for every forbidden `from X import Y` in a module."""
    tree = _ast.parse(source)
    allowed: set[int] = set()
    for node in _ast.walk(tree):
        if isinstance(node, _ast.If) and _is_type_checking(node):
            for child in node.body:
                for inner in _ast.walk(child):
                    allowed.add(id(inner))

    found = []
    for node in _ast.walk(tree):
        if not isinstance(node, _ast.ImportFrom) or id(node) in allowed:
            continue
        if node.module == "__future__":
            continue
        found.append((node.lineno, "." * node.level + (node.module or "")))
    return sorted(found)


def print_calls(source: str) -> list[int]:
    """Lines calling the builtin print()."""
    return sorted(
        node.lineno
        for node in _ast.walk(_ast.parse(source))
        if isinstance(node, _ast.Call)
        and isinstance(node.func, _ast.Name)
        and node.func.id == "print"
    )


def _report(title: str, violations: list[str], hint: str) -> None:
    if violations:
        _pytest.fail(f"{title}:\n" + "\n".join(f"  {v}" for v in violations) + f"\n\n{hint}")


_IMPORT_HINT = "Use 'import X as _x' (external) or 'import X as x' (internal) instead."


class TestImportStyle:
    """Tests for import style compliance."""

    @_pytest.mark.parametrize("directory", [SRC_DIR, TESTS_DIR], ids=["src", "tests"])
    def test_no_from_imports(self, directory: _pathlib.Path) -> None:
        """Modules should not use 'from X import Y'."""
        violations = [
            f"{path}:{line}: from {module} import ..."
            for path in _python_files(directory)
            for line, module in from_imports(path.read_text())
        ]
        _report("Found forbidden 'from X import Y' imports", violations, _IMPORT_HINT)


class TestOutputStyle:
    """Tests for how code reports to the user."""

    def test_src_no_print(self) -> None:
        """Source files should not call print()."""
        violations = [
            f"{path}:{line}"
            for path in _python_files(SRC_DIR)
            for line in print_calls(path.read_text())
        ]
        _report(
            "Found print() calls",
            violations,
            "Use a module logger, click.echo or a rich Console instead.",
        )


class TestChecks:
    """Tests for the checks themselves."""

    def test_detects_from_import(self) -> None:
        """A plain from import is reported."""
        assert from_imports("from pathlib import Path\n") == [(1, "pathlib")]

    def test_detects_relative_import(self) -> None:
        """Relative imports are reported with their dots."""
        assert from_imports("from .sibling import thing\n") == [(1, ".sibling")]

    def test_allows_future_imports(self) -> None:
        """__future__ imports are allowed."""
        assert from_imports("from __future__ import annotations\n") == []

    def test_type_checking_block(self) -> None:
        """Imports under TYPE_CHECKING are allowed, later ones are not."""
        source = (
            "import typing as _typing\n"
            "\n"
            "if _typing.TYPE_CHECKING:\n"
            "    from allowed import Type\n"
            "\n"
            "from forbidden import Other\n"
        )
        assert from_imports(source) == [(6, "forbidden")]

    def test_print_calls(self) -> None:
        """Only calls to the builtin print are reported."""
        source = "console.print('ok')\nprint('no')\n"
        assert print_calls(source) == [2]
