"""Pytest configuration and fixtures."""

import textwrap

import pytest

from gotestlooplint.ast_parser import GoParser, ParsedGoFile
from gotestlooplint.rules.base import RuleContext
from gotestlooplint.rules.go import testloop_analyze
from gotestlooplint.symbols import resolve_package


@pytest.fixture(scope="session")
def go_parser():
    """Create a Go tree-sitter parser."""
    return GoParser()


@pytest.fixture
def parse_go(go_parser):
    """Parse dedented Go source into a ParsedGoFile."""

    def _parse(code: str, file_path: str = "foo_test.go") -> ParsedGoFile:
        return go_parser.parse_content(textwrap.dedent(code), file_path)

    return _parse


@pytest.fixture
def resolve_go(parse_go):
    """Parse one file and resolve it; returns (parsed, symbol table)."""

    def _resolve(code: str, file_path: str = "foo_test.go"):
        parsed = parse_go(code, file_path)
        tables = resolve_package([parsed])
        return parsed, tables[file_path]

    return _resolve


@pytest.fixture
def analyze_go(resolve_go):
    """Run the loop capture rule over one Go source snippet."""

    def _analyze(code: str, require_test_function: bool = False):
        parsed, symbols = resolve_go(code)
        context = RuleContext(parsed=parsed, symbols=symbols, require_test_function=require_test_function)
        return testloop_analyze.analyze(context)

    return _analyze


def iter_nodes(node):
    """Pre-order walk of a tree-sitter node."""
    yield node
    for child in node.children:
        yield from iter_nodes(child)


@pytest.fixture
def find_idents():
    """All identifier nodes with a given name, in source order."""

    def _find(parsed: ParsedGoFile, name: str) -> list:
        return [
            node
            for node in iter_nodes(parsed.root)
            if node.type == "identifier" and node.text.decode("utf-8") == name
        ]

    return _find


@pytest.fixture
def go_project(tmp_path, monkeypatch):
    """Write Go files under a temporary directory and chdir into it."""
    monkeypatch.chdir(tmp_path)

    def _write(files: dict[str, str]):
        for rel_path, code in files.items():
            target = tmp_path / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(textwrap.dedent(code), encoding="utf-8")
        return tmp_path

    return _write
