"""Go source parsing using Tree-sitter."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from gotestlooplint.utils.error_handler import GoSourceError
from gotestlooplint.utils.logging import logger


@dataclass
class ParsedGoFile:
    """A parsed Go source unit."""

    file_path: str
    content: str
    tree: Any

    @property
    def root(self) -> Any:
        return self.tree.root_node

    @property
    def has_errors(self) -> bool:
        return self.tree.root_node.has_error


class GoParser:
    """Tree-sitter parser for Go source files."""

    def __init__(self):
        """Initialize the Go grammar from tree-sitter-language-pack."""
        try:
            from tree_sitter_language_pack import get_parser

            self.parser = get_parser("go")
        except Exception as e:
            raise RuntimeError(
                f"Failed to load tree-sitter grammar for Go: {e}\n"
                "This is often due to a missing or corrupted installation.\n"
                "Please try: pip install --force-reinstall tree-sitter-language-pack"
            ) from e

    def parse_content(self, content: str, file_path: str = "<memory>") -> ParsedGoFile:
        """Parse Go source text."""
        tree = self.parser.parse(content.encode("utf-8"))
        parsed = ParsedGoFile(file_path=file_path, content=content, tree=tree)

        if parsed.has_errors:
            logger.warning(f"{file_path}: syntax errors found, analysis may be incomplete")

        return parsed

    def parse_file(self, file_path: Path) -> ParsedGoFile:
        """Read and parse a Go source file.

        Raises:
            GoSourceError: the file cannot be read or is not UTF-8
        """
        try:
            content = Path(file_path).read_bytes().decode("utf-8")
        except OSError as e:
            raise GoSourceError(str(file_path), f"cannot read file: {e.strerror or e}") from e
        except UnicodeDecodeError as e:
            raise GoSourceError(str(file_path), f"not valid UTF-8: {e}") from e

        logger.debug(f"Parsing {file_path} ({len(content)} chars)")
        return self.parse_content(content, str(file_path))
