"""Base contracts shared by rules: context in, diagnostics out."""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gotestlooplint.ast_parser import ParsedGoFile
from gotestlooplint.symbols import SymbolTable


class Severity(Enum):
    """Standardized severity levels."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Confidence(Enum):
    """Confidence in finding accuracy."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class RuleContext:
    """Everything a rule gets for one file: the tree and its symbol table."""

    parsed: ParsedGoFile
    symbols: SymbolTable

    # Only check loops inside `func TestXxx` declarations
    require_test_function: bool = False

    @property
    def file_path(self) -> str:
        return self.parsed.file_path

    def get_lines(self) -> list[str]:
        """Get file content as list of lines."""
        return self.parsed.content.splitlines() if self.parsed.content else []

    def get_snippet(self, line_num: int, context_lines: int = 0) -> str:
        """Extract code snippet around a line number."""
        lines = self.get_lines()
        if not lines or line_num < 1 or line_num > len(lines):
            return ""

        start = max(1, line_num - context_lines)
        end = min(len(lines), line_num + context_lines)
        return "\n".join(lines[i - 1] for i in range(start, end + 1))


@dataclass
class Diagnostic:
    """Position-tagged output of a rule."""

    rule_name: str
    message: str
    file_path: str
    line: int

    column: int = 0
    offset: int = 0
    severity: Severity | str = Severity.HIGH
    category: str = "testing"
    confidence: Confidence | str = Confidence.HIGH
    snippet: str = ""

    variable_name: str | None = None
    template_kind: str | None = None

    def sort_key(self) -> tuple:
        return (self.file_path, self.line, self.column, self.message)

    def format_text(self) -> str:
        """`path:line:col: message`, the go vet layout."""
        return f"{self.file_path}:{self.line}:{self.column}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "rule": self.rule_name,
            "message": self.message,
            "file": self.file_path,
            "line": self.line,
            "column": self.column,
            "offset": self.offset,
            "severity": self.severity.value
            if isinstance(self.severity, Severity)
            else self.severity,
            "category": self.category,
            "confidence": self.confidence.value
            if isinstance(self.confidence, Confidence)
            else self.confidence,
            "code_snippet": self.snippet,
        }

        if self.variable_name:
            result["variable"] = self.variable_name
        if self.template_kind:
            result["kind"] = self.template_kind

        return result


RuleFunction = Callable[[RuleContext], list[Diagnostic]]


@dataclass
class RuleMetadata:
    """Metadata describing which files a rule wants."""

    name: str
    category: str
    doc: str = ""

    target_extensions: list[str] | None = None
    exclude_patterns: list[str] | None = None

    def applies_to(self, file_path: str) -> bool:
        normalized = "/" + file_path.replace("\\", "/").lstrip("/")
        if self.target_extensions and not any(normalized.endswith(ext) for ext in self.target_extensions):
            return False
        # Patterns match whole path components: "vendor/" skips vendor/x.go, not myvendor/x.go
        if self.exclude_patterns and any("/" + pattern in normalized for pattern in self.exclude_patterns):
            return False
        return True
