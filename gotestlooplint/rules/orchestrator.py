"""Orchestrates discovery, parsing, symbol resolution and rule execution.

Files are grouped into packages the way the go tool does it (directory plus
package clause), so identifiers declared in one file of a package resolve
from the others, and `foo_test` external test packages stay separate.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gotestlooplint.ast_extractors.go_impl import extract_go_package
from gotestlooplint.ast_parser import GoParser, ParsedGoFile
from gotestlooplint.discovery import FileWalker
from gotestlooplint.rules.base import Diagnostic, RuleContext, RuleFunction, RuleMetadata
from gotestlooplint.rules.go import testloop_analyze
from gotestlooplint.symbols import resolve_package
from gotestlooplint.utils.logging import logger

# (metadata, entry point) of every registered rule
REGISTERED_RULES: list[tuple[RuleMetadata, RuleFunction]] = [
    (testloop_analyze.METADATA, testloop_analyze.analyze),
]


@dataclass
class AnalysisResult:
    """Diagnostics of one run plus bookkeeping for the summary line."""

    findings: list[Diagnostic] = field(default_factory=list)
    files_analyzed: int = 0
    packages_analyzed: int = 0
    files_with_syntax_errors: list[str] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    def sorted_findings(self) -> list[Diagnostic]:
        return sorted(self.findings, key=Diagnostic.sort_key)


class RulesOrchestrator:
    """Runs every registered rule over a set of Go packages."""

    def __init__(self, config: dict[str, Any], exclude_patterns: list[str] | None = None):
        self.config = config
        self.walker = FileWalker(config, exclude_patterns=exclude_patterns)
        self.parser = GoParser()
        self.rules = REGISTERED_RULES

    def run(self, patterns: list[str]) -> AnalysisResult:
        """Analyze the Go files matched by go-style path patterns."""
        files = self.walker.collect(patterns)
        logger.info(f"Found {len(files)} Go files")

        parsed_files = [self.parser.parse_file(path) for path in files]
        return self.run_parsed(parsed_files)

    def run_parsed(self, parsed_files: list[ParsedGoFile]) -> AnalysisResult:
        """Analyze already-parsed files (grouped into packages here)."""
        result = AnalysisResult(stats=dict(self.walker.stats))
        result.files_with_syntax_errors = [p.file_path for p in parsed_files if p.has_errors]

        packages = self.group_packages(parsed_files)
        for (directory, package_name), members in packages.items():
            logger.debug(f"Analyzing package {package_name} in {directory} ({len(members)} files)")
            result.findings.extend(self.analyze_package(members))
            result.packages_analyzed += 1
            result.files_analyzed += len(members)

        logger.info(
            f"Analyzed {result.files_analyzed} files in {result.packages_analyzed} packages, "
            f"{len(result.findings)} diagnostics"
        )
        return result

    @staticmethod
    def group_packages(parsed_files: list[ParsedGoFile]) -> dict[tuple[str, str], list[ParsedGoFile]]:
        packages: dict[tuple[str, str], list[ParsedGoFile]] = defaultdict(list)
        for parsed in parsed_files:
            package = extract_go_package(parsed.tree, parsed.file_path)
            if package is None:
                logger.warning(f"Skipping {parsed.file_path}: no package clause")
                continue
            directory = str(Path(parsed.file_path).parent)
            packages[(directory, package["name"])].append(parsed)
        return packages

    def analyze_package(self, members: list[ParsedGoFile]) -> list[Diagnostic]:
        """Resolve one package and run every rule over each of its files."""
        tables = resolve_package(members)
        require_test_function = self.config["scan"]["require_test_function"]

        findings = []
        for parsed in members:
            context = RuleContext(
                parsed=parsed,
                symbols=tables[parsed.file_path],
                require_test_function=require_test_function,
            )
            for metadata, rule in self.rules:
                if not metadata.applies_to(parsed.file_path):
                    continue
                rule_findings = rule(context)
                if rule_findings:
                    logger.debug(f"{metadata.name}: {len(rule_findings)} diagnostics in {parsed.file_path}")
                findings.extend(rule_findings)
        return findings
