"""Check Go packages for loop variables captured by deferred test closures."""

import json
from pathlib import Path

import click

from gotestlooplint.config_runtime import OUTPUT_FORMATS, load_runtime_config
from gotestlooplint.rules.base import Diagnostic
from gotestlooplint.rules.orchestrator import AnalysisResult, RulesOrchestrator
from gotestlooplint.ui import console, print_diagnostic, print_error, print_warning
from gotestlooplint.utils.error_handler import GoSourceError, handle_exceptions
from gotestlooplint.utils.exit_codes import ExitCodes
from gotestlooplint.utils.logging import logger


def write_findings_json(findings: list[Diagnostic], output_path: str | None) -> str:
    """Serialize findings; write them to output_path when given."""
    sorted_findings = sorted((f.to_dict() for f in findings), key=lambda f: (f["file"], f["line"], f["column"]))
    text = json.dumps(sorted_findings, indent=2, sort_keys=True)

    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    return text


def render_text(findings: list[Diagnostic], output_path: str | None) -> None:
    if output_path:
        lines = [f.format_text() for f in findings]
        Path(output_path).write_text("\n".join(lines) + ("\n" if lines else ""), encoding="utf-8")
        return

    for finding in findings:
        level = "high" if finding.template_kind else "low"
        print_diagnostic(f"{finding.file_path}:{finding.line}:{finding.column}", finding.message, level)


def summary_line(findings: list[Diagnostic], result: AnalysisResult) -> str:
    line = f"{len(findings)} diagnostics in {result.files_analyzed} files ({result.packages_analyzed} packages)"
    if result.files_with_syntax_errors:
        line += f", {len(result.files_with_syntax_errors)} with syntax errors"
    return line


@click.command("check")
@click.help_option("-h", "--help")
@click.argument("paths", nargs=-1)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Output format (default: text, or output.format from config)",
)
@click.option("--output", default=None, help="Write diagnostics to this file instead of stdout")
@click.option(
    "--tests-only/--all-loops",
    "tests_only",
    default=None,
    help="Only check loops inside func TestXxx declarations (default: all loops)",
)
@click.option("--exclude", "excludes", multiple=True, help="Exclude files or directories (fnmatch, repeatable)")
@click.option("--no-tests", is_flag=True, default=False, help="Skip _test.go files")
@click.option("--root", default=".", help="Directory holding .gotestlooplint.json")
@handle_exceptions
def check(paths, output_format, output, tests_only, excludes, no_tests, root):
    """Report loop variables used inside parallel subtests and Ginkgo It closures.

    PATHS follow go vet conventions: a .go file, a package directory, or
    dir/... for a directory and everything below it. Default: ./...

    \b
    Flagged:
      for _, tc := range cases {
          t.Run(tc.name, func(t *testing.T) {
              t.Parallel()
              use(tc)          // reported
          })
      }

    \b
    Not flagged:
      - references before t.Parallel() (they run synchronously)
      - subtests that never call t.Parallel()
      - `tc := tc` copies inside the closure

    Exit Codes:
      0 = No diagnostics
      1 = The tool failed (bad path, unreadable file)
      3 = Diagnostics reported
    """
    config = load_runtime_config(root)

    if tests_only is not None:
        config["scan"]["require_test_function"] = tests_only
    if no_tests:
        config["scan"]["include_tests"] = False
    output_format = output_format or config["output"]["format"]

    orchestrator = RulesOrchestrator(config, exclude_patterns=list(excludes))

    try:
        result = orchestrator.run(list(paths))
    except FileNotFoundError as e:
        print_error(str(e))
        raise SystemExit(ExitCodes.TOOL_ERROR) from e
    except GoSourceError as e:
        print_error(str(e))
        raise SystemExit(ExitCodes.TOOL_ERROR) from e

    if result.files_analyzed == 0:
        print_warning("no Go files matched")

    findings = result.sorted_findings()

    if output_format == "json":
        text = write_findings_json(findings, output)
        if not output:
            click.echo(text)
    else:
        render_text(findings, output)
        if output:
            console.print(f"{len(findings)} diagnostics written to [path]{output}[/path]")
        elif findings:
            console.print(f"[dim]{summary_line(findings, result)}[/dim]")

    logger.debug(f"Discovery stats: {result.stats}")
    exit_code = ExitCodes.DIAGNOSTICS_REPORTED if findings else ExitCodes.SUCCESS
    logger.debug(f"Exit {exit_code}: {ExitCodes.get_description(exit_code)}")
    raise SystemExit(exit_code)
