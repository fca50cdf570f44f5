"""CLI tests using click's CliRunner.

All output must stay ASCII: Windows consoles running CP1252 choke on
anything else.
"""

import json

import pytest
from click.testing import CliRunner

from gotestlooplint.cli import cli
from gotestlooplint.utils.exit_codes import ExitCodes
from gotestlooplint.utils.logging import logger, set_level

FLAGGED = """
    package foo

    import "testing"

    func TestCases(t *testing.T) {
        for _, tc := range cases {
            t.Run(tc.name, func(t *testing.T) {
                t.Parallel()
                check(tc)
            })
        }
    }
"""

CLEAN = """
    package foo

    import "testing"

    func TestCases(t *testing.T) {
        for _, tc := range cases {
            tc := tc
            t.Run(tc.name, func(t *testing.T) {
                t.Parallel()
                check(tc)
            })
        }
    }
"""


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def log_messages():
    """Capture loguru messages at DEBUG for the duration of a test."""
    messages = []
    sink_id = logger.add(messages.append, level="DEBUG", format="{message}")
    yield messages
    logger.remove(sink_id)
    set_level("WARNING")


class TestCheckCommand:
    """gotestlooplint check."""

    def test_diagnostics_exit_code(self, runner, go_project):
        go_project({"foo_test.go": FLAGGED})

        result = runner.invoke(cli, ["check", "./..."])

        assert result.exit_code == ExitCodes.DIAGNOSTICS_REPORTED
        assert "foo_test.go:10:19:" in result.output
        assert "loop variable `tc` used directly inside parallel test closure" in result.output

    def test_clean_exit_code(self, runner, go_project):
        go_project({"foo_test.go": CLEAN})

        result = runner.invoke(cli, ["check"])

        assert result.exit_code == ExitCodes.SUCCESS

    def test_json_output(self, runner, go_project):
        go_project({"foo_test.go": FLAGGED})

        result = runner.invoke(cli, ["check", "--format", "json", "."])

        assert result.exit_code == ExitCodes.DIAGNOSTICS_REPORTED
        findings = json.loads(result.stdout)
        assert len(findings) == 1
        finding = findings[0]
        assert finding["file"] == "foo_test.go"
        assert finding["line"] == 10
        assert finding["column"] == 19
        assert finding["variable"] == "tc"
        assert finding["kind"] == "parallel-test"
        assert finding["rule"] == "gotestlooplint"
        assert finding["code_snippet"].strip() == "check(tc)"

    def test_output_file(self, runner, go_project, tmp_path):
        go_project({"foo_test.go": FLAGGED})

        result = runner.invoke(cli, ["check", "--output", "report.txt", "."])

        assert result.exit_code == ExitCodes.DIAGNOSTICS_REPORTED
        lines = (tmp_path / "report.txt").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("foo_test.go:10:19: loop variable `tc`")

    def test_tests_only_flag(self, runner, go_project):
        go_project({"helper_test.go": FLAGGED.replace("TestCases", "runCases")})

        assert runner.invoke(cli, ["check", "."]).exit_code == ExitCodes.DIAGNOSTICS_REPORTED
        assert runner.invoke(cli, ["check", "--tests-only", "."]).exit_code == ExitCodes.SUCCESS

    def test_config_file_overridden_by_flag(self, runner, go_project, tmp_path):
        go_project({"helper_test.go": FLAGGED.replace("TestCases", "runCases")})
        (tmp_path / ".gotestlooplint.json").write_text(
            json.dumps({"scan": {"require_test_function": True}}), encoding="utf-8"
        )

        assert runner.invoke(cli, ["check", "."]).exit_code == ExitCodes.SUCCESS
        assert runner.invoke(cli, ["check", "--all-loops", "."]).exit_code == ExitCodes.DIAGNOSTICS_REPORTED

    def test_no_tests_and_exclude(self, runner, go_project):
        go_project({"foo_test.go": FLAGGED, "gen/gen_test.go": FLAGGED})

        assert runner.invoke(cli, ["check", "--no-tests"]).exit_code == ExitCodes.SUCCESS

        result = runner.invoke(cli, ["check", "--exclude", "gen/", "--format", "json"])
        assert [f["file"] for f in json.loads(result.stdout)] == ["foo_test.go"]

    def test_missing_path(self, runner, go_project):
        go_project({})

        result = runner.invoke(cli, ["check", "does/not/exist"])

        assert result.exit_code == ExitCodes.TOOL_ERROR

    def test_no_files_matched(self, runner, go_project):
        go_project({"README.md": "nothing here\n"})

        result = runner.invoke(cli, ["check"])

        assert result.exit_code == ExitCodes.SUCCESS

    def test_syntax_errors_warned_once_and_counted(self, runner, go_project, log_messages):
        go_project({
            "foo_test.go": FLAGGED,
            "broken_test.go": "package foo\n\nfunc broken( {\n",
        })

        result = runner.invoke(cli, ["check", "./..."])

        assert result.exit_code == ExitCodes.DIAGNOSTICS_REPORTED
        assert "1 with syntax errors" in result.output
        warnings = [m for m in log_messages if "broken_test.go" in m and "syntax errors" in m]
        assert len(warnings) == 1

    def test_verbose_logs_stats_and_exit_reason(self, runner, go_project, log_messages):
        go_project({"foo_test.go": FLAGGED})

        result = runner.invoke(cli, ["-v", "check", "./..."])

        assert result.exit_code == ExitCodes.DIAGNOSTICS_REPORTED
        assert any("Discovery stats: {" in m for m in log_messages)
        reason = ExitCodes.get_description(ExitCodes.DIAGNOSTICS_REPORTED)
        assert any(f"Exit 3: {reason}" in m for m in log_messages)


class TestHelpAndExplain:
    """Help text and the explain command."""

    def test_help(self, runner):
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "check" in result.output
        assert "explain" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "gotestlooplint" in result.output

    def test_explain(self, runner):
        result = runner.invoke(cli, ["explain"])

        assert result.exit_code == 0
        assert "t.Parallel()" in result.output
        assert "github.com/onsi/ginkgo/v2" in result.output
        assert "used directly inside ginkgo It closure" in result.output

    def test_explain_lists_each_ginkgo_path_whole(self, runner):
        result = runner.invoke(cli, ["explain"])

        lines = [line.strip(" |") for line in result.output.splitlines()]
        assert "github.com/onsi/ginkgo" in lines
        assert "github.com/onsi/ginkgo/v2" in lines

    @pytest.mark.parametrize("args", [["--help"], ["check", "--help"], ["explain"]])
    def test_output_is_ascii(self, runner, args):
        result = runner.invoke(cli, args)
        assert result.exit_code == 0

        try:
            result.output.encode("ascii")
        except UnicodeEncodeError as e:
            pytest.fail(f"Non-ASCII character in gotestlooplint {' '.join(args)}: {e}")

