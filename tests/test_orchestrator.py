"""Tests for package grouping and multi-file runs."""

import copy

import pytest

from gotestlooplint.config_runtime import DEFAULTS
from gotestlooplint.rules.orchestrator import RulesOrchestrator
from gotestlooplint.utils.error_handler import GoSourceError

PARALLEL_SUBTEST = """
    package {package}

    import "testing"

    func TestShared(t *testing.T) {{
        for _, v := range values {{
            {receiver}.Run("x", func(t *testing.T) {{
                t.Parallel()
                use(v)
            }})
        }}
    }}
"""


@pytest.fixture
def orchestrator():
    return RulesOrchestrator(copy.deepcopy(DEFAULTS))


class TestPackages:
    """Files are resolved together per package."""

    def test_package_variable_from_other_file(self, go_project, orchestrator):
        go_project({
            "suite_test.go": """
                package foo

                import "testing"

                var suiteT *testing.T
            """,
            "cases_test.go": PARALLEL_SUBTEST.format(package="foo", receiver="suiteT"),
        })

        result = orchestrator.run(["./..."])

        assert result.files_analyzed == 2
        assert result.packages_analyzed == 1
        assert [(f.file_path, f.variable_name, f.line) for f in result.sorted_findings()] == [
            ("cases_test.go", "v", 10),
        ]

    def test_external_test_package_is_separate(self, go_project, orchestrator):
        go_project({
            "foo.go": """
                package foo

                import "testing"

                var suiteT *testing.T
            """,
            "foo_test.go": PARALLEL_SUBTEST.format(package="foo_test", receiver="suiteT"),
        })

        result = orchestrator.run(["."])

        assert result.packages_analyzed == 2
        assert result.findings == []

    def test_same_package_name_in_different_directories(self, go_project, orchestrator):
        go_project({
            "a/suite_test.go": """
                package foo

                import "testing"

                var suiteT *testing.T
            """,
            "b/cases_test.go": PARALLEL_SUBTEST.format(package="foo", receiver="suiteT"),
        })

        result = orchestrator.run(["./..."])

        assert result.packages_analyzed == 2
        assert result.findings == []

    def test_group_packages_skips_files_without_package(self, parse_go):
        with_package = parse_go("package foo\n", file_path="pkg/a.go")
        without = parse_go("func f() {}\n", file_path="pkg/b.go")

        groups = RulesOrchestrator.group_packages([with_package, without])

        assert list(groups) == [("pkg", "foo")]
        assert groups[("pkg", "foo")] == [with_package]


class TestRun:
    """End to end runs over a directory tree."""

    def test_findings_sorted_across_files(self, go_project, orchestrator):
        go_project({
            "b_test.go": PARALLEL_SUBTEST.format(package="foo", receiver="t"),
            "a_test.go": PARALLEL_SUBTEST.format(package="foo", receiver="t").replace("TestShared", "TestOther"),
        })

        result = orchestrator.run(["./..."])

        assert [f.file_path for f in result.sorted_findings()] == ["a_test.go", "b_test.go"]

    def test_vendor_file_named_explicitly_is_not_checked(self, go_project, orchestrator):
        go_project({
            "vendor/dep/dep_test.go": PARALLEL_SUBTEST.format(package="dep", receiver="t"),
        })

        result = orchestrator.run(["vendor/dep/dep_test.go"])

        assert result.files_analyzed == 1
        assert result.findings == []

    def test_require_test_function_from_config(self, go_project):
        go_project({
            "helper_test.go": PARALLEL_SUBTEST.format(package="foo", receiver="t").replace(
                "TestShared", "runShared"
            ),
        })
        config = copy.deepcopy(DEFAULTS)

        assert len(RulesOrchestrator(config).run(["."]).findings) == 1

        config["scan"]["require_test_function"] = True
        assert RulesOrchestrator(config).run(["."]).findings == []

    def test_syntax_errors_are_reported_and_analyzed(self, go_project, orchestrator):
        broken = PARALLEL_SUBTEST.format(package="foo", receiver="t") + "\nfunc broken( {\n"
        go_project({"broken_test.go": broken})

        result = orchestrator.run(["."])

        assert result.files_with_syntax_errors == ["broken_test.go"]
        assert result.files_analyzed == 1

    def test_invalid_utf8_is_a_source_error(self, go_project, orchestrator, tmp_path):
        go_project({})
        (tmp_path / "bad.go").write_bytes(b"package foo\n// \xff\xfe\n")

        with pytest.raises(GoSourceError):
            orchestrator.run(["."])
