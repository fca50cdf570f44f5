"""Centralized exit codes for the gotestlooplint CLI."""


class ExitCodes:
    """Exit codes, following the go vet / singlechecker convention."""

    SUCCESS = 0

    TOOL_ERROR = 1

    DIAGNOSTICS_REPORTED = 3

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - No issues found",
            cls.TOOL_ERROR: "The tool failed to run (bad arguments, unreadable sources)",
            cls.DIAGNOSTICS_REPORTED: "Loop variable capture diagnostics reported",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")
