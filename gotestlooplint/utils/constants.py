"""Centralized constants for gotestlooplint.

Paths, limits and environment variable names used across the package.
Match-shape constants for the rule itself live next to the rule.
"""

# ============================================================================
# CONFIGURATION FILES
# ============================================================================

# Per-project configuration file, looked up in the analysis root
CONFIG_FILE_NAME = ".gotestlooplint.json"

# Prefix for all environment overrides
ENV_PREFIX = "GOTESTLOOPLINT"

# ============================================================================
# FILE PROCESSING LIMITS
# ============================================================================

# Maximum file size to analyze (default: 2MB)
DEFAULT_MAX_FILE_SIZE = 2 * 1024 * 1024

# ============================================================================
# SOURCE DISCOVERY
# ============================================================================

GO_SOURCE_SUFFIX = ".go"
GO_TEST_SUFFIX = "_test.go"

# Recursive pattern suffix, as in `go vet ./...`
RECURSIVE_SUFFIX = "..."

# Directories the go tool never treats as packages, plus build/VCS noise
SKIP_DIRS: set[str] = {
    ".git",
    ".hg",
    ".svn",
    "vendor",
    "testdata",
    "node_modules",
    "dist",
    "build",
}

# ============================================================================
# ENVIRONMENT VARIABLES
# ============================================================================

ENV_LOG_LEVEL = f"{ENV_PREFIX}_LOG_LEVEL"
ENV_LOG_JSON = f"{ENV_PREFIX}_LOG_JSON"
ENV_LOG_FILE = f"{ENV_PREFIX}_LOG_FILE"
