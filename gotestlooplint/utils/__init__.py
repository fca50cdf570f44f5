"""gotestlooplint utilities package."""

from .constants import (
    CONFIG_FILE_NAME,
    DEFAULT_MAX_FILE_SIZE,
    ENV_PREFIX,
    GO_SOURCE_SUFFIX,
    GO_TEST_SUFFIX,
    SKIP_DIRS,
)
from .error_handler import GoSourceError, handle_exceptions
from .exit_codes import ExitCodes
from .logging import logger

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_MAX_FILE_SIZE",
    "ENV_PREFIX",
    "GO_SOURCE_SUFFIX",
    "GO_TEST_SUFFIX",
    "SKIP_DIRS",
    "GoSourceError",
    "handle_exceptions",
    "ExitCodes",
    "logger",
]
