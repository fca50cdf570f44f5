"""Go source discovery with go-tool style path patterns.

    path/to/file.go   that file
    path/to/dir       the .go files directly in dir
    path/to/dir/...   dir and every directory below it
"""

import fnmatch
import os
from pathlib import Path
from typing import Any

from gotestlooplint.utils.constants import GO_SOURCE_SUFFIX, GO_TEST_SUFFIX, RECURSIVE_SUFFIX, SKIP_DIRS
from gotestlooplint.utils.logging import logger


def is_skipped_dir(name: str) -> bool:
    """The go tool ignores directories starting with "." or "_", and testdata."""
    return name in SKIP_DIRS or name.startswith(".") or name.startswith("_")


class FileWalker:
    """Collects Go source files for a list of go-style path patterns."""

    def __init__(self, config: dict[str, Any], exclude_patterns: list[str] | None = None):
        """Initialize the file walker.

        Args:
            config: Runtime configuration (see config_runtime.DEFAULTS)
            exclude_patterns: Additional fnmatch patterns to exclude
        """
        scan = config["scan"]
        self.include_tests = scan["include_tests"]
        self.follow_symlinks = scan["follow_symlinks"]
        self.max_file_size = config["limits"]["max_file_size"]
        self.exclude_patterns = list(scan["exclude_patterns"]) + list(exclude_patterns or [])

        self.stats = {
            "total_files": 0,
            "go_files": 0,
            "test_files": 0,
            "large_files": 0,
            "excluded_files": 0,
            "skipped_dirs": 0,
        }

    def collect(self, patterns: list[str]) -> list[Path]:
        """Resolve patterns to a sorted, de-duplicated list of Go files.

        Raises:
            FileNotFoundError: a pattern names a path that does not exist
        """
        files: dict[str, Path] = {}

        for pattern in patterns or ["./..."]:
            recursive = False
            base = pattern
            if pattern == RECURSIVE_SUFFIX or pattern.endswith("/" + RECURSIVE_SUFFIX):
                recursive = True
                base = pattern[: -len(RECURSIVE_SUFFIX)].rstrip("/") or "."

            path = Path(base)
            if not path.exists():
                raise FileNotFoundError(f"no such file or directory: {base}")

            if path.is_file():
                # Explicitly named files bypass include/exclude filters
                if path.suffix == GO_SOURCE_SUFFIX:
                    files.setdefault(str(path), path)
                else:
                    logger.warning(f"Skipping {path}: not a Go source file")
                continue

            for file in self._walk(path, recursive):
                files.setdefault(str(file), file)

        return [files[key] for key in sorted(files)]

    def _walk(self, root: Path, recursive: bool) -> list[Path]:
        found = []

        for dirpath, dirnames, filenames in os.walk(root, followlinks=self.follow_symlinks):
            if recursive:
                skipped = [d for d in dirnames if is_skipped_dir(d) or self._is_excluded(Path(dirpath) / d)]
                self.stats["skipped_dirs"] += len(skipped)
                dirnames[:] = sorted(d for d in dirnames if d not in skipped)
            else:
                dirnames.clear()

            for filename in sorted(filenames):
                self.stats["total_files"] += 1
                file = Path(dirpath) / filename
                if self._accept(file):
                    found.append(file)

        return found

    def _accept(self, file: Path) -> bool:
        if file.suffix != GO_SOURCE_SUFFIX:
            return False

        is_test = file.name.endswith(GO_TEST_SUFFIX)
        if is_test and not self.include_tests:
            return False

        if self._is_excluded(file):
            self.stats["excluded_files"] += 1
            return False

        try:
            size = file.stat().st_size
        except OSError as e:
            logger.warning(f"Skipping {file}: {e}")
            return False

        if size > self.max_file_size:
            self.stats["large_files"] += 1
            logger.warning(f"Skipping {file}: {size} bytes exceeds limit of {self.max_file_size}")
            return False

        self.stats["go_files"] += 1
        if is_test:
            self.stats["test_files"] += 1
        return True

    def _is_excluded(self, path: Path) -> bool:
        normalized = path.as_posix()
        if normalized.startswith("./"):
            normalized = normalized[2:]
        for pattern in self.exclude_patterns:
            stripped = pattern.rstrip("/")
            if fnmatch.fnmatch(normalized, stripped) or fnmatch.fnmatch(path.name, stripped):
                return True
            # "gen/**" and "gen/" exclude everything below gen
            if stripped.endswith("/**"):
                stripped = stripped[:-3]
            if normalized == stripped or normalized.startswith(stripped + "/"):
                return True
        return False
