"""Glob-based file selection for crawled repository trees."""

import fnmatch
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from repodoc.constants.files import DEFAULT_MAX_FILE_SIZE


class FilterDecision(Enum):
    """Outcome of filtering one tree entry."""

    INCLUDED = "included"
    EXCLUDED = "excluded"
    TOO_LARGE = "too_large"


def matches_pattern(path: str, pattern: str) -> bool:
    """Check if a forward-slash path matches a glob pattern.

    Rules:
    - "dir/" (trailing slash) matches any path with a component named dir
    - Patterns without "/" match the file name or any path component
    - "**/" at the start also matches zero leading directories
    - "/**" at the end also matches the directory itself
    - Otherwise the pattern is matched against the full path; "*" may
      cross "/" as in fnmatch

    Args:
        path: Relative file path using "/" separators.
        pattern: Glob pattern.

    Returns:
        True if the path matches.
    """
    path = path.lstrip("/")
    parts = path.split("/")

    if pattern.endswith("/"):
        dir_pattern = pattern.rstrip("/")
        return any(fnmatch.fnmatchcase(part, dir_pattern) for part in parts[:-1])

    if "/" not in pattern:
        return any(fnmatch.fnmatchcase(part, pattern) for part in parts)

    candidates = {pattern}
    if pattern.startswith("**/"):
        candidates.add(pattern[3:])
    for candidate in list(candidates):
        if candidate.endswith("/**"):
            candidates.add(candidate[:-3])

    return any(fnmatch.fnmatchcase(path, candidate) for candidate in candidates)


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """Check if a path matches at least one pattern."""
    return any(matches_pattern(path, pattern) for pattern in patterns)


@dataclass
class FileFilter:
    """Filter tree entries by include/exclude globs and a size ceiling.

    Exclusions win over inclusions. An empty include list admits every
    path that is not excluded.
    """

    include_patterns: list[str]
    exclude_patterns: list[str]
    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    def check(self, path: str, size: Optional[int] = None) -> FilterDecision:
        """Decide whether a tree entry should be downloaded.

        Args:
            path: Relative file path.
            size: Blob size in bytes, if known.

        Returns:
            The filter decision.
        """
        if self.exclude_patterns and matches_any(path, self.exclude_patterns):
            return FilterDecision.EXCLUDED
        if self.include_patterns and not matches_any(path, self.include_patterns):
            return FilterDecision.EXCLUDED
        if size is not None and size > self.max_file_size:
            return FilterDecision.TOO_LARGE
        return FilterDecision.INCLUDED
