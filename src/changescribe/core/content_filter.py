from __future__ import annotations

import re
from functools import lru_cache

from changescribe.core.settings import DEFAULT_EXCLUDED_PATTERNS
from changescribe.core.types import Commit, FileChange


@lru_cache(maxsize=16)
def _compile(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(pattern) for pattern in patterns)


def is_excluded_path(path: str, patterns: tuple[str, ...] = DEFAULT_EXCLUDED_PATTERNS) -> bool:
    """Return True if the path matches any noise pattern."""
    return any(pattern.search(path) for pattern in _compile(patterns))


def filter_files(
    files: tuple[FileChange, ...],
    patterns: tuple[str, ...] = DEFAULT_EXCLUDED_PATTERNS,
) -> tuple[FileChange, ...]:
    return tuple(file_change for file_change in files if not is_excluded_path(file_change.path, patterns))


def filter_commit(commit: Commit, patterns: tuple[str, ...] = DEFAULT_EXCLUDED_PATTERNS) -> Commit:
    """
    Drop noise files (lockfiles, build output, vendored code, docs) from a commit.

    Idempotent: a filtered commit has no excluded files left, so filtering
    it again returns an equal commit.
    """
    kept = filter_files(commit.files, patterns)
    if len(kept) == len(commit.files):
        return commit
    return commit.model_copy(update={"files": kept})


def filter_commits(
    commits: list[Commit],
    patterns: tuple[str, ...] = DEFAULT_EXCLUDED_PATTERNS,
) -> list[Commit]:
    return [filter_commit(commit, patterns) for commit in commits]
