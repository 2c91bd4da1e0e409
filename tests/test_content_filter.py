from changescribe.core.content_filter import filter_commit, filter_commits, is_excluded_path
from changescribe.core.types import FileChange

from fakes import make_commit


NOISE_PATHS = [
    "node_modules/react/index.js",
    "web/node_modules/lodash/lodash.js",
    ".venv/lib/site.py",
    "vendor/github.com/pkg/errors/errors.go",
    ".next/server/app.js",
    "dist/bundle.js",
    "build/output.o",
    "package-lock.json",
    "frontend/yarn.lock",
    "pnpm-lock.yaml",
    "README.md",
    "docs/guide.md",
    "Cargo.lock",
]

KEPT_PATHS = [
    "src/app/page.tsx",
    "src/lib/github.py",
    "tests/test_api.py",
    "package.json",
    "docs/index.rst",
]


def test_noise_paths_are_excluded():
    for path in NOISE_PATHS:
        assert is_excluded_path(path), path


def test_regular_paths_are_kept():
    for path in KEPT_PATHS:
        assert not is_excluded_path(path), path


def test_filter_commit_drops_only_noise_files():
    files = [FileChange(path=path) for path in NOISE_PATHS + KEPT_PATHS]
    commit = make_commit(1, files=files)

    filtered = filter_commit(commit)

    assert [file_change.path for file_change in filtered.files] == KEPT_PATHS
    assert filtered.sha == commit.sha
    assert filtered.message == commit.message


def test_filter_commit_is_idempotent():
    files = [FileChange(path=path) for path in NOISE_PATHS[:4] + KEPT_PATHS]
    commit = make_commit(2, files=files)

    once = filter_commit(commit)
    assert filter_commit(once) == once


def test_filter_commit_without_noise_returns_same_commit():
    commit = make_commit(3, files=[FileChange(path="src/main.py")])
    assert filter_commit(commit) is commit


def test_custom_patterns_are_respected():
    commit = make_commit(4, files=[FileChange(path="src/generated/api.ts"), FileChange(path="src/api.ts")])

    filtered = filter_commits([commit], patterns=(r"generated/",))

    assert [file_change.path for file_change in filtered[0].files] == ["src/api.ts"]
