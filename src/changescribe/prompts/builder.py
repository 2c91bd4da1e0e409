"""
Prompt renderers for the changelog pipeline.

Three variants, all pure and deterministic:
- summary: compact digest for clarifying-question generation (never diffs)
- batch detail: per-batch drafting prompt with diffs only for vague commits
- merge: consolidation of partial drafts into one changelog
"""
from __future__ import annotations

import re
from collections import Counter
from typing import Optional

from changescribe.core.content_filter import filter_commits
from changescribe.core.settings import PipelineSettings
from changescribe.core.types import ClarifyingAnswers, Commit, FileChange
from changescribe.prompts.shared import CHANGELOG_GUIDELINES

TRUNCATION_MARKER = "\n... (truncated)"

_WORD_RE = re.compile(r"[a-z]+")


# =============================================================================
# SUMMARY (question generation)
# =============================================================================

def _path_prefix(path: str) -> str:
    """Group a file path by its top two directories."""
    parts = path.split("/")
    if len(parts) >= 3:
        return "/".join(parts[:2])
    if len(parts) == 2:
        return parts[0]
    return "(root)"


def build_summary(commits: list[Commit], settings: Optional[PipelineSettings] = None) -> str:
    settings = settings or PipelineSettings()
    commits = filter_commits(commits, settings.excluded_patterns)

    activity: Counter[str] = Counter()
    for commit in commits:
        for file_change in commit.files:
            activity[_path_prefix(file_change.path)] += 1

    # Sort by count descending, then prefix for a stable order between ties
    top_areas = sorted(activity.items(), key=lambda item: (-item[1], item[0]))[:settings.summary_top_prefixes]

    lines = ["Most active areas:"]
    if top_areas:
        lines.extend(f"  - {prefix}: {count} file changes" for prefix, count in top_areas)
    else:
        lines.append("  (no relevant files)")

    lines.append("")
    lines.append(f"Commits ({len(commits)}):")
    for commit in commits:
        lines.append(
            f"  - {commit.subject} ({len(commit.files)} files, {commit.changed_lines} lines changed)"
        )

    return "\n".join(lines)


# =============================================================================
# BATCH DETAIL (draft generation)
# =============================================================================
# Diffs are expensive. A descriptive subject already says what changed, so
# diffs are only attached where the subject carries little information.
# =============================================================================

def is_vague_subject(subject: str, settings: Optional[PipelineSettings] = None) -> bool:
    """A subject is vague if it is short or uses a low-information verb."""
    settings = settings or PipelineSettings()
    if len(subject.split()) < settings.vague_word_threshold:
        return True
    words = set(_WORD_RE.findall(subject.lower()))
    return any(verb in words for verb in settings.vague_verbs)


def truncate_patch(patch: str, limit: int) -> str:
    if len(patch) <= limit:
        return patch
    return patch[:limit] + TRUNCATION_MARKER


def _format_file_line(file_change: FileChange) -> str:
    return f"  - {file_change.path} (+{file_change.additions}/-{file_change.deletions})"


def _format_commit(commit: Commit, settings: PipelineSettings) -> str:
    file_lines = "\n".join(_format_file_line(file_change) for file_change in commit.files)

    parts = [
        f"## Commit: {commit.subject}",
        f"SHA: {commit.short_sha}",
        f"Author: {commit.author_name}",
        f"Date: {commit.authored_at or 'unknown'}",
        "",
        "Files changed:",
        file_lines or "  (no relevant files)",
    ]

    if is_vague_subject(commit.subject, settings):
        patches = [
            f"### {file_change.path}\n```diff\n{truncate_patch(file_change.patch, settings.patch_char_limit)}\n```"
            for file_change in commit.files
            if file_change.patch
        ]
        if patches:
            parts.append("")
            parts.append("Diffs:")
            parts.append("\n\n".join(patches))

    return "\n".join(parts)


def _format_user_input(context: Optional[str], answers: Optional[ClarifyingAnswers]) -> str:
    sections: list[str] = []
    if context and context.strip():
        sections.append(f"Additional context from the maintainer:\n{context.strip()}")
    if answers:
        answer_lines = "\n".join(f"- {question_id}: {answer}" for question_id, answer in answers.items())
        sections.append(f"Clarifications from the maintainer:\n{answer_lines}")
    return "\n\n".join(sections)


def build_batch_prompt(
    commits: list[Commit],
    context: Optional[str] = None,
    answers: Optional[ClarifyingAnswers] = None,
    batch_index: Optional[int] = None,
    batch_total: Optional[int] = None,
    settings: Optional[PipelineSettings] = None,
) -> str:
    """
    Render the drafting prompt for one batch of commits.

    batch_index is 1-based. When batch_total > 1 the model is told it is
    writing a partial draft that will be merged later.
    """
    settings = settings or PipelineSettings()
    commits = filter_commits(commits, settings.excluded_patterns)

    commit_sections = "\n\n---\n\n".join(_format_commit(commit, settings) for commit in commits)

    scope_line = ""
    if batch_total is not None and batch_total > 1:
        scope_line = (
            f"\nThis is part {batch_index} of {batch_total} of the commit range. "
            "Write a draft for these commits only; drafts are merged afterwards.\n"
        )

    user_input = _format_user_input(context, answers)
    user_block = f"\n{user_input}\n" if user_input else ""

    return f"""You are a changelog writer for a software project. Based on the following commits, write a user-friendly changelog entry.
{scope_line}
{CHANGELOG_GUIDELINES}
{user_block}
Commits:
{commit_sections}

Write the changelog entry in markdown format:"""


# =============================================================================
# MERGE
# =============================================================================

MERGE_INSTRUCTIONS = """Combine the drafts into ONE changelog entry:
- Remove duplicate entries that describe the same change.
- Use a single set of category headers (Features, Improvements, Bug Fixes).
- Remove anything internal or developer-facing that slipped into a draft.
- Order entries within each category by user impact, most important first.
- Output only the final changelog, without mentioning drafts or parts."""


def build_merge_prompt(
    drafts: list[str],
    context: Optional[str] = None,
    answers: Optional[ClarifyingAnswers] = None,
) -> str:
    """Render the prompt that consolidates partial drafts, in draft order."""
    draft_sections = "\n\n".join(
        f"## Draft {index} of {len(drafts)}\n{draft.strip() or '(empty draft)'}"
        for index, draft in enumerate(drafts, 1)
    )

    user_input = _format_user_input(context, answers)
    user_block = f"\n{user_input}\n" if user_input else ""

    return f"""You are editing a changelog for a software project. The commit range was too large for one pass, so it was drafted in {len(drafts)} parts.

{MERGE_INSTRUCTIONS}

{CHANGELOG_GUIDELINES}
{user_block}
Drafts:

{draft_sections}

Write the final changelog entry in markdown format:"""
