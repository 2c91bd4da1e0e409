"""
Pipeline configuration for changelog generation.

Every tunable constant lives on PipelineSettings and is passed into the
component that needs it, so tests can shrink batch sizes or timeouts
without touching module globals.
"""
from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# DEFAULT LIMITS
# =============================================================================
# Batch size bounds the prompt sent per model call.
# The commit cap bounds how many per-commit diff requests hit GitHub.
# =============================================================================

DEFAULT_BATCH_SIZE = 12
DEFAULT_MAX_COMMITS = 50
DEFAULT_PATCH_CHAR_LIMIT = 500
DEFAULT_WORKING_MARKER_EVERY = 20
DEFAULT_QUESTION_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_QUESTIONS = 4

DEFAULT_MODEL = "google/gemini-2.0-flash-lite-001"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
GITHUB_API_URL = "https://api.github.com"


# =============================================================================
# NOISE FILTER
# =============================================================================
# Paths matching any of these never reach a prompt: dependency directories,
# build output, version-control internals, lockfiles, markdown docs.
# =============================================================================

DEFAULT_EXCLUDED_PATTERNS: tuple[str, ...] = (
    r"node_modules/",
    r"\.venv/",
    r"venv/",
    r"vendor/",
    r"\.next/",
    r"dist/",
    r"build/",
    r"\.git/",
    r"package-lock\.json$",
    r"yarn\.lock$",
    r"pnpm-lock\.yaml$",
    r"\.md$",
    r"\.lock$",
)

# Low-information verbs that make a commit subject "vague"
DEFAULT_VAGUE_VERBS: tuple[str, ...] = ("fix", "update", "change", "tweak", "misc", "wip", "stuff")


class PipelineSettings(BaseModel):
    """Injected configuration for every stage of the pipeline."""
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    max_commits: int = Field(default=DEFAULT_MAX_COMMITS, ge=1)
    patch_char_limit: int = Field(default=DEFAULT_PATCH_CHAR_LIMIT, ge=1)
    working_marker_every: int = Field(default=DEFAULT_WORKING_MARKER_EVERY, ge=1)
    question_timeout_seconds: float = Field(default=DEFAULT_QUESTION_TIMEOUT_SECONDS, gt=0)
    max_questions: int = Field(default=DEFAULT_MAX_QUESTIONS, ge=0)
    summary_top_prefixes: int = Field(default=10, ge=1)
    vague_word_threshold: int = Field(default=5, ge=1)
    vague_verbs: tuple[str, ...] = DEFAULT_VAGUE_VERBS
    excluded_patterns: tuple[str, ...] = DEFAULT_EXCLUDED_PATTERNS

    model: str = DEFAULT_MODEL
    question_model: str = DEFAULT_MODEL
    openrouter_base_url: str = OPENROUTER_BASE_URL
    openrouter_api_key: Optional[str] = None
    github_api_url: str = GITHUB_API_URL

    @field_validator("vague_verbs")
    @classmethod
    def lowercase_verbs(cls, verbs: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(verb.lower() for verb in verbs)

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """Build settings from environment variables, falling back to defaults."""
        model = os.getenv("OPENROUTER_MODEL", DEFAULT_MODEL)
        return cls(
            batch_size=int(os.getenv("CHANGESCRIBE_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
            max_commits=int(os.getenv("CHANGESCRIBE_MAX_COMMITS", str(DEFAULT_MAX_COMMITS))),
            model=model,
            question_model=os.getenv("OPENROUTER_QUESTION_MODEL", model),
            openrouter_base_url=os.getenv("OPENROUTER_BASE_URL", OPENROUTER_BASE_URL),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY") or None,
            github_api_url=os.getenv("GITHUB_API_URL", GITHUB_API_URL),
        )
