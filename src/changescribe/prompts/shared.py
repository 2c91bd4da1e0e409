"""
Shared prompt fragments for changelog generation.

These fragments keep the draft, merge and question prompts consistent in:
- Audience and tone
- Changelog structure
- Content that must never reach users
"""

# =============================================================================
# AUDIENCE
# =============================================================================
# Changelogs are read by end-users, not by the team that wrote the code.
# =============================================================================

AUDIENCE_RULES = """AUDIENCE
- Write for end-users, not developers.
- Focus on what changed from the user's perspective, not implementation details.
- Skip internal refactoring or code cleanup unless it affects users.
- If there are no meaningful user-facing changes, say so."""


# =============================================================================
# STRUCTURE
# =============================================================================

STRUCTURE_RULES = """STRUCTURE
- Group changes into categories: Features, Improvements, Bug Fixes.
- Use clear, concise bullet points.
- Omit a category entirely when it has no entries.
- Write the changelog entry in markdown."""


# =============================================================================
# INTERNAL CONTENT
# =============================================================================
# Commit data carries file paths, hashes and author names. None of it belongs
# in a published changelog.
# =============================================================================

INTERNAL_CONTENT_RULES = """NEVER INCLUDE
- Commit hashes, author names, file paths or function names
- Mentions of tests, CI, linting, dependency bumps or build tooling
- Developer-facing notes such as TODOs or debugging remarks"""


# =============================================================================
# COMBINED SHARED SECTION
# =============================================================================

CHANGELOG_GUIDELINES = f"""{AUDIENCE_RULES}

{STRUCTURE_RULES}

{INTERNAL_CONTENT_RULES}"""
