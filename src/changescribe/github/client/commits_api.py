from __future__ import annotations

import asyncio
from typing import Optional

from changescribe.core.settings import DEFAULT_MAX_COMMITS
from changescribe.core.types import Commit, Repository
from changescribe.github.client.github_client import GitHubClient


# =============================================================================
# REPOSITORIES
# =============================================================================

async def list_repositories(gh: GitHubClient) -> list[Repository]:
    """List repositories the token can access, most recently updated first."""
    payload = await gh.get_json("/user/repos", params={"sort": "updated", "per_page": "100"})
    return [Repository.from_github(repo) for repo in payload]


# =============================================================================
# COMMITS
# =============================================================================

async def list_commits(
    owner: str,
    repo: str,
    gh: GitHubClient,
    since: Optional[str] = None,
    until: Optional[str] = None,
) -> list[dict]:
    """List commits in the window, newest first (first page of 100)."""
    params = {"per_page": "100"}
    if since:
        params["since"] = since
    if until:
        params["until"] = until
    return await gh.get_json(f"/repos/{owner}/{repo}/commits", params=params)


async def fetch_commit(owner: str, repo: str, sha: str, gh: GitHubClient) -> Commit:
    """Fetch a single commit together with its file-level diff."""
    payload = await gh.get_json(f"/repos/{owner}/{repo}/commits/{sha}")
    return Commit.from_github(payload)


async def list_commits_with_diffs(
    owner: str,
    repo: str,
    gh: GitHubClient,
    since: Optional[str] = None,
    until: Optional[str] = None,
    max_commits: int = DEFAULT_MAX_COMMITS,
) -> list[Commit]:
    """
    List commits in the window and enrich each with its diff.

    Only the newest max_commits get a diff fetch; older commits are dropped
    from the tail. Diff fetches run concurrently and keep list order.
    """
    listed = await list_commits(owner, repo, gh, since=since, until=until)

    if len(listed) > max_commits:
        print(f"[Changescribe] ✂️ {owner}/{repo}: capping diff fetch at {max_commits} of {len(listed)} commits")
        listed = listed[:max_commits]

    return list(await asyncio.gather(*(
        fetch_commit(owner, repo, listed_commit["sha"], gh)
        for listed_commit in listed
    )))
