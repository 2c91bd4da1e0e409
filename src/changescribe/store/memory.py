from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request

from changescribe.core.types import ChangelogEntry, Session

USER_ID_HEADER = "X-User-Id"


@dataclass
class HeaderSessionProvider:
    """
    Session from a trusted header set by an upstream auth proxy.

    Note: Only for local use or behind a proxy that strips client copies
    of the header.
    """
    header_name: str = USER_ID_HEADER

    async def get_current_session(self, request: Request) -> Optional[Session]:
        user_id = request.headers.get(self.header_name, "").strip()
        if not user_id:
            return None
        return Session(user_id=user_id)


@dataclass
class EnvCredentialStore:
    """Single-user credential store backed by the GITHUB_TOKEN env var."""
    env_var: str = "GITHUB_TOKEN"

    async def get_access_token(self, user_id: str, provider_name: str) -> Optional[str]:
        if provider_name != "github":
            return None
        return os.getenv(self.env_var) or None


@dataclass
class _RepoRecord:
    id: str
    user_id: str
    owner: str
    name: str


@dataclass
class InMemoryEntryStore:
    """
    Process-local repo and changelog entry storage.

    Note: This resets on restart. Production deployments plug in a
    database-backed store with the same methods.
    """
    _repos: dict[str, _RepoRecord] = field(default_factory=dict)
    _entries: list[ChangelogEntry] = field(default_factory=list)

    async def find_repo_id(self, user_id: str, owner: str, name: str) -> Optional[str]:
        for repo in self._repos.values():
            if repo.user_id == user_id and repo.owner == owner and repo.name == name:
                return repo.id
        return None

    async def ensure_repo_id(self, user_id: str, owner: str, name: str) -> str:
        existing = await self.find_repo_id(user_id, owner, name)
        if existing:
            return existing
        repo = _RepoRecord(id=str(uuid.uuid4()), user_id=user_id, owner=owner, name=name)
        self._repos[repo.id] = repo
        return repo.id

    async def find_last_entry_timestamp(self, repo_id: str) -> Optional[datetime]:
        timestamps = [entry.created_at for entry in self._entries if entry.repo_id == repo_id]
        return max(timestamps) if timestamps else None

    async def create_entry(self, repo_id: str, content: str, date: str) -> str:
        entry = ChangelogEntry(
            id=str(uuid.uuid4()),
            repo_id=repo_id,
            date=date,
            content=content,
            published=True,
            created_at=datetime.now(timezone.utc),
        )
        self._entries.append(entry)
        return entry.id

    async def list_published_entries(self, repo_id: str) -> list[ChangelogEntry]:
        entries = [entry for entry in self._entries if entry.repo_id == repo_id and entry.published]
        return sorted(entries, key=lambda entry: entry.created_at, reverse=True)

    async def list_recent_entries(self, user_id: str, limit: int = 5) -> list[dict]:
        """Most recent entries across the user's repos, annotated with owner/name."""
        user_repos = {repo.id: repo for repo in self._repos.values() if repo.user_id == user_id}
        entries = [entry for entry in self._entries if entry.repo_id in user_repos]
        entries.sort(key=lambda entry: entry.created_at, reverse=True)

        recent: list[dict] = []
        for entry in entries[:limit]:
            repo = user_repos[entry.repo_id]
            recent.append({
                **entry.model_dump(mode="json"),
                "repo": f"{repo.owner}/{repo.name}",
                "owner": repo.owner,
                "repo_name": repo.name,
            })
        return recent
