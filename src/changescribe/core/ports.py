"""
Interfaces for the collaborators the pipeline depends on.

Authentication, credential storage and entry persistence live outside
this package; the API layer only sees these narrow shapes.
"""
from __future__ import annotations

from datetime import datetime
from typing import AsyncIterator, Optional, Protocol

from fastapi import Request

from changescribe.core.types import ChangelogEntry, Session


class SessionProvider(Protocol):
    async def get_current_session(self, request: Request) -> Optional[Session]: ...


class CredentialStore(Protocol):
    async def get_access_token(self, user_id: str, provider_name: str) -> Optional[str]: ...


class EntryStore(Protocol):
    async def find_repo_id(self, user_id: str, owner: str, name: str) -> Optional[str]: ...

    async def ensure_repo_id(self, user_id: str, owner: str, name: str) -> str: ...

    async def find_last_entry_timestamp(self, repo_id: str) -> Optional[datetime]: ...

    async def create_entry(self, repo_id: str, content: str, date: str) -> str: ...

    async def list_published_entries(self, repo_id: str) -> list[ChangelogEntry]: ...

    async def list_recent_entries(self, user_id: str, limit: int = 5) -> list[dict]: ...


class ChatStreamer(Protocol):
    """A model endpoint that streams one prompt's completion as raw SSE bytes."""

    def stream_chat(self, prompt: str) -> AsyncIterator[bytes]: ...
