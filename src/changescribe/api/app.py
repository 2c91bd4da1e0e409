from __future__ import annotations

import traceback
from datetime import datetime, timezone
from typing import Optional

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from langchain_core.runnables import Runnable
from pydantic import BaseModel, Field

from changescribe.agents.changelog import generate_changelog
from changescribe.agents.questions import run_question_generation
from changescribe.core.errors import ChangescribeError, EmptyResult, Unauthorized
from changescribe.core.ports import ChatStreamer, CredentialStore, EntryStore, SessionProvider
from changescribe.core.settings import PipelineSettings
from changescribe.core.types import Commit, GenerationRequest, Session
from changescribe.github.client.commits_api import list_commits_with_diffs, list_repositories
from changescribe.github.client.github_client import GitHubClient
from changescribe.llm.openrouter import OpenRouterClient
from changescribe.llm.sse import reassemble_sse
from changescribe.store.memory import EnvCredentialStore, HeaderSessionProvider, InMemoryEntryStore

load_dotenv()

RECENT_ENTRY_LIMIT = 5


class PublishRequest(BaseModel):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    content: str = Field(min_length=1)


def create_app(
    settings: Optional[PipelineSettings] = None,
    sessions: Optional[SessionProvider] = None,
    credentials: Optional[CredentialStore] = None,
    entries: Optional[EntryStore] = None,
    llm: Optional[ChatStreamer] = None,
    question_chain: Optional[Runnable] = None,
    github_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the HTTP API around the generation pipeline.

    Collaborators default to the local-use implementations: header session,
    GITHUB_TOKEN credential, in-memory entries, OpenRouter from env.
    """
    settings = settings or PipelineSettings.from_env()
    sessions = sessions or HeaderSessionProvider()
    credentials = credentials or EnvCredentialStore()
    entries = entries or InMemoryEntryStore()

    app = FastAPI(title="changescribe")

    @app.exception_handler(ChangescribeError)
    async def handle_changescribe_error(request: Request, error: ChangescribeError) -> JSONResponse:
        return JSONResponse(
            status_code=error.status_code,
            content={"error": error.code, "message": error.message},
        )

    # ==========================================================================
    # HELPERS
    # ==========================================================================

    async def require_session(request: Request) -> Session:
        session = await sessions.get_current_session(request)
        if session is None:
            raise Unauthorized("Unauthorized")
        return session

    async def require_github(request: Request) -> tuple[Session, GitHubClient]:
        session = await require_session(request)
        token = await credentials.get_access_token(session.user_id, "github")
        if not token:
            raise Unauthorized("GitHub account not found")
        gh = GitHubClient(token, base_url=settings.github_api_url, transport=github_transport)
        return session, gh

    async def load_commits(body: GenerationRequest, session: Session, gh: GitHubClient) -> list[Commit]:
        """Resolve the window, fetch commits with diffs, apply the commit-count bound."""
        since = body.since

        if body.since_last:
            repo_id = await entries.find_repo_id(session.user_id, body.owner, body.repo)
            last_timestamp = await entries.find_last_entry_timestamp(repo_id) if repo_id else None
            if last_timestamp is None:
                raise EmptyResult("No previous changelog for this project")
            since = last_timestamp.isoformat()
            print(f"[Changescribe] 🕰️ Using since last changelog: {since}")

        print(f"[Changescribe] 🔎 Fetching commits for {body.owner}/{body.repo} since: {since} limit: {body.limit}")
        commits = await list_commits_with_diffs(
            body.owner,
            body.repo,
            gh,
            since=since,
            until=body.until,
            max_commits=settings.max_commits,
        )
        print(f"[Changescribe] 📥 Fetched {len(commits)} commits from GitHub")

        if not commits:
            raise EmptyResult(
                "No commits since last changelog" if body.since_last else "No commits found in this range"
            )

        effective_limit = min(body.limit or settings.max_commits, settings.max_commits)
        if len(commits) > effective_limit:
            print(f"[Changescribe] ✂️ Capped to {effective_limit} commits (from {len(commits)})")
            commits = commits[:effective_limit]

        return commits

    # ==========================================================================
    # ROUTES
    # ==========================================================================

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.get("/api/repos")
    async def repos(request: Request):
        _, gh = await require_github(request)
        repositories = await list_repositories(gh)
        return [repository.model_dump() for repository in repositories]

    @app.get("/api/commits")
    async def commits(request: Request, owner: str, repo: str):
        session, gh = await require_github(request)
        fetched = await load_commits(GenerationRequest(owner=owner, repo=repo), session, gh)
        return [{**commit.model_dump(), "subject": commit.subject} for commit in fetched]

    @app.post("/api/generate/questions")
    async def generate_questions(request: Request, body: GenerationRequest):
        session, gh = await require_github(request)
        fetched = await load_commits(body, session, gh)

        outcome = await run_question_generation(
            fetched,
            body.additional_context,
            settings=settings,
            chain=question_chain,
        )
        if outcome.status == "failed":
            print(f"[Changescribe] 🔇 No clarifying questions ({outcome.reason})")

        return {
            "questions": [question.model_dump() for question in outcome.questions],
            "status": outcome.status,
        }

    @app.post("/api/generate")
    async def generate(request: Request, body: GenerationRequest):
        session, gh = await require_github(request)
        model_client = llm or OpenRouterClient.from_settings(settings)
        fetched = await load_commits(body, session, gh)

        print(f"[Changescribe] 🤖 Generating changelog from {len(fetched)} commits...")
        stream = generate_changelog(
            fetched,
            model_client,
            context=body.additional_context,
            answers=body.clarifying_answers,
            settings=settings,
        )
        return StreamingResponse(reassemble_sse(stream), media_type="text/plain; charset=utf-8")

    @app.post("/api/publish")
    async def publish(request: Request, body: PublishRequest):
        session = await require_session(request)
        try:
            repo_id = await entries.ensure_repo_id(session.user_id, body.owner, body.repo)
            entry_date = datetime.now(timezone.utc).date().isoformat()
            entry_id = await entries.create_entry(repo_id, body.content, entry_date)
        except Exception as error:
            print(f"[Changescribe] ❌ Failed to save changelog: {error}")
            traceback.print_exc()
            return JSONResponse(status_code=500, content={"error": "publish_failed", "message": "Failed to save changelog"})

        print(f"[Changescribe] ✅ Published changelog {entry_id} for {body.owner}/{body.repo}")
        return {"success": True, "id": entry_id, "url": f"/{body.owner}/{body.repo}/changelog"}

    @app.get("/api/entries")
    async def recent_entries(request: Request):
        session = await require_session(request)
        return await entries.list_recent_entries(session.user_id, limit=RECENT_ENTRY_LIMIT)

    @app.get("/api/changelog/{owner}/{repo}")
    async def published_entries(request: Request, owner: str, repo: str):
        session = await require_session(request)
        repo_id = await entries.find_repo_id(session.user_id, owner, repo)
        if repo_id is None:
            return []
        published = await entries.list_published_entries(repo_id)
        return [entry.model_dump(mode="json") for entry in published]

    return app


app = create_app()
