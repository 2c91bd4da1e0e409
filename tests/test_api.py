import httpx
import pytest
from fastapi.testclient import TestClient
from langchain_core.runnables import RunnableLambda

from changescribe.api.app import create_app
from changescribe.core.settings import PipelineSettings
from changescribe.store.memory import InMemoryEntryStore

from fakes import FakeStreamer, github_handler

USER = {"X-User-Id": "user-1"}


class FakeCredentials:
    def __init__(self, token: str | None = "gh-token"):
        self.token = token

    async def get_access_token(self, user_id: str, provider_name: str):
        return self.token


async def _no_questions(inputs):
    return {"questions": []}


@pytest.fixture
def github_requests() -> list[httpx.Request]:
    return []


def build_client(
    github_requests,
    commit_count: int = 5,
    llm: FakeStreamer | None = None,
    credentials: FakeCredentials | None = None,
    entries: InMemoryEntryStore | None = None,
    question_chain=None,
    github_transport: httpx.MockTransport | None = None,
) -> TestClient:
    app = create_app(
        settings=PipelineSettings(openrouter_api_key="test-key"),
        credentials=credentials or FakeCredentials(),
        entries=entries or InMemoryEntryStore(),
        llm=llm or FakeStreamer(),
        question_chain=question_chain or RunnableLambda(_no_questions),
        github_transport=github_transport or httpx.MockTransport(github_handler(commit_count, github_requests)),
    )
    return TestClient(app)


def test_health(github_requests):
    assert build_client(github_requests).get("/health").json() == {"ok": True}


def test_missing_session_is_unauthorized(github_requests):
    response = build_client(github_requests).post("/api/generate", json={"owner": "acme", "repo": "app"})

    assert response.status_code == 401
    assert response.json()["error"] == "unauthorized"


def test_missing_github_token_is_unauthorized(github_requests):
    client = build_client(github_requests, credentials=FakeCredentials(token=None))

    response = client.post("/api/generate", json={"owner": "acme", "repo": "app"}, headers=USER)

    assert response.status_code == 401
    assert response.json() == {"error": "unauthorized", "message": "GitHub account not found"}


def test_missing_model_key_fails_before_fetching_commits(github_requests):
    app = create_app(
        settings=PipelineSettings(openrouter_api_key=None),
        credentials=FakeCredentials(),
        entries=InMemoryEntryStore(),
        github_transport=httpx.MockTransport(github_handler(5, github_requests)),
    )

    response = TestClient(app).post("/api/generate", json={"owner": "acme", "repo": "app"}, headers=USER)

    assert response.status_code == 503
    assert response.json() == {"error": "model_not_configured", "message": "OPENROUTER_API_KEY is not set"}
    assert github_requests == []


def test_missing_repo_is_rejected(github_requests):
    response = build_client(github_requests).post("/api/generate", json={"owner": "acme"}, headers=USER)
    assert response.status_code == 422


def test_generate_streams_plain_text(github_requests):
    llm = FakeStreamer(responses=[["## Features\n", "- Feature 0 shipped"]])
    client = build_client(github_requests, llm=llm)

    response = client.post(
        "/api/generate",
        json={
            "owner": "acme",
            "repo": "app",
            "additional_context": "Spring release",
            "clarifying_answers": {"q1": "A: Call it Smart Export"},
        },
        headers=USER,
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text == "## Features\n- Feature 0 shipped"
    assert "Spring release" in llm.prompts[0]
    assert "- q1: A: Call it Smart Export" in llm.prompts[0]


def test_generate_multi_batch_includes_markers(github_requests):
    llm = FakeStreamer(responses=[["d1"], ["d2"], ["d3"], ["final"]])
    client = build_client(github_requests, commit_count=30, llm=llm)

    response = client.post("/api/generate", json={"owner": "acme", "repo": "app"}, headers=USER)

    assert response.text.count("[[progress:") == 3
    assert response.text.count("[[batch-done:") == 3
    assert response.text.endswith("[[merging:3]]final")


def test_limit_clamps_commit_count(github_requests):
    llm = FakeStreamer()
    client = build_client(github_requests, commit_count=20, llm=llm)

    client.post("/api/generate", json={"owner": "acme", "repo": "app", "limit": 3}, headers=USER)

    assert llm.prompts[0].count("## Commit:") == 3


def test_empty_window_is_distinct_from_failure(github_requests):
    llm = FakeStreamer()
    client = build_client(github_requests, commit_count=0, llm=llm)

    response = client.post("/api/generate", json={"owner": "acme", "repo": "app"}, headers=USER)

    assert response.status_code == 404
    assert response.json() == {"error": "no_commits", "message": "No commits found in this range"}
    assert llm.prompts == []


def test_github_failure_is_upstream_unavailable(github_requests):
    client = build_client(
        github_requests,
        github_transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    response = client.post("/api/generate", json={"owner": "acme", "repo": "app"}, headers=USER)

    assert response.status_code == 502
    assert response.json()["error"] == "upstream_unavailable"


def test_model_failure_is_reported_in_stream(github_requests):
    client = build_client(github_requests, llm=FakeStreamer(fail_on_call=0))

    response = client.post("/api/generate", json={"owner": "acme", "repo": "app"}, headers=USER)

    assert response.status_code == 200
    assert response.text == "[[error:OpenRouter error: 503 Service Unavailable]]"


def test_since_last_without_previous_changelog(github_requests):
    response = build_client(github_requests).post(
        "/api/generate",
        json={"owner": "acme", "repo": "app", "since_last": True},
        headers=USER,
    )

    assert response.status_code == 404
    assert response.json()["message"] == "No previous changelog for this project"


def test_publish_then_generate_since_last(github_requests):
    entries = InMemoryEntryStore()
    client = build_client(github_requests, entries=entries)

    published = client.post("/api/publish", json={"owner": "acme", "repo": "app", "content": "## v1"}, headers=USER)
    assert published.json()["success"] is True
    assert published.json()["url"] == "/acme/app/changelog"

    client.post("/api/generate", json={"owner": "acme", "repo": "app", "since_last": True}, headers=USER)

    list_request = github_requests[0]
    assert list_request.url.params["since"].startswith(published_timestamp(client))


def published_timestamp(client: TestClient) -> str:
    entries = client.get("/api/changelog/acme/app", headers=USER).json()
    # Compare to the second, isoformat variants differ in the offset suffix
    return entries[0]["created_at"][:19]


def test_recent_entries(github_requests):
    client = build_client(github_requests)
    for index in range(7):
        client.post("/api/publish", json={"owner": "acme", "repo": "app", "content": f"entry {index}"}, headers=USER)

    recent = client.get("/api/entries", headers=USER).json()

    assert len(recent) == 5
    assert recent[0]["repo"] == "acme/app"
    assert client.get("/api/entries", headers={"X-User-Id": "someone-else"}).json() == []


def test_questions_endpoint_reports_status(github_requests):
    async def one_question(inputs):
        return {"questions": [{"id": "q1", "question": "Name?", "options": [{"label": "A", "text": "Export"}]}]}

    client = build_client(github_requests, question_chain=RunnableLambda(one_question))

    response = client.post("/api/generate/questions", json={"owner": "acme", "repo": "app"}, headers=USER)

    assert response.json()["status"] == "ok"
    assert response.json()["questions"][0]["id"] == "q1"


def test_questions_endpoint_nothing_to_clarify(github_requests):
    response = build_client(github_requests).post(
        "/api/generate/questions",
        json={"owner": "acme", "repo": "app"},
        headers=USER,
    )

    assert response.json() == {"questions": [], "status": "none_needed"}


def test_repos_and_commits(github_requests):
    client = build_client(github_requests, commit_count=2)

    repos = client.get("/api/repos", headers=USER).json()
    commits = client.get("/api/commits", params={"owner": "acme", "repo": "app"}, headers=USER).json()

    assert repos[0]["full_name"] == "acme/app"
    assert [commit["subject"] for commit in commits] == ["Add feature 0", "Add feature 1"]
