import httpx
import pytest

from changescribe.core.errors import Unauthorized, UpstreamUnavailable
from changescribe.github.client.commits_api import list_commits_with_diffs, list_repositories
from changescribe.github.client.github_client import GitHubClient

from fakes import github_handler, run


def make_client(handler) -> GitHubClient:
    return GitHubClient("token-123", transport=httpx.MockTransport(handler))


def test_fetches_commits_with_diffs_in_order():
    requests: list[httpx.Request] = []
    gh = make_client(github_handler(3, requests))

    commits = run(list_commits_with_diffs("acme", "app", gh, since="2026-01-01T00:00:00Z", until="2026-02-01T00:00:00Z"))

    assert [commit.sha for commit in commits] == [f"{index:040x}" for index in range(3)]
    assert commits[0].subject == "Add feature 0"
    assert commits[0].files[0].path == "src/feature_0.py"
    assert commits[0].files[0].patch == "+code"
    assert commits[0].files[1].patch is None

    list_request = requests[0]
    assert list_request.url.params["since"] == "2026-01-01T00:00:00Z"
    assert list_request.url.params["until"] == "2026-02-01T00:00:00Z"
    assert list_request.url.params["per_page"] == "100"
    assert list_request.headers["Authorization"] == "Bearer token-123"


def test_caps_diff_fetches_at_fifty():
    requests: list[httpx.Request] = []
    gh = make_client(github_handler(70, requests))

    commits = run(list_commits_with_diffs("acme", "app", gh))

    assert len(commits) == 50
    assert commits[-1].sha == f"{49:040x}"
    detail_requests = [request for request in requests if request.url.path.startswith("/repos/acme/app/commits/")]
    assert len(detail_requests) == 50


def test_window_without_commits_returns_empty_list():
    gh = make_client(github_handler(0, []))
    assert run(list_commits_with_diffs("acme", "app", gh)) == []


def test_rejected_token_raises_unauthorized():
    gh = make_client(lambda request: httpx.Response(401, json={"message": "Bad credentials"}))

    with pytest.raises(Unauthorized):
        run(list_commits_with_diffs("acme", "app", gh))


def test_server_error_raises_upstream_unavailable():
    gh = make_client(lambda request: httpx.Response(502))

    with pytest.raises(UpstreamUnavailable):
        run(list_commits_with_diffs("acme", "app", gh))


def test_unreachable_host_raises_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamUnavailable):
        run(list_commits_with_diffs("acme", "app", make_client(handler)))


def test_list_repositories():
    requests: list[httpx.Request] = []
    gh = make_client(github_handler(0, requests))

    repositories = run(list_repositories(gh))

    assert repositories[0].full_name == "acme/app"
    assert repositories[0].owner == "acme"
    assert requests[0].url.params["sort"] == "updated"
