from __future__ import annotations

import json

import httpx
import pytest

from opencode_action.integrations.github.github_client import (
    GitHubApiError,
    GitHubClient,
    GitHubClientConfig,
)


def _client(handler) -> GitHubClient:
    return GitHubClient(
        config=GitHubClientConfig(api_base_url="https://api.github.com", token="ghs_token"),
        transport=httpx.MockTransport(handler),
    )


def test_get_collaborator_permission_reads_level() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/owner/repo/collaborators/octocat/permission"
        assert request.headers["Authorization"] == "Bearer ghs_token"
        return httpx.Response(200, json={"permission": "write", "user": {"login": "octocat"}})

    client = _client(handler)
    assert client.get_collaborator_permission(repo="owner/repo", username="octocat") == "write"


def test_non_success_status_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, text="Not Found")

    client = _client(handler)
    with pytest.raises(GitHubApiError) as excinfo:
        client.get_collaborator_permission(repo="owner/repo", username="stranger")
    assert excinfo.value.status_code == 404


def test_create_and_update_issue_comment_send_full_body() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        body = json.loads(request.content)["body"]
        status = 201 if request.method == "POST" else 200
        return httpx.Response(status, json={"id": 77, "body": body})

    client = _client(handler)
    created = client.create_issue_comment(repo="owner/repo", issue_number=42, body="started")
    updated = client.update_issue_comment(repo="owner/repo", comment_id=created.id, body="done")

    assert created.id == 77
    assert updated.body == "done"
    assert requests[0].url.path == "/repos/owner/repo/issues/42/comments"
    assert requests[1].method == "PATCH"
    assert requests[1].url.path == "/repos/owner/repo/issues/comments/77"


def test_create_pull_request_posts_head_and_base() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"full_name": "owner/repo", "default_branch": "dev"})
        payload = json.loads(request.content)
        assert payload["head"] == "issue/issue42-20240101120000"
        assert payload["base"] == "dev"
        assert payload["draft"] is False
        return httpx.Response(201, json={"number": 7, "html_url": "https://github.com/pr/7"})

    client = _client(handler)
    repository = client.get_repository(repo="owner/repo")
    created = client.create_pull_request(
        repo="owner/repo",
        title="Fix typo",
        head="issue/issue42-20240101120000",
        base=repository.default_branch,
        body="body",
    )
    assert created.number == 7


def test_get_issue_details_parses_graphql_payload() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/graphql"
        variables = json.loads(request.content)["variables"]
        assert variables == {"owner": "owner", "repo": "repo", "number": 42}
        return httpx.Response(
            200,
            json={
                "data": {
                    "repository": {
                        "issue": {
                            "title": "Typo",
                            "body": "There is a typo",
                            "author": {"login": "alice"},
                            "createdAt": "2024-01-01T00:00:00Z",
                            "state": "OPEN",
                            "comments": {
                                "nodes": [
                                    {
                                        "id": "IC_1",
                                        "databaseId": 5,
                                        "body": "+1",
                                        "author": None,
                                        "createdAt": "2024-01-02T00:00:00Z",
                                    }
                                ]
                            },
                        }
                    }
                }
            },
        )

    issue = _client(handler).get_issue_details(repo="owner/repo", issue_number=42)
    assert issue is not None
    assert issue.title == "Typo"
    assert issue.author is not None and issue.author.login == "alice"
    assert issue.comments.nodes[0].database_id == 5
    assert issue.comments.nodes[0].author is None


def test_missing_pull_request_returns_none() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "data": {"repository": {"pullRequest": None}},
                "errors": [{"type": "NOT_FOUND", "message": "Could not resolve"}],
            },
        )

    assert _client(handler).get_pull_request_details(repo="owner/repo", pr_number=9) is None


def test_graphql_errors_raise_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "Something went wrong"}]})

    with pytest.raises(GitHubApiError, match="Something went wrong"):
        _client(handler).get_issue_details(repo="owner/repo", issue_number=1)
