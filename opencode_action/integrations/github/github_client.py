"""GitHub REST and GraphQL API wrapper.

REST v3 endpoints are used for writes and permission checks; issue and pull
request context is read with a single GraphQL query. Authentication is
performed via ``Authorization: Bearer <token>`` header.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field


class GitHubApiError(RuntimeError):
    """Raised when GitHub API returns a non-success response."""

    def __init__(self, *, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error: status={status_code}, message={message}")
        self.status_code = status_code
        self.message = message


class IssueComment(BaseModel):
    """Subset of GitHub Issue Comment fields used by the action."""

    id: int = Field(..., ge=1)
    body: str | None = None


class Repository(BaseModel):
    """Subset of repository fields used by the action."""

    full_name: str
    default_branch: str


class CollaboratorPermission(BaseModel):
    """Response of the collaborator permission endpoint."""

    permission: str


class PullRequestCreated(BaseModel):
    """Subset of PR creation response fields used by the action."""

    number: int = Field(..., ge=1)
    html_url: str
    body: str | None = None


class _GraphQLModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Actor(_GraphQLModel):
    login: str


class CommentNode(_GraphQLModel):
    database_id: int | None = Field(default=None, alias="databaseId")
    body: str = ""
    author: Actor | None = None
    created_at: str = Field(default="", alias="createdAt")


class CommentConnection(_GraphQLModel):
    nodes: list[CommentNode] = Field(default_factory=list)


class CommitAuthor(_GraphQLModel):
    name: str | None = None
    email: str | None = None


class Commit(_GraphQLModel):
    oid: str
    message: str = ""
    author: CommitAuthor | None = None


class CommitNode(_GraphQLModel):
    commit: Commit


class CommitConnection(_GraphQLModel):
    total_count: int = Field(default=0, alias="totalCount")
    nodes: list[CommitNode] = Field(default_factory=list)


class ChangedFile(_GraphQLModel):
    path: str
    additions: int = 0
    deletions: int = 0
    change_type: str = Field(default="MODIFIED", alias="changeType")


class ChangedFileConnection(_GraphQLModel):
    nodes: list[ChangedFile] = Field(default_factory=list)


class ReviewCommentNode(_GraphQLModel):
    database_id: int | None = Field(default=None, alias="databaseId")
    body: str = ""
    path: str = ""
    line: int | None = None
    author: Actor | None = None
    created_at: str = Field(default="", alias="createdAt")


class ReviewCommentConnection(_GraphQLModel):
    nodes: list[ReviewCommentNode] = Field(default_factory=list)


class Review(_GraphQLModel):
    database_id: int | None = Field(default=None, alias="databaseId")
    author: Actor | None = None
    body: str = ""
    state: str = ""
    submitted_at: str | None = Field(default=None, alias="submittedAt")
    comments: ReviewCommentConnection = Field(default_factory=ReviewCommentConnection)


class ReviewConnection(_GraphQLModel):
    nodes: list[Review] = Field(default_factory=list)


class IssueDetails(_GraphQLModel):
    """Issue fields read by the context query."""

    title: str
    body: str | None = None
    author: Actor | None = None
    created_at: str = Field(default="", alias="createdAt")
    state: str = ""
    comments: CommentConnection = Field(default_factory=CommentConnection)


class PullRequestDetails(IssueDetails):
    """Pull request fields read by the context query."""

    base_ref_name: str = Field(alias="baseRefName")
    head_ref_name: str = Field(alias="headRefName")
    head_ref_oid: str = Field(default="", alias="headRefOid")
    additions: int = 0
    deletions: int = 0
    commits: CommitConnection = Field(default_factory=CommitConnection)
    files: ChangedFileConnection | None = None
    reviews: ReviewConnection = Field(default_factory=ReviewConnection)


# Connections are capped at a single page of 100 nodes.
ISSUE_CONTEXT_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    issue(number: $number) {
      title
      body
      author { login }
      createdAt
      state
      comments(first: 100) {
        nodes { id databaseId body author { login } createdAt }
      }
    }
  }
}
"""

PULL_REQUEST_CONTEXT_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      title
      body
      author { login }
      baseRefName
      headRefName
      headRefOid
      createdAt
      additions
      deletions
      state
      commits(first: 100) {
        totalCount
        nodes { commit { oid message author { name email } } }
      }
      files(first: 100) {
        nodes { path additions deletions changeType }
      }
      comments(first: 100) {
        nodes { id databaseId body author { login } createdAt }
      }
      reviews(first: 100) {
        nodes {
          id
          databaseId
          author { login }
          body
          state
          submittedAt
          comments(first: 100) {
            nodes { id databaseId body path line author { login } createdAt }
          }
        }
      }
    }
  }
}
"""


@dataclass(frozen=True)
class GitHubClientConfig:
    """GitHub client configuration."""

    api_base_url: str
    token: str
    graphql_url: str | None = None


class GitHubClient:
    """Thin wrapper around the GitHub API."""

    def __init__(
        self,
        *,
        config: GitHubClientConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._graphql_url = config.graphql_url or config.api_base_url.rstrip("/") + "/graphql"
        self._client = httpx.Client(
            base_url=self._config.api_base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self._config.token}",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "opencode-action",
            },
            timeout=httpx.Timeout(30.0),
            transport=transport,
        )

    def close(self) -> None:
        """Closes underlying HTTP client."""

        self._client.close()

    def get_collaborator_permission(self, *, repo: str, username: str) -> str:
        """Returns the collaborator permission level (admin/write/read/none)."""

        resp = self._client.get(f"/repos/{repo}/collaborators/{username}/permission")
        self._raise_for_error(resp)
        return CollaboratorPermission.model_validate(resp.json()).permission

    def create_issue_comment(self, *, repo: str, issue_number: int, body: str) -> IssueComment:
        """Creates a comment on an issue or pull request timeline."""

        resp = self._client.post(
            f"/repos/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )
        self._raise_for_error(resp)
        return IssueComment.model_validate(resp.json())

    def update_issue_comment(self, *, repo: str, comment_id: int, body: str) -> IssueComment:
        """Replaces the full body of an existing comment."""

        resp = self._client.patch(
            f"/repos/{repo}/issues/comments/{comment_id}",
            json={"body": body},
        )
        self._raise_for_error(resp)
        return IssueComment.model_validate(resp.json())

    def get_repository(self, *, repo: str) -> Repository:
        """Fetches repository metadata."""

        resp = self._client.get(f"/repos/{repo}")
        self._raise_for_error(resp)
        return Repository.model_validate(resp.json())

    def create_pull_request(
        self,
        *,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> PullRequestCreated:
        """Creates a Ready PR (draft is disabled)."""

        resp = self._client.post(
            f"/repos/{repo}/pulls",
            json={
                "title": title,
                "head": head,
                "base": base,
                "body": body,
                "draft": False,
            },
        )
        self._raise_for_error(resp)
        return PullRequestCreated.model_validate(resp.json())

    def get_issue_details(self, *, repo: str, issue_number: int) -> IssueDetails | None:
        """Reads issue context; returns None when the issue does not resolve."""

        data = self._query_repository(ISSUE_CONTEXT_QUERY, repo=repo, number=issue_number)
        node = data.get("issue")
        if node is None:
            return None
        return IssueDetails.model_validate(node)

    def get_pull_request_details(self, *, repo: str, pr_number: int) -> PullRequestDetails | None:
        """Reads pull request context; returns None when the PR does not resolve."""

        data = self._query_repository(PULL_REQUEST_CONTEXT_QUERY, repo=repo, number=pr_number)
        node = data.get("pullRequest")
        if node is None:
            return None
        return PullRequestDetails.model_validate(node)

    def graphql(self, *, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Runs a GraphQL query and returns its ``data`` object.

        ``NOT_FOUND`` errors are tolerated because GitHub reports a missing
        issue as both an error and a ``null`` node; callers check the node.
        """

        resp = self._client.post(self._graphql_url, json={"query": query, "variables": variables})
        self._raise_for_error(resp)
        payload = resp.json()
        if not isinstance(payload, dict):
            raise GitHubApiError(
                status_code=resp.status_code,
                message="Unexpected payload type for GraphQL response.",
            )
        errors = payload.get("errors") or []
        blocking = [e for e in errors if not (isinstance(e, dict) and e.get("type") == "NOT_FOUND")]
        if blocking:
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in blocking
            )
            raise GitHubApiError(status_code=resp.status_code, message=messages)
        data = payload.get("data")
        if not isinstance(data, dict):
            raise GitHubApiError(
                status_code=resp.status_code,
                message="GraphQL response did not include data.",
            )
        return data

    def _query_repository(self, query: str, *, repo: str, number: int) -> dict[str, Any]:
        owner, _, name = repo.partition("/")
        data = self.graphql(query=query, variables={"owner": owner, "repo": name, "number": number})
        repository = data.get("repository")
        if not isinstance(repository, dict):
            return {}
        return repository

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> None:
        if 200 <= resp.status_code < 300:
            return
        message = resp.text
        raise GitHubApiError(status_code=resp.status_code, message=message)
