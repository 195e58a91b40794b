from __future__ import annotations

import pytest

from opencode_action.core.errors import EntityNotFoundError
from opencode_action.domain.context_assembler import ContextAssembler
from opencode_action.domain.run_context import RunContext
from opencode_action.domain.trigger import TriggerEvent
from opencode_action.integrations.github.github_client import IssueDetails, PullRequestDetails

_STATUS_COMMENT_ID = 900
_TRIGGER_COMMENT_ID = 901


def _comment(database_id: int, body: str, login: str = "alice") -> dict:
    return {
        "id": f"IC_{database_id}",
        "databaseId": database_id,
        "body": body,
        "author": {"login": login},
        "createdAt": "2024-01-02T00:00:00Z",
    }


def _issue(comments: list[dict]) -> IssueDetails:
    return IssueDetails.model_validate(
        {
            "title": "Typo in README",
            "body": "The word 'teh' should be 'the'.",
            "author": {"login": "alice"},
            "createdAt": "2024-01-01T00:00:00Z",
            "state": "OPEN",
            "comments": {"nodes": comments},
        }
    )


def _pull_request(
    *, comments: list[dict], files: list[dict], reviews: list[dict]
) -> PullRequestDetails:
    return PullRequestDetails.model_validate(
        {
            "title": "Add feature",
            "body": "Implements the feature.",
            "author": {"login": "bob"},
            "baseRefName": "main",
            "headRefName": "feature/x",
            "headRefOid": "abcdef1234567890",
            "createdAt": "2024-01-01T00:00:00Z",
            "additions": 10,
            "deletions": 2,
            "state": "OPEN",
            "commits": {
                "totalCount": 1,
                "nodes": [
                    {
                        "commit": {
                            "oid": "abcdef1234567890",
                            "message": "Add feature\n\nLonger description",
                            "author": {"name": "Bob", "email": "bob@example.com"},
                        }
                    }
                ],
            },
            "files": {"nodes": files},
            "comments": {"nodes": comments},
            "reviews": {"nodes": reviews},
        }
    )


class _FakeGitHubClient:
    def __init__(
        self,
        *,
        issue: IssueDetails | None = None,
        pull_request: PullRequestDetails | None = None,
    ) -> None:
        self._issue = issue
        self._pull_request = pull_request

    def get_issue_details(self, *, repo: str, issue_number: int) -> IssueDetails | None:
        return self._issue

    def get_pull_request_details(self, *, repo: str, pr_number: int) -> PullRequestDetails | None:
        return self._pull_request


def _context(*, is_pull_request: bool) -> RunContext:
    return RunContext(
        trigger=TriggerEvent(
            kind="issue_comment",
            owner="owner",
            repo="repo",
            actor="octocat",
            number=42,
            comment_id=_TRIGGER_COMMENT_ID,
            comment_body="hey opencode, fix it",
            is_pull_request=is_pull_request,
        ),
        run_id="1",
        model="m",
    )


def test_issue_context_renders_fixed_order_and_excludes_own_comments() -> None:
    gh = _FakeGitHubClient(
        issue=_issue(
            [
                _comment(10, "I can reproduce this"),
                _comment(_STATUS_COMMENT_ID, "opencode started..."),
                _comment(_TRIGGER_COMMENT_ID, "hey opencode, fix it"),
            ]
        )
    )
    bundle = ContextAssembler(github_client=gh).assemble(  # type: ignore[arg-type]
        context=_context(is_pull_request=False), status_comment_id=_STATUS_COMMENT_ID
    )

    assert bundle.kind == "issue"
    assert bundle.title == "Typo in README"
    assert bundle.head_ref is None
    assert bundle.text == "\n".join(
        [
            "Here is the context for the issue:",
            "- Title: Typo in README",
            "- Body: The word 'teh' should be 'the'.",
            "- Author: alice",
            "- Created At: 2024-01-01T00:00:00Z",
            "- State: OPEN",
            "- Comments:",
            "  - alice at 2024-01-02T00:00:00Z: I can reproduce this",
        ]
    )


def test_issue_context_omits_comments_section_when_only_own_comments() -> None:
    gh = _FakeGitHubClient(
        issue=_issue(
            [
                _comment(_STATUS_COMMENT_ID, "opencode started..."),
                _comment(_TRIGGER_COMMENT_ID, "hey opencode, fix it"),
            ]
        )
    )
    bundle = ContextAssembler(github_client=gh).assemble(  # type: ignore[arg-type]
        context=_context(is_pull_request=False), status_comment_id=_STATUS_COMMENT_ID
    )

    assert "Comments" not in bundle.text
    assert bundle.text.endswith("- State: OPEN")


def test_pull_request_context_renders_all_sections() -> None:
    gh = _FakeGitHubClient(
        pull_request=_pull_request(
            comments=[
                _comment(11, "Looks good", login="carol"),
                _comment(_STATUS_COMMENT_ID, "opencode started..."),
                _comment(_TRIGGER_COMMENT_ID, "hey opencode, fix it"),
            ],
            files=[
                {"path": "src/app.py", "additions": 8, "deletions": 2, "changeType": "MODIFIED"},
            ],
            reviews=[
                {
                    "databaseId": 70,
                    "author": {"login": "dave"},
                    "body": "Please rename",
                    "state": "CHANGES_REQUESTED",
                    "submittedAt": "2024-01-03T00:00:00Z",
                    "comments": {
                        "nodes": [
                            {"body": "rename this", "path": "src/app.py", "line": 4},
                            {"body": "outdated", "path": "src/old.py", "line": None},
                        ]
                    },
                }
            ],
        )
    )
    bundle = ContextAssembler(github_client=gh).assemble(  # type: ignore[arg-type]
        context=_context(is_pull_request=True), status_comment_id=_STATUS_COMMENT_ID
    )

    assert bundle.kind == "pr"
    assert bundle.head_ref == "feature/x"
    lines = bundle.text.splitlines()
    assert lines[0] == "Here is the context for the pull request:"
    assert "- Base Branch: main" in lines
    assert "- Head Branch: feature/x" in lines
    assert "- Head Commit: abcdef1234567890" in lines
    assert "- Additions: 10" in lines
    assert "- Deletions: 2" in lines
    assert "- Total Commits: 1" in lines
    assert "- Changed Files: 1 files" in lines
    assert "  - carol at 2024-01-02T00:00:00Z: Looks good" in lines
    assert "  - abcdef1 Add feature (Bob)" in lines
    assert "  - src/app.py (MODIFIED) +8/-2" in lines
    assert "  - dave at 2024-01-03T00:00:00Z:" in lines
    assert "    - Review body: Please rename" in lines
    assert "      - src/app.py:4: rename this" in lines
    assert "      - src/old.py:?: outdated" in lines
    assert "opencode started..." not in bundle.text
    assert "hey opencode, fix it" not in bundle.text
    assert lines.index("- Comments:") < lines.index("- Changed files:") < lines.index("- Reviews:")


def test_pull_request_context_omits_empty_sections() -> None:
    gh = _FakeGitHubClient(pull_request=_pull_request(comments=[], files=[], reviews=[]))
    bundle = ContextAssembler(github_client=gh).assemble(  # type: ignore[arg-type]
        context=_context(is_pull_request=True), status_comment_id=_STATUS_COMMENT_ID
    )

    assert "- Comments:" not in bundle.text
    assert "- Changed files:" not in bundle.text
    assert "- Reviews:" not in bundle.text
    assert "- Changed Files: 0 files" in bundle.text


@pytest.mark.parametrize("is_pull_request", [False, True])
def test_missing_entity_raises_not_found(is_pull_request: bool) -> None:
    assembler = ContextAssembler(github_client=_FakeGitHubClient())  # type: ignore[arg-type]

    with pytest.raises(EntityNotFoundError, match="#42 not found"):
        assembler.assemble(
            context=_context(is_pull_request=is_pull_request),
            status_comment_id=_STATUS_COMMENT_ID,
        )
