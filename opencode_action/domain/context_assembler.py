"""Issue / pull request context for the agent prompt.

Fetches metadata with one GraphQL query and renders it as a labeled text
block. Connections are read from a single page of up to 100 nodes; anything
beyond that is not shown to the agent.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from opencode_action.core.errors import EntityNotFoundError
from opencode_action.domain.run_context import RunContext
from opencode_action.integrations.github.github_client import (
    Actor,
    CommentNode,
    Commit,
    GitHubClient,
    IssueDetails,
    PullRequestDetails,
    Review,
)


@dataclass(frozen=True)
class ContextBundle:
    """Rendered context handed to the agent exactly once."""

    kind: str
    number: int
    title: str
    text: str
    head_ref: str | None = None


class ContextAssembler:
    """Builds a ContextBundle for the triggering issue or pull request."""

    _logger = logging.getLogger(__name__)

    def __init__(self, *, github_client: GitHubClient) -> None:
        self._github_client = github_client

    def assemble(self, *, context: RunContext, status_comment_id: int | None) -> ContextBundle:
        """Fetches and renders context.

        Comments posted by this run (the status comment) and the triggering
        comment itself are left out.

        Raises:
            EntityNotFoundError: If the issue or pull request does not resolve.
        """

        trigger = context.trigger
        excluded_ids = {trigger.comment_id}
        if status_comment_id is not None:
            excluded_ids.add(status_comment_id)

        if trigger.is_pull_request:
            self._logger.info(
                "fetching prompt data for PR: repo=%s pr=%s", context.repo, trigger.number
            )
            pr = self._github_client.get_pull_request_details(
                repo=context.repo, pr_number=trigger.number
            )
            if pr is None:
                raise EntityNotFoundError(f"PR #{trigger.number} not found")
            return ContextBundle(
                kind="pr",
                number=trigger.number,
                title=pr.title,
                text=render_pull_request_context(pr, excluded_comment_ids=excluded_ids),
                head_ref=pr.head_ref_name,
            )

        self._logger.info(
            "fetching prompt data for issue: repo=%s issue=%s", context.repo, trigger.number
        )
        issue = self._github_client.get_issue_details(
            repo=context.repo, issue_number=trigger.number
        )
        if issue is None:
            raise EntityNotFoundError(f"Issue #{trigger.number} not found")
        return ContextBundle(
            kind="issue",
            number=trigger.number,
            title=issue.title,
            text=render_issue_context(issue, excluded_comment_ids=excluded_ids),
        )


def render_issue_context(issue: IssueDetails, *, excluded_comment_ids: set[int]) -> str:
    comments = _render_comments(issue.comments.nodes, excluded_comment_ids)
    lines = [
        "Here is the context for the issue:",
        f"- Title: {issue.title}",
        f"- Body: {issue.body or ''}",
        f"- Author: {_login(issue.author)}",
        f"- Created At: {issue.created_at}",
        f"- State: {issue.state}",
    ]
    lines.extend(_section("- Comments:", comments))
    return "\n".join(lines)


def render_pull_request_context(
    pr: PullRequestDetails, *, excluded_comment_ids: set[int]
) -> str:
    comments = _render_comments(pr.comments.nodes, excluded_comment_ids)
    commits = [_render_commit(node.commit) for node in pr.commits.nodes]
    file_nodes = pr.files.nodes if pr.files is not None else []
    files = [
        f"  - {f.path} ({f.change_type}) +{f.additions}/-{f.deletions}" for f in file_nodes
    ]
    reviews: list[str] = []
    for review in pr.reviews.nodes:
        reviews.extend(_render_review(review))

    lines = [
        "Here is the context for the pull request:",
        f"- Title: {pr.title}",
        f"- Body: {pr.body or ''}",
        f"- Author: {_login(pr.author)}",
        f"- Created At: {pr.created_at}",
        f"- Base Branch: {pr.base_ref_name}",
        f"- Head Branch: {pr.head_ref_name}",
        f"- Head Commit: {pr.head_ref_oid}",
        f"- State: {pr.state}",
        f"- Additions: {pr.additions}",
        f"- Deletions: {pr.deletions}",
        f"- Total Commits: {pr.commits.total_count}",
        f"- Changed Files: {len(file_nodes)} files",
    ]
    lines.extend(_section("- Comments:", comments))
    lines.extend(_section("- Commits:", commits))
    lines.extend(_section("- Changed files:", files))
    lines.extend(_section("- Reviews:", reviews))
    return "\n".join(lines)


def _render_comments(nodes: Iterable[CommentNode], excluded_ids: set[int]) -> list[str]:
    return [
        f"  - {_login(c.author)} at {c.created_at}: {c.body}"
        for c in nodes
        if c.database_id not in excluded_ids
    ]


def _render_commit(commit: Commit) -> str:
    line = f"  - {commit.oid[:7]} {_first_line(commit.message)}"
    if commit.author is not None and commit.author.name:
        line += f" ({commit.author.name})"
    return line


def _render_review(review: Review) -> list[str]:
    inline = [
        f"      - {c.path}:{c.line if c.line is not None else '?'}: {c.body}"
        for c in review.comments.nodes
    ]
    lines = [
        f"  - {_login(review.author)} at {review.submitted_at or ''}:",
        f"    - Review body: {review.body}",
    ]
    lines.extend(_section("    - Comments:", inline))
    return lines


def _section(heading: str, items: list[str]) -> list[str]:
    return [heading, *items] if items else []


def _login(actor: Actor | None) -> str:
    # Deleted accounts come back as a null author.
    return actor.login if actor is not None else "ghost"


def _first_line(text: str) -> str:
    return text.strip().splitlines()[0] if text.strip() else ""
