"""Single status comment owned by a run.

The comment is created once when work starts and rewritten in full when the
run reaches a terminal state. Every body carries a footer linking back to the
workflow run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from opencode_action.domain.run_context import RunContext
from opencode_action.integrations.github.github_client import GitHubClient


@dataclass(frozen=True)
class StatusComment:
    """Handle to the run's status comment."""

    id: int
    body: str


def build_comment_body(content: str, *, run_url: str, share_url: str | None = None) -> str:
    """Appends the run footer (and optional shared-session link) to ``content``."""

    share_part = f"[shared session]({share_url}) | " if share_url else ""
    return f"{content}\n\n{share_part}[view run]({run_url})"


class StatusReporter:
    """Creates and rewrites the run's status comment."""

    _logger = logging.getLogger(__name__)

    def __init__(self, *, github_client: GitHubClient, context: RunContext) -> None:
        self._github_client = github_client
        self._context = context
        self._opened = False

    def open(self, initial_text: str) -> StatusComment:
        """Posts the status comment. May be called once per run."""

        if self._opened:
            raise RuntimeError("Status comment was already opened for this run.")
        self._opened = True
        body = build_comment_body(initial_text, run_url=self._context.run_url)
        self._logger.info(
            "creating status comment: repo=%s number=%s",
            self._context.repo,
            self._context.trigger.number,
        )
        created = self._github_client.create_issue_comment(
            repo=self._context.repo,
            issue_number=self._context.trigger.number,
            body=body,
        )
        self._logger.info("status comment created: comment_id=%s", created.id)
        return StatusComment(id=created.id, body=body)

    def close(
        self,
        status: StatusComment,
        final_text: str,
        *,
        share_url: str | None = None,
    ) -> StatusComment:
        """Replaces the status comment body with ``final_text``."""

        body = build_comment_body(final_text, run_url=self._context.run_url, share_url=share_url)
        self._logger.info("updating status comment: comment_id=%s", status.id)
        self._github_client.update_issue_comment(
            repo=self._context.repo,
            comment_id=status.id,
            body=body,
        )
        return StatusComment(id=status.id, body=body)
