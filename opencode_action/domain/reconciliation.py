"""Reconciliation of agent edits back into the repository.

After delegation the working tree is either clean (nothing to do), dirty on a
pull request (commit onto its head branch), or dirty on an issue (new branch
plus a pull request against the default branch). There are no retries; any
git or API failure propagates to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from opencode_action.domain.context_assembler import ContextBundle
from opencode_action.domain.delegation import DelegationInvoker
from opencode_action.domain.run_context import RunContext
from opencode_action.integrations.git.git_ops import GitOps
from opencode_action.integrations.github.github_client import GitHubClient
from opencode_action.rendering.pr_template import PullRequestBodyInput, PullRequestBodyRenderer


class ReconciliationState(str, Enum):
    CLEAN = "clean"
    DIRTY_PR = "dirty_pr"
    DIRTY_ISSUE = "dirty_issue"


@dataclass(frozen=True)
class ReconciliationOutcome:
    """What reconciliation did and what the status comment should say."""

    path: ReconciliationState
    status_text: str
    branch: str | None = None
    summary: str | None = None
    commit_sha: str | None = None
    pull_request_number: int | None = None


def build_branch_name(*, kind: str, number: int, now: datetime) -> str:
    """Returns ``<kind>/<kind><number>-<YYYYMMDDHHMMSS>`` using UTC time."""

    timestamp = now.astimezone(UTC).strftime("%Y%m%d%H%M%S")
    return f"{kind}/{kind}{number}-{timestamp}"


def utc_now() -> datetime:
    return datetime.now(UTC)


class ReconciliationEngine:
    """Persists working-tree changes as a commit or a new pull request."""

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        github_client: GitHubClient,
        git_ops: GitOps,
        pr_body_renderer: PullRequestBodyRenderer,
        repo_dir: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._github_client = github_client
        self._git_ops = git_ops
        self._pr_body_renderer = pr_body_renderer
        self._repo_dir = repo_dir
        self._clock = clock

    def prepare(self, *, bundle: ContextBundle) -> None:
        """Checks out the pull request head branch so edits land on it."""

        if bundle.head_ref is None:
            return
        self._logger.info("checking out PR branch: branch=%s", bundle.head_ref)
        self._git_ops.checkout_remote_branch(repo_dir=self._repo_dir, branch=bundle.head_ref)

    def observe(self, *, context: RunContext) -> ReconciliationState:
        """Classifies the working tree after delegation."""

        self._logger.info("checking if branch is dirty: repo_dir=%s", self._repo_dir)
        if not self._git_ops.is_dirty(repo_dir=self._repo_dir):
            return ReconciliationState.CLEAN
        if context.trigger.is_pull_request:
            return ReconciliationState.DIRTY_PR
        return ReconciliationState.DIRTY_ISSUE

    def reconcile(
        self,
        *,
        context: RunContext,
        bundle: ContextBundle,
        response: str,
        invoker: DelegationInvoker,
    ) -> ReconciliationOutcome:
        state = self.observe(context=context)
        self._logger.info("reconciling: state=%s", state.value)
        if state is ReconciliationState.CLEAN:
            outcome = ReconciliationOutcome(path=state, status_text=response)
        else:
            summary = invoker.summarize(response=response, fallback=f"Fix issue: {bundle.title}")
            self._logger.info("change summary: %s", summary)
            if state is ReconciliationState.DIRTY_PR:
                outcome = self._push_to_current_branch(
                    bundle=bundle, response=response, summary=summary
                )
            else:
                outcome = self._push_to_new_branch_and_open_pr(
                    context=context, bundle=bundle, response=response, summary=summary
                )
        self._logger.info(
            "reconciliation done: path=%s branch=%s pr_number=%s",
            outcome.path.value,
            outcome.branch,
            outcome.pull_request_number,
        )
        return outcome

    def _push_to_current_branch(
        self, *, bundle: ContextBundle, response: str, summary: str
    ) -> ReconciliationOutcome:
        branch = bundle.head_ref
        if branch is None:
            raise ValueError("Pull request context did not include a head branch.")
        self._logger.info("pushing to current branch: branch=%s", branch)
        sha = self._git_ops.commit_all(repo_dir=self._repo_dir, message=summary)
        self._git_ops.push_branch(repo_dir=self._repo_dir, branch=branch)
        return ReconciliationOutcome(
            path=ReconciliationState.DIRTY_PR,
            status_text=response,
            branch=branch,
            summary=summary,
            commit_sha=sha,
        )

    def _push_to_new_branch_and_open_pr(
        self,
        *,
        context: RunContext,
        bundle: ContextBundle,
        response: str,
        summary: str,
    ) -> ReconciliationOutcome:
        branch = build_branch_name(
            kind=context.trigger.entity_kind,
            number=context.trigger.number,
            now=self._clock(),
        )
        self._logger.info("pushing to new branch: branch=%s", branch)
        self._git_ops.create_branch(repo_dir=self._repo_dir, branch=branch)
        sha = self._git_ops.commit_all(repo_dir=self._repo_dir, message=summary)
        self._git_ops.push_branch(repo_dir=self._repo_dir, branch=branch, set_upstream=True)

        repository = self._github_client.get_repository(repo=context.repo)
        body = self._pr_body_renderer.render(
            data=PullRequestBodyInput(issue_number=bundle.number, response=response)
        )
        self._logger.info(
            "creating pull request: base=%s head=%s", repository.default_branch, branch
        )
        created = self._github_client.create_pull_request(
            repo=context.repo,
            title=summary,
            head=branch,
            base=repository.default_branch,
            body=body,
        )
        self._logger.info(
            "pull request created: pr_number=%s pr_url=%s", created.number, created.html_url
        )
        return ReconciliationOutcome(
            path=ReconciliationState.DIRTY_ISSUE,
            status_text=f"opencode created pull request #{created.number}",
            branch=branch,
            summary=summary,
            commit_sha=sha,
            pull_request_number=created.number,
        )
