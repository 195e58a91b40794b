"""Action runner orchestrating a single comment-triggered run.

This module is intentionally synchronous (blocking): every API call, git
command and agent invocation completes before the next one starts.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from opencode_action.core.errors import ActionError
from opencode_action.domain.authorization import AuthorizationGate
from opencode_action.domain.context_assembler import ContextAssembler
from opencode_action.domain.delegation import DelegationInvoker
from opencode_action.domain.failure import classify_failure
from opencode_action.domain.reconciliation import ReconciliationEngine, utc_now
from opencode_action.domain.run_context import RunContext
from opencode_action.domain.status_reporter import StatusComment, StatusReporter
from opencode_action.domain.trigger import RawEvent, parse_command, parse_trigger_event
from opencode_action.integrations.git.git_ops import GitOps
from opencode_action.integrations.github.github_client import GitHubClient
from opencode_action.integrations.github.identity import IdentityTokenExchanger
from opencode_action.providers.base import Provider
from opencode_action.rendering.pr_template import PullRequestBodyRenderer

STARTED_TEXT = "opencode started..."


@dataclass(frozen=True)
class ActionRunnerConfig:
    """Static values of the job a run executes in."""

    actor: str
    repository: str
    run_id: str
    model: str
    repo_dir: str
    server_url: str = "https://github.com"


@dataclass(frozen=True)
class RunResult:
    """Result of a single run."""

    success: bool
    message: str
    failure: ActionError | None = None
    branch: str | None = None
    pull_request_number: int | None = None
    status_comment_id: int | None = None


class ActionRunner:
    """Runs trigger parsing, authorization, delegation and reconciliation in order."""

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        config: ActionRunnerConfig,
        identity: IdentityTokenExchanger,
        github_client_factory: Callable[[str], GitHubClient],
        git_ops: GitOps,
        provider: Provider,
        pr_body_renderer: PullRequestBodyRenderer,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._config = config
        self._identity = identity
        self._github_client_factory = github_client_factory
        self._git_ops = git_ops
        self._provider = provider
        self._pr_body_renderer = pr_body_renderer
        self._clock = clock

    def run(self, *, event: RawEvent) -> RunResult:
        """Runs the pipeline for one event.

        Every failure is caught here exactly once. If the status comment was
        already posted, it is rewritten with the failure message.

        Returns:
            RunResult with success/failure.
        """

        github_client: GitHubClient | None = None
        reporter: StatusReporter | None = None
        status: StatusComment | None = None
        try:
            trigger = parse_trigger_event(
                event=event, actor=self._config.actor, repository=self._config.repository
            )
            command = parse_command(trigger)
            context = RunContext(
                trigger=trigger,
                run_id=self._config.run_id,
                model=self._config.model,
                server_url=self._config.server_url,
                repo_dir=self._config.repo_dir,
            )
            self._logger.info(
                "run started: repo=%s number=%s is_pr=%s actor=%s",
                context.repo,
                trigger.number,
                trigger.is_pull_request,
                trigger.actor,
            )

            token = self._identity.acquire_app_token()
            github_client = self._github_client_factory(token)
            AuthorizationGate(github_client=github_client).authorize(context=context)

            reporter = StatusReporter(github_client=github_client, context=context)
            status = reporter.open(STARTED_TEXT)

            bundle = ContextAssembler(github_client=github_client).assemble(
                context=context, status_comment_id=status.id
            )
            engine = self._build_engine(github_client)
            engine.prepare(bundle=bundle)

            invoker = DelegationInvoker(provider=self._provider, repo_dir=context.repo_dir)
            response = invoker.invoke(instruction=command.instruction, bundle=bundle)
            outcome = engine.reconcile(
                context=context, bundle=bundle, response=response, invoker=invoker
            )

            status = reporter.close(status, outcome.status_text)
            self._logger.info(
                "run completed: path=%s pr_number=%s",
                outcome.path.value,
                outcome.pull_request_number,
            )
            return RunResult(
                success=True,
                message=outcome.status_text,
                branch=outcome.branch,
                pull_request_number=outcome.pull_request_number,
                status_comment_id=status.id,
            )
        except Exception as exc:  # noqa: BLE001
            failure = classify_failure(exc)
            self._logger.exception(
                "run failed: kind=%s error=%s", failure.__class__.__name__, failure
            )
            if reporter is not None and status is not None:
                self._safe_report_failure(reporter=reporter, status=status, message=str(failure))
            return RunResult(
                success=False,
                message=str(failure),
                failure=failure,
                status_comment_id=status.id if status is not None else None,
            )
        finally:
            if github_client is not None:
                github_client.close()

    def _build_engine(self, github_client: GitHubClient) -> ReconciliationEngine:
        return ReconciliationEngine(
            github_client=github_client,
            git_ops=self._git_ops,
            pr_body_renderer=self._pr_body_renderer,
            repo_dir=self._config.repo_dir,
            clock=self._clock,
        )

    def _safe_report_failure(
        self, *, reporter: StatusReporter, status: StatusComment, message: str
    ) -> None:
        try:
            reporter.close(status, message)
            self._logger.info("failure written to status comment: comment_id=%s", status.id)
        except Exception:  # noqa: BLE001
            # Avoid masking original failure.
            self._logger.exception("failed to update status comment: comment_id=%s", status.id)
