"""Entry point for the GitHub Action.

Reads the job environment, runs the pipeline once and reports the outcome
through the process exit code. Failures are also emitted as an ``::error::``
workflow command so they show up on the run summary.
"""

from __future__ import annotations

import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, TextIO

from opencode_action.core.config import ActionSettings
from opencode_action.core.errors import ActionError, RunCancelledError, UnsupportedEventError
from opencode_action.domain.action_runner import ActionRunner, ActionRunnerConfig
from opencode_action.domain.trigger import RawEvent
from opencode_action.integrations.git.git_ops import GitOps, GitOpsConfig
from opencode_action.integrations.github.github_client import GitHubClient, GitHubClientConfig
from opencode_action.integrations.github.identity import IdentityConfig, IdentityTokenExchanger
from opencode_action.providers.opencode import OpencodeProvider, OpencodeProviderConfig
from opencode_action.rendering.pr_template import PullRequestBodyRenderer


def load_raw_event(settings: ActionSettings) -> RawEvent:
    """Reads the event name and webhook payload provided by the runner."""

    if not settings.github_event_name:
        raise UnsupportedEventError("GITHUB_EVENT_NAME is not set.")
    payload: Any = {}
    if settings.github_event_path:
        payload = json.loads(Path(settings.github_event_path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise UnsupportedEventError("Event payload must be a JSON object.")
    return RawEvent(name=settings.github_event_name, payload=payload)


def build_runner(settings: ActionSettings) -> ActionRunner:
    """Wires the runner from settings."""

    if settings.input_model is None:
        raise ValueError("INPUT_MODEL is required.")
    if settings.github_actor is None or settings.github_repository is None:
        raise ValueError("GITHUB_ACTOR and GITHUB_REPOSITORY are required.")

    def github_client_factory(token: str) -> GitHubClient:
        return GitHubClient(
            config=GitHubClientConfig(
                api_base_url=settings.github_api_url,
                token=token,
                graphql_url=settings.graphql_url,
            )
        )

    return ActionRunner(
        config=ActionRunnerConfig(
            actor=settings.github_actor,
            repository=settings.github_repository,
            run_id=settings.github_run_id or "",
            model=settings.input_model,
            repo_dir=settings.github_workspace or str(Path.cwd()),
            server_url=settings.github_server_url,
        ),
        identity=IdentityTokenExchanger(
            config=IdentityConfig(
                exchange_url=settings.token_exchange_url,
                audience=settings.oidc_audience,
                id_token_request_url=settings.actions_id_token_request_url,
                id_token_request_token=settings.actions_id_token_request_token,
            )
        ),
        github_client_factory=github_client_factory,
        git_ops=GitOps(
            config=GitOpsConfig(
                author_name=settings.git_author_name,
                author_email=settings.git_author_email,
            )
        ),
        provider=OpencodeProvider(
            config=OpencodeProviderConfig(
                command_line=settings.opencode_command,
                model=settings.input_model,
            )
        ),
        pr_body_renderer=PullRequestBodyRenderer.from_package(),
    )


def report_failure(message: str, *, stream: TextIO | None = None) -> None:
    """Emits the failure as an Actions ``::error::`` workflow command."""

    out = stream if stream is not None else sys.stdout
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    out.write(f"::error::opencode failed with error: {escaped}\n")
    out.flush()


def run_action(
    *,
    settings: ActionSettings,
    runner: ActionRunner | None = None,
    stream: TextIO | None = None,
) -> int:
    """Runs once and returns the process exit code."""

    try:
        event = load_raw_event(settings)
        active_runner = runner if runner is not None else build_runner(settings)
    except (ActionError, OSError, ValueError) as exc:
        logging.getLogger(__name__).error("run could not start: error=%s", exc)
        report_failure(str(exc), stream=stream)
        return 1

    result = active_runner.run(event=event)
    if not result.success:
        report_failure(result.message, stream=stream)
        return 1
    return 0


def _raise_run_cancelled(signum: int, frame: object) -> None:
    raise RunCancelledError("opencode run was cancelled before it finished.")


def main() -> None:
    """Entry point used by the action's `runs` step."""

    logging.basicConfig(level=logging.INFO)
    # The job scheduler sends SIGTERM on timeout/cancel; turn it into a run
    # failure so the status comment gets a final update.
    signal.signal(signal.SIGTERM, _raise_run_cancelled)
    settings = ActionSettings()
    sys.exit(run_action(settings=settings))


if __name__ == "__main__":
    main()
