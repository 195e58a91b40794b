"""opencode provider (CLI-based).

This provider calls ``opencode run`` as a subprocess with the repository
directory as working directory. The prompt is passed on stdin and the agent's
answer is read from stdout; any edits it makes land directly in the working
tree.
"""

from __future__ import annotations

import logging
import shlex
import time
from dataclasses import dataclass

from opencode_action.integrations.process.subprocess_utils import CommandRunner
from opencode_action.providers.base import Provider, ProviderResult


@dataclass(frozen=True)
class OpencodeProviderConfig:
    """Configuration for OpencodeProvider."""

    command_line: str
    model: str


class OpencodeProvider(Provider):
    """Provider that invokes the opencode CLI."""

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        config: OpencodeProviderConfig,
        runner: CommandRunner | None = None,
    ) -> None:
        self._config = config
        self._command_args = self._parse_command_args(self._config.command_line)
        self._runner = runner or CommandRunner()

    def run(self, *, prompt: str, repo_path: str, continue_session: bool = False) -> ProviderResult:
        """Runs opencode in ``repo_path`` and blocks until it exits."""

        command_args = self.build_command_args(continue_session=continue_session)
        self._logger.info(
            "opencode started: command=%s repo_dir=%s prompt_chars=%s",
            " ".join(command_args),
            repo_path,
            len(prompt),
        )
        start_time = time.monotonic()
        try:
            result = self._runner.run(args=command_args, cwd=repo_path, input_text=prompt)
        except FileNotFoundError:
            return ProviderResult(
                success=False,
                output=(
                    "opencode command was not found. "
                    "Ensure OPENCODE_COMMAND points to an executable available in PATH "
                    "(e.g., 'opencode' or an absolute path)."
                ),
                log_excerpt=None,
            )
        finally:
            elapsed = int(time.monotonic() - start_time)
            self._logger.info("opencode finished: elapsed_seconds=%s", elapsed)

        if result.exit_code != 0:
            log_excerpt = result.stderr.strip()
            if len(log_excerpt) > 4000:
                log_excerpt = log_excerpt[-4000:]
            if log_excerpt:
                self._logger.error(
                    "opencode command failed: exit_code=%s excerpt_tail=%s",
                    result.exit_code,
                    log_excerpt[-800:],
                )
            return ProviderResult(
                success=False,
                output=f"opencode command failed (exit_code={result.exit_code}).",
                log_excerpt=log_excerpt or None,
            )
        return ProviderResult(success=True, output=result.stdout.strip(), log_excerpt=None)

    def build_command_args(self, *, continue_session: bool) -> list[str]:
        """Builds the non-interactive ``opencode run`` command line."""

        args = [*self._command_args, "run", "-m", self._config.model, "--print-logs"]
        if continue_session:
            args.append("--continue")
        return args

    @staticmethod
    def _parse_command_args(command_line: str) -> tuple[str, ...]:
        args = tuple(shlex.split(command_line))
        if not args:
            raise ValueError("OPENCODE_COMMAND must not be empty.")
        return args
