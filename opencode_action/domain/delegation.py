"""Delegation to the code-generation agent."""

from __future__ import annotations

import logging

from opencode_action.core.errors import DelegationError
from opencode_action.domain.context_assembler import ContextBundle
from opencode_action.providers.base import Provider

SUMMARY_MAX_CHARS = 40


def clip_summary(text: str, limit: int = SUMMARY_MAX_CHARS) -> str:
    """Collapses whitespace and shortens ``text`` to fewer than ``limit`` characters."""

    clean = " ".join(text.split())
    if len(clean) >= limit:
        clean = clean[: limit - 4].rstrip() + "..."
    return clean


class DelegationInvoker:
    """Sends prompts to the provider and turns failures into DelegationError."""

    _logger = logging.getLogger(__name__)

    def __init__(self, *, provider: Provider, repo_dir: str) -> None:
        self._provider = provider
        self._repo_dir = repo_dir

    def invoke(self, *, instruction: str, bundle: ContextBundle) -> str:
        """Runs the agent on the instruction plus rendered context."""

        prompt = f"{instruction}\n\n{bundle.text}"
        self._logger.info("running opencode: kind=%s number=%s", bundle.kind, bundle.number)
        return self.run_prompt(prompt)

    def summarize(self, *, response: str, fallback: str) -> str:
        """Asks the same agent session for a short change summary.

        Returns the clipped first line of the answer, or ``fallback`` when the
        agent answers with nothing.
        """

        prompt = (
            f"Summarize the following in less than {SUMMARY_MAX_CHARS} characters:\n\n{response}"
        )
        answer = self.run_prompt(prompt, continue_session=True)
        summary = ""
        for line in answer.splitlines():
            candidate = line.strip().strip("`\"'").strip()
            if candidate:
                summary = candidate
                break
        if not summary:
            self._logger.info("empty summary from opencode, using fallback")
            summary = fallback
        return clip_summary(summary)

    def run_prompt(self, prompt: str, *, continue_session: bool = False) -> str:
        """Runs one prompt.

        Raises:
            DelegationError: If the agent exits unsuccessfully.
        """

        result = self._provider.run(
            prompt=prompt,
            repo_path=self._repo_dir,
            continue_session=continue_session,
        )
        if not result.success:
            excerpt = (result.log_excerpt or "").strip()
            raise DelegationError(excerpt or result.output)
        return result.output
