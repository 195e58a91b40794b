"""Provider interface for code-generation agents."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProviderResult:
    """Result from a provider run.

    Attributes:
        success: True when the agent exited cleanly.
        output: The agent's natural-language response (trimmed stdout).
        log_excerpt: Tail of the agent's diagnostic output, if any.
    """

    success: bool
    output: str
    log_excerpt: str | None = None


class Provider:
    """Abstract provider.

    Implementations may modify the repository working tree under ``repo_path``
    as a side effect of answering the prompt.
    """

    def run(self, *, prompt: str, repo_path: str, continue_session: bool = False) -> ProviderResult:
        """Runs the provider.

        Args:
            prompt: Natural-language prompt.
            repo_path: Path to the checked-out repository.
            continue_session: Reuse the previous invocation's session instead of
                starting a fresh one.

        Returns:
            ProviderResult with the agent's response.
        """

        raise NotImplementedError
