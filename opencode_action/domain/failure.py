"""Failure classification for the top-level handler."""

from __future__ import annotations

from opencode_action.core.errors import ActionError, UnexpectedError
from opencode_action.integrations.git.git_ops import GitCommandError
from opencode_action.integrations.github.github_client import GitHubApiError


def classify_failure(exc: BaseException) -> ActionError:
    """Maps any exception onto the action's failure taxonomy.

    Git failures surface their stderr, since that is what a user can act on.
    """

    if isinstance(exc, ActionError):
        return exc
    if isinstance(exc, GitCommandError):
        stderr = (exc.stderr or "").strip()
        return UnexpectedError(stderr or str(exc))
    if isinstance(exc, GitHubApiError):
        return UnexpectedError(str(exc))
    return UnexpectedError(str(exc) or exc.__class__.__name__)
