"""Failure taxonomy for an action run.

Every error the pipeline reports to the user is one of these. Integration
errors (HTTP, git) are converted by ``opencode_action.domain.failure``.
"""

from __future__ import annotations


class ActionError(RuntimeError):
    """Base class for run failures with a user-facing message."""


class UnsupportedEventError(ActionError):
    """Raised when the triggering event is not a comment on an issue or PR."""


class MalformedCommandError(ActionError):
    """Raised when the comment body does not carry a usable command."""


class TokenExchangeError(ActionError):
    """Raised when the identity token cannot be exchanged for an app token."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PermissionCheckError(ActionError):
    """Raised when the collaborator permission lookup itself fails."""


class InsufficientPermissionError(ActionError):
    """Raised when the actor lacks write access to the repository."""

    def __init__(self, *, actor: str, permission: str) -> None:
        super().__init__(f"User {actor} does not have write permissions")
        self.actor = actor
        self.permission = permission


class EntityNotFoundError(ActionError):
    """Raised when the referenced issue or pull request does not resolve."""


class DelegationError(ActionError):
    """Raised when the code-generation agent exits unsuccessfully."""


class RunCancelledError(ActionError):
    """Raised when the job scheduler asks the run to stop."""


class UnexpectedError(ActionError):
    """Wraps any failure outside the taxonomy above."""
