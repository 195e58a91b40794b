"""Collaborator permission gate."""

from __future__ import annotations

import logging

from opencode_action.core.errors import InsufficientPermissionError, PermissionCheckError
from opencode_action.domain.run_context import RunContext
from opencode_action.integrations.github.github_client import GitHubApiError, GitHubClient

ALLOWED_PERMISSIONS = frozenset({"admin", "write"})


class AuthorizationGate:
    """Verifies the triggering actor may make the agent write to the repository."""

    _logger = logging.getLogger(__name__)

    def __init__(self, *, github_client: GitHubClient) -> None:
        self._github_client = github_client

    def authorize(self, *, context: RunContext) -> str:
        """Returns the actor's permission level when it is sufficient.

        Raises:
            PermissionCheckError: If the permission lookup fails.
            InsufficientPermissionError: If the actor lacks admin/write access.
        """

        actor = context.trigger.actor
        self._logger.info("asserting permissions: repo=%s actor=%s", context.repo, actor)
        try:
            permission = self._github_client.get_collaborator_permission(
                repo=context.repo, username=actor
            )
        except GitHubApiError as exc:
            raise PermissionCheckError(
                f"Failed to check permissions for user {actor}: {exc}"
            ) from exc

        self._logger.info("permission resolved: actor=%s permission=%s", actor, permission)
        if permission not in ALLOWED_PERMISSIONS:
            raise InsufficientPermissionError(actor=actor, permission=permission)
        return permission
