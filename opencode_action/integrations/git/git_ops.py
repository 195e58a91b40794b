"""Git operations for the action.

The repository is already checked out by the workflow (``actions/checkout``),
which also configures push credentials. This module never reads or writes
tokens; it only drives the working tree in ``repo_dir``.
"""

from __future__ import annotations

from dataclasses import dataclass

from opencode_action.integrations.process.subprocess_utils import CommandResult, CommandRunner


class GitCommandError(RuntimeError):
    """Raised when a git command fails."""

    def __init__(
        self,
        *,
        message: str,
        command_display: str | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        parts: list[str] = [message]
        if command_display:
            parts.append(f"command={command_display}")
        if exit_code is not None:
            parts.append(f"exit_code={exit_code}")
        if stderr:
            stderr_text = stderr.strip()
            if len(stderr_text) > 2000:
                stderr_text = stderr_text[-2000:]
            parts.append(f"stderr={stderr_text}")
        super().__init__(" | ".join(parts))
        self.stderr = stderr


@dataclass(frozen=True)
class GitOpsConfig:
    """Configuration for Git operations."""

    author_name: str
    author_email: str


class GitOps:
    """Performs status/checkout/commit/push in the workflow checkout."""

    def __init__(self, *, config: GitOpsConfig, runner: CommandRunner | None = None) -> None:
        self._config = config
        self._runner = runner or CommandRunner()

    def get_status_porcelain(self, *, repo_dir: str) -> str:
        """Returns `git status --porcelain` output."""

        result = self._run_git(repo_dir, args=["status", "--porcelain"])
        return result.stdout

    def is_dirty(self, *, repo_dir: str) -> bool:
        """Returns True when the working tree has any change, tracked or not."""

        return bool(self.get_status_porcelain(repo_dir=repo_dir).strip())

    def checkout_remote_branch(self, *, repo_dir: str, branch: str) -> None:
        """Fetches ``origin/<branch>`` and checks it out as a local tracking branch."""

        self._run_git(
            repo_dir,
            args=[
                "fetch",
                "origin",
                "--depth=1",
                f"+refs/heads/{branch}:refs/remotes/origin/{branch}",
            ],
        )
        self._run_git(repo_dir, args=["checkout", "-B", branch, f"origin/{branch}"])

    def create_branch(self, *, repo_dir: str, branch: str) -> None:
        """Creates and switches to a new local branch."""

        self._run_git(repo_dir, args=["checkout", "-b", branch])

    def commit_all(self, *, repo_dir: str, message: str) -> str:
        """Stages everything and commits it.

        Returns:
            SHA of the new commit.
        """

        self._run_git(repo_dir, args=["config", "user.name", self._config.author_name])
        self._run_git(repo_dir, args=["config", "user.email", self._config.author_email])
        self._run_git(repo_dir, args=["add", "-A"])
        self._run_git(repo_dir, args=["commit", "-m", message])
        return self.get_head_sha(repo_dir=repo_dir)

    def get_head_sha(self, *, repo_dir: str) -> str:
        """Returns HEAD SHA."""

        result = self._run_git(repo_dir, args=["rev-parse", "HEAD"])
        sha = result.stdout.strip()
        if not sha:
            raise GitCommandError(message="Failed to read HEAD sha.")
        return sha

    def push_branch(self, *, repo_dir: str, branch: str, set_upstream: bool = False) -> None:
        """Pushes ``branch`` to origin, optionally recording it as upstream."""

        args = ["push"]
        if set_upstream:
            args.append("-u")
        args.extend(["origin", branch])
        result = self._run_git(repo_dir, args=args, allow_failure=True)
        if not result.ok:
            # Provide more helpful error message for authentication failures
            error_msg = "git push failed"
            if "403" in result.stderr or "Permission" in result.stderr or "denied" in result.stderr:
                error_msg = (
                    "git push failed: Authentication or permission error. "
                    "Please verify that the workflow checkout has write access "
                    "to the repository."
                )
            raise GitCommandError(
                message=error_msg,
                command_display=self._format_command_for_display(["git", "-C", repo_dir, *args]),
                exit_code=result.exit_code,
                stderr=result.stderr,
            )

    def _run_git(
        self,
        repo_dir: str,
        *,
        args: list[str],
        allow_failure: bool = False,
    ) -> CommandResult:
        cmd = ["git", "-C", repo_dir, *args]
        result = self._runner.run(args=cmd)
        if not (allow_failure or result.ok):
            raise GitCommandError(
                message="git command failed",
                command_display=self._format_command_for_display(cmd),
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result

    @staticmethod
    def _format_command_for_display(args: list[str]) -> str:
        # Keep it readable and safe for logs/comments.
        return " ".join(args)
