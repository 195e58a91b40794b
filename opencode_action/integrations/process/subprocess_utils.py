"""Subprocess execution for git and the agent CLI.

Prompts are passed on stdin and never appear in argv, so process listings and
logs only show the program and its flags.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CommandResult:
    """Exit code and captured output of a finished command."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner:
    """Runs a command to completion and captures its output."""

    _logger = logging.getLogger(__name__)

    def run(
        self,
        *,
        args: list[str],
        cwd: str | Path | None = None,
        input_text: str | None = None,
    ) -> CommandResult:
        """Runs ``args`` (no shell) and waits for it to exit.

        Args:
            args: Program and arguments.
            cwd: Working directory; defaults to the current one.
            input_text: Text written to stdin, then stdin is closed.

        Raises:
            OSError: If the program cannot be started.
        """

        started = time.monotonic()
        completed = subprocess.run(
            args,
            cwd=str(cwd) if cwd is not None else None,
            input=input_text,
            check=False,
            text=True,
            capture_output=True,
        )
        self._logger.debug(
            "command finished: program=%s exit_code=%s elapsed=%.1fs",
            Path(args[0]).name if args else "",
            completed.returncode,
            time.monotonic() - started,
        )
        return CommandResult(
            exit_code=int(completed.returncode),
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
