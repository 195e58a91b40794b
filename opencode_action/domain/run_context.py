"""Run context shared by every pipeline stage."""

from __future__ import annotations

from dataclasses import dataclass

from opencode_action.domain.trigger import TriggerEvent


@dataclass(frozen=True)
class RunContext:
    """Everything a stage needs to know about the current run.

    Constructed once after the trigger is parsed and passed explicitly to each
    component.
    """

    trigger: TriggerEvent
    run_id: str
    model: str
    server_url: str = "https://github.com"
    repo_dir: str = "."

    @property
    def repo(self) -> str:
        return self.trigger.full_name

    @property
    def run_url(self) -> str:
        return f"{self.server_url.rstrip('/')}/{self.repo}/actions/runs/{self.run_id}"
