from __future__ import annotations

import io
import json
import signal
from pathlib import Path

import pytest

from opencode_action.core.config import ActionSettings
from opencode_action.core.errors import RunCancelledError, UnexpectedError
from opencode_action.domain.action_runner import RunResult
from opencode_action.domain.trigger import RawEvent
from opencode_action.main import (
    _raise_run_cancelled,
    build_runner,
    load_raw_event,
    report_failure,
    run_action,
)


class _FakeRunner:
    def __init__(self, result: RunResult) -> None:
        self._result = result
        self.events: list[RawEvent] = []

    def run(self, *, event: RawEvent) -> RunResult:
        self.events.append(event)
        return self._result


def _settings(tmp_path: Path, **overrides) -> ActionSettings:
    event_path = tmp_path / "event.json"
    event_path.write_text(
        json.dumps(
            {
                "issue": {"number": 42, "title": "Typo in README"},
                "comment": {"id": 1001, "body": "hey opencode, fix the typo"},
            }
        ),
        encoding="utf-8",
    )
    values = {
        "github_event_name": "issue_comment",
        "github_event_path": str(event_path),
        "github_repository": "owner/repo",
        "github_actor": "octocat",
        "github_run_id": "99",
        "github_workspace": str(tmp_path),
        "input_model": "anthropic/claude-sonnet-4",
    }
    values.update(overrides)
    return ActionSettings(_env_file=None, **values)


def test_report_failure_escapes_workflow_command_data() -> None:
    stream = io.StringIO()
    report_failure("50% done\nsecond line\r", stream=stream)
    assert stream.getvalue() == (
        "::error::opencode failed with error: 50%25 done%0Asecond line%0D\n"
    )


def test_load_raw_event_reads_payload(tmp_path: Path) -> None:
    event = load_raw_event(_settings(tmp_path))
    assert event.name == "issue_comment"
    assert event.payload["comment"]["id"] == 1001


def test_build_runner_requires_model(tmp_path: Path) -> None:
    stream = io.StringIO()
    exit_code = run_action(settings=_settings(tmp_path, input_model=None), stream=stream)
    assert exit_code == 1
    assert "INPUT_MODEL is required." in stream.getvalue()


def test_build_runner_wires_from_settings(tmp_path: Path) -> None:
    runner = build_runner(_settings(tmp_path))
    assert runner is not None


def test_run_action_rejects_missing_event_name(tmp_path: Path) -> None:
    stream = io.StringIO()
    exit_code = run_action(settings=_settings(tmp_path, github_event_name=None), stream=stream)
    assert exit_code == 1
    assert stream.getvalue().startswith("::error::opencode failed with error:")


def test_run_action_returns_zero_on_success(tmp_path: Path) -> None:
    runner = _FakeRunner(RunResult(success=True, message="done"))
    stream = io.StringIO()

    exit_code = run_action(
        settings=_settings(tmp_path),
        runner=runner,  # type: ignore[arg-type]
        stream=stream,
    )

    assert exit_code == 0
    assert stream.getvalue() == ""
    assert runner.events[0].payload["issue"]["number"] == 42


def test_run_action_reports_runner_failure(tmp_path: Path) -> None:
    runner = _FakeRunner(
        RunResult(success=False, message="push rejected", failure=UnexpectedError("push rejected"))
    )
    stream = io.StringIO()

    exit_code = run_action(
        settings=_settings(tmp_path),
        runner=runner,  # type: ignore[arg-type]
        stream=stream,
    )

    assert exit_code == 1
    assert stream.getvalue() == "::error::opencode failed with error: push rejected\n"


def test_sigterm_handler_raises_run_cancelled() -> None:
    with pytest.raises(RunCancelledError, match="cancelled"):
        _raise_run_cancelled(signal.SIGTERM, None)
