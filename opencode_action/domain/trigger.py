"""Trigger parsing.

Turns the raw webhook payload delivered to the job into an immutable
``TriggerEvent`` and extracts the user's instruction from the comment body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from opencode_action.core.errors import MalformedCommandError, UnsupportedEventError

SUPPORTED_EVENT = "issue_comment"

_COMMAND_PATTERN = re.compile(r"^\s*hey\s*opencode,?\s*(.*)$", re.IGNORECASE)


class _PayloadComment(BaseModel):
    id: int = Field(..., ge=1)
    body: str = ""


class _PayloadIssue(BaseModel):
    number: int = Field(..., ge=1)
    title: str = ""
    pull_request: dict[str, Any] | None = None


class IssueCommentPayload(BaseModel):
    """Subset of the ``issue_comment`` webhook payload used by the action."""

    issue: _PayloadIssue
    comment: _PayloadComment


@dataclass(frozen=True)
class RawEvent:
    """Event name and decoded payload as delivered by the runner."""

    name: str
    payload: dict[str, Any]


@dataclass(frozen=True)
class TriggerEvent:
    """Immutable description of the comment that triggered the run."""

    kind: str
    owner: str
    repo: str
    actor: str
    number: int
    comment_id: int
    comment_body: str
    is_pull_request: bool
    title: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def entity_kind(self) -> str:
        """Returns ``pr`` for pull requests and ``issue`` otherwise."""

        return "pr" if self.is_pull_request else "issue"


@dataclass(frozen=True)
class Command:
    """Instruction extracted from the comment body."""

    instruction: str


def parse_trigger_event(*, event: RawEvent, actor: str, repository: str) -> TriggerEvent:
    """Builds a TriggerEvent from a raw event.

    Raises:
        UnsupportedEventError: If the event is not a comment on an issue or PR.
    """

    if event.name != SUPPORTED_EVENT:
        raise UnsupportedEventError(f"Unsupported event type: {event.name}")
    try:
        payload = IssueCommentPayload.model_validate(event.payload)
    except ValidationError as exc:
        raise UnsupportedEventError(
            f"Event payload is not an issue comment: {exc.error_count()} invalid field(s)"
        ) from exc

    owner, _, name = repository.partition("/")
    if not owner or not name:
        raise UnsupportedEventError(f"Repository must be in 'owner/repo' format: {repository}")

    return TriggerEvent(
        kind=event.name,
        owner=owner,
        repo=name,
        actor=actor,
        number=payload.issue.number,
        comment_id=payload.comment.id,
        comment_body=payload.comment.body,
        is_pull_request=payload.issue.pull_request is not None,
        title=payload.issue.title,
    )


def parse_command(trigger: TriggerEvent) -> Command:
    """Extracts the instruction following the invocation phrase.

    Raises:
        MalformedCommandError: If the body does not start with the phrase or
            carries no instruction.
    """

    match = _COMMAND_PATTERN.match(trigger.comment_body.rstrip())
    instruction = match.group(1).strip() if match else ""
    if not instruction:
        raise MalformedCommandError("Command must start with `hey opencode`")
    return Command(instruction=instruction)
