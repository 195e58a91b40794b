"""Pull request body rendering for branches opened from issues."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined


@dataclass(frozen=True)
class PullRequestBodyInput:
    """Values available to the PR body template."""

    issue_number: int
    response: str


class PullRequestBodyRenderer:
    """Renders the body of a pull request that resolves an issue."""

    def __init__(self, *, template_dir: str, template_name: str = "pr_body.md") -> None:
        env = Environment(
            loader=FileSystemLoader(template_dir),
            undefined=StrictUndefined,
            autoescape=False,
        )
        self._template = env.get_template(template_name)

    @classmethod
    def from_package(cls) -> PullRequestBodyRenderer:
        """Returns a renderer for the templates shipped with the package."""

        return cls(template_dir=get_default_template_dir())

    def render(self, *, data: PullRequestBodyInput) -> str:
        """Renders the agent response followed by ``Closes #<n>``.

        The closing reference is appended when the template leaves it out, so
        merging the PR always closes the issue.
        """

        body = self._template.render(
            issue_number=data.issue_number,
            response=data.response.strip(),
        ).strip()
        closing = re.compile(rf"^Closes #{data.issue_number}\b", re.MULTILINE)
        if not closing.search(body):
            body = f"{body}\n\nCloses #{data.issue_number}"
        return body


def get_default_template_dir() -> str:
    return str(Path(__file__).parent / "templates")
