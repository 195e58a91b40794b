"""Action configuration.

Everything is read from the GitHub Actions job environment. Tokens handed to
the job by the runner are never printed by this module.
"""

from __future__ import annotations

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActionSettings(BaseSettings):
    """Settings for a single action run."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Event context provided by the Actions runner
    github_event_name: str | None = None
    github_event_path: str | None = None
    github_repository: str | None = None  # "owner/repo"
    github_actor: str | None = None
    github_run_id: str | None = None
    github_workspace: str | None = None

    # Endpoints
    github_server_url: str = "https://github.com"
    github_api_url: str = "https://api.github.com"
    github_graphql_url: str | None = None

    # OIDC identity token issued to the job (`id-token: write`)
    actions_id_token_request_url: str | None = None
    actions_id_token_request_token: str | None = None
    oidc_audience: str = "opencode-github-action"
    token_exchange_url: str = "https://api.frank.dev.opencode.ai/exchange_github_app_token"

    # Agent
    input_model: str | None = None
    opencode_command: str = "opencode"

    # Git author
    git_author_name: str = "opencode"
    git_author_email: str = "runner@opencode.ai"

    @field_validator(
        "actions_id_token_request_url",
        "actions_id_token_request_token",
        "input_model",
        "github_actor",
        "github_repository",
        mode="before",
    )
    @classmethod
    def _normalize_env_string(cls, value: Any) -> Any:
        """Normalizes env var strings.

        Workflow inputs and `--env-file` values can arrive with surrounding
        whitespace or quotes. We trim whitespace and strip a single pair of
        surrounding quotes; an empty result becomes None.
        """

        if value is None or not isinstance(value, str):
            return value
        text = value.strip()
        if len(text) >= 2 and ((text[0] == text[-1] == '"') or (text[0] == text[-1] == "'")):
            text = text[1:-1].strip()
        return text or None

    @property
    def graphql_url(self) -> str:
        """Returns the GraphQL endpoint, derived from the REST base when unset."""

        if self.github_graphql_url:
            return self.github_graphql_url
        return self.github_api_url.rstrip("/") + "/graphql"
