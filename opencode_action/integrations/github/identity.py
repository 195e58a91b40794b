"""Scoped app token acquisition.

The Actions runner issues the job a short-lived OIDC identity token. That
token is exchanged at the opencode service for a GitHub App installation token
scoped to the repository. Token values are never logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from opencode_action.core.errors import TokenExchangeError


@dataclass(frozen=True)
class IdentityConfig:
    """Configuration for identity token exchange."""

    exchange_url: str
    audience: str
    id_token_request_url: str | None
    id_token_request_token: str | None


class IdentityTokenExchanger:
    """Exchanges the job's OIDC identity for a scoped app token."""

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        config: IdentityConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    def acquire_app_token(self) -> str:
        """Returns a scoped app token for this run."""

        identity_token = self.request_identity_token()
        return self.exchange_for_app_token(identity_token)

    def request_identity_token(self) -> str:
        """Requests an OIDC identity token from the Actions runtime.

        Raises:
            TokenExchangeError: If the runtime does not expose an identity token.
        """

        request_url = self._config.id_token_request_url
        request_token = self._config.id_token_request_token
        if not request_url or not request_token:
            raise TokenExchangeError(
                "Could not fetch an OIDC token. Make sure to add `id-token: write` "
                "to your workflow permissions."
            )

        self._logger.info("requesting OIDC token: audience=%s", self._config.audience)
        with self._build_client() as client:
            # Keep the runtime's own query (api-version) alongside the audience.
            url = httpx.URL(request_url).copy_merge_params({"audience": self._config.audience})
            resp = client.get(
                url,
                headers={"Authorization": f"bearer {request_token}"},
            )
        value = self._read_json_field(resp, "value") if resp.is_success else None
        if not value:
            raise TokenExchangeError(
                "Could not fetch an OIDC token. Make sure to add `id-token: write` "
                "to your workflow permissions.",
                status_code=resp.status_code,
            )
        return value

    def exchange_for_app_token(self, identity_token: str) -> str:
        """Exchanges the identity token for an app token.

        Raises:
            TokenExchangeError: If the exchange service rejects the request.
        """

        self._logger.info("exchanging OIDC token for app token")
        with self._build_client() as client:
            resp = client.post(
                self._config.exchange_url,
                headers={"Authorization": f"Bearer {identity_token}"},
            )
        if not resp.is_success:
            detail = self._read_json_field(resp, "error") or resp.text.strip()
            raise TokenExchangeError(
                f"App token exchange failed: {resp.status_code} {resp.reason_phrase} - {detail}",
                status_code=resp.status_code,
            )
        token = self._read_json_field(resp, "token")
        if not token:
            raise TokenExchangeError(
                "App token exchange failed: response did not include a token.",
                status_code=resp.status_code,
            )
        self._logger.info("app token acquired")
        return token

    def _build_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(30.0), transport=self._transport)

    @staticmethod
    def _read_json_field(resp: httpx.Response, key: str) -> str | None:
        try:
            payload = resp.json()
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        value = payload.get(key)
        return value if isinstance(value, str) and value else None
