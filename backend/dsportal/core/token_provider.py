"""
OAuth2 client-credentials token provider.

Every gateway call that needs authorization mints a fresh bearer token here.
Tokens are never cached; request counts against the token endpoint are part
of the observable behaviour.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from dsportal.core.errors import AuthenticationError, TransportError
from dsportal.core.logging import get_logger

logger = get_logger(__name__)

MANAGEMENT_API_SCOPES = "management-api:write management-api:read"
IDENTITY_API_SCOPES = "identity-api:write identity-api:read"


@dataclass(frozen=True)
class ClientCredentials:
    """An opaque OAuth2 client id / secret pair."""

    client_id: str
    client_secret: str = field(repr=False)

    def __repr__(self) -> str:
        return f"ClientCredentials(client_id={self.client_id!r}, client_secret='***')"

    @property
    def is_complete(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass
class TokenProviderConfig:
    """Configuration for the OAuth2 token endpoint."""

    token_url: str
    timeout: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None


class OAuth2TokenProvider:
    """Exchanges client credentials for short-lived bearer tokens."""

    def __init__(self, config: TokenProviderConfig) -> None:
        self._config = config
        self._http_client: httpx.AsyncClient | None = None

    def _validate_config(self) -> None:
        url = (self._config.token_url or "").strip()
        if not url:
            raise ValueError("Token endpoint URL is required")
        self._config.token_url = url

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._validate_config()
            self._http_client = httpx.AsyncClient(
                timeout=self._config.timeout,
                transport=self._config.transport,
            )
        return self._http_client

    async def get_token(self, client_id: str, client_secret: str, scopes: str) -> str:
        """
        Run a client-credentials grant and return the access token.

        Raises:
            AuthenticationError: non-2xx answer, unparseable body, or no
                ``access_token`` field.
            TransportError: the token endpoint could not be reached.
        """
        client = await self._get_client()
        try:
            resp = await client.post(
                self._config.token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "scope": scopes,
                },
            )
        except httpx.TransportError as exc:
            logger.warning("token_endpoint_unreachable", client_id=client_id, error=str(exc))
            raise TransportError(
                f"Token endpoint unreachable: {exc}", system="oauth2", step="get_token"
            ) from exc

        if not resp.is_success:
            logger.warning(
                "token_request_rejected",
                client_id=client_id,
                status_code=resp.status_code,
            )
            raise AuthenticationError(
                f"Token endpoint returned {resp.status_code}",
                system="oauth2",
                step="get_token",
            )

        try:
            data: dict[str, Any] = resp.json()
            token = data["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthenticationError(
                "Token endpoint returned an unparseable body",
                system="oauth2",
                step="get_token",
            ) from exc

        logger.debug("token_issued", client_id=client_id, scopes=scopes)
        return str(token)

    async def get_token_for(self, credentials: ClientCredentials, scopes: str) -> str:
        """Convenience wrapper taking a :class:`ClientCredentials` pair."""
        return await self.get_token(credentials.client_id, credentials.client_secret, scopes)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
