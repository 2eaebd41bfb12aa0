"""
Shared plumbing for the external system gateways.

Every gateway follows the same pattern: a dataclass config, a lazily created
persistent ``httpx.AsyncClient``, a per-call bearer token, and one place where
HTTP outcomes are translated into portal errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from dsportal.core.errors import ConflictError, ProvisioningError, TransportError
from dsportal.core.logging import get_logger
from dsportal.core.token_provider import ClientCredentials, OAuth2TokenProvider

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class GatewayConfig:
    """Connection settings common to all gateways."""

    base_url: str
    timeout: float = 30.0
    transport: httpx.AsyncBaseTransport | None = None


class GatewayClient:
    """Base class for a typed RPC surface over one external HTTP API."""

    system = "gateway"
    display_name = "Gateway"

    def __init__(
        self,
        config: GatewayConfig,
        token_provider: OAuth2TokenProvider | None = None,
    ) -> None:
        self._config = config
        self._token_provider = token_provider
        self._http_client: httpx.AsyncClient | None = None

    def _validate_config(self) -> None:
        base = (self._config.base_url or "").strip()
        if not base:
            raise ValueError(f"{self.display_name} URL is required")
        self._config.base_url = base.rstrip("/")

    async def _get_client(self) -> httpx.AsyncClient:
        """Return (or lazily create) the HTTP client."""
        if self._http_client is None:
            self._validate_config()
            self._http_client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout,
                transport=self._config.transport,
            )
        return self._http_client

    async def _token(self, credentials: ClientCredentials, scopes: str) -> str:
        if self._token_provider is None:
            raise ValueError(f"{self.display_name} requires a token provider")
        return await self._token_provider.get_token_for(credentials, scopes)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        step: str,
        token: str | None = None,
        allow_status: tuple[int, ...] = (),
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send one request and translate failures.

        ``allow_status`` lists non-2xx codes handed back to the caller instead
        of being raised. 409 maps to :class:`ConflictError`, any other non-2xx
        to :class:`ProvisioningError`, and connection problems or timeouts to
        :class:`TransportError`.
        """
        client = await self._get_client()
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        try:
            response = await client.request(method, path, headers=request_headers, **kwargs)
        except httpx.TransportError as exc:
            logger.warning(
                "gateway_transport_failed",
                system=self.system,
                step=step,
                error=str(exc),
            )
            raise TransportError(
                f"{self.display_name} unreachable during {step}: {exc}",
                system=self.system,
                step=step,
            ) from exc

        if response.is_success or response.status_code in allow_status:
            return response

        logger.warning(
            "gateway_request_failed",
            system=self.system,
            step=step,
            status_code=response.status_code,
        )
        error_cls = ConflictError if response.status_code == 409 else ProvisioningError
        raise error_cls(
            f"{self.display_name} returned {response.status_code} during {step}",
            status_code=response.status_code,
            system=self.system,
            step=step,
        )

    def _json(self, response: httpx.Response, *, step: str) -> Any:
        """Decode a JSON body or fail the step."""
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ProvisioningError(
                f"{self.display_name} returned an unparseable body during {step}",
                status_code=response.status_code,
                system=self.system,
                step=step,
            ) from exc

    def _model(self, cls: type[ModelT], data: Any, *, step: str) -> ModelT:
        """Validate one decoded body; a missing or malformed body fails the step."""
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "gateway_body_invalid",
                system=self.system,
                step=step,
                model=cls.__name__,
                error_count=exc.error_count(),
            )
            raise ProvisioningError(
                f"{self.display_name} returned an invalid {cls.__name__} during {step}",
                system=self.system,
                step=step,
            ) from exc

    def _models(self, cls: type[ModelT], data: Any, *, step: str) -> list[ModelT]:
        """Validate a list body; an empty body is an empty list."""
        if data is None:
            return []
        if not isinstance(data, list):
            raise ProvisioningError(
                f"{self.display_name} returned a non-list body during {step}",
                system=self.system,
                step=step,
            )
        return [self._model(cls, item, step=step) for item in data]

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
