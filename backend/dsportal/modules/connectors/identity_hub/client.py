"""
Identity Hub Identity API client.

Participant context ids are base64url-encoded in paths, as the Identity API
expects. Listing across all participants requires the admin credentials;
everything else runs with the participant's own credentials.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, cast

from dsportal.core.errors import NotFoundError
from dsportal.core.logging import get_logger
from dsportal.core.token_provider import (
    IDENTITY_API_SCOPES,
    ClientCredentials,
    OAuth2TokenProvider,
)
from dsportal.modules.connectors.base import GatewayClient, GatewayConfig
from dsportal.modules.connectors.identity_hub.models import (
    CredentialRequest,
    KeyDescriptor,
    KeyPair,
    ParticipantContext,
    VerifiableCredential,
)

logger = get_logger(__name__)


def encode_context_id(context_id: str) -> str:
    """base64url without padding, the Identity API path encoding."""
    raw = base64.urlsafe_b64encode(context_id.encode("utf-8")).decode("ascii")
    return raw.rstrip("=")


@dataclass
class IdentityHubConfig(GatewayConfig):
    """Configuration for the Identity Hub Identity API."""

    api_version: str = "v1alpha"
    admin_client_id: str = "admin"
    admin_client_secret: str = ""

    @property
    def admin_credentials(self) -> ClientCredentials:
        return ClientCredentials(self.admin_client_id, self.admin_client_secret)


class IdentityHubClient(GatewayClient):
    """Client for participant contexts, credentials and key pairs."""

    system = "identity_hub"
    display_name = "Identity hub"

    def __init__(
        self,
        config: IdentityHubConfig,
        token_provider: OAuth2TokenProvider | None = None,
    ) -> None:
        super().__init__(config, token_provider)
        self._ih_config = config

    def _path(self, suffix: str) -> str:
        return f"/{self._ih_config.api_version}{suffix}"

    def _participant_path(self, context_id: str, suffix: str = "") -> str:
        return self._path(f"/participants/{encode_context_id(context_id)}{suffix}")

    async def _admin_token(self) -> str:
        return await self._token(self._ih_config.admin_credentials, IDENTITY_API_SCOPES)

    async def _participant_token(self, credentials: ClientCredentials) -> str:
        return await self._token(credentials, IDENTITY_API_SCOPES)

    # ------------------------------------------------------------------
    # Participant contexts
    # ------------------------------------------------------------------

    async def list_participant_contexts(self) -> list[ParticipantContext]:
        token = await self._admin_token()
        response = await self._request(
            "GET", self._path("/participants"), step="list_participant_contexts", token=token
        )
        data = self._json(response, step="list_participant_contexts")
        return self._models(ParticipantContext, data, step="list_participant_contexts")

    async def get_participant_context(
        self, context_id: str, credentials: ClientCredentials
    ) -> ParticipantContext:
        token = await self._participant_token(credentials)
        response = await self._request(
            "GET",
            self._participant_path(context_id),
            step="get_participant_context",
            token=token,
            allow_status=(404,),
        )
        if response.status_code == 404:
            raise NotFoundError(
                f"Participant context {context_id} not found",
                system=self.system,
                step="get_participant_context",
            )
        data = self._json(response, step="get_participant_context")
        return self._model(ParticipantContext, data, step="get_participant_context")

    # ------------------------------------------------------------------
    # Verifiable credentials
    # ------------------------------------------------------------------

    async def list_credentials(self) -> list[VerifiableCredential]:
        token = await self._admin_token()
        response = await self._request(
            "GET", self._path("/credentials"), step="list_credentials", token=token
        )
        data = self._json(response, step="list_credentials")
        return self._models(VerifiableCredential, data, step="list_credentials")

    async def query_credentials_by_type(
        self,
        context_id: str,
        credentials: ClientCredentials,
        credential_type: str | None = None,
    ) -> list[VerifiableCredential]:
        token = await self._participant_token(credentials)
        params = {"type": credential_type} if credential_type else None
        response = await self._request(
            "GET",
            self._participant_path(context_id, "/credentials"),
            step="query_credentials",
            token=token,
            params=params,
        )
        data = self._json(response, step="query_credentials")
        return self._models(VerifiableCredential, data, step="query_credentials")

    async def get_credential_request(
        self, context_id: str, credentials: ClientCredentials, holder_pid: str
    ) -> dict[str, Any]:
        token = await self._participant_token(credentials)
        response = await self._request(
            "GET",
            self._participant_path(context_id, f"/credentials/request/{holder_pid}"),
            step="get_credential_request",
            token=token,
        )
        return cast(dict[str, Any], self._json(response, step="get_credential_request") or {})

    async def request_credential(
        self,
        context_id: str,
        credentials: ClientCredentials,
        request: CredentialRequest,
    ) -> None:
        token = await self._participant_token(credentials)
        await self._request(
            "POST",
            self._participant_path(context_id, "/credentials/request"),
            step="request_credential",
            token=token,
            json=request.to_payload(),
        )
        logger.info(
            "identity_hub_credential_requested",
            context_id=context_id,
            issuer_did=request.issuer_did,
            holder_pid=request.holder_pid,
        )

    # ------------------------------------------------------------------
    # Key pairs
    # ------------------------------------------------------------------

    async def list_key_pairs(self) -> list[KeyPair]:
        token = await self._admin_token()
        response = await self._request(
            "GET", self._path("/keypairs"), step="list_key_pairs", token=token
        )
        data = self._json(response, step="list_key_pairs")
        return self._models(KeyPair, data, step="list_key_pairs")

    async def query_key_pairs(
        self, context_id: str, credentials: ClientCredentials
    ) -> list[KeyPair]:
        token = await self._participant_token(credentials)
        response = await self._request(
            "GET",
            self._participant_path(context_id, "/keypairs"),
            step="query_key_pairs",
            token=token,
        )
        data = self._json(response, step="query_key_pairs")
        return self._models(KeyPair, data, step="query_key_pairs")

    async def get_key_pair(
        self, context_id: str, credentials: ClientCredentials, key_pair_id: str
    ) -> KeyPair:
        token = await self._participant_token(credentials)
        response = await self._request(
            "GET",
            self._participant_path(context_id, f"/keypairs/{key_pair_id}"),
            step="get_key_pair",
            token=token,
        )
        data = self._json(response, step="get_key_pair")
        return self._model(KeyPair, data, step="get_key_pair")

    async def add_key_pair(
        self,
        context_id: str,
        credentials: ClientCredentials,
        descriptor: KeyDescriptor,
        *,
        make_default: bool = False,
    ) -> None:
        token = await self._participant_token(credentials)
        await self._request(
            "PUT",
            self._participant_path(context_id, "/keypairs"),
            step="add_key_pair",
            token=token,
            params={"makeDefault": str(make_default).lower()},
            json=descriptor.to_payload(),
        )
        logger.info("identity_hub_key_pair_added", context_id=context_id, key_id=descriptor.key_id)

    async def rotate_key_pair(
        self,
        context_id: str,
        credentials: ClientCredentials,
        key_pair_id: str,
        descriptor: KeyDescriptor,
        duration: int | None = None,
    ) -> None:
        token = await self._participant_token(credentials)
        params = {"duration": str(duration)} if duration is not None else None
        await self._request(
            "POST",
            self._participant_path(context_id, f"/keypairs/{key_pair_id}/rotate"),
            step="rotate_key_pair",
            token=token,
            params=params,
            json=descriptor.to_payload(),
        )
        logger.info(
            "identity_hub_key_pair_rotated", context_id=context_id, key_pair_id=key_pair_id
        )

    async def revoke_key_pair(
        self,
        context_id: str,
        credentials: ClientCredentials,
        key_pair_id: str,
        descriptor: KeyDescriptor,
    ) -> None:
        token = await self._participant_token(credentials)
        await self._request(
            "POST",
            self._participant_path(context_id, f"/keypairs/{key_pair_id}/revoke"),
            step="revoke_key_pair",
            token=token,
            json=descriptor.to_payload(),
        )
        logger.info(
            "identity_hub_key_pair_revoked", context_id=context_id, key_pair_id=key_pair_id
        )

    # ------------------------------------------------------------------
    # DIDs
    # ------------------------------------------------------------------

    async def get_did_state(
        self, context_id: str, credentials: ClientCredentials, did: str
    ) -> str:
        token = await self._participant_token(credentials)
        response = await self._request(
            "POST",
            self._participant_path(context_id, "/dids/state"),
            step="get_did_state",
            token=token,
            json={"did": did},
        )
        return response.text.strip().strip('"')
