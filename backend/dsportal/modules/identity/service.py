"""Participant-scoped Identity Hub operations."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from dsportal.core.token_provider import ClientCredentials
from dsportal.modules.connectors.factory import Gateways
from dsportal.modules.connectors.identity_hub.models import (
    CredentialRequest,
    KeyPair,
    VerifiableCredential,
)
from dsportal.modules.tenants.service import load_participant, require_context


class IdentityService:
    def __init__(self, session: AsyncSession, gateways: Gateways) -> None:
        self._session = session
        self._gateways = gateways

    async def _context(
        self,
        participant_id: UUID,
        step: str,
        tenant_id: UUID | None,
        service_provider_id: UUID | None,
    ) -> tuple[str, ClientCredentials]:
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        return require_context(participant, step=step)

    async def list_credentials(
        self,
        participant_id: UUID,
        credential_type: str | None = None,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> list[VerifiableCredential]:
        context_id, credentials = await self._context(
            participant_id, "list_credentials", tenant_id, service_provider_id
        )
        return await self._gateways.identity_hub.query_credentials_by_type(
            context_id, credentials, credential_type
        )

    async def list_key_pairs(
        self,
        participant_id: UUID,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> list[KeyPair]:
        context_id, credentials = await self._context(
            participant_id, "list_key_pairs", tenant_id, service_provider_id
        )
        return await self._gateways.identity_hub.query_key_pairs(context_id, credentials)

    async def request_credential(
        self,
        participant_id: UUID,
        request: CredentialRequest,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> None:
        context_id, credentials = await self._context(
            participant_id, "request_credential", tenant_id, service_provider_id
        )
        await self._gateways.identity_hub.request_credential(context_id, credentials, request)
