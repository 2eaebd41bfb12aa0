"""Contract negotiation and data transfer against a counter-party connector."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from dsportal.core.logging import get_logger
from dsportal.modules.connectors.edc.models import (
    ContractRequest,
    NegotiationState,
    TransferProcessState,
    TransferRequest,
)
from dsportal.modules.connectors.factory import Gateways
from dsportal.modules.tenants.service import load_participant, require_context

logger = get_logger(__name__)


class ContractService:
    def __init__(self, session: AsyncSession, gateways: Gateways) -> None:
        self._session = session
        self._gateways = gateways

    async def request_contract(
        self,
        participant_id: UUID,
        request: ContractRequest,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> str:
        """Start a negotiation for ``request`` and return the negotiation id."""
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        context_id, credentials = require_context(participant, step="request_contract")
        negotiation_id = await self._gateways.control_plane.initiate_negotiation(
            context_id, credentials, request
        )
        logger.info(
            "contract_requested",
            participant_id=str(participant_id),
            negotiation_id=negotiation_id,
            provider_id=request.provider_id,
        )
        return negotiation_id

    async def get_negotiation(
        self,
        participant_id: UUID,
        negotiation_id: str,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> NegotiationState:
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        context_id, credentials = require_context(participant, step="get_negotiation")
        return await self._gateways.control_plane.get_negotiation(
            context_id, credentials, negotiation_id
        )

    async def request_transfer(
        self,
        participant_id: UUID,
        request: TransferRequest,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> str:
        """Start a transfer under the agreement ``request.contract_id``."""
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        context_id, credentials = require_context(participant, step="request_transfer")
        transfer_id = await self._gateways.control_plane.initiate_transfer(
            context_id, credentials, request
        )
        logger.info(
            "transfer_requested",
            participant_id=str(participant_id),
            transfer_id=transfer_id,
            contract_id=request.contract_id,
        )
        return transfer_id

    async def get_transfer(
        self,
        participant_id: UUID,
        transfer_id: str,
        *,
        tenant_id: UUID | None = None,
        service_provider_id: UUID | None = None,
    ) -> TransferProcessState:
        participant = await load_participant(
            self._session,
            participant_id,
            tenant_id=tenant_id,
            service_provider_id=service_provider_id,
        )
        context_id, credentials = require_context(participant, step="get_transfer")
        return await self._gateways.control_plane.get_transfer(
            context_id, credentials, transfer_id
        )
