"""
Connector control plane Management API client.

Participant-scoped calls live under ``/participants/{context_id}`` and are
authorized with a token minted from that participant's client credentials.
CEL expressions are global and use the configured admin credentials.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast

import httpx

from dsportal.core.logging import get_logger
from dsportal.core.token_provider import (
    MANAGEMENT_API_SCOPES,
    ClientCredentials,
    OAuth2TokenProvider,
)
from dsportal.modules.connectors.base import GatewayClient, GatewayConfig
from dsportal.modules.connectors.edc.models import (
    CelExpression,
    ContractDefinition,
    ContractRequest,
    DataplaneRegistration,
    EDCAsset,
    NegotiationState,
    PolicyDefinition,
    QuerySpec,
    TransferProcessState,
    TransferRequest,
)

logger = get_logger(__name__)


@dataclass
class ControlPlaneConfig(GatewayConfig):
    """Configuration for the control plane management API."""

    admin_client_id: str = "admin"
    admin_client_secret: str = ""

    @property
    def admin_credentials(self) -> ClientCredentials:
        return ClientCredentials(self.admin_client_id, self.admin_client_secret)


class ControlPlaneClient(GatewayClient):
    """Client for the control plane Management API (``v4alpha``)."""

    system = "control_plane"
    display_name = "Control plane management"

    def __init__(
        self,
        config: ControlPlaneConfig,
        token_provider: OAuth2TokenProvider | None = None,
    ) -> None:
        super().__init__(config, token_provider)
        self._cp_config = config

    async def _participant_token(self, credentials: ClientCredentials) -> str:
        return await self._token(credentials, MANAGEMENT_API_SCOPES)

    # ------------------------------------------------------------------
    # CEL expressions
    # ------------------------------------------------------------------

    async def create_cel_expression(self, expression: CelExpression) -> None:
        """Register a CEL expression with admin credentials."""
        token = await self._token(self._cp_config.admin_credentials, MANAGEMENT_API_SCOPES)
        await self._request(
            "POST",
            "/celexpressions",
            step="create_cel_expression",
            token=token,
            json=expression.to_edc_payload(),
        )
        logger.info("edc_cel_expression_created", expression_id=expression.expression_id)

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    async def create_asset(
        self, context_id: str, credentials: ClientCredentials, asset: EDCAsset
    ) -> None:
        token = await self._participant_token(credentials)
        logger.info("edc_creating_asset", context_id=context_id, asset_id=asset.asset_id)
        await self._request(
            "POST",
            f"/participants/{context_id}/assets",
            step="create_asset",
            token=token,
            json=asset.to_edc_payload(),
        )
        logger.info("edc_asset_created", context_id=context_id, asset_id=asset.asset_id)

    async def query_assets(
        self, context_id: str, credentials: ClientCredentials, query: QuerySpec
    ) -> list[dict[str, Any]]:
        return await self._query(context_id, credentials, "assets", query)

    async def delete_asset(
        self, context_id: str, credentials: ClientCredentials, asset_id: str
    ) -> None:
        await self._delete(context_id, credentials, "assets", asset_id)

    # ------------------------------------------------------------------
    # Policies
    # ------------------------------------------------------------------

    async def create_policy(
        self, context_id: str, credentials: ClientCredentials, policy: PolicyDefinition
    ) -> None:
        token = await self._participant_token(credentials)
        await self._request(
            "POST",
            f"/participants/{context_id}/policydefinitions",
            step="create_policy",
            token=token,
            json=policy.to_edc_payload(),
        )
        logger.info("edc_policy_created", context_id=context_id, policy_id=policy.policy_id)

    async def query_policies(
        self, context_id: str, credentials: ClientCredentials, query: QuerySpec
    ) -> list[dict[str, Any]]:
        return await self._query(context_id, credentials, "policydefinitions", query)

    async def delete_policy(
        self, context_id: str, credentials: ClientCredentials, policy_id: str
    ) -> None:
        await self._delete(context_id, credentials, "policydefinitions", policy_id)

    # ------------------------------------------------------------------
    # Contract Definitions
    # ------------------------------------------------------------------

    async def create_contract_definition(
        self, context_id: str, credentials: ClientCredentials, contract: ContractDefinition
    ) -> None:
        token = await self._participant_token(credentials)
        await self._request(
            "POST",
            f"/participants/{context_id}/contractdefinitions",
            step="create_contract_definition",
            token=token,
            json=contract.to_edc_payload(),
        )
        logger.info(
            "edc_contract_definition_created",
            context_id=context_id,
            contract_id=contract.contract_id,
        )

    async def query_contract_definitions(
        self, context_id: str, credentials: ClientCredentials, query: QuerySpec
    ) -> list[dict[str, Any]]:
        return await self._query(context_id, credentials, "contractdefinitions", query)

    async def delete_contract_definition(
        self, context_id: str, credentials: ClientCredentials, contract_id: str
    ) -> None:
        await self._delete(context_id, credentials, "contractdefinitions", contract_id)

    # ------------------------------------------------------------------
    # Data planes
    # ------------------------------------------------------------------

    async def register_dataplane(
        self,
        context_id: str,
        credentials: ClientCredentials,
        registration: DataplaneRegistration,
    ) -> None:
        token = await self._participant_token(credentials)
        await self._request(
            "POST",
            f"/dataplanes/{context_id}",
            step="register_dataplane",
            token=token,
            json=registration.to_edc_payload(),
        )
        logger.info("edc_dataplane_registered", context_id=context_id, url=registration.url)

    # ------------------------------------------------------------------
    # Contract Negotiations
    # ------------------------------------------------------------------

    async def initiate_negotiation(
        self, context_id: str, credentials: ClientCredentials, request: ContractRequest
    ) -> str:
        """Start a negotiation and return its id."""
        token = await self._participant_token(credentials)
        response = await self._request(
            "POST",
            f"/participants/{context_id}/contractnegotiations",
            step="initiate_negotiation",
            token=token,
            json=request.to_edc_payload(),
        )
        data = cast(dict[str, Any], self._json(response, step="initiate_negotiation") or {})
        negotiation_id = str(data.get("@id", ""))
        logger.info(
            "edc_negotiation_initiated",
            context_id=context_id,
            negotiation_id=negotiation_id,
            asset_id=request.asset_id,
        )
        return negotiation_id

    async def get_negotiation(
        self, context_id: str, credentials: ClientCredentials, negotiation_id: str
    ) -> NegotiationState:
        token = await self._participant_token(credentials)
        response = await self._request(
            "GET",
            f"/participants/{context_id}/contractnegotiations/{negotiation_id}",
            step="get_negotiation",
            token=token,
        )
        data = cast(dict[str, Any], self._json(response, step="get_negotiation") or {})
        return NegotiationState.from_edc(data)

    async def query_negotiations(
        self, context_id: str, credentials: ClientCredentials, query: QuerySpec
    ) -> list[NegotiationState]:
        items = await self._query(context_id, credentials, "contractnegotiations", query)
        return [NegotiationState.from_edc(item) for item in items]

    # ------------------------------------------------------------------
    # Transfer processes
    # ------------------------------------------------------------------

    async def initiate_transfer(
        self, context_id: str, credentials: ClientCredentials, request: TransferRequest
    ) -> str:
        """Start a transfer under an agreed contract and return its id."""
        token = await self._participant_token(credentials)
        response = await self._request(
            "POST",
            f"/participants/{context_id}/transferprocesses",
            step="initiate_transfer",
            token=token,
            json=request.to_edc_payload(),
        )
        data = cast(dict[str, Any], self._json(response, step="initiate_transfer") or {})
        transfer_id = str(data.get("@id", ""))
        logger.info(
            "edc_transfer_initiated",
            context_id=context_id,
            transfer_id=transfer_id,
            contract_id=request.contract_id,
            transfer_type=request.transfer_type,
        )
        return transfer_id

    async def get_transfer(
        self, context_id: str, credentials: ClientCredentials, transfer_id: str
    ) -> TransferProcessState:
        token = await self._participant_token(credentials)
        response = await self._request(
            "GET",
            f"/participants/{context_id}/transferprocesses/{transfer_id}",
            step="get_transfer",
            token=token,
        )
        data = cast(dict[str, Any], self._json(response, step="get_transfer") or {})
        return TransferProcessState.from_edc(data)

    async def query_transfers(
        self, context_id: str, credentials: ClientCredentials, query: QuerySpec
    ) -> list[TransferProcessState]:
        items = await self._query(context_id, credentials, "transferprocesses", query)
        return [TransferProcessState.from_edc(item) for item in items]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _query(
        self,
        context_id: str,
        credentials: ClientCredentials,
        collection: str,
        query: QuerySpec,
    ) -> list[dict[str, Any]]:
        step = f"query_{collection}"
        token = await self._participant_token(credentials)
        response = await self._request(
            "POST",
            f"/participants/{context_id}/{collection}/request",
            step=step,
            token=token,
            json=query.to_edc_payload(),
        )
        return cast(list[dict[str, Any]], self._json(response, step=step) or [])

    async def _delete(
        self,
        context_id: str,
        credentials: ClientCredentials,
        collection: str,
        resource_id: str,
    ) -> None:
        token = await self._participant_token(credentials)
        await self._request(
            "DELETE",
            f"/participants/{context_id}/{collection}/{resource_id}",
            step=f"delete_{collection}",
            token=token,
        )
        logger.info(
            "edc_resource_deleted",
            context_id=context_id,
            collection=collection,
            resource_id=resource_id,
        )

    async def check_health(self) -> dict[str, Any]:
        """Reachability probe; any answer below 500 counts as reachable."""
        client = await self._get_client()
        try:
            response = await client.get("/")
        except httpx.HTTPError as exc:
            return {"error_message": str(exc)}
        if response.status_code >= 500:
            return {
                "error_message": f"HTTP {response.status_code}",
                "error_code": response.status_code,
            }
        return {"status_code": response.status_code}
