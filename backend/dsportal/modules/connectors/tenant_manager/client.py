"""
Fleet/Tenant Manager API client.

Allocates cells, tenants and participant profiles. Calls are unauthenticated
unless client credentials are configured, in which case every call mints a
fresh management-scoped token.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dsportal.core.logging import get_logger
from dsportal.core.token_provider import (
    MANAGEMENT_API_SCOPES,
    ClientCredentials,
    OAuth2TokenProvider,
)
from dsportal.modules.connectors.base import GatewayClient, GatewayConfig
from dsportal.modules.connectors.tenant_manager.models import (
    TMCell,
    TMCellCreate,
    TMDataspaceDeployment,
    TMDataspaceProfile,
    TMParticipantProfile,
    TMParticipantProfileCreate,
    TMTenant,
    TMTenantCreate,
    TMTenantPropertiesDiff,
)

logger = get_logger(__name__)


@dataclass
class TenantManagerConfig(GatewayConfig):
    """Configuration for the Fleet/Tenant Manager."""

    api_base: str = "/api/v1alpha1"
    client_id: str = ""
    client_secret: str = ""

    @property
    def credentials(self) -> ClientCredentials | None:
        if not self.client_id:
            return None
        return ClientCredentials(self.client_id, self.client_secret)


class TenantManagerClient(GatewayClient):
    """Client for the Fleet/Tenant Manager ``v1alpha1`` API."""

    system = "tenant_manager"
    display_name = "Tenant manager"

    def __init__(
        self,
        config: TenantManagerConfig,
        token_provider: OAuth2TokenProvider | None = None,
    ) -> None:
        super().__init__(config, token_provider)
        self._tm_config = config

    def _path(self, suffix: str) -> str:
        return f"{self._tm_config.api_base.rstrip('/')}{suffix}"

    async def _auth(self) -> str | None:
        credentials = self._tm_config.credentials
        if credentials is None:
            return None
        return await self._token(credentials, MANAGEMENT_API_SCOPES)

    async def _call(self, method: str, suffix: str, *, step: str, **kwargs: Any) -> Any:
        token = await self._auth()
        response = await self._request(method, self._path(suffix), step=step, token=token, **kwargs)
        return self._json(response, step=step)

    # ------------------------------------------------------------------
    # Cells
    # ------------------------------------------------------------------

    async def list_cells(self) -> list[TMCell]:
        data = await self._call("GET", "/cells", step="list_cells")
        return self._models(TMCell, data, step="list_cells")

    async def create_cell(self, cell: TMCellCreate) -> TMCell:
        data = await self._call("POST", "/cells", step="create_cell", json=cell.to_payload())
        result = self._model(TMCell, data, step="create_cell")
        logger.info("tenant_manager_cell_created", cell_id=result.id)
        return result

    # ------------------------------------------------------------------
    # Dataspace profiles
    # ------------------------------------------------------------------

    async def list_dataspace_profiles(self) -> list[TMDataspaceProfile]:
        data = await self._call("GET", "/dataspace-profiles", step="list_dataspace_profiles")
        return self._models(TMDataspaceProfile, data, step="list_dataspace_profiles")

    async def get_dataspace_profile(self, profile_id: str) -> TMDataspaceProfile:
        data = await self._call(
            "GET", f"/dataspace-profiles/{profile_id}", step="get_dataspace_profile"
        )
        return self._model(TMDataspaceProfile, data, step="get_dataspace_profile")

    async def deploy_dataspace_profile(
        self, profile_id: str, deployment: TMDataspaceDeployment
    ) -> None:
        await self._call(
            "POST",
            f"/dataspace-profiles/{profile_id}/deployments",
            step="deploy_dataspace_profile",
            json=deployment.to_payload(),
        )
        logger.info("tenant_manager_dataspace_profile_deployed", profile_id=profile_id)

    # ------------------------------------------------------------------
    # Tenants
    # ------------------------------------------------------------------

    async def list_tenants(self) -> list[TMTenant]:
        data = await self._call("GET", "/tenants", step="list_tenants")
        return self._models(TMTenant, data, step="list_tenants")

    async def get_tenant(self, tenant_id: str) -> TMTenant:
        data = await self._call("GET", f"/tenants/{tenant_id}", step="get_tenant")
        return self._model(TMTenant, data, step="get_tenant")

    async def create_tenant(self, tenant: TMTenantCreate) -> TMTenant:
        """Create a tenant; the returned id is the local tenant's correlation id."""
        data = await self._call("POST", "/tenants", step="create_tenant", json=tenant.to_payload())
        result = self._model(TMTenant, data, step="create_tenant")
        logger.info("tenant_manager_tenant_created", correlation_id=result.id)
        return result

    async def update_tenant(self, tenant_id: str, diff: TMTenantPropertiesDiff) -> TMTenant:
        data = await self._call(
            "PATCH", f"/tenants/{tenant_id}", step="update_tenant", json=diff.to_payload()
        )
        return self._model(TMTenant, data, step="update_tenant")

    async def query_tenants(self, predicate: dict[str, Any]) -> list[TMTenant]:
        data = await self._call("POST", "/tenants/query", step="query_tenants", json=predicate)
        return self._models(TMTenant, data, step="query_tenants")

    # ------------------------------------------------------------------
    # Participant profiles
    # ------------------------------------------------------------------

    async def list_participant_profiles(self, tenant_id: str) -> list[TMParticipantProfile]:
        data = await self._call(
            "GET",
            f"/tenants/{tenant_id}/participant-profiles",
            step="list_participant_profiles",
        )
        return self._models(TMParticipantProfile, data, step="list_participant_profiles")

    async def get_participant_profile(
        self, tenant_id: str, profile_id: str
    ) -> TMParticipantProfile:
        data = await self._call(
            "GET",
            f"/tenants/{tenant_id}/participant-profiles/{profile_id}",
            step="get_participant_profile",
        )
        return self._model(TMParticipantProfile, data, step="get_participant_profile")

    async def create_participant_profile(
        self, tenant_id: str, profile: TMParticipantProfileCreate
    ) -> TMParticipantProfile:
        data = await self._call(
            "POST",
            f"/tenants/{tenant_id}/participant-profiles",
            step="create_participant_profile",
            json=profile.to_payload(),
        )
        result = self._model(TMParticipantProfile, data, step="create_participant_profile")
        logger.info(
            "tenant_manager_participant_profile_created",
            tenant_id=tenant_id,
            profile_id=result.id,
            vpa_count=len(result.vpas),
        )
        return result

    async def delete_participant_profile(self, tenant_id: str, profile_id: str) -> None:
        await self._call(
            "DELETE",
            f"/tenants/{tenant_id}/participant-profiles/{profile_id}",
            step="delete_participant_profile",
        )
        logger.info(
            "tenant_manager_participant_profile_deleted",
            tenant_id=tenant_id,
            profile_id=profile_id,
        )

    async def query_participant_profiles(
        self, predicate: dict[str, Any]
    ) -> list[TMParticipantProfile]:
        data = await self._call(
            "POST",
            "/participant-profiles/query",
            step="query_participant_profiles",
            json=predicate,
        )
        return self._models(TMParticipantProfile, data, step="query_participant_profiles")
