"""
Builds the gateway bundle from settings.

The bundle is created once in the application lifespan, stored on
``app.state.gateways`` and handed to services through a dependency.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from dsportal.core.config import Settings
from dsportal.core.token_provider import OAuth2TokenProvider, TokenProviderConfig
from dsportal.modules.connectors.dataplane.client import DataPlaneClient, DataPlaneConfig
from dsportal.modules.connectors.edc.client import ControlPlaneClient, ControlPlaneConfig
from dsportal.modules.connectors.identity_hub.client import (
    IdentityHubClient,
    IdentityHubConfig,
)
from dsportal.modules.connectors.tenant_manager.client import (
    TenantManagerClient,
    TenantManagerConfig,
)
from dsportal.modules.connectors.vault.client import VaultClient, VaultConfig


@dataclass
class Gateways:
    """All external system clients sharing one token provider."""

    token_provider: OAuth2TokenProvider
    tenant_manager: TenantManagerClient
    control_plane: ControlPlaneClient
    identity_hub: IdentityHubClient
    data_plane: DataPlaneClient
    vault: VaultClient
    data_plane_url: str = ""
    vault_client_secret_path: str = "/v1/secret/data/{client_id}"

    async def close(self) -> None:
        await self.tenant_manager.close()
        await self.control_plane.close()
        await self.identity_hub.close()
        await self.data_plane.close()
        await self.vault.close()
        await self.token_provider.close()


def build_gateways(settings: Settings) -> Gateways:
    timeout = settings.http_timeout_seconds
    tokens = OAuth2TokenProvider(TokenProviderConfig(token_url=settings.token_url, timeout=timeout))
    return Gateways(
        token_provider=tokens,
        tenant_manager=TenantManagerClient(
            TenantManagerConfig(
                base_url=settings.tenant_manager_url,
                timeout=timeout,
                api_base=settings.tenant_manager_api_base,
                client_id=settings.tenant_manager_client_id,
                client_secret=settings.tenant_manager_client_secret,
            ),
            tokens,
        ),
        control_plane=ControlPlaneClient(
            ControlPlaneConfig(
                base_url=settings.control_plane_management_url,
                timeout=timeout,
                admin_client_id=settings.control_plane_admin_client_id,
                admin_client_secret=settings.control_plane_admin_client_secret,
            ),
            tokens,
        ),
        identity_hub=IdentityHubClient(
            IdentityHubConfig(
                base_url=settings.identity_hub_url,
                timeout=timeout,
                admin_client_id=settings.identity_hub_admin_client_id,
                admin_client_secret=settings.identity_hub_admin_client_secret,
            ),
            tokens,
        ),
        data_plane=DataPlaneClient(
            DataPlaneConfig(base_url=settings.data_plane_url, timeout=timeout),
            tokens,
        ),
        vault=VaultClient(
            VaultConfig(base_url=settings.vault_url, timeout=timeout, token=settings.vault_token)
        ),
        data_plane_url=settings.data_plane_url,
        vault_client_secret_path=settings.vault_client_secret_path,
    )


def get_gateways(request: Request) -> Gateways:
    """Dependency returning the bundle created at startup."""
    gateways: Gateways | None = getattr(request.app.state, "gateways", None)
    if gateways is None:
        raise RuntimeError("Gateways not initialized. Start the application lifespan first.")
    return gateways


GatewaysDep = Annotated[Gateways, Depends(get_gateways)]
